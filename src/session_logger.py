import csv
import json
import logging
import time
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path

from rep_engine import RepConfig, RepEvent, RepPhase, SessionSnapshot

logger = logging.getLogger(__name__)

# Always save inside the project folder (data/sessions)
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
SESSIONS_DIR = _PROJECT_ROOT / "data" / "sessions"

CSV_HEADER = [
    "start_time", "end_time", "duration_sec", "total_reps",
    "down_count", "avg_sec_per_rep", "params_json",
]


def fmt_time(ts):
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class SessionSummary:
    start_time: str
    end_time: str
    duration_sec: float
    total_reps: int
    down_count: int
    avg_sec_per_rep: float | None
    params: dict = field(default_factory=dict)


def config_params(config: RepConfig) -> dict:
    return {
        "ANGLE_UP_THRESHOLD": config.up_threshold,
        "ANGLE_DOWN_THRESHOLD": config.down_threshold,
        "MIN_CONFIDENCE": config.min_confidence,
        "JOINTS": list(config.joints),
    }


class SessionRecorder:
    """Session observer that timestamps down/rep events for the summary."""

    def __init__(self, config: RepConfig, clock=time.time):
        self.config = config
        self._clock = clock
        self.start = clock()
        self.rep_times = []
        self.down_times = []
        self.total_reps = 0

    def __call__(self, snapshot: SessionSnapshot):
        if snapshot.event is RepEvent.REP_COMPLETED:
            self.rep_times.append(self._clock())
            self.total_reps = snapshot.rep_count
        elif snapshot.event is RepEvent.ENTERED_DOWN:
            self.down_times.append(self._clock())
        elif snapshot.event is RepEvent.SEEDED and snapshot.phase is RepPhase.DOWN:
            # a session that starts bent counts that as its first down
            self.down_times.append(self._clock())

    def reset(self):
        self.start = self._clock()
        self.rep_times = []
        self.down_times = []
        self.total_reps = 0

    def summary(self) -> SessionSummary:
        end = self._clock()
        gaps = [b - a for a, b in zip(self.rep_times, self.rep_times[1:])]
        return SessionSummary(
            start_time=fmt_time(self.start),
            end_time=fmt_time(end),
            duration_sec=end - self.start,
            total_reps=self.total_reps,
            down_count=len(self.down_times),
            avg_sec_per_rep=(sum(gaps) / len(gaps)) if gaps else None,
            params=config_params(self.config),
        )


def save_session(summary: SessionSummary, sessions_dir: Path = SESSIONS_DIR) -> Path:
    sessions_dir = Path(sessions_dir)
    sessions_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    json_path = sessions_dir / f"session_{timestamp}.json"

    # JSON
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(asdict(summary), f, ensure_ascii=False, indent=2)

    # CSV (one session per line)
    csv_path = sessions_dir / "sessions_log.csv"
    write_header = not csv_path.exists()
    with open(csv_path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if write_header:
            writer.writerow(CSV_HEADER)
        writer.writerow([
            summary.start_time,
            summary.end_time,
            f"{summary.duration_sec:.2f}",
            summary.total_reps,
            summary.down_count,
            f"{summary.avg_sec_per_rep:.2f}" if summary.avg_sec_per_rep is not None else "",
            json.dumps(summary.params, ensure_ascii=False),
        ])

    logger.info("Session saved to %s", json_path)
    return json_path
