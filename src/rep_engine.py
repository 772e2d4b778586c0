"""
Push-up repetition engine.

Turns a stream of pose samples (named 2D landmarks with confidence) into an
up/down phase, a rep count and a push-down progress percentage. Camera, pose
model and drawing live elsewhere; this module only reacts to samples.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import numpy as np

from settings import (
    ANGLE_UP_THRESHOLD, ANGLE_DOWN_THRESHOLD,
    MIN_CONFIDENCE, ARM_SIDE,
)

logger = logging.getLogger(__name__)

# elbow closer than this (in sample units) to shoulder/wrist = no usable angle
_MIN_SEGMENT = 1e-6


class InvalidConfiguration(ValueError):
    pass


class RepPhase(str, Enum):
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"


class RepEvent(str, Enum):
    SEEDED = "seeded"                # first phase out of UNKNOWN, never counted
    ENTERED_DOWN = "entered_down"    # UP -> DOWN
    REP_COMPLETED = "rep_completed"  # DOWN -> UP


@dataclass(frozen=True)
class Landmark:
    name: str
    x: float
    y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class PoseSample:
    landmarks: tuple = ()
    timestamp: Optional[float] = None

    def get(self, name: str) -> Optional[Landmark]:
        for lm in self.landmarks:
            if lm.name == name:
                return lm
        return None

    @classmethod
    def from_points(cls, points: dict, timestamp: Optional[float] = None) -> "PoseSample":
        """Build a sample from {name: (x, y)} or {name: (x, y, confidence)}."""
        landmarks = []
        for name, pt in points.items():
            conf = pt[2] if len(pt) > 2 else 1.0
            landmarks.append(Landmark(name, float(pt[0]), float(pt[1]), float(conf)))
        return cls(tuple(landmarks), timestamp)


def _arm_names(side: str) -> tuple:
    side = side.lower()
    if side not in ("left", "right"):
        raise InvalidConfiguration(f"Unknown arm side {side!r} (expected 'left' or 'right').")
    return f"{side}_shoulder", f"{side}_elbow", f"{side}_wrist"


_DEFAULT_ARM = _arm_names(ARM_SIDE)


@dataclass(frozen=True)
class RepConfig:
    down_threshold: float = ANGLE_DOWN_THRESHOLD
    up_threshold: float = ANGLE_UP_THRESHOLD
    min_confidence: float = MIN_CONFIDENCE
    shoulder: str = _DEFAULT_ARM[0]
    elbow: str = _DEFAULT_ARM[1]
    wrist: str = _DEFAULT_ARM[2]

    def __post_init__(self):
        for label, value in (("down_threshold", self.down_threshold),
                             ("up_threshold", self.up_threshold)):
            if not math.isfinite(value) or not 0.0 <= value <= 180.0:
                raise InvalidConfiguration(f"{label} must be within [0, 180] degrees, got {value!r}.")
        if self.down_threshold >= self.up_threshold:
            raise InvalidConfiguration(
                f"down_threshold ({self.down_threshold}) must be below "
                f"up_threshold ({self.up_threshold})."
            )
        if not 0.0 <= self.min_confidence <= 1.0:
            raise InvalidConfiguration(f"min_confidence must be within [0, 1], got {self.min_confidence!r}.")
        if len({self.shoulder, self.elbow, self.wrist}) != 3:
            raise InvalidConfiguration("shoulder, elbow and wrist must name different landmarks.")

    @classmethod
    def for_side(cls, side: str, **overrides) -> "RepConfig":
        shoulder, elbow, wrist = _arm_names(side)
        return cls(shoulder=shoulder, elbow=elbow, wrist=wrist, **overrides)

    @property
    def joints(self) -> tuple:
        return self.shoulder, self.elbow, self.wrist


def _xy(p):
    if isinstance(p, Landmark):
        return p.x, p.y
    return p[0], p[1]


def calc_angle(a, b, c) -> float:
    """Unsigned interior angle at b (degrees, 0..180) between rays b->a and b->c."""
    ax, ay = _xy(a); bx, by = _xy(b); cx, cy = _xy(c)
    radians = np.arctan2(cy - by, cx - bx) - np.arctan2(ay - by, ax - bx)
    angle = float(np.abs(np.degrees(radians)))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def joint_angle(sample: PoseSample, config: RepConfig) -> Optional[float]:
    """Elbow angle for a sample, or None when the sample can't give one."""
    points = []
    for name in config.joints:
        lm = sample.get(name)
        if lm is None:
            logger.debug("Skipping sample: %s missing", name)
            return None
        # NaN confidence fails this test too
        if not lm.confidence >= config.min_confidence:
            logger.debug("Skipping sample: %s confidence %.2f below %.2f",
                         name, lm.confidence, config.min_confidence)
            return None
        if not (math.isfinite(lm.x) and math.isfinite(lm.y)):
            logger.debug("Skipping sample: %s has non-finite coordinates", name)
            return None
        points.append(lm)

    shoulder, elbow, wrist = points
    if (math.hypot(shoulder.x - elbow.x, shoulder.y - elbow.y) < _MIN_SEGMENT
            or math.hypot(wrist.x - elbow.x, wrist.y - elbow.y) < _MIN_SEGMENT):
        logger.debug("Skipping sample: elbow coincides with shoulder or wrist")
        return None

    angle = calc_angle(shoulder, elbow, wrist)
    if not math.isfinite(angle):
        logger.debug("Skipping sample: angle is not finite")
        return None
    return angle


def progress_percent(angle: float,
                     down_threshold: float = ANGLE_DOWN_THRESHOLD,
                     up_threshold: float = ANGLE_UP_THRESHOLD) -> float:
    """How far down the current rep is: 0 at up_threshold, 100 at down_threshold."""
    pct = (up_threshold - angle) / (up_threshold - down_threshold) * 100.0
    return float(np.clip(pct, 0.0, 100.0))


class RepStateMachine:
    """
    Hysteresis over the elbow angle.

    Below down_threshold -> DOWN, above up_threshold -> UP, anything in
    between (thresholds included) leaves the phase alone. Only phase changes
    produce events; a rep is DOWN -> UP. Leaving UNKNOWN only seeds the phase.
    """

    def __init__(self, config: Optional[RepConfig] = None):
        self.config = config or RepConfig()
        self.phase = RepPhase.UNKNOWN

    def update(self, angle: float) -> Optional[RepEvent]:
        cfg = self.config
        if angle < cfg.down_threshold and self.phase is not RepPhase.DOWN:
            previous, self.phase = self.phase, RepPhase.DOWN
            return RepEvent.ENTERED_DOWN if previous is RepPhase.UP else RepEvent.SEEDED
        if angle > cfg.up_threshold and self.phase is not RepPhase.UP:
            previous, self.phase = self.phase, RepPhase.UP
            return RepEvent.REP_COMPLETED if previous is RepPhase.DOWN else RepEvent.SEEDED
        return None

    def reset(self):
        self.phase = RepPhase.UNKNOWN


@dataclass
class SessionState:
    phase: RepPhase = RepPhase.UNKNOWN
    rep_count: int = 0
    progress_percent: float = 0.0
    angle: Optional[float] = None


@dataclass(frozen=True)
class SessionSnapshot:
    phase: RepPhase = RepPhase.UNKNOWN
    rep_count: int = 0
    progress_percent: float = 0.0
    angle: Optional[float] = None         # last defined angle
    event: Optional[RepEvent] = None      # event raised by the sample behind this snapshot
    tracking: bool = False                # that sample had a usable angle


Observer = Callable[[SessionSnapshot], None]


@dataclass(eq=False)
class _Subscription:
    observer: Observer
    active: bool = field(default=True)


class SessionAggregator:
    """
    Owns the SessionState of one push-up session.

    Feed samples in arrival order with process_sample(); each call returns an
    immutable snapshot and hands the same snapshot to every subscriber.
    Calls from several threads are serialised so the order-dependent phase
    logic sees one sample at a time.
    """

    def __init__(self, config: Optional[RepConfig] = None):
        self.config = config or RepConfig()
        self._machine = RepStateMachine(self.config)
        self._state = SessionState()
        self._snapshot = SessionSnapshot()
        self._subscriptions = []
        # re-entrant: observers may read .snapshot while being notified
        self._lock = threading.RLock()

    @property
    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        sub = _Subscription(observer)
        with self._lock:
            self._subscriptions.append(sub)

        def unsubscribe():
            with self._lock:
                sub.active = False
                if sub in self._subscriptions:
                    self._subscriptions.remove(sub)

        return unsubscribe

    def process_sample(self, sample: Optional[PoseSample]) -> SessionSnapshot:
        with self._lock:
            angle = joint_angle(sample, self.config) if sample is not None else None
            event = None
            if angle is not None:
                event = self._apply(angle)
            self._snapshot = self._make_snapshot(event, tracking=angle is not None)
            self._publish(self._snapshot)
            return self._snapshot

    def reset(self) -> SessionSnapshot:
        with self._lock:
            self._machine.reset()
            self._state = SessionState()
            self._snapshot = SessionSnapshot()
            logger.info("Session reset")
            self._publish(self._snapshot)
            return self._snapshot

    def _apply(self, angle: float) -> Optional[RepEvent]:
        state = self._state
        event = self._machine.update(angle)
        if event is not None:
            state.phase = self._machine.phase
            if event is RepEvent.REP_COMPLETED:
                state.rep_count += 1
                logger.info("Rep %d completed (elbow %.1f deg)", state.rep_count, angle)
            else:
                logger.info("Phase -> %s (%s, elbow %.1f deg)", state.phase.value, event.value, angle)
        state.progress_percent = progress_percent(
            angle, self.config.down_threshold, self.config.up_threshold)
        state.angle = angle
        return event

    def _make_snapshot(self, event, tracking) -> SessionSnapshot:
        s = self._state
        return SessionSnapshot(
            phase=s.phase,
            rep_count=s.rep_count,
            progress_percent=s.progress_percent,
            angle=s.angle,
            event=event,
            tracking=tracking,
        )

    def _publish(self, snapshot: SessionSnapshot):
        for sub in list(self._subscriptions):
            if not sub.active:
                continue
            try:
                sub.observer(snapshot)
            except Exception:
                logger.exception("Session observer %r failed", sub.observer)
