# OpenCV drawing for the live view: arm, keypoints, header and progress bar.

import cv2

from rep_engine import PoseSample, RepConfig, RepPhase, SessionSnapshot
from settings import KEYPOINT_DRAW_CONFIDENCE

FONT = cv2.FONT_HERSHEY_SIMPLEX

PHASE_COLORS = {
    RepPhase.UNKNOWN: (200, 200, 200),
    RepPhase.UP: (0, 255, 0),
    RepPhase.DOWN: (0, 165, 255),
}


def _px(lm):
    return int(round(lm.x)), int(round(lm.y))


def draw_keypoints(frame, sample: PoseSample, min_confidence=KEYPOINT_DRAW_CONFIDENCE):
    for lm in sample.landmarks:
        if lm.confidence > min_confidence:
            cv2.circle(frame, _px(lm), 5, (255, 0, 0), -1)


def draw_arm(frame, sample: PoseSample, config: RepConfig):
    pts = [sample.get(name) for name in config.joints]
    if any(p is None or p.confidence < config.min_confidence for p in pts):
        return
    sh, el, wr = (_px(p) for p in pts)
    cv2.line(frame, sh, el, (0, 0, 255), 4)
    cv2.line(frame, el, wr, (0, 0, 255), 4)
    for p in (sh, el, wr):
        cv2.circle(frame, p, 6, (0, 255, 0), -1)


def draw_progress_bar(frame, pct: float):
    h, w = frame.shape[:2]
    x0, x1 = w - 60, w - 25
    y0, y1 = 100, h - 80
    cv2.rectangle(frame, (x0, y0), (x1, y1), (180, 180, 180), 2)
    fill_top = int(y1 - (y1 - y0) * pct / 100.0)
    cv2.rectangle(frame, (x0 + 3, fill_top), (x1 - 3, y1 - 3), (255, 140, 0), -1)
    cv2.putText(frame, f"{int(round(pct))}%", (x0 - 15, y1 + 30), FONT, 0.7, (255, 255, 255), 2)


def draw_hud(frame, snapshot: SessionSnapshot, show_debug=True):
    h, w = frame.shape[:2]
    phase = snapshot.phase
    cv2.rectangle(frame, (0, 0), (w, 70), (0, 0, 0), -1)
    cv2.putText(frame, f"Reps: {snapshot.rep_count}", (10, 45), FONT, 1.0, (0, 255, 0), 3)
    cv2.putText(frame, phase.value.upper() if phase is not RepPhase.UNKNOWN else "IDLE",
                (w // 2 - 40, 45), FONT, 1.0, PHASE_COLORS[phase], 3)

    if show_debug:
        angle = f"{int(snapshot.angle)} deg" if snapshot.angle is not None else "--"
        tracking = "tracking" if snapshot.tracking else "no arm"
        cv2.putText(frame, f"Elbow angle: {angle}   ({tracking})", (10, 70 + 25),
                    FONT, 0.7, (255, 255, 255), 2)
        cv2.putText(frame, "Controls: [q] quit  [r] reset  [s] debug on/off",
                    (10, h - 15), FONT, 0.65, (255, 255, 255), 2)

    draw_progress_bar(frame, snapshot.progress_percent)
