"""
Keypoint Source adapters: pose model output -> PoseSample.

Landmarks are looked up by name. Positional order is only used to name
keypoints that arrive without one.
"""

import time
from typing import Iterable, Optional, Sequence

from rep_engine import Landmark, PoseSample
from settings import SAMPLE_INTERVAL_SEC

# MoveNet / COCO order
COCO_KEYPOINT_NAMES = (
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)


def sample_from_keypoints(keypoints: Optional[Iterable[dict]],
                          names: Sequence[str] = COCO_KEYPOINT_NAMES,
                          timestamp: Optional[float] = None) -> PoseSample:
    """MoveNet-style [{"x", "y", "score", "name"?}, ...] -> PoseSample."""
    landmarks = []
    for idx, kp in enumerate(keypoints or ()):
        name = kp.get("name")
        if name is None:
            if idx >= len(names):
                continue
            name = names[idx]
        landmarks.append(Landmark(
            name=name,
            x=float(kp["x"]),
            y=float(kp["y"]),
            confidence=float(kp.get("score", 1.0)),
        ))
    return PoseSample(tuple(landmarks), timestamp)


def mediapipe_landmark_names(pose_landmark_enum) -> tuple:
    """mp.solutions.pose.PoseLandmark -> ("nose", "left_eye_inner", ...)."""
    members = sorted(pose_landmark_enum, key=lambda m: int(m))
    return tuple(m.name.lower() for m in members)


def sample_from_mediapipe(pose_landmarks, names: Sequence[str],
                          width: int = 1, height: int = 1,
                          timestamp: Optional[float] = None) -> PoseSample:
    """MediaPipe results.pose_landmarks (normalized coords) -> PoseSample in pixels."""
    if pose_landmarks is None:
        return PoseSample((), timestamp)
    landmarks = []
    for name, lm in zip(names, pose_landmarks.landmark):
        landmarks.append(Landmark(
            name=name,
            x=lm.x * width,
            y=lm.y * height,
            confidence=float(getattr(lm, "visibility", 1.0)),
        ))
    return PoseSample(tuple(landmarks), timestamp)


class SampleCadence:
    """Lets one sample through every `interval` seconds."""

    def __init__(self, interval: float = SAMPLE_INTERVAL_SEC, clock=time.monotonic):
        self.interval = interval
        self._clock = clock
        self._last = None

    def ready(self) -> bool:
        if self.interval <= 0:
            return True
        now = self._clock()
        if self._last is None or now - self._last >= self.interval:
            self._last = now
            return True
        return False

    def reset(self):
        self._last = None
