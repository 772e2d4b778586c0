import math

import pytest

from rep_engine import PoseSample


def arm_sample(angle, confidence=0.9, side="right", drop=None):
    """Sample whose elbow angle is `angle` degrees (shoulder along +x)."""
    rad = math.radians(angle)
    points = {
        f"{side}_shoulder": (100.0, 0.0, confidence),
        f"{side}_elbow": (0.0, 0.0, confidence),
        f"{side}_wrist": (100.0 * math.cos(rad), 100.0 * math.sin(rad), confidence),
    }
    if drop:
        points.pop(f"{side}_{drop}")
    return PoseSample.from_points(points)


@pytest.fixture
def arm():
    return arm_sample
