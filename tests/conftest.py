"""
Shared fixtures: synthetic hands, a manual clock, seeded generators.
"""

import numpy as np
import pytest

from gesture_tree.detection.landmarks import HandLandmarks, Landmark

WRIST = (0.5, 0.8)

# Column x per non-thumb finger: index, middle, ring, pinky
FINGER_X = {"index": 0.44, "middle": 0.48, "ring": 0.52, "pinky": 0.56}
EXTENDED_TIP_Y = 0.45
FOLDED_TIP_Y = 0.62


def finger_tip(finger: str, folded: bool):
    return (FINGER_X[finger], FOLDED_TIP_Y if folded else EXTENDED_TIP_Y)


def make_hand(folded=(), thumb_tip=(0.30, 0.60), wrist=WRIST) -> HandLandmarks:
    """
    Build a 21-point hand.

    Args:
        folded: Names of non-thumb fingers to fold toward the wrist
        thumb_tip: (x, y) of the thumb tip
        wrist: (x, y) of the wrist; the fingers keep their absolute layout
    """
    points = [Landmark(*wrist)]

    tx, ty = thumb_tip
    points += [
        Landmark(0.42, 0.75),
        Landmark(0.38, 0.70),
        Landmark((0.38 + tx) / 2, (0.70 + ty) / 2),
        Landmark(tx, ty),
    ]

    for finger, x in FINGER_X.items():
        tip = finger_tip(finger, finger in folded)
        points += [
            Landmark(x, 0.65),   # MCP
            Landmark(x, 0.55),   # PIP
            Landmark(x, 0.50),   # DIP
            Landmark(*tip),
        ]
    return HandLandmarks(landmarks=points)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def fist_hand():
    return make_hand(folded=("index", "middle", "ring", "pinky"), thumb_tip=(0.50, 0.62))


@pytest.fixture
def open_hand():
    return make_hand(thumb_tip=(0.30, 0.60))


@pytest.fixture
def pinch_hand():
    return make_hand(thumb_tip=(0.45, 0.47))
