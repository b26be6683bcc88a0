"""
Hand Landmark Types
====================

The 21-point hand skeleton delivered by the landmark source, following the
MediaPipe index convention.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, NamedTuple, Optional

import numpy as np

from ..types import HandPosition

NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width (mirrored)
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist


@dataclass
class HandLandmarks:
    """One detected hand: 21 landmarks plus detection metadata."""
    landmarks: List[Landmark]
    handedness: str = "Right"
    confidence: float = 1.0

    def __len__(self) -> int:
        return len(self.landmarks)

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    @property
    def is_complete(self) -> bool:
        """True if the frame has exactly the expected point count."""
        return len(self.landmarks) == NUM_LANDMARKS

    @property
    def wrist(self) -> Landmark:
        return self.landmarks[LandmarkIndex.WRIST]

    def to_numpy(self) -> np.ndarray:
        """Convert landmarks to numpy array of shape (n, 3)."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=float)


def hand_position(hand: Optional[HandLandmarks]) -> Optional[HandPosition]:
    """
    Map the wrist location into scene steering space.

    The landmark x axis is mirrored relative to the viewer, so it is
    inverted here; y is flipped so that raising the hand moves up.

    Returns:
        HandPosition with both axes in [-1, 1], or None without a hand
    """
    if hand is None or not hand.landmarks:
        return None
    wrist = hand.landmarks[LandmarkIndex.WRIST]
    x = (1.0 - wrist.x) * 2 - 1
    y = -(wrist.y * 2 - 1)
    return HandPosition(x=x, y=y)
