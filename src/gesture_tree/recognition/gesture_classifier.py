"""
Static Gesture Classifier
==========================

Fixed-threshold gesture recognition from hand landmark geometry.

Thresholds are in normalized landmark space, so classification does not
depend on how far the subject stands from the camera. It does depend on
camera tilt; that is a known limitation of the heuristic.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from ..detection.landmarks import HandLandmarks, LandmarkIndex, NUM_LANDMARKS
from ..types import Gesture

logger = logging.getLogger(__name__)

THUMB_FOLDED_DISTANCE = 0.20   # thumb tip -> pinky tip
PINCH_DISTANCE = 0.05          # thumb tip -> index tip
OPEN_PALM_SPREAD = 0.10        # thumb tip -> index tip
FIST_MIN_FOLDED = 3

# (tip, PIP) per non-thumb finger
FINGER_JOINTS = (
    (LandmarkIndex.INDEX_TIP, LandmarkIndex.INDEX_PIP),
    (LandmarkIndex.MIDDLE_TIP, LandmarkIndex.MIDDLE_PIP),
    (LandmarkIndex.RING_TIP, LandmarkIndex.RING_PIP),
    (LandmarkIndex.PINKY_TIP, LandmarkIndex.PINKY_PIP),
)

LandmarkInput = Union[HandLandmarks, Sequence, np.ndarray, None]


@dataclass
class GestureClassifierConfig:
    """Gesture classifier thresholds."""
    thumb_folded_distance: float = THUMB_FOLDED_DISTANCE
    pinch_distance: float = PINCH_DISTANCE
    open_palm_spread: float = OPEN_PALM_SPREAD
    fist_min_folded: int = FIST_MIN_FOLDED

    @classmethod
    def from_dict(cls, config: dict) -> "GestureClassifierConfig":
        """Create config from dictionary."""
        return cls(
            thumb_folded_distance=config.get("thumb_folded_distance", THUMB_FOLDED_DISTANCE),
            pinch_distance=config.get("pinch_distance", PINCH_DISTANCE),
            open_palm_spread=config.get("open_palm_spread", OPEN_PALM_SPREAD),
            fist_min_folded=config.get("fist_min_folded", FIST_MIN_FOLDED),
        )


def _as_xy(landmarks: LandmarkInput) -> Optional[np.ndarray]:
    """Return an (n, 2) array of x/y coordinates, or None when empty."""
    if landmarks is None:
        return None
    points = landmarks.landmarks if isinstance(landmarks, HandLandmarks) else landmarks
    if len(points) == 0:
        return None
    return np.array([(p[0], p[1]) for p in points], dtype=float)


def count_folded_fingers(xy: np.ndarray) -> int:
    """Count non-thumb fingers whose tip is closer to the wrist than their PIP."""
    wrist = xy[LandmarkIndex.WRIST]
    folded = 0
    for tip, pip in FINGER_JOINTS:
        if np.linalg.norm(xy[tip] - wrist) < np.linalg.norm(xy[pip] - wrist):
            folded += 1
    return folded


def classify(landmarks: LandmarkInput,
             config: Optional[GestureClassifierConfig] = None) -> Gesture:
    """
    Classify a single hand frame.

    Args:
        landmarks: HandLandmarks, a sequence of 21 points, or None
        config: Optional threshold overrides

    Returns:
        FIST, PINCH, OPEN_PALM or NONE (checked in that priority)
    """
    cfg = config or _DEFAULT_CONFIG

    xy = _as_xy(landmarks)
    if xy is None:
        return Gesture.NONE
    if len(xy) != NUM_LANDMARKS:
        logger.debug("Rejecting malformed landmark frame with %d points", len(xy))
        return Gesture.NONE

    folded = count_folded_fingers(xy)
    thumb_tip = xy[LandmarkIndex.THUMB_TIP]

    thumb_folded = np.linalg.norm(thumb_tip - xy[LandmarkIndex.PINKY_TIP]) < cfg.thumb_folded_distance
    if folded >= cfg.fist_min_folded and thumb_folded:
        return Gesture.FIST

    pinch_dist = np.linalg.norm(thumb_tip - xy[LandmarkIndex.INDEX_TIP])
    if pinch_dist < cfg.pinch_distance:
        return Gesture.PINCH

    if folded == 0 and pinch_dist > cfg.open_palm_spread:
        return Gesture.OPEN_PALM

    return Gesture.NONE


_DEFAULT_CONFIG = GestureClassifierConfig()


class GestureClassifier:
    """
    Rule-based gesture classifier used by the sensor pipeline.

    Stateless: the same landmarks always produce the same gesture.

    Example:
        >>> classifier = GestureClassifier()
        >>> gesture = classifier.classify(hand_landmarks)
        >>> if gesture is Gesture.FIST:
        ...     print("assemble tree")
    """

    def __init__(self, config: Optional[GestureClassifierConfig] = None):
        self.config = config or GestureClassifierConfig()

    def classify(self, landmarks: LandmarkInput) -> Gesture:
        return classify(landmarks, self.config)
