"""Hand landmark types. The MediaPipe detector lives in detection.hand_detector."""
from .landmarks import HandLandmarks, Landmark, LandmarkIndex, NUM_LANDMARKS, hand_position

__all__ = ["HandLandmarks", "Landmark", "LandmarkIndex", "NUM_LANDMARKS", "hand_position"]
