"""Sensor capture: camera frames to hand landmarks."""
from .landmark_source import LandmarkSource

__all__ = ["LandmarkSource"]
