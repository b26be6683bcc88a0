"""Gesture recognition module."""
from .gesture_classifier import GestureClassifier, GestureClassifierConfig, classify

__all__ = ["GestureClassifier", "GestureClassifierConfig", "classify"]
