"""
Gesture Tree
============

A hand-gesture driven particle scene: a spiral tree of ornaments and photos
that scatters, reassembles, and zooms onto photos as the user gestures at
the camera.

Modules:
    - capture: Camera frame acquisition and the landmark source lifecycle
    - detection: MediaPipe hand landmark detection and landmark types
    - recognition: Fixed-threshold gesture classification
    - control: Mode controller (gesture debouncer) and cooperative scheduler
    - scene: Entity layout, per-frame animation, scene orchestration
    - render: OpenCV preview render surface
    - utils: Configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
__author__ = "Gesture Tree Team"
