"""
Camera Capture Module
=====================

Low-latency webcam capture feeding the hand detector.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    buffer_size: int = 1  # Minimal buffering for low latency
    warmup_frames: int = 5
    # Landmark x is mirrored later when mapping the wrist into scene space,
    # so frames fed to the detector stay unflipped by default.
    flip_horizontal: bool = False

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 640),
            height=config.get("height", 480),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            warmup_frames=config.get("warmup_frames", 5),
            flip_horizontal=config.get("flip_horizontal", False),
        )


@dataclass
class Frame:
    """Captured frame with metadata."""
    image: np.ndarray
    timestamp: float
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp * 1000)


class Camera:
    """
    Synchronous webcam reader. The landmark source drives it from its own
    thread, so capture never blocks the render loop.

    Example:
        >>> with Camera(CameraConfig()) as camera:
        ...     frame = camera.read()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0

    def start(self) -> bool:
        """
        Open the capture device.

        Returns:
            True if the camera delivers frames
        """
        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width, self.config.height, self.config.fps)

        cap = cv2.VideoCapture(self.config.device_id)
        if not cap.isOpened():
            logger.error("Failed to open camera device %d", self.config.device_id)
            cap.release()
            return False

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        ok, _ = cap.read()
        if not ok:
            logger.error("Camera device %d opened but returned no frames", self.config.device_id)
            cap.release()
            return False

        logger.info("Camera initialized: %dx%d@%.0ffps",
                    int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    cap.get(cv2.CAP_PROP_FPS))

        for _ in range(self.config.warmup_frames):
            cap.read()

        self._cap = cap
        self._frame_number = 0
        return True

    def stop(self) -> None:
        """Release the capture device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera stopped")

    def read(self) -> Optional[Frame]:
        """Capture one frame, or None on failure."""
        if self._cap is None:
            return None

        ok, image = self._cap.read()
        if not ok or image is None:
            logger.warning("Failed to capture frame")
            return None

        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)

        self._frame_number += 1
        return Frame(image=image, timestamp=time.monotonic(), frame_number=self._frame_number)

    @property
    def is_running(self) -> bool:
        return self._cap is not None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
