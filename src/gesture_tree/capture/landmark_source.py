"""
Landmark source: camera plus hand detector on a background thread.

Delivers one callback per processed camera frame with the primary hand's
landmarks, or None when no hand is visible. Starting is idempotent and
stopping guarantees no callback fires afterwards. The sensor thread owns
the camera and detector it was started with and releases them on exit, so
a detect() still in flight when stop() gives up waiting is never cut short.
"""

import logging
import threading
import time
from typing import Callable, Optional

from ..detection.landmarks import HandLandmarks

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Optional[HandLandmarks]], None]


def _default_camera(config):
    from .camera import Camera, CameraConfig
    return Camera(CameraConfig.from_dict(config or {}))


def _default_detector(config):
    from ..detection.hand_detector import HandDetector, HandDetectorConfig
    return HandDetector(HandDetectorConfig.from_dict(config or {}))


class LandmarkSource:
    """
    Sensor thread producing hand landmarks.

    Example:
        >>> source = LandmarkSource(camera_cfg, mediapipe_cfg)
        >>> source.on_frame(scene.on_sensor_frame)
        >>> if not source.start():
        ...     print("sensor unavailable, keyboard only")
        >>> source.stop()
    """

    def __init__(self, camera_config: Optional[dict] = None,
                 detector_config: Optional[dict] = None,
                 camera_factory: Callable = _default_camera,
                 detector_factory: Callable = _default_detector,
                 idle_sleep_s: float = 0.01,
                 join_timeout_s: float = 2.0):
        self._camera_config = camera_config
        self._detector_config = detector_config
        self._camera_factory = camera_factory
        self._detector_factory = detector_factory
        self._idle_sleep_s = idle_sleep_s
        self._join_timeout_s = join_timeout_s

        self._state_lock = threading.Lock()
        self._alive = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._callback: Optional[FrameCallback] = None

        self._latest_frame = None
        self._frame_lock = threading.Lock()
        self._frames_processed = 0

    def on_frame(self, callback: Optional[FrameCallback]) -> None:
        """Register the per-frame callback (replaces any previous one)."""
        self._callback = callback

    def start(self) -> bool:
        """
        Open the camera, load the detector and start the sensor thread.

        Returns:
            True if running. False means the sensor is unavailable; the
            caller keeps going without hand input.
        """
        with self._state_lock:
            if self._alive:
                return True

            try:
                camera = self._camera_factory(self._camera_config)
                detector = self._detector_factory(self._detector_config)
            except ImportError as e:
                logger.error("Sensor unavailable, missing dependency: %s", e)
                return False

            if not camera.start():
                logger.error("Sensor unavailable: camera did not start")
                return False
            if not detector.start():
                logger.error("Sensor unavailable: hand detector did not start")
                camera.stop()
                return False

            self._alive = True
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._run, name="landmark-source",
                                            args=(camera, detector, self._stop_event), daemon=True)
            self._thread.start()
            logger.info("Landmark source started")
            return True

    def stop(self) -> None:
        """Stop the sensor thread; it releases the camera and detector as it exits."""
        with self._state_lock:
            if self._thread is None:
                return
            self._alive = False
            self._stop_event.set()
            thread, self._thread = self._thread, None

        if thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout_s)
            if thread.is_alive():
                logger.warning("Landmark thread did not exit within timeout; "
                               "sensor is released when it does")
                return
        logger.info("Landmark source stopped (%d frames processed)", self._frames_processed)

    def _run(self, camera, detector, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                frame = camera.read()
                if frame is None:
                    time.sleep(self._idle_sleep_s)
                    continue

                with self._frame_lock:
                    self._latest_frame = frame

                if stop_event.is_set():
                    break
                try:
                    hand = detector.detect(frame.rgb, frame.timestamp_ms)
                except (RuntimeError, ValueError) as e:
                    logger.error("Hand detection failed: %s", e)
                    continue

                self._frames_processed += 1
                callback = self._callback
                if not stop_event.is_set() and callback is not None:
                    callback(hand)
        finally:
            detector.stop()
            camera.stop()

    @property
    def is_running(self) -> bool:
        return self._alive

    @property
    def latest_frame(self):
        """Most recent camera frame, for optional preview display."""
        with self._frame_lock:
            return self._latest_frame

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
