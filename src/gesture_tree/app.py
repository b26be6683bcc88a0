"""
Gesture Tree - hand-gesture-driven particle scene.
Application entry point and main loop.

Usage:
    gesture-tree                          # Camera + preview window
    gesture-tree -p a.jpg -p b.jpg        # With photos
    gesture-tree --no-camera              # Keyboard only
    python -m gesture_tree -c my.yaml -d  # Custom config, debug logging
"""

import argparse
import logging
import os
import signal
from typing import Optional, Sequence

import numpy as np

from . import __version__
from .capture.landmark_source import LandmarkSource
from .control.mode_controller import ControllerConfig
from .recognition.gesture_classifier import GestureClassifier, GestureClassifierConfig
from .scene.animator import AnimationConfig
from .scene.layout import LayoutConfig
from .scene.scene import TreeScene
from .types import Gesture
from .utils.config import Config
from .utils.logger import SceneEventLogger, setup_logging
from .utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

KEY_GESTURES = {
    "t": Gesture.FIST,
    "s": Gesture.OPEN_PALM,
    "z": Gesture.PINCH,
}
NEXT_PHOTO_KEY = "n"
QUIT_KEYS = ("q", "esc")


def build_scene(config: Config, photos: Sequence[object] = (), clock=None) -> TreeScene:
    """Wire a TreeScene from the loaded configuration."""
    scene_cfg = config.scene
    seed = scene_cfg.get("seed")
    return TreeScene(
        layout_config=LayoutConfig.from_dict(scene_cfg),
        controller_config=ControllerConfig.from_dict(config.controller),
        animation_config=AnimationConfig.from_dict(config.animation),
        classifier=GestureClassifier(GestureClassifierConfig.from_dict(config.recognition)),
        clock=clock,
        rng=np.random.default_rng(seed),
        photos=photos,
    )


class GestureTreeApp:
    """
    Owns the scene, the sensor and the render surface, and runs the loop.

    The surface only needs draw(output, status) and close(); a poll_key()
    method, when present, feeds the keyboard fallback.
    """

    def __init__(self, config: Config, photos: Sequence[object] = (),
                 use_camera: bool = True, surface=None,
                 source: Optional[LandmarkSource] = None):
        self._config = config
        self._running = False
        self._perf = PerformanceMonitor()

        self.scene = build_scene(config, photos)
        self._event_log = SceneEventLogger(self.scene.bus)

        self._source = None
        if use_camera:
            self._source = source or LandmarkSource(config.camera, config.mediapipe)
            self._source.on_frame(self.scene.on_sensor_frame)

        self._surface = surface

    def _default_surface(self):
        from .render.preview import PreviewConfig, PreviewRenderer

        def camera_image():
            frame = self._source.latest_frame if self._source else None
            return frame.image if frame is not None else None

        return PreviewRenderer(
            PreviewConfig.from_dict(self._config.visualization),
            fps_source=lambda: self._perf.fps,
            frame_source=camera_image,
        )

    def handle_key(self, key: Optional[str]) -> bool:
        """Apply one key press. Returns False when the app should quit."""
        if key is None:
            return True
        if key in QUIT_KEYS:
            return False
        if key in KEY_GESTURES:
            self.scene.apply_gesture(KEY_GESTURES[key])
        elif key == NEXT_PHOTO_KEY:
            self.scene.advance_selection()
        return True

    def start(self, max_frames: Optional[int] = None) -> bool:
        """Run until quit. Returns False if no render surface is available."""
        if self._source is not None and not self._source.start():
            logger.warning("Continuing without hand tracking; use t / s / z / n keys")

        if self._surface is None:
            try:
                self._surface = self._default_surface()
            except ImportError as e:
                logger.error("Preview unavailable: %s", e)
                self._shutdown()
                return False

        self._running = True
        logger.info("Starting main loop (%d entities)", self.scene.status.entity_count)
        try:
            self._run_loop(max_frames)
        finally:
            self._shutdown()
        return True

    def _run_loop(self, max_frames: Optional[int]) -> None:
        poll_key = getattr(self._surface, "poll_key", None)
        frames = 0
        while self._running:
            with self._perf.measure("tick"):
                output = self.scene.tick()
            if output is None:
                break
            self._perf.set_counter("sensor_dropped", self.scene.channel.dropped)
            with self._perf.measure("render"):
                self._surface.draw(output, self.scene.status)
            self._perf.tick()

            if poll_key is not None and not self.handle_key(poll_key()):
                self._running = False

            frames += 1
            if max_frames is not None and frames >= max_frames:
                self._running = False

    def _shutdown(self) -> None:
        """Stop the sensor first so no callback lands on a disposed scene."""
        logger.info("Shutting down...")
        self._running = False
        if self._source is not None:
            self._source.stop()
        self.scene.dispose()
        if self._surface is not None:
            self._surface.close()
        self._perf.log_report()
        logger.info("Mode transitions this session: %d", self._event_log.transition_count)

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="gesture-tree",
        description="Hand-gesture-driven particle tree",
    )
    parser.add_argument(
        "-c", "--config", type=str, default=None,
        help="Path to config.yaml",
    )
    parser.add_argument(
        "-p", "--photo", action="append", default=[], metavar="PATH",
        help="Photo to place in the scene (repeatable)",
    )
    parser.add_argument(
        "--no-camera", action="store_true",
        help="Run without hand tracking (keyboard only)",
    )
    parser.add_argument(
        "-d", "--debug", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file", type=str, default=None,
        help="Also log to this rotating file",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s " + __version__,
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    log_cfg = config.log_settings
    setup_logging(
        level="DEBUG" if args.debug else log_cfg.get("level", "INFO"),
        log_file=args.log_file or log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    for path in args.photo:
        if not os.path.isfile(path):
            logger.warning("Photo not found: %s (drawn as a plain card)", path)

    logger.info("Gesture Tree %s", __version__)

    app = GestureTreeApp(config, photos=args.photo, use_camera=not args.no_camera)
    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1
