"""
Logging setup plus a scene event logger fed from the event bus.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps

from ..events import EventBus, Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console and optional rotating-file logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-32s | %(message)s"
    date_format = "%H:%M:%S"

    level_value = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level_value)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class SceneEventLogger:
    """Records gesture and mode-change events published by a scene."""

    def __init__(self, bus: EventBus, max_history: int = 500):
        self.logger = logging.getLogger("gesture_tree.events")
        self._history = []
        self._max_history = max_history
        self._bus = bus
        bus.subscribe(Events.GESTURE_DETECTED, self.log_gesture)
        bus.subscribe(Events.MODE_CHANGED, self.log_transition)
        bus.subscribe(Events.ENTITIES_REBUILT, self.log_rebuild)

    def _record(self, entry):
        self._history.append(entry)
        if len(self._history) > self._max_history:
            del self._history[0]

    def log_gesture(self, gesture):
        self._record({"timestamp": time.time(), "event": "gesture", "gesture": gesture.name})
        self.logger.debug("Gesture: %s", gesture.name)

    def log_transition(self, transition):
        self._record({
            "timestamp": time.time(),
            "event": "mode",
            "gesture": transition.gesture.name,
            "from": transition.previous_mode.name,
            "to": transition.mode.name,
            "grabbed_index": transition.grabbed_index,
        })
        self.logger.info(
            "Mode: %-10s -> %-10s | Gesture: %-9s | Photo: %s",
            transition.previous_mode.name,
            transition.mode.name,
            transition.gesture.name,
            "-" if transition.grabbed_index is None else transition.grabbed_index,
        )

    def log_rebuild(self, entity_count, photo_count):
        self._record({
            "timestamp": time.time(),
            "event": "rebuild",
            "entity_count": entity_count,
            "photo_count": photo_count,
        })

    def detach(self):
        """Stop listening to the bus."""
        self._bus.unsubscribe(Events.GESTURE_DETECTED, self.log_gesture)
        self._bus.unsubscribe(Events.MODE_CHANGED, self.log_transition)
        self._bus.unsubscribe(Events.ENTITIES_REBUILT, self.log_rebuild)

    def get_history(self, last_n=None):
        """Get recent event history."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def transition_count(self):
        return sum(1 for e in self._history if e["event"] == "mode")


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
