"""
Lightweight event bus for decoupled scene notifications.

Each scene owns one bus. Loggers, overlays and the app subscribe to mode
changes and entity rebuilds without the scene knowing about them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.MODE_CHANGED, my_handler)
    bus.emit(Events.MODE_CHANGED, transition=transition)
"""

import logging
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    Listeners run synchronously in priority order on the emitting thread.
    A failing listener is logged and skipped; it never breaks the emitter.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = deque(maxlen=max_history)
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", repr(callback)), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb != callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        if not self._enabled:
            return

        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs.keys()),
        })

        for _, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", repr(callback)), e)

    def close(self):
        """Stop dispatching and drop every listener."""
        self._enabled = False
        self.clear()

    def clear(self, event_name: Optional[str] = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return list(self._event_history)[-last_n:]


class Events:
    """Standard event names used throughout the scene."""

    GESTURE_DETECTED = "gesture_detected"
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"
    MODE_CHANGED = "mode_changed"
    ENTITIES_REBUILT = "entities_rebuilt"
    SCENE_DISPOSED = "scene_disposed"
