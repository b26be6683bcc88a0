"""
Sensor channel between the landmark source and the render tick.

The sensor side (possibly a capture thread) only ever appends; the render
tick only ever drains. Every gesture reaches the mode controller in order,
while hand position is read last-writer-wins.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional

from ..types import Gesture, HandPosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorUpdate:
    """One sensor frame's contribution to the scene."""
    gesture: Gesture
    hand: Optional[HandPosition]
    timestamp: float = field(default_factory=time.monotonic)


class SensorChannel:
    """Single-producer, single-consumer queue of sensor updates.

    Bounded so a stalled render loop cannot grow memory; when full, the
    oldest updates are dropped.
    """

    def __init__(self, max_pending: int = 64):
        self._pending = deque(maxlen=max_pending)
        self._lock = threading.Lock()
        self._dropped = 0

    def publish(self, update: SensorUpdate) -> None:
        with self._lock:
            if len(self._pending) == self._pending.maxlen:
                if self._dropped == 0:
                    logger.warning("Sensor channel full, dropping oldest updates")
                self._dropped += 1
            self._pending.append(update)

    def drain(self) -> List[SensorUpdate]:
        """Take every pending update, oldest first."""
        with self._lock:
            updates = list(self._pending)
            self._pending.clear()
        return updates

    @property
    def dropped(self) -> int:
        return self._dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
