"""
Cooperative deferred-callback scheduler.

Deferred work (such as releasing the transition lock) is queued here and run
from the render tick, on the same thread that owns the scene state. Tasks
are owned by the scheduler's scope: cancel_all() on disposal guarantees no
callback mutates state after teardown.
"""

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a pending deferred callback."""

    __slots__ = ("deadline", "callback", "name", "_cancelled", "_done")

    def __init__(self, deadline: float, callback: Callable[[], None], name: str = ""):
        self.deadline = deadline
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "task")
        self._cancelled = False
        self._done = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._done)

    def __repr__(self):
        state = "cancelled" if self._cancelled else ("done" if self._done else "pending")
        return f"ScheduledTask({self.name}, deadline={self.deadline:.3f}, {state})"


class Scheduler:
    """Timer queue polled by the owner's loop.

    Example:
        >>> scheduler = Scheduler()
        >>> task = scheduler.call_later(1.5, release_lock)
        >>> while running:
        ...     scheduler.run_pending()
        ...     render()
        >>> scheduler.cancel_all()
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> ScheduledTask:
        """Schedule callback to run once delay seconds from now."""
        task = ScheduledTask(self._clock() + delay, callback, name)
        heapq.heappush(self._queue, (task.deadline, next(self._counter), task))
        logger.debug("Scheduled %s in %.2fs", task.name, delay)
        return task

    def run_pending(self) -> int:
        """Run every task whose deadline has passed. Returns how many ran."""
        now = self._clock()
        ran = 0
        while self._queue and self._queue[0][0] <= now:
            _, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            task._done = True
            task.callback()
            ran += 1
        return ran

    def cancel_all(self) -> None:
        """Cancel every pending task and empty the queue."""
        for _, _, task in self._queue:
            task.cancel()
        if self._queue:
            logger.debug("Cancelled %d pending task(s)", len(self._queue))
        self._queue.clear()

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._queue if task.pending)
