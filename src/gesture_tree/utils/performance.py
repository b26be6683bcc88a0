"""
Frame timing for the render loop and the sensor thread.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Tracks FPS and per-stage latency over rolling windows. Thread-safe."""

    def __init__(self, window_size: int = 60, clock: Callable[[], float] = time.perf_counter):
        self._window_size = window_size
        self._clock = clock
        self._lock = threading.Lock()
        self._frame_times = deque(maxlen=window_size)
        self._last_frame_time = None
        self._stage_times: Dict[str, deque] = {}
        self._counters: Dict[str, int] = {}
        self._frame_count = 0
        self._start_time = clock()

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager to measure one stage's duration."""
        start = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - start) * 1000
            with self._lock:
                if stage_name not in self._stage_times:
                    self._stage_times[stage_name] = deque(maxlen=self._window_size)
                self._stage_times[stage_name].append(elapsed_ms)

    def set_counter(self, name: str, value: int):
        """Record a cumulative count for the report, e.g. dropped updates."""
        with self._lock:
            self._counters[name] = value

    def tick(self):
        """Call once per frame to track FPS."""
        now = self._clock()
        with self._lock:
            if self._last_frame_time is not None:
                self._frame_times.append(now - self._last_frame_time)
            self._last_frame_time = now
            self._frame_count += 1

    @property
    def fps(self) -> float:
        """Current frames per second (rolling average)."""
        with self._lock:
            if not self._frame_times:
                return 0.0
            avg_interval = sum(self._frame_times) / len(self._frame_times)
            return 1.0 / avg_interval if avg_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency for a stage in ms."""
        with self._lock:
            times = self._stage_times.get(stage_name)
            if not times:
                return 0.0
            return sum(times) / len(times)

    def get_report(self) -> dict:
        with self._lock:
            latencies = {
                name: round(sum(times) / len(times), 2)
                for name, times in self._stage_times.items() if times
            }
            frames = self._frame_count
            counters = dict(self._counters)
        return {
            "fps": round(self.fps, 1),
            "total_frames": frames,
            "uptime_seconds": round(self._clock() - self._start_time, 1),
            "latencies_ms": latencies,
            "counters": counters,
        }

    def log_report(self):
        """Log a one-shot summary at shutdown."""
        report = self.get_report()
        logger.info("Frames: %d | FPS: %.1f | Uptime: %.1fs",
                    report["total_frames"], report["fps"], report["uptime_seconds"])
        for stage, ms in sorted(report["latencies_ms"].items()):
            logger.info("  %-12s %7.2f ms", stage, ms)
        for name, value in sorted(report["counters"].items()):
            logger.info("  %-12s %7d", name, value)
