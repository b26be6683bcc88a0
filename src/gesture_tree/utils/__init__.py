"""Utility modules: config, logging, performance."""
from .config import Config
from .logger import SceneEventLogger, log_timing, setup_logging
from .performance import PerformanceMonitor

__all__ = [
    "Config",
    "PerformanceMonitor",
    "SceneEventLogger",
    "log_timing",
    "setup_logging",
]
