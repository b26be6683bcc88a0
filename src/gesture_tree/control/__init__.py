"""Mode control: gesture debouncing and deferred callbacks."""
from .mode_controller import ControllerConfig, ModeController, ModeTransition
from .scheduler import ScheduledTask, Scheduler

__all__ = ["ControllerConfig", "ModeController", "ModeTransition", "ScheduledTask", "Scheduler"]
