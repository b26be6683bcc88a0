"""
Scene mode controller with single-flight transition lock.

Gesture lifecycle:
    - FIST       : assemble the tree (from SCATTERED or PHOTO_ZOOM)
    - OPEN_PALM  : scatter (from TREE or PHOTO_ZOOM)
    - PINCH      : grab the next photo (only from SCATTERED)
    - anything else, or the active mode's own trigger, is ignored

Every transition engages a cooldown lock. While locked, gestures are still
recorded for display but cannot change the mode, so a held or flickering
pose cannot thrash the scene. The lock release is scheduled once and is not
pushed back by later gestures; only disposal cancels it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..types import Gesture, SceneMode
from .scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


@dataclass
class ControllerConfig:
    """Mode controller settings."""
    cooldown_s: float = 1.5
    initial_mode: SceneMode = SceneMode.TREE

    @classmethod
    def from_dict(cls, config: dict) -> "ControllerConfig":
        """Create config from dictionary. Bad values fall back to defaults."""
        cooldown = config.get("cooldown_s", 1.5)
        if isinstance(cooldown, bool) or not isinstance(cooldown, (int, float)) or cooldown <= 0:
            logger.warning("Invalid controller.cooldown_s %r, using 1.5", cooldown)
            cooldown = 1.5

        mode_name = str(config.get("initial_mode", "tree")).lower()
        try:
            initial_mode = SceneMode(mode_name)
        except ValueError:
            logger.warning("Unknown controller.initial_mode %r, using tree", mode_name)
            initial_mode = SceneMode.TREE

        return cls(cooldown_s=cooldown, initial_mode=initial_mode)


@dataclass(frozen=True)
class ModeTransition:
    """Record of one accepted mode change."""
    gesture: Gesture
    previous_mode: SceneMode
    mode: SceneMode
    grabbed_index: Optional[int]


class ModeController:
    """
    Finite-state machine turning the raw gesture stream into mode changes.

    Example:
        >>> controller = ModeController(scheduler=scheduler)
        >>> transition = controller.handle(Gesture.OPEN_PALM)
        >>> controller.mode
        <SceneMode.SCATTERED: 'scattered'>
    """

    def __init__(self, config: Optional[ControllerConfig] = None,
                 scheduler: Optional[Scheduler] = None):
        self.config = config or ControllerConfig()
        if self.config.cooldown_s <= 0:
            raise ValueError(f"cooldown_s must be positive, got {self.config.cooldown_s}")

        self._scheduler = scheduler or Scheduler()
        self._mode = self.config.initial_mode
        self._last_gesture = Gesture.NONE
        self._grabbed_index: Optional[int] = None
        self._photo_count = 0
        self._locked = False
        self._unlock_task: Optional[ScheduledTask] = None

    def handle(self, gesture: Gesture) -> Optional[ModeTransition]:
        """
        Feed one classified gesture.

        Returns:
            The transition that was applied, or None for a no-op
        """
        self._last_gesture = gesture

        if self._locked:
            return None

        previous = self._mode

        if gesture is Gesture.FIST and self._mode is not SceneMode.TREE:
            self._mode = SceneMode.TREE
            self._grabbed_index = None
        elif gesture is Gesture.OPEN_PALM and self._mode is not SceneMode.SCATTERED:
            self._mode = SceneMode.SCATTERED
            self._grabbed_index = None
        elif gesture is Gesture.PINCH and self._mode is SceneMode.SCATTERED:
            self._mode = SceneMode.PHOTO_ZOOM
            self._grabbed_index = self._advance_grab(self._grabbed_index)
        else:
            return None

        self._engage_lock()
        transition = ModeTransition(gesture, previous, self._mode, self._grabbed_index)
        logger.info("Mode %s -> %s (gesture=%s, grabbed=%s)",
                    previous.value, self._mode.value, gesture.value, self._grabbed_index)
        return transition

    def advance_selection(self) -> Optional[int]:
        """Step the grabbed photo forward while zoomed. No-op in other modes."""
        if self._mode is not SceneMode.PHOTO_ZOOM:
            return self._grabbed_index
        self._grabbed_index = self._advance_grab(self._grabbed_index)
        logger.debug("Selection advanced to %s", self._grabbed_index)
        return self._grabbed_index

    def _advance_grab(self, current: Optional[int]) -> int:
        """Next photo index, wrapped against the current photo count."""
        if current is None:
            return 0
        if self._photo_count <= 0:
            return 0
        return (current + 1) % self._photo_count

    def _engage_lock(self) -> None:
        self._locked = True
        self._unlock_task = self._scheduler.call_later(
            self.config.cooldown_s, self._release_lock, name="release_transition_lock")

    def _release_lock(self) -> None:
        self._locked = False
        self._unlock_task = None
        logger.debug("Transition lock released")

    def set_photo_count(self, count: int) -> None:
        """Tell the controller how many photo entities currently exist."""
        self._photo_count = max(0, count)

    def reset_selection(self) -> None:
        """Drop any grabbed photo (the entity set it indexed is gone)."""
        if self._grabbed_index is not None:
            logger.debug("Clearing grabbed index %d after rebuild", self._grabbed_index)
        self._grabbed_index = None

    def dispose(self) -> None:
        """Cancel the pending lock release so it cannot fire after teardown."""
        if self._unlock_task is not None:
            self._unlock_task.cancel()
            self._unlock_task = None

    @property
    def mode(self) -> SceneMode:
        return self._mode

    @property
    def last_gesture(self) -> Gesture:
        return self._last_gesture

    @property
    def grabbed_index(self) -> Optional[int]:
        return self._grabbed_index

    @property
    def transition_locked(self) -> bool:
        return self._locked

    @property
    def photo_count(self) -> int:
        return self._photo_count
