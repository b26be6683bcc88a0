"""
Tree scene: the single authoritative state holder.

Owns the entity set, the mode controller, the animator, the deferred-task
scheduler and the sensor channel. Two producers feed it:

    - the landmark source calls on_sensor_frame() at sensor cadence
    - the render loop calls tick() at display cadence

tick() drains the sensor channel in order, so gestures published between
two ticks are all seen by the controller and the latest hand position wins.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..control.mode_controller import ControllerConfig, ModeController, ModeTransition
from ..control.scheduler import Scheduler
from ..detection.landmarks import HandLandmarks, hand_position
from ..events import EventBus, Events
from ..recognition.gesture_classifier import GestureClassifier
from ..types import Entity, Gesture, HandPosition, SceneMode, SceneStatus
from .animator import AnimationConfig, FrameAnimator, FrameOutput
from .channel import SensorChannel, SensorUpdate
from .layout import LayoutConfig, build_entity_set

logger = logging.getLogger(__name__)


class TreeScene:
    """
    Gesture-driven particle scene.

    Example:
        >>> scene = TreeScene()
        >>> source.on_frame(scene.on_sensor_frame)
        >>> while running:
        ...     out = scene.tick()
        ...     surface.draw(out, scene.status)
        >>> scene.dispose()
    """

    def __init__(self,
                 layout_config: Optional[LayoutConfig] = None,
                 controller_config: Optional[ControllerConfig] = None,
                 animation_config: Optional[AnimationConfig] = None,
                 classifier: Optional[GestureClassifier] = None,
                 clock: Optional[Callable[[], float]] = None,
                 rng: Optional[np.random.Generator] = None,
                 event_bus: Optional[EventBus] = None,
                 photos: Sequence[object] = ()):
        self.layout_config = layout_config or LayoutConfig()
        self._clock = clock or time.monotonic
        self._rng = rng

        self.scheduler = Scheduler(self._clock)
        self.controller = ModeController(controller_config, self.scheduler)
        self.animator = FrameAnimator(animation_config, tree_height=self.layout_config.tree_height)
        self.classifier = classifier or GestureClassifier()
        self.channel = SensorChannel()
        self.bus = event_bus or EventBus()

        self._photos: List[object] = list(photos)
        self._entities: List[Entity] = []
        self._hand: Optional[HandPosition] = None
        self._alive = True
        self._start_time = self._clock()
        self._last_tick: Optional[float] = None
        self._last_reported_gesture = Gesture.NONE

        self._rebuild()

    # ------------------------------------------------------------------
    # Sensor side
    # ------------------------------------------------------------------

    def on_sensor_frame(self, landmarks: Optional[HandLandmarks]) -> None:
        """Sensor callback: classify and queue for the next tick."""
        if not self._alive:
            return
        gesture = self.classifier.classify(landmarks)
        self.channel.publish(SensorUpdate(gesture=gesture, hand=hand_position(landmarks)))

    # ------------------------------------------------------------------
    # Main-loop side
    # ------------------------------------------------------------------

    def apply_gesture(self, gesture: Gesture) -> Optional[ModeTransition]:
        """Feed a gesture straight to the controller (keyboard fallback)."""
        if not self._alive:
            return None
        return self._handle(gesture)

    def advance_selection(self) -> Optional[int]:
        """Step to the next photo while zoomed."""
        if not self._alive:
            return None
        return self.controller.advance_selection()

    def add_photo(self, image_ref: object) -> None:
        """Append a photo; the entity set is rebuilt."""
        if not self._alive:
            return
        self._photos.append(image_ref)
        self._rebuild()

    def set_photos(self, image_refs: Sequence[object]) -> None:
        """Replace the photo list; the entity set is rebuilt."""
        if not self._alive:
            return
        self._photos = list(image_refs)
        self._rebuild()

    def tick(self) -> Optional[FrameOutput]:
        """
        Advance one render frame.

        Returns:
            FrameOutput, or None once the scene has been disposed
        """
        if not self._alive:
            return None

        now = self._clock()
        self.scheduler.run_pending()

        for update in self.channel.drain():
            self._update_hand(update.hand)
            self._handle(update.gesture)

        dt = None if self._last_tick is None else now - self._last_tick
        self._last_tick = now

        output = self.animator.step(
            elapsed=now - self._start_time,
            mode=self.controller.mode,
            entities=self._entities,
            hand=self._hand,
            grabbed_index=self.controller.grabbed_index,
            dt=dt,
        )
        output.gesture = self.controller.last_gesture
        return output

    def dispose(self) -> None:
        """Tear down: no callback or deferred task touches state afterwards."""
        if not self._alive:
            return
        self._alive = False
        self.controller.dispose()
        self.scheduler.cancel_all()
        self.channel.drain()
        self.bus.emit(Events.SCENE_DISPOSED)
        self.bus.close()
        logger.info("Scene disposed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle(self, gesture: Gesture) -> Optional[ModeTransition]:
        if gesture is not self._last_reported_gesture:
            self._last_reported_gesture = gesture
            self.bus.emit(Events.GESTURE_DETECTED, gesture=gesture)

        transition = self.controller.handle(gesture)
        if transition is not None:
            self.bus.emit(Events.MODE_CHANGED, transition=transition)
        return transition

    def _update_hand(self, hand: Optional[HandPosition]) -> None:
        if hand is not None and self._hand is None:
            self.bus.emit(Events.HAND_DETECTED, hand=hand)
        elif hand is None and self._hand is not None:
            self.bus.emit(Events.HAND_LOST)
        self._hand = hand

    def _rebuild(self) -> None:
        self._entities = build_entity_set(self._photos, self.layout_config, self._rng)
        self.controller.set_photo_count(len(self._photos))
        self.controller.reset_selection()
        self.animator.reset(self._entities)
        logger.info("Entity set rebuilt: %d entities (%d photos)",
                    len(self._entities), len(self._photos))
        self.bus.emit(Events.ENTITIES_REBUILT,
                      entity_count=len(self._entities), photo_count=len(self._photos))

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SceneStatus:
        return SceneStatus(
            mode=self.controller.mode,
            last_gesture=self.controller.last_gesture,
            grabbed_index=self.controller.grabbed_index,
            transition_locked=self.controller.transition_locked,
            photo_count=len(self._photos),
            entity_count=len(self._entities),
        )

    @property
    def entities(self) -> List[Entity]:
        return list(self._entities)

    @property
    def mode(self) -> SceneMode:
        return self.controller.mode

    @property
    def hand(self) -> Optional[HandPosition]:
        return self._hand

    @property
    def alive(self) -> bool:
        return self._alive
