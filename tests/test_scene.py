"""
Tests for the tree scene state holder
======================================
"""

import threading

import numpy as np
import pytest

from gesture_tree.control.mode_controller import ControllerConfig
from gesture_tree.events import Events
from gesture_tree.scene.channel import SensorChannel, SensorUpdate
from gesture_tree.scene.layout import LayoutConfig
from gesture_tree.scene.scene import TreeScene
from gesture_tree.types import Gesture, SceneMode

from conftest import make_hand


@pytest.fixture
def scene(clock, rng):
    s = TreeScene(
        layout_config=LayoutConfig(ornament_count=20),
        controller_config=ControllerConfig(cooldown_s=1.5),
        clock=clock,
        rng=rng,
        photos=["a.jpg", "b.jpg", "c.jpg"],
    )
    yield s
    s.dispose()


class TestSensorPath:
    """Sensor frames reach the controller through the channel."""

    def test_gesture_applied_on_next_tick(self, scene, open_hand):
        """A sensor frame is queued, then applied by tick()."""
        scene.on_sensor_frame(open_hand)
        assert scene.mode is SceneMode.TREE
        out = scene.tick()
        assert scene.mode is SceneMode.SCATTERED
        assert out.mode is SceneMode.SCATTERED
        assert out.gesture is Gesture.OPEN_PALM

    def test_every_gesture_seen_in_order(self, scene, clock, open_hand, pinch_hand):
        """Gestures between two ticks all reach the controller."""
        scene.on_sensor_frame(open_hand)
        scene.tick()
        clock.advance(2.0)
        scene.on_sensor_frame(pinch_hand)
        scene.on_sensor_frame(None)
        scene.tick()
        assert scene.mode is SceneMode.PHOTO_ZOOM
        assert scene.status.grabbed_index == 0
        assert scene.status.last_gesture is Gesture.NONE

    def test_hand_position_last_writer_wins(self, scene):
        """The latest frame decides the hand position; no hand clears it."""
        scene.on_sensor_frame(make_hand(wrist=(0.25, 0.5)))
        scene.on_sensor_frame(make_hand(wrist=(0.75, 0.5)))
        scene.tick()
        assert scene.hand.x == pytest.approx(-0.5)

        scene.on_sensor_frame(None)
        scene.tick()
        assert scene.hand is None

    def test_cooldown_across_ticks(self, scene, clock, open_hand, fist_hand):
        """The lock is released by the tick after the cooldown."""
        scene.on_sensor_frame(open_hand)
        scene.tick()
        clock.advance(1.0)
        scene.on_sensor_frame(fist_hand)
        scene.tick()
        assert scene.mode is SceneMode.SCATTERED

        clock.advance(0.6)
        scene.on_sensor_frame(fist_hand)
        scene.tick()
        assert scene.mode is SceneMode.TREE

    def test_producer_thread(self, scene, open_hand):
        """Frames published from another thread are picked up."""
        worker = threading.Thread(target=lambda: [scene.on_sensor_frame(open_hand) for _ in range(50)])
        worker.start()
        worker.join()
        scene.tick()
        assert scene.mode is SceneMode.SCATTERED
        assert len(scene.channel) == 0


class TestSensorChannel:

    def test_overflow_drops_oldest_and_counts(self):
        """A full channel keeps the newest updates and counts the drops."""
        channel = SensorChannel(max_pending=4)
        gestures = [Gesture.OPEN_PALM, Gesture.FIST, Gesture.PINCH,
                    Gesture.NONE, Gesture.FIST, Gesture.OPEN_PALM]
        for g in gestures:
            channel.publish(SensorUpdate(gesture=g, hand=None))
        assert channel.dropped == 2
        assert [u.gesture for u in channel.drain()] == gestures[2:]
        assert len(channel) == 0


class TestPhotos:
    """Photo ingestion rebuilds the entity set."""

    def test_initial_set(self, scene):
        """Photos first, then ornaments."""
        status = scene.status
        assert status.photo_count == 3
        assert status.entity_count == 23
        assert [e.image_ref for e in scene.entities[:3]] == ["a.jpg", "b.jpg", "c.jpg"]

    def test_add_photo(self, scene):
        """Appending a photo grows the set by one."""
        scene.add_photo("d.jpg")
        assert scene.status.photo_count == 4
        assert scene.status.entity_count == 24
        assert scene.entities[3].image_ref == "d.jpg"
        assert len(scene.tick()) == 24

    def test_rebuild_clears_selection(self, scene, clock):
        """A rebuild drops the grabbed index."""
        scene.apply_gesture(Gesture.OPEN_PALM)
        clock.advance(2.0)
        scene.tick()
        scene.apply_gesture(Gesture.PINCH)
        assert scene.status.grabbed_index == 0

        scene.set_photos(["x.jpg"])
        assert scene.status.grabbed_index is None
        assert scene.controller.photo_count == 1

    def test_rebuild_event(self, scene):
        """Listeners hear about rebuilds."""
        seen = []
        scene.bus.subscribe(Events.ENTITIES_REBUILT, lambda **kw: seen.append(kw))
        scene.add_photo("d.jpg")
        assert seen == [{"entity_count": 24, "photo_count": 4}]


class TestKeyboardFallback:

    def test_apply_gesture(self, scene):
        """Injected gestures act immediately."""
        transition = scene.apply_gesture(Gesture.OPEN_PALM)
        assert transition.mode is SceneMode.SCATTERED

    def test_advance_selection(self, scene, clock):
        """Selection steps through the photos while zoomed."""
        scene.apply_gesture(Gesture.OPEN_PALM)
        clock.advance(2.0)
        scene.tick()
        scene.apply_gesture(Gesture.PINCH)
        assert scene.advance_selection() == 1
        assert scene.advance_selection() == 2
        out = scene.tick()
        assert out.grabbed_entity_id == 2


class TestEvents:

    def test_mode_change_published(self, scene):
        """Transitions are published on the bus."""
        transitions = []
        scene.bus.subscribe(Events.MODE_CHANGED, lambda transition: transitions.append(transition))
        scene.apply_gesture(Gesture.OPEN_PALM)
        scene.apply_gesture(Gesture.FIST)  # locked
        assert [t.mode for t in transitions] == [SceneMode.SCATTERED]

    def test_gesture_published_on_change_only(self, scene):
        """A held gesture is reported once."""
        gestures = []
        scene.bus.subscribe(Events.GESTURE_DETECTED, lambda gesture: gestures.append(gesture))
        for g in (Gesture.FIST, Gesture.FIST, Gesture.NONE, Gesture.FIST):
            scene.apply_gesture(g)
        assert gestures == [Gesture.FIST, Gesture.NONE, Gesture.FIST]

    def test_hand_presence_events(self, scene, open_hand):
        """Hand detected and lost are published on presence changes."""
        events = []
        scene.bus.subscribe(Events.HAND_DETECTED, lambda hand: events.append("detected"))
        scene.bus.subscribe(Events.HAND_LOST, lambda: events.append("lost"))
        scene.on_sensor_frame(open_hand)
        scene.on_sensor_frame(open_hand)
        scene.on_sensor_frame(None)
        scene.tick()
        assert events == ["detected", "lost"]


class TestDisposal:
    """Nothing touches the scene after dispose."""

    def test_stale_sensor_callback_ignored(self, scene, open_hand):
        """Callbacks after dispose are no-ops."""
        scene.dispose()
        scene.on_sensor_frame(open_hand)
        assert len(scene.channel) == 0
        assert scene.tick() is None
        assert scene.mode is SceneMode.TREE

    def test_pending_unlock_cancelled(self, scene, clock):
        """The deferred lock release is cancelled on dispose."""
        scene.apply_gesture(Gesture.OPEN_PALM)
        assert scene.scheduler.pending_count == 1
        scene.dispose()
        assert scene.scheduler.pending_count == 0
        clock.advance(5.0)
        assert scene.scheduler.run_pending() == 0

    def test_dispose_event_and_idempotence(self, scene):
        """SCENE_DISPOSED fires once and the bus is closed afterwards."""
        fired = []
        scene.bus.subscribe(Events.SCENE_DISPOSED, lambda: fired.append(True))
        scene.dispose()
        scene.dispose()
        assert fired == [True]
        assert scene.bus.listener_count == 0
        assert not scene.alive

    def test_mutators_noop_after_dispose(self, scene):
        """Photo and gesture calls do nothing once disposed."""
        scene.dispose()
        scene.add_photo("late.jpg")
        assert scene.apply_gesture(Gesture.OPEN_PALM) is None
        assert scene.status.photo_count == 3


class TestFrameOutput:

    def test_elapsed_from_clock(self, scene, clock):
        """Elapsed time comes from the injected clock."""
        clock.advance(2.5)
        out = scene.tick()
        assert out.elapsed == pytest.approx(2.5)

    def test_seeded_scenes_match(self, clock):
        """Two scenes with the same seed produce the same first frame."""
        a = TreeScene(LayoutConfig(ornament_count=10), clock=clock, rng=np.random.default_rng(5))
        b = TreeScene(LayoutConfig(ornament_count=10), clock=clock, rng=np.random.default_rng(5))
        np.testing.assert_allclose(a.tick().positions, b.tick().positions)
        a.dispose()
        b.dispose()
