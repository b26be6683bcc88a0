"""
Tests for the mode controller (gesture debouncer)
==================================================
"""

import pytest

from gesture_tree.control.mode_controller import ControllerConfig, ModeController
from gesture_tree.control.scheduler import Scheduler
from gesture_tree.types import Gesture, SceneMode

COOLDOWN = 1.5


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock)


@pytest.fixture
def controller(scheduler):
    ctrl = ModeController(ControllerConfig(cooldown_s=COOLDOWN), scheduler)
    ctrl.set_photo_count(3)
    return ctrl


def wait_out_cooldown(clock, scheduler):
    clock.advance(COOLDOWN + 0.01)
    scheduler.run_pending()


class TestTransitions:
    """Mode transition rules."""

    def test_initial_state(self, controller):
        """Starts assembled with nothing grabbed and no lock."""
        assert controller.mode is SceneMode.TREE
        assert controller.grabbed_index is None
        assert not controller.transition_locked
        assert controller.last_gesture is Gesture.NONE

    def test_open_palm_scatters(self, controller):
        """OPEN_PALM from TREE scatters and engages the lock."""
        transition = controller.handle(Gesture.OPEN_PALM)
        assert transition is not None
        assert transition.previous_mode is SceneMode.TREE
        assert transition.mode is SceneMode.SCATTERED
        assert controller.transition_locked

    def test_repeated_fist_in_tree_is_noop(self, controller):
        """FIST while already in TREE never changes mode or locks."""
        for _ in range(10):
            assert controller.handle(Gesture.FIST) is None
        assert controller.mode is SceneMode.TREE
        assert not controller.transition_locked

    def test_pinch_in_tree_is_noop(self, controller):
        """PINCH only acts from SCATTERED."""
        assert controller.handle(Gesture.PINCH) is None
        assert controller.mode is SceneMode.TREE
        assert controller.grabbed_index is None

    def test_scattered_pinch_zooms_first_photo(self, controller, clock, scheduler):
        """SCATTERED + PINCH selects photo 0."""
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)

        transition = controller.handle(Gesture.PINCH)
        assert transition.mode is SceneMode.PHOTO_ZOOM
        assert controller.mode is SceneMode.PHOTO_ZOOM
        assert controller.grabbed_index == 0

    def test_pinch_in_photo_zoom_is_noop(self, controller, clock, scheduler):
        """A second pinch while zoomed changes nothing."""
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        controller.handle(Gesture.PINCH)
        wait_out_cooldown(clock, scheduler)

        assert controller.handle(Gesture.PINCH) is None
        assert controller.mode is SceneMode.PHOTO_ZOOM
        assert controller.grabbed_index == 0
        assert not controller.transition_locked

    def test_fist_from_photo_zoom_clears_selection(self, controller, clock, scheduler):
        """PHOTO_ZOOM with photo 2 grabbed, FIST returns to TREE."""
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        controller.handle(Gesture.PINCH)
        controller.advance_selection()
        controller.advance_selection()
        assert controller.grabbed_index == 2
        wait_out_cooldown(clock, scheduler)

        transition = controller.handle(Gesture.FIST)
        assert transition.mode is SceneMode.TREE
        assert controller.grabbed_index is None

    def test_open_palm_from_photo_zoom(self, controller, clock, scheduler):
        """OPEN_PALM leaves the zoom and drops the selection."""
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        controller.handle(Gesture.PINCH)
        wait_out_cooldown(clock, scheduler)

        controller.handle(Gesture.OPEN_PALM)
        assert controller.mode is SceneMode.SCATTERED
        assert controller.grabbed_index is None

    def test_none_and_pointing_ignored(self, controller):
        """Unmapped gestures never transition but are still recorded."""
        assert controller.handle(Gesture.NONE) is None
        assert controller.handle(Gesture.POINTING) is None
        assert controller.last_gesture is Gesture.POINTING
        assert controller.mode is SceneMode.TREE


class TestCooldown:
    """Transition lock behavior."""

    def test_second_gesture_within_window_ignored(self, controller, clock, scheduler):
        """Two legal transitions inside the cooldown produce one change."""
        assert controller.handle(Gesture.OPEN_PALM) is not None
        clock.advance(1.0)
        scheduler.run_pending()
        assert controller.handle(Gesture.FIST) is None
        assert controller.mode is SceneMode.SCATTERED

    def test_lock_released_after_cooldown(self, controller, clock, scheduler):
        """After the cooldown the next legal gesture applies."""
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        assert not controller.transition_locked
        assert controller.handle(Gesture.FIST) is not None
        assert controller.mode is SceneMode.TREE

    def test_gesture_recorded_while_locked(self, controller):
        """last_gesture tracks the raw stream even when locked."""
        controller.handle(Gesture.OPEN_PALM)
        controller.handle(Gesture.PINCH)
        assert controller.last_gesture is Gesture.PINCH
        assert controller.mode is SceneMode.SCATTERED

    def test_dispose_cancels_release(self, controller, clock, scheduler):
        """No deferred release runs after dispose."""
        controller.handle(Gesture.OPEN_PALM)
        controller.dispose()
        clock.advance(10.0)
        assert scheduler.run_pending() == 0
        assert controller.transition_locked

    def test_non_positive_cooldown_rejected(self, scheduler):
        """A zero cooldown is a configuration error."""
        with pytest.raises(ValueError):
            ModeController(ControllerConfig(cooldown_s=0), scheduler)


class TestSelection:
    """Grabbed photo indexing."""

    def _zoom(self, controller, clock, scheduler):
        controller.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        controller.handle(Gesture.PINCH)

    def test_advance_wraps(self, controller, clock, scheduler):
        """Advancing past the last photo wraps to the first."""
        self._zoom(controller, clock, scheduler)
        indices = [controller.advance_selection() for _ in range(4)]
        assert indices == [1, 2, 0, 1]

    def test_advance_outside_zoom_is_noop(self, controller):
        """Selection only moves while zoomed."""
        assert controller.advance_selection() is None
        assert controller.grabbed_index is None

    def test_advance_ignores_lock(self, controller, clock, scheduler):
        """Selection can step while the transition lock is held."""
        self._zoom(controller, clock, scheduler)
        assert controller.transition_locked
        assert controller.advance_selection() == 1

    def test_no_photos_still_zooms(self, scheduler, clock):
        """With no photos the grab index is 0 and stays 0."""
        ctrl = ModeController(ControllerConfig(cooldown_s=COOLDOWN), scheduler)
        ctrl.handle(Gesture.OPEN_PALM)
        wait_out_cooldown(clock, scheduler)
        ctrl.handle(Gesture.PINCH)
        assert ctrl.mode is SceneMode.PHOTO_ZOOM
        assert ctrl.grabbed_index == 0
        assert ctrl.advance_selection() == 0

    def test_reset_selection(self, controller, clock, scheduler):
        """Rebuilding the entity set drops the selection."""
        self._zoom(controller, clock, scheduler)
        controller.reset_selection()
        assert controller.grabbed_index is None


class TestControllerConfig:

    def test_from_dict(self):
        """YAML section with upper-case mode name."""
        config = ControllerConfig.from_dict({"cooldown_s": 0.5, "initial_mode": "SCATTERED"})
        assert config.cooldown_s == 0.5
        assert config.initial_mode is SceneMode.SCATTERED

    def test_defaults(self):
        """Empty section falls back to defaults."""
        config = ControllerConfig.from_dict({})
        assert config.cooldown_s == 1.5
        assert config.initial_mode is SceneMode.TREE

    def test_unknown_mode_falls_back(self, caplog):
        """An unknown initial mode is a warning and starts in TREE."""
        with caplog.at_level("WARNING", logger="gesture_tree.control.mode_controller"):
            config = ControllerConfig.from_dict({"initial_mode": "forest"})
        assert config.initial_mode is SceneMode.TREE
        assert "forest" in caplog.text

    @pytest.mark.parametrize("cooldown", ["fast", 0, -1, None, True])
    def test_bad_cooldown_falls_back(self, cooldown, scheduler):
        """Non-numeric or non-positive cooldowns use the default."""
        config = ControllerConfig.from_dict({"cooldown_s": cooldown})
        assert config.cooldown_s == 1.5
        ModeController(config, scheduler)
