"""
Tests for the landmark source lifecycle, using fake camera and detector
"""

import threading
import time

import numpy as np

from gesture_tree.capture.landmark_source import LandmarkSource

from conftest import make_hand


class FakeFrame:
    def __init__(self, n):
        self.rgb = np.zeros((4, 4, 3), dtype=np.uint8)
        self.image = self.rgb
        self.timestamp_ms = n * 33


class FakeCamera:
    def __init__(self, ok=True):
        self.ok = ok
        self.started = 0
        self.stopped = 0
        self._n = 0

    def start(self):
        self.started += 1
        return self.ok

    def stop(self):
        self.stopped += 1

    def read(self):
        self._n += 1
        time.sleep(0.001)
        return FakeFrame(self._n)


class FakeDetector:
    def __init__(self, ok=True, hand=None):
        self.ok = ok
        self.hand = hand
        self.stopped = 0

    def start(self):
        return self.ok

    def stop(self):
        self.stopped += 1

    def detect(self, image, timestamp_ms):
        return self.hand


def make_source(camera, detector):
    return LandmarkSource(camera_factory=lambda cfg: camera,
                          detector_factory=lambda cfg: detector)


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


class TestLifecycle:

    def test_delivers_frames(self):
        """Each processed frame reaches the callback."""
        hand = make_hand()
        source = make_source(FakeCamera(), FakeDetector(hand=hand))
        received = []
        source.on_frame(received.append)
        assert source.start()
        assert wait_for(lambda: len(received) >= 3)
        source.stop()
        assert received[0] is hand

    def test_start_idempotent(self):
        """Repeated starts keep one camera and one thread."""
        camera = FakeCamera()
        source = make_source(camera, FakeDetector())
        assert source.start()
        assert source.start()
        assert camera.started == 1
        source.stop()

    def test_concurrent_start(self):
        """Starts racing from several threads open the camera once."""
        camera = FakeCamera()
        source = make_source(camera, FakeDetector())
        results = []
        threads = [threading.Thread(target=lambda: results.append(source.start())) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [True] * 5
        assert camera.started == 1
        source.stop()

    def test_no_callbacks_after_stop(self):
        """stop() guarantees silence afterwards."""
        source = make_source(FakeCamera(), FakeDetector())
        received = []
        source.on_frame(received.append)
        source.start()
        wait_for(lambda: len(received) >= 1)
        source.stop()
        count = len(received)
        time.sleep(0.05)
        assert len(received) == count
        assert not source.is_running

    def test_stop_releases_resources(self):
        """Camera and detector are released once."""
        camera, detector = FakeCamera(), FakeDetector()
        source = make_source(camera, detector)
        source.start()
        source.stop()
        source.stop()
        assert camera.stopped == 1
        assert detector.stopped == 1

    def test_slow_detect_not_cut_short(self):
        """A detect() outliving the join timeout keeps its detector until it returns."""
        entered, release = threading.Event(), threading.Event()

        class BlockingDetector(FakeDetector):
            def detect(self, image, timestamp_ms):
                entered.set()
                release.wait(2.0)
                return None

        camera, detector = FakeCamera(), BlockingDetector()
        source = LandmarkSource(camera_factory=lambda cfg: camera,
                                detector_factory=lambda cfg: detector,
                                join_timeout_s=0.05)
        received = []
        source.on_frame(received.append)
        source.start()
        assert entered.wait(2.0)

        source.stop()
        assert detector.stopped == 0
        assert camera.stopped == 0

        release.set()
        assert wait_for(lambda: detector.stopped == 1 and camera.stopped == 1)
        assert received == []

    def test_stop_before_start(self):
        """Stopping an idle source is harmless."""
        source = make_source(FakeCamera(), FakeDetector())
        source.stop()
        assert not source.is_running


class TestUnavailableSensor:
    """Hardware or model problems degrade to 'no sensor'."""

    def test_camera_fails(self):
        """A camera that cannot open reports False."""
        source = make_source(FakeCamera(ok=False), FakeDetector())
        assert source.start() is False
        assert not source.is_running

    def test_detector_fails(self):
        """A model that cannot load reports False and releases the camera."""
        camera = FakeCamera()
        source = make_source(camera, FakeDetector(ok=False))
        assert source.start() is False
        assert camera.stopped == 1

    def test_missing_dependency(self):
        """An import failure while building the detector reports False."""
        def missing(cfg):
            raise ImportError("No module named 'mediapipe'")

        source = LandmarkSource(camera_factory=lambda cfg: FakeCamera(), detector_factory=missing)
        assert source.start() is False
