"""
Tests for the scan engine that drives the frame scanner.
"""

import threading
import time

import pytest

from conftest import FakeCamera, FakeDetector, make_capabilities
from pipeline.engine import EngineConfig, ScanEngine, create_engine_from_config
from runtime.context import build_session
from scanner.errors import NoCameraFound
from scanner.frame_scanner import ScannerState

KV_PAYLOAD = "name=Jane Doe; dob=1990-01-01; email=jane@x.com"


@pytest.fixture
def session_factory(valid_config):
    sessions = []

    def factory(camera=None, detector=None):
        session = build_session(
            valid_config,
            camera=camera or FakeCamera(),
            capabilities=make_capabilities(detector or FakeDetector()),
        )
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


class StopAfterDetector(FakeDetector):
    """Emits queued payloads, then stops the engine once they are used up."""

    def __init__(self, values, engine_ref):
        super().__init__(values)
        self.engine_ref = engine_ref

    def detect(self, frame):
        value = super().detect(frame)
        if not self.values and value is None:
            self.engine_ref[0].stop()
        return value


class TestScanEngine:
    def test_detected_payload_reaches_store(self, session_factory):
        engine_ref = []
        detector = StopAfterDetector([KV_PAYLOAD], engine_ref)
        session = session_factory(detector=detector)
        session.scanner.scan_interval_ms = 0
        engine = ScanEngine(session, EngineConfig(idle_wait=0.01))
        engine_ref.append(engine)

        engine.run()
        session.dispatcher.join()

        assert session.store.keys() == ["email:jane@x.com"]
        assert engine.stats.attempt_count >= 2
        # Engine cleanup releases the camera
        assert session.scanner.state == ScannerState.IDLE

    def test_failed_autostart_keeps_engine_idle(self, session_factory):
        session = session_factory(camera=FakeCamera(open_error=NoCameraFound("none")))
        engine = ScanEngine(session, EngineConfig(idle_wait=0.01))

        thread = threading.Thread(target=engine.run)
        thread.start()
        deadline = time.monotonic() + 2
        while session.scanner.last_error is None and time.monotonic() < deadline:
            time.sleep(0.01)
        engine.stop()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert session.scanner.last_error.code == "no_camera_found"
        assert engine.stats.tick_count == 0

    def test_exits_when_scanner_shut_down(self, session_factory):
        session = session_factory()
        engine = ScanEngine(session, EngineConfig(autostart=False, idle_wait=0.01))

        thread = threading.Thread(target=engine.run)
        thread.start()
        session.scanner.shutdown()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert engine.running is False

    def test_create_engine_from_config(self, valid_config, session_factory):
        valid_config["engine"] = {"autostart": False, "idle_wait": 0.2, "stats_log_interval": 5}
        session = session_factory()

        engine = create_engine_from_config(valid_config, session, display=False)

        assert engine.config.autostart is False
        assert engine.config.idle_wait == 0.2
        assert engine.config.stats_log_interval == 5.0
        assert engine.config.display is False
