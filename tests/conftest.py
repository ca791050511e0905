"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import time
from typing import List, Optional

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from camera.base import CameraRequest, CameraSource  # noqa: E402
from detection.base import DetectionBackend, QRDetector  # noqa: E402
from detection.probe import Capabilities  # noqa: E402
from models.frame import FrameData  # noqa: E402


class FakeCamera(CameraSource):
    """
    In-memory camera. ``open_error`` is raised by open(); ``frames`` yields
    None (read failure) when set to an empty list.
    """

    def __init__(self, open_error=None, torch=False, fail_reads=False):
        super().__init__(CameraRequest(), source_id="fake")
        self.open_error = open_error
        self.torch = torch
        self.fail_reads = fail_reads
        self.open_calls = 0
        self.close_calls = 0
        self.torch_values: List[bool] = []

    def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self._is_open = True

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self.fail_reads:
            return None
        self._frame_index += 1
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        return FrameData.from_numpy(frame, time.time(), self._frame_index, self.source_id)

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False

    def capabilities(self):
        return {"torch": self.torch}

    def apply_torch(self, enabled: bool) -> None:
        if not self.torch:
            super().apply_torch(enabled)
        self.torch_values.append(enabled)


class FakeDetector(QRDetector):
    """Returns queued payloads in order, then None."""

    backend = DetectionBackend.NATIVE

    def __init__(self, values=None):
        self.values = list(values or [])
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return None


def make_capabilities(detector=None, secure=True, inflate=True) -> Capabilities:
    detector = detector if detector is not None else FakeDetector()
    return Capabilities(
        backend=detector.backend,
        detector=detector,
        secure_context=secure,
        inflate_available=inflate,
        reasons=["test"],
    )


@pytest.fixture
def fake_camera():
    return FakeCamera()


@pytest.fixture
def fake_detector():
    return FakeDetector()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  backend: "auto"
  scan_interval_ms: 200

records:
  dedup_key_order: ["uid", "mobile", "email", "name_dob"]
  max_history: 20

storage:
  snapshot_path: "data/test.sqlite"
  persist: true

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config(tmp_path):
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "facing_mode": "environment",
            "resolution": [1280, 720],
            "fps": 30,
            "allow_insecure": False,
        },
        "detection": {
            "backend": "auto",
            "scan_interval_ms": 200,
            "max_scan_width": 640,
            "duplicate_cooldown_ms": 1200,
            "max_consecutive_failures": 10,
        },
        "records": {
            "dedup_key_order": ["uid", "mobile", "email", "name_dob"],
            "max_history": 20,
        },
        "storage": {
            "snapshot_path": str(tmp_path / "data" / "records.sqlite"),
            "persist": True,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
