"""
Camera source interface.

A camera source is owned by exactly one FrameScanner. Lifecycle:
    1. Create with a CameraRequest
    2. open() acquires the device (raises a classified ScanError on failure)
    3. read() returns the current frame
    4. close() releases every track; safe to call repeatedly
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.frame import FrameData


@dataclass(frozen=True)
class CameraRequest:
    """
    Parameters for acquiring a camera stream.

    Attributes:
        facing_mode: Preferred camera facing ("environment" = rear camera).
        width: Ideal capture width.
        height: Ideal capture height.
        fps: Ideal frame rate.
        audio: Audio capture; always disabled for scanning.
    """
    facing_mode: str = "environment"
    width: int = 1280
    height: int = 720
    fps: int = 30
    audio: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any]) -> "CameraRequest":
        resolution = camera_cfg.get("resolution") or [1280, 720]
        return cls(
            facing_mode=camera_cfg.get("facing_mode", "environment"),
            width=int(resolution[0]),
            height=int(resolution[1]),
            fps=int(camera_cfg.get("fps", 30)),
        )


class CameraSource(ABC):
    """Abstract camera source returning FrameData objects."""

    def __init__(self, request: CameraRequest, source_id: str = "camera"):
        self.request = request
        self.source_id = source_id
        self._is_open = False
        self._frame_index = 0

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the camera.

        Raises:
            PermissionDenied: the device exists but access is refused.
            NoCameraFound: no device could be opened.
            CapabilityUnsupported: the capture API is unavailable.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the current frame, or None if none is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call multiple times."""

    def capabilities(self) -> Dict[str, Any]:
        """Capability set reported by the active track."""
        return {"torch": False}

    def apply_torch(self, enabled: bool) -> None:
        """Apply the torch constraint. Raises if the track refuses it."""
        raise NotImplementedError("torch control is not supported by this camera")

    def __enter__(self) -> "CameraSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
