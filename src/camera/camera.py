"""
Camera factory.

This is the single entrypoint the rest of the project should use to create a camera.
"""

from __future__ import annotations

from typing import Any, Dict

from .base import CameraRequest, CameraSource
from .backends.opencv import OpenCVCamera
from .backends.picamera2 import Picamera2Camera


def create_camera(camera_cfg: Dict[str, Any]) -> CameraSource:
    backend = camera_cfg.get("backend", "opencv")
    request = CameraRequest.from_camera_config(camera_cfg)

    if backend == "picamera2":
        return Picamera2Camera(request)

    # Default: OpenCV (USB/file/stream)
    return OpenCVCamera(
        request,
        device_id=camera_cfg.get("device_id", 0),
        buffer_size=int(camera_cfg.get("buffer_size", 1)),
    )
