"""
OpenCV camera backend.

Supports:
- USB webcams (device_id as int, e.g. 0, or a /dev/video* path)
- Video files (device_id as file path)
- Network streams (device_id as URL)
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Optional, Union

import cv2

from models.frame import FrameData
from scanner.errors import CapabilityUnsupported, NoCameraFound, PermissionDenied
from ..base import CameraRequest, CameraSource


def device_node(device_id: Union[int, str]) -> Optional[str]:
    """Return the V4L2 device node for a local camera, if one applies."""
    if isinstance(device_id, int):
        return f"/dev/video{device_id}" if sys.platform.startswith("linux") else None
    if device_id.startswith("/dev/"):
        return device_id
    return None


class OpenCVCamera(CameraSource):
    """
    cv2.VideoCapture wrapper.

    The rest of the project treats this as an abstract camera source:
    - open() / read() -> FrameData / close()
    """

    def __init__(
        self,
        request: CameraRequest,
        device_id: Union[int, str] = 0,
        buffer_size: int = 1,
        source_id: str = "camera",
    ) -> None:
        super().__init__(request, source_id=source_id)
        self.device_id = device_id
        self.buffer_size = buffer_size
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def is_stream(self) -> bool:
        return isinstance(self.device_id, str) and "://" in self.device_id

    @property
    def is_file(self) -> bool:
        return (
            isinstance(self.device_id, str)
            and not self.is_stream
            and not self.device_id.startswith("/dev/")
            and os.path.exists(self.device_id)
        )

    def _check_device_access(self) -> None:
        node = device_node(self.device_id)
        if node is None:
            return
        if not os.path.exists(node):
            raise NoCameraFound(f"No camera device at {node}")
        if not os.access(node, os.R_OK | os.W_OK):
            raise PermissionDenied(f"Access to {node} was denied; check video group membership")

    def open(self) -> None:
        if self._is_open:
            return

        if not hasattr(cv2, "VideoCapture"):
            raise CapabilityUnsupported("This OpenCV build has no video capture support")

        self._check_device_access()

        self._cap = cv2.VideoCapture(self.device_id)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise NoCameraFound(f"Failed to open camera device {self.device_id}")

        # Only local devices accept capture properties
        if not self.is_stream and not self.is_file:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.request.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.request.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.request.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.buffer_size)

            actual_w = self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)
            actual_h = self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
            logging.info(
                f"Camera actual settings - Resolution: ({actual_w}x{actual_h}), "
                f"facing preference: {self.request.facing_mode}"
            )

        self._is_open = True
        self._frame_index = 0
        logging.info(f"Camera opened (backend=opencv, id={self.device_id})")

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None

        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logging.info("Camera released")
        self._is_open = False
