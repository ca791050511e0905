"""
Picamera2 camera backend (Raspberry Pi CSI camera via libcamera).

Only works on Raspberry Pi OS with Picamera2 installed:
  sudo apt install -y python3-picamera2
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from models.frame import FrameData
from scanner.errors import CapabilityUnsupported, NoCameraFound
from ..base import CameraRequest, CameraSource


class Picamera2Camera(CameraSource):
    def __init__(self, request: CameraRequest, source_id: str = "camera"):
        super().__init__(request, source_id=source_id)
        self._picam2 = None

    def open(self) -> None:
        if self._is_open:
            return

        try:
            from picamera2 import Picamera2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise CapabilityUnsupported(
                "Picamera2 is not available. This backend only works on Raspberry Pi OS. "
                "Install with `sudo apt install -y python3-picamera2` or use backend 'opencv'."
            ) from e

        try:
            self._picam2 = Picamera2()
        except (IndexError, RuntimeError) as e:
            raise NoCameraFound(f"No CSI camera detected: {e}") from e

        config = self._picam2.create_video_configuration(
            main={"size": (self.request.width, self.request.height), "format": "RGB888"},
            controls={"FrameRate": self.request.fps},
        )
        self._picam2.configure(config)
        self._picam2.start()
        self._is_open = True
        self._frame_index = 0
        logging.info("Camera opened (backend=picamera2)")

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._picam2 is None:
            return None
        try:
            frame_rgb = self._picam2.capture_array("main")
        except Exception as e:  # pragma: no cover
            logging.warning(f"Picamera2 capture failed: {e}")
            return None
        # Detectors expect BGR
        frame_bgr = frame_rgb[..., ::-1].copy()
        self._frame_index += 1
        return FrameData.from_numpy(
            frame_bgr,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._picam2 is not None:
            try:
                self._picam2.stop()
            finally:
                self._picam2.close()
                self._picam2 = None
            logging.info("Camera released")
        self._is_open = False
