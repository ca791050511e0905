"""
Software detection backend using zbar through pyzbar.

Frames are downscaled to a capped width first; zbar runs synchronously on
the raw 8-bit buffer.
"""

from __future__ import annotations

import importlib.util
from typing import Optional

import numpy as np

from models.frame import MAX_SCAN_WIDTH, make_scan_frame
from .base import DetectionBackend, QRDetector


def software_detector_available() -> bool:
    return importlib.util.find_spec("pyzbar") is not None


class SoftwareQRDetector(QRDetector):
    backend = DetectionBackend.SOFTWARE

    def __init__(self, max_scan_width: int = MAX_SCAN_WIDTH):
        try:
            from pyzbar import pyzbar  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "pyzbar is not installed (or the zbar shared library is missing). "
                "Install with `pip install pyzbar` and your platform's libzbar package."
            ) from e

        self._pyzbar = pyzbar
        self._symbols = [pyzbar.ZBarSymbol.QRCODE]
        self.max_scan_width = max_scan_width

    def detect(self, frame: np.ndarray) -> Optional[str]:
        scan_frame = make_scan_frame(frame, self.max_scan_width)
        results = self._pyzbar.decode(scan_frame.raw_buffer(), symbols=self._symbols)
        for result in results or []:
            value = result.data.decode("utf-8", errors="replace") if result.data else ""
            if value:
                return value
        return None
