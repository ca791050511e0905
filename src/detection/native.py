"""
Native detection backend using OpenCV's built-in QR detector.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .base import DetectionBackend, QRDetector


def native_detector_available() -> bool:
    return hasattr(cv2, "QRCodeDetector")


class NativeQRDetector(QRDetector):
    """
    Runs cv2.QRCodeDetector directly on the live frame.

    OpenCV's detector is QR-only, so configuring it for the QR symbology
    is just constructing it.
    """

    backend = DetectionBackend.NATIVE

    def __init__(self) -> None:
        if not native_detector_available():
            raise ImportError("This OpenCV build has no QRCodeDetector")
        self._detector = cv2.QRCodeDetector()

    def detect(self, frame: np.ndarray) -> Optional[str]:
        ok, decoded_info, _points, _straight = self._detector.detectAndDecodeMulti(frame)
        if not ok or decoded_info is None:
            return None
        for value in decoded_info:
            if value:
                return value
        return None
