"""
Code-detection interfaces.

Two backends exist and exactly one is active per session:
- NATIVE: the QR detector built into OpenCV, fed the full camera frame
- SOFTWARE: zbar (via pyzbar), fed a downscaled grayscale pixel buffer
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np


class DetectionBackend(str, Enum):
    NATIVE = "native"
    SOFTWARE = "software"


class QRDetector:
    """Detector interface returning the first decoded payload, or None."""

    backend: DetectionBackend

    def detect(self, frame: np.ndarray) -> Optional[str]:
        raise NotImplementedError
