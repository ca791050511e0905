"""
Frame models: captured camera frames and the downscaled buffers handed to
pixel-based detectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

MAX_SCAN_WIDTH = 640


@dataclass
class FrameData:
    """
    Metadata and payload for a captured video frame.

    Attributes:
        frame: The raw frame data as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)


@dataclass
class ScanFrame:
    """
    Ephemeral 8-bit grayscale pixel buffer for the software detector.

    Created per detection attempt and discarded right after; never stored.
    """
    pixels: np.ndarray
    width: int
    height: int

    def raw_buffer(self) -> Tuple[bytes, int, int]:
        """(pixel bytes, width, height) as consumed by raw-buffer decoders."""
        return self.pixels.tobytes(), self.width, self.height


def scan_dimensions(width: int, height: int, max_width: int = MAX_SCAN_WIDTH) -> Tuple[int, int]:
    """Cap width at ``max_width`` and scale height to keep the aspect ratio."""
    target_w = min(max_width, width)
    target_h = max(1, int(round(target_w / width * height)))
    return target_w, target_h


def make_scan_frame(frame: np.ndarray, max_width: int = MAX_SCAN_WIDTH) -> ScanFrame:
    """Downscale a BGR (or grayscale) frame into a capped-width ScanFrame."""
    h, w = frame.shape[:2]
    target_w, target_h = scan_dimensions(w, h, max_width)

    if (target_w, target_h) != (w, h):
        frame = cv2.resize(frame, (target_w, target_h), interpolation=cv2.INTER_AREA)

    if frame.ndim == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    else:
        gray = frame
    gray = np.ascontiguousarray(gray, dtype=np.uint8)
    return ScanFrame(pixels=gray, width=target_w, height=target_h)
