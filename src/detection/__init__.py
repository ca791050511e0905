"""
QR detection backends and capability probing.
"""

from .base import DetectionBackend, QRDetector
from .probe import Capabilities, probe_capabilities, is_secure_camera_source

__all__ = [
    "DetectionBackend",
    "QRDetector",
    "Capabilities",
    "probe_capabilities",
    "is_secure_camera_source",
]
