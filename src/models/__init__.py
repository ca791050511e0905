"""
Typed models for the QR scanner.

Frames, decoded records and the typed view of the YAML config.
"""

from .frame import FrameData, ScanFrame, make_scan_frame
from .record import Record, RECORD_FIELDS
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    RecordsConfig,
    StorageConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "ScanFrame",
    "make_scan_frame",
    # Record
    "Record",
    "RECORD_FIELDS",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "RecordsConfig",
    "StorageConfig",
    "WebConfig",
]
