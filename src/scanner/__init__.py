"""
Frame scanning: camera lifecycle, throttled detection and scan errors.
"""

from .errors import (
    ScanError,
    CapabilityUnsupported,
    PermissionDenied,
    NoCameraFound,
    DecodeCapabilityMissing,
    UnrecognizedFormat,
    NoIdentityKey,
)

__all__ = [
    "ScanError",
    "CapabilityUnsupported",
    "PermissionDenied",
    "NoCameraFound",
    "DecodeCapabilityMissing",
    "UnrecognizedFormat",
    "NoIdentityKey",
]
