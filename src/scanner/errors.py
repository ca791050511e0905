"""
Scan error kinds.

Capability and permission errors halt scanning; decode-path errors are
reported per scan and never stop the loop.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base class for all scan errors. ``code`` is stable for API clients."""

    code = "scan_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.code


class CapabilityUnsupported(ScanError):
    """No usable detection backend, or the camera context is not secure."""

    code = "capability_unsupported"


class PermissionDenied(ScanError):
    """Camera access was denied."""

    code = "permission_denied"


class NoCameraFound(ScanError):
    """No camera device could be opened."""

    code = "no_camera_found"


class DecodeCapabilityMissing(ScanError):
    """A secure-format payload was detected but decompression is unavailable."""

    code = "decode_capability_missing"


class UnrecognizedFormat(ScanError):
    """No grammar in the decoder cascade matched the payload."""

    code = "unrecognized_format"


class NoIdentityKey(ScanError):
    """The decoded record has no field a dedup key can be derived from."""

    code = "no_identity_key"
