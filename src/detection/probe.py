"""
Capability probing.

Decides once, at startup, which detection backend the session uses and
whether the camera context allows scanning at all. The result is a terminal
report; nothing is retried.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from decoding.inflate import load_inflater
from .base import DetectionBackend, QRDetector
from .native import NativeQRDetector, native_detector_available
from .software import SoftwareQRDetector, software_detector_available

SECURE_SCHEMES = ("rtsps", "https")
LOOPBACK_HOSTS = ("localhost",)


@dataclass
class Capabilities:
    """
    Result of a capability probe.

    Attributes:
        backend: Chosen backend, or None when no detector is usable.
        detector: Configured detector instance for ``backend``.
        secure_context: Whether the camera transport permits scanning.
        inflate_available: Whether secure-format payloads can be decompressed.
        reasons: Human-readable probe notes.
    """
    backend: Optional[DetectionBackend] = None
    detector: Optional[QRDetector] = None
    secure_context: bool = False
    inflate_available: bool = False
    reasons: List[str] = field(default_factory=list)

    @property
    def supported(self) -> bool:
        return self.backend is not None

    @property
    def can_scan(self) -> bool:
        return self.supported and self.secure_context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend.value if self.backend else None,
            "supported": self.supported,
            "secure_context": self.secure_context,
            "inflate_available": self.inflate_available,
            "reasons": list(self.reasons),
        }


def _is_loopback(host: Optional[str]) -> bool:
    if not host:
        return False
    if host.lower() in LOOPBACK_HOSTS:
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def is_secure_camera_source(device_id: Union[int, str]) -> bool:
    """
    Local devices and files are secure. Stream URLs need an encrypted scheme
    or a loopback host.
    """
    if isinstance(device_id, int):
        return True
    if "://" not in device_id:
        # Device path (/dev/video0) or local video file
        return True
    parsed = urlparse(device_id)
    if parsed.scheme.lower() in SECURE_SCHEMES:
        return True
    return _is_loopback(parsed.hostname)


def _select_detector(preference: str, max_scan_width: int, reasons: List[str]) -> Optional[QRDetector]:
    if preference in ("auto", "native"):
        if native_detector_available():
            reasons.append("native OpenCV QR detector available")
            return NativeQRDetector()
        reasons.append("native OpenCV QR detector missing")
        if preference == "native":
            return None

    if preference in ("auto", "software"):
        if software_detector_available():
            try:
                detector = SoftwareQRDetector(max_scan_width=max_scan_width)
            except ImportError as e:
                reasons.append(f"software decoder unusable: {e}")
                return None
            reasons.append("software pyzbar decoder available")
            return detector
        reasons.append("software pyzbar decoder missing")

    return None


def probe_capabilities(camera_cfg: Dict[str, Any], detection_cfg: Dict[str, Any]) -> Capabilities:
    """
    Probe backends in order (native, then software) and the camera context.

    Args:
        camera_cfg: Camera section of the config (device_id, allow_insecure).
        detection_cfg: Detection section (backend preference, max_scan_width).
    """
    reasons: List[str] = []
    preference = detection_cfg.get("backend", "auto")
    max_scan_width = int(detection_cfg.get("max_scan_width", 640))

    detector = _select_detector(preference, max_scan_width, reasons)

    device_id = camera_cfg.get("device_id", 0)
    secure = is_secure_camera_source(device_id)
    if not secure and camera_cfg.get("allow_insecure", False):
        reasons.append("insecure camera transport allowed by configuration")
        secure = True
    elif not secure:
        reasons.append("camera stream uses a plaintext transport to a remote host")

    inflate_available = load_inflater() is not None
    if not inflate_available:
        reasons.append("zlib unavailable; secure-format payloads cannot be decoded")

    caps = Capabilities(
        backend=detector.backend if detector else None,
        detector=detector,
        secure_context=secure,
        inflate_available=inflate_available,
        reasons=reasons,
    )
    logging.info(
        f"Capability probe: backend={caps.backend.value if caps.backend else 'unsupported'}, "
        f"secure_context={caps.secure_context}, inflate={caps.inflate_available}"
    )
    return caps
