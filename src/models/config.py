"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    facing_mode: str = "environment"
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    buffer_size: int = 1
    allow_insecure: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            facing_mode=d.get("facing_mode", "environment"),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            buffer_size=d.get("buffer_size", 1),
            allow_insecure=d.get("allow_insecure", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "facing_mode": self.facing_mode,
            "resolution": self.resolution,
            "fps": self.fps,
            "buffer_size": self.buffer_size,
            "allow_insecure": self.allow_insecure,
        }


@dataclass
class DetectionConfig:
    """Detection backend selection and loop timing."""
    backend: str = "auto"
    scan_interval_ms: int = 200
    max_scan_width: int = 640
    duplicate_cooldown_ms: int = 1200
    max_consecutive_failures: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            backend=d.get("backend", "auto"),
            scan_interval_ms=d.get("scan_interval_ms", 200),
            max_scan_width=d.get("max_scan_width", 640),
            duplicate_cooldown_ms=d.get("duplicate_cooldown_ms", 1200),
            max_consecutive_failures=d.get("max_consecutive_failures", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "scan_interval_ms": self.scan_interval_ms,
            "max_scan_width": self.max_scan_width,
            "duplicate_cooldown_ms": self.duplicate_cooldown_ms,
            "max_consecutive_failures": self.max_consecutive_failures,
        }


@dataclass
class RecordsConfig:
    """Record retention: dedup key priority and history length."""
    dedup_key_order: List[str] = field(default_factory=lambda: ["uid", "mobile", "email", "name_dob"])
    max_history: int = 20

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RecordsConfig":
        return cls(
            dedup_key_order=d.get("dedup_key_order", ["uid", "mobile", "email", "name_dob"]),
            max_history=d.get("max_history", 20),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dedup_key_order": self.dedup_key_order,
            "max_history": self.max_history,
        }


@dataclass
class StorageConfig:
    """Snapshot persistence configuration."""
    snapshot_path: str = "data/records.sqlite"
    persist: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StorageConfig":
        return cls(
            snapshot_path=d.get("snapshot_path", "data/records.sqlite"),
            persist=d.get("persist", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot_path": self.snapshot_path,
            "persist": self.persist,
        }


@dataclass
class WebConfig:
    """HTTP API configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    Use from_dict() to create from the existing config dict (from YAML).
    """
    camera: CameraConfig
    detection: DetectionConfig
    records: RecordsConfig
    storage: StorageConfig
    web: WebConfig
    log_path: str = "logs/scanner.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create from full config dictionary."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            records=RecordsConfig.from_dict(d.get("records", {}) or {}),
            storage=StorageConfig.from_dict(d.get("storage", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/scanner.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary format."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "records": self.records.to_dict(),
            "storage": self.storage.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
