from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from camera.base import CameraSource
from camera.camera import create_camera
from decoding import PayloadDecoder, load_inflater
from detection.probe import Capabilities, probe_capabilities
from records.history import DuplicateFilter, ScanHistory
from records.store import DEFAULT_KEY_ORDER, RecordStore
from runtime.services import ResultDispatcher, ScanOutcome, ScanProcessor, ScanStatus
from scanner.frame_scanner import FrameScanner
from storage.database import SnapshotDatabase


@dataclass
class ScanSession:
    """
    Explicitly owned state for one scanning session; avoids global singletons.

    Created at session start by ``build_session`` and torn down by ``close``.
    """

    config: dict
    capabilities: Capabilities
    scanner: FrameScanner
    store: RecordStore
    processor: ScanProcessor
    dispatcher: ResultDispatcher
    db: Optional[SnapshotDatabase] = None
    started_at: float = field(default_factory=time.time)
    last_outcome: Optional[ScanOutcome] = None

    def __post_init__(self) -> None:
        self.dispatcher.on_outcome = self.record_outcome

    def record_outcome(self, outcome: ScanOutcome) -> None:
        if outcome.status != ScanStatus.DUPLICATE:
            self.last_outcome = outcome

    def status(self) -> Dict[str, Any]:
        last = self.last_outcome
        return {
            "state": self.scanner.state.value,
            "capabilities": self.capabilities.to_dict(),
            "torch_supported": self.scanner.torch_supported(),
            "torch_enabled": self.scanner.torch_enabled,
            "retry_armed": self.scanner.retry_armed,
            "last_error": self.scanner.last_error.code if self.scanner.last_error else None,
            "record_count": len(self.store),
            "last_outcome": last.to_dict() if last else None,
            "uptime_seconds": int(time.time() - self.started_at),
        }

    def close(self) -> None:
        self.scanner.shutdown()
        self.dispatcher.stop()
        if self.db is not None:
            self.db.close()
        logging.info("Scan session closed")


def build_session(
    config: Dict[str, Any],
    camera: Optional[CameraSource] = None,
    capabilities: Optional[Capabilities] = None,
) -> ScanSession:
    """
    Wire a session from the effective config.

    ``camera`` and ``capabilities`` may be injected (tests, alternative drivers);
    otherwise they come from the camera factory and the capability probe.
    """
    camera_cfg = config.get("camera", {}) or {}
    detection_cfg = config.get("detection", {}) or {}
    records_cfg = config.get("records", {}) or {}
    storage_cfg = config.get("storage", {}) or {}

    if capabilities is None:
        capabilities = probe_capabilities(camera_cfg, detection_cfg)

    db: Optional[SnapshotDatabase] = None
    if storage_cfg.get("persist", True) and storage_cfg.get("snapshot_path"):
        db = SnapshotDatabase(storage_cfg["snapshot_path"])
        db.initialize()

    store = RecordStore(key_order=records_cfg.get("dedup_key_order") or DEFAULT_KEY_ORDER)
    inflater = load_inflater() if capabilities.inflate_available else None
    processor = ScanProcessor(
        decoder=PayloadDecoder(inflater=inflater),
        store=store,
        duplicate_filter=DuplicateFilter(cooldown_ms=float(detection_cfg.get("duplicate_cooldown_ms", 1200))),
        history=ScanHistory(max_items=int(records_cfg.get("max_history", 20))),
        db=db,
    )
    processor.restore()

    dispatcher = ResultDispatcher(processor)

    if camera is None:
        camera = create_camera(camera_cfg)

    scanner = FrameScanner(
        camera,
        capabilities,
        on_result=dispatcher.submit,
        scan_interval_ms=float(detection_cfg.get("scan_interval_ms", 200)),
        max_read_failures=int(detection_cfg.get("max_consecutive_failures", 10)),
    )

    session = ScanSession(
        config=config,
        capabilities=capabilities,
        scanner=scanner,
        store=store,
        processor=processor,
        dispatcher=dispatcher,
        db=db,
    )
    dispatcher.start()
    return session
