from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from decoding import PayloadDecoder
from models.record import Record
from records.history import DuplicateFilter, ScanHistory
from records.store import RecordStore
from scanner.errors import DecodeCapabilityMissing, NoIdentityKey, UnrecognizedFormat
from storage.database import SnapshotDatabase


class ScanStatus(str, Enum):
    CAPTURED = "captured"
    DUPLICATE = "duplicate"
    UNRECOGNIZED = "unrecognized"
    NO_IDENTITY = "no_identity"
    CAPABILITY_MISSING = "capability_missing"


@dataclass(frozen=True)
class ScanOutcome:
    """Result of processing one raw payload."""
    status: ScanStatus
    raw: str
    record: Optional[Record] = None
    key: Optional[str] = None
    created: bool = False
    message: str = ""

    @property
    def captured(self) -> bool:
        return self.status == ScanStatus.CAPTURED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "key": self.key,
            "created": self.created,
            "message": self.message,
            "record": self.record.to_dict() if self.record else None,
        }


class ScanProcessor:
    """
    Turns raw payloads into stored records.

    raw -> duplicate check -> decode -> upsert -> persist snapshot

    Decode-path failures become outcome statuses; none of them escape.
    """

    def __init__(
        self,
        decoder: PayloadDecoder,
        store: RecordStore,
        duplicate_filter: DuplicateFilter,
        history: ScanHistory,
        db: Optional[SnapshotDatabase] = None,
    ):
        self.decoder = decoder
        self.store = store
        self.duplicate_filter = duplicate_filter
        self.history = history
        self.db = db
        # Worker thread and HTTP handlers both feed payloads; handle one at a time
        self._lock = threading.Lock()

    def handle(self, raw: str, received_at: Optional[float] = None) -> ScanOutcome:
        if received_at is None:
            received_at = time.time()

        with self._lock:
            if not self.duplicate_filter.should_process(raw, received_at * 1000.0):
                logging.debug("Duplicate scan suppressed")
                return ScanOutcome(status=ScanStatus.DUPLICATE, raw=raw)

            outcome = self._decode_and_store(raw, received_at)
            self.history.add(raw, received_at, outcome.status.value)
            return outcome

    def _decode_and_store(self, raw: str, received_at: float) -> ScanOutcome:
        try:
            record = self.decoder.decode(raw)
            if record is None:
                raise UnrecognizedFormat("No known payload format matched")
            result = self.store.upsert(record, now=received_at)
        except DecodeCapabilityMissing as e:
            logging.warning(f"Scan not decoded: {e.message}")
            return ScanOutcome(status=ScanStatus.CAPABILITY_MISSING, raw=raw, message=e.message)
        except UnrecognizedFormat as e:
            logging.warning(f"Scan not decoded: {e.message}")
            return ScanOutcome(status=ScanStatus.UNRECOGNIZED, raw=raw, message=e.message)
        except NoIdentityKey as e:
            logging.warning(f"Scan discarded: {e.message} (source={record.source})")
            return ScanOutcome(status=ScanStatus.NO_IDENTITY, raw=raw, record=record, message=e.message)

        kind = result.key.split(":", 1)[0]
        logging.info(
            f"Scan captured: source={result.record.source}, key_kind={kind}, "
            f"{'new' if result.created else 'updated'}, records={len(self.store)}"
        )
        self.persist()
        return ScanOutcome(
            status=ScanStatus.CAPTURED,
            raw=raw,
            record=result.record,
            key=result.key,
            created=result.created,
            message="Scan captured",
        )

    def persist(self) -> None:
        if self.db is not None:
            self.db.save_snapshot(self.store.to_snapshot_payload())

    def restore(self) -> int:
        if self.db is None:
            return 0
        count = self.store.restore(self.db.load_snapshot())
        logging.info(f"Restored {count} records from snapshot")
        return count

    def clear(self) -> None:
        """Forget every record, the history and the duplicate window."""
        with self._lock:
            self.store.clear()
            self.history.clear()
            self.duplicate_filter.reset()
            self.persist()


class ResultDispatcher:
    """
    FIFO hand-off between the scan loop and the processor.

    ``submit`` timestamps the payload and returns immediately; a single worker
    thread drains the queue so records are stored in arrival order.
    """

    _STOP = object()

    def __init__(self, processor: ScanProcessor, on_outcome: Optional[Callable[[ScanOutcome], None]] = None):
        self.processor = processor
        self.on_outcome = on_outcome
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="scan-results", daemon=True)
        self._thread.start()

    def submit(self, raw: str) -> None:
        self._queue.put((raw, time.time()))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                raw, received_at = item
                outcome = self.processor.handle(raw, received_at)
                if self.on_outcome is not None:
                    self.on_outcome(outcome)
            except Exception as e:
                logging.error(f"Scan result processing failed: {e}")
            finally:
                self._queue.task_done()

    def join(self) -> None:
        """Block until every submitted payload has been processed."""
        self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._queue.put(self._STOP)
        self._thread.join(timeout)
        self._thread = None
