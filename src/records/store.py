"""
Record store: deduplicates decoded records and keeps most-recently-seen order.

The mapping and the order list always move together under one lock, so
every key in the order list has exactly one entry in the mapping.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from models.record import Record, clean_text
from scanner.errors import NoIdentityKey

DEFAULT_KEY_ORDER = ("uid", "mobile", "email", "name_dob")

_NON_DIGITS_RE = re.compile(r"\D+")


def _uid_key(record: Record) -> str:
    return f"uid:{record.uid}" if record.uid else ""


def _mobile_key(record: Record) -> str:
    digits = _NON_DIGITS_RE.sub("", record.mobile)
    return f"mobile:{digits}" if digits else ""


def _email_key(record: Record) -> str:
    return f"email:{record.email.lower()}" if record.email else ""


def _name_dob_key(record: Record) -> str:
    if not record.username or not record.dob:
        return ""
    return f"name_dob:{record.username.lower()}|{record.dob}"


KEY_DERIVERS = {
    "uid": _uid_key,
    "mobile": _mobile_key,
    "email": _email_key,
    "name_dob": _name_dob_key,
}


def derive_dedup_key(record: Record, key_order: Sequence[str] = DEFAULT_KEY_ORDER) -> str:
    """Return the first derivable key in ``key_order``, or '' if none."""
    for kind in key_order:
        key = KEY_DERIVERS[kind](record)
        if key:
            return key
    return ""


@dataclass(frozen=True)
class UpsertOutcome:
    key: str
    record: Record
    created: bool


SnapshotEntry = Union[Tuple[str, Record], Dict[str, Any]]


class RecordStore:
    """
    Ordered, deduplicating store of decoded records.

    Example:
        store = RecordStore()
        outcome = store.upsert(record)
        for key, rec in store.snapshot():
            ...
    """

    def __init__(self, key_order: Sequence[str] = DEFAULT_KEY_ORDER):
        unknown = [k for k in key_order if k not in KEY_DERIVERS]
        if unknown:
            raise ValueError(f"Unknown dedup key kinds: {unknown}")
        self.key_order = tuple(key_order)
        self._records: Dict[str, Record] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    def derive_key(self, record: Record) -> str:
        return derive_dedup_key(record, self.key_order)

    def upsert(self, record: Record, now: Optional[float] = None) -> UpsertOutcome:
        """
        Insert or merge a record.

        Raises:
            NoIdentityKey: if no dedup key can be derived (nothing is mutated).
        """
        key = self.derive_key(record)
        if not key:
            raise NoIdentityKey("Record has no identity field to deduplicate on")

        if now is None:
            now = time.time()

        with self._lock:
            existing = self._records.get(key)
            if existing is None:
                merged = Record.from_fields(record.field_values(), source=record.source, last_seen=now)
            else:
                merged = existing.merged_with(record, now)

            self._records[key] = merged
            if existing is not None:
                self._order.remove(key)
            self._order.insert(0, key)

        return UpsertOutcome(key=key, record=merged, created=existing is None)

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            return self._records.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._order)

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def snapshot(self) -> List[Tuple[str, Record]]:
        """Ordered (key, record) pairs, most recently touched first."""
        with self._lock:
            return [(key, self._records[key]) for key in self._order]

    def to_snapshot_payload(self) -> List[Dict[str, Any]]:
        """Persisted form: one dict per record carrying its key plus every field."""
        return [dict(record.to_dict(), key=key) for key, record in self.snapshot()]

    def restore(self, entries: Iterable[SnapshotEntry]) -> int:
        """
        Replace the store contents from a snapshot.

        Fields are re-cleaned but business rules are not re-applied. Entries
        without a key are skipped; a repeated key keeps its first position.
        Returns the number of records restored.
        """
        records: Dict[str, Record] = {}
        order: List[str] = []
        for entry in entries:
            if isinstance(entry, dict):
                key = clean_text(entry.get("key"))
                record = Record.from_dict(entry)
            else:
                key, record = entry
                key = clean_text(key)
                record = Record.from_dict(record.to_dict())
            if not key:
                logging.warning("Skipping snapshot entry without a key")
                continue
            if key in records:
                continue
            records[key] = record
            order.append(key)

        with self._lock:
            self._records = records
            self._order = order
        return len(order)

    def clear(self) -> None:
        with self._lock:
            self._records = {}
            self._order = []
