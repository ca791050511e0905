"""
Record retention: dedup store, duplicate suppression and scan history.
"""

from .store import RecordStore, UpsertOutcome, derive_dedup_key, DEFAULT_KEY_ORDER
from .history import DuplicateFilter, ScanHistory, HistoryEntry

__all__ = [
    "RecordStore",
    "UpsertOutcome",
    "derive_dedup_key",
    "DEFAULT_KEY_ORDER",
    "DuplicateFilter",
    "ScanHistory",
    "HistoryEntry",
]
