"""
Raw scan bookkeeping: duplicate suppression and a short recent-scan history.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_COOLDOWN_MS = 1200
DEFAULT_MAX_HISTORY = 20


class DuplicateFilter:
    """
    Drops a raw string identical to the previous one when it arrives within
    the cooldown window. A plain timestamp comparison, no locking.
    """

    def __init__(self, cooldown_ms: float = DEFAULT_COOLDOWN_MS):
        self.cooldown_ms = cooldown_ms
        self._last_value: Optional[str] = None
        self._last_ts_ms: float = 0.0

    def should_process(self, raw: str, now_ms: float) -> bool:
        if raw == self._last_value and now_ms - self._last_ts_ms < self.cooldown_ms:
            return False
        self._last_value = raw
        self._last_ts_ms = now_ms
        return True

    def reset(self) -> None:
        self._last_value = None
        self._last_ts_ms = 0.0


@dataclass(frozen=True)
class HistoryEntry:
    raw: str
    received_at: float
    status: str

    def to_dict(self) -> dict:
        return {"raw": self.raw, "received_at": self.received_at, "status": self.status}


class ScanHistory:
    """Most-recent-first list of accepted raw scans, bounded to ``max_items``."""

    def __init__(self, max_items: int = DEFAULT_MAX_HISTORY):
        self.max_items = max_items
        self._entries: deque = deque(maxlen=max_items)
        self._lock = threading.Lock()

    def add(self, raw: str, received_at: float, status: str) -> None:
        with self._lock:
            self._entries.appendleft(HistoryEntry(raw=raw, received_at=received_at, status=status))

    def entries(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
