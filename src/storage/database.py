"""
Snapshot storage.

A small SQLite key/value blob store. The record store snapshot is kept as a
single JSON blob under ``SNAPSHOT_KEY``; the store itself stays unaware of
how it is persisted. Schema versioning recreates the table on mismatch.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from typing import Any, Dict, List, Optional

# Schema version - increment when schema changes
EXPECTED_SCHEMA_VERSION = 1

SNAPSHOT_KEY = "records.snapshot"


class SnapshotDatabase:
    """
    Key/value blob storage for record snapshots.

    Tables:
    - schema_meta: tracks schema version
    - kv_store: key -> text blob
    """

    def __init__(self, local_database_path: str):
        """
        Args:
            local_database_path: Path to the SQLite database file.
        """
        self.local_database_path = local_database_path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

        db_dir = os.path.dirname(local_database_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        logging.info(f"Snapshot database at {local_database_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection (shared by the worker and web threads)."""
        if self.conn is None:
            self.conn = sqlite3.connect(self.local_database_path, check_same_thread=False)
        return self.conn

    def _get_schema_version(self) -> Optional[int]:
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_meta'"
            )
            if cursor.fetchone() is None:
                return None

            cursor.execute("SELECT schema_version FROM schema_meta LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else None
        except sqlite3.Error:
            return None

    def _create_schema(self) -> None:
        cursor = self._get_connection().cursor()
        cursor.execute("DROP TABLE IF EXISTS kv_store")
        cursor.execute("DROP TABLE IF EXISTS schema_meta")

        cursor.execute("""
            CREATE TABLE schema_meta (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                schema_version INTEGER NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        cursor.execute("""
            CREATE TABLE kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)
        cursor.execute(
            "INSERT INTO schema_meta (id, schema_version) VALUES (1, ?)",
            (EXPECTED_SCHEMA_VERSION,)
        )
        self._get_connection().commit()
        logging.info(f"Created schema version {EXPECTED_SCHEMA_VERSION}")

    def initialize(self) -> None:
        """Create the schema, or recreate it when the stored version differs."""
        with self._lock:
            try:
                current_version = self._get_schema_version()
                if current_version != EXPECTED_SCHEMA_VERSION:
                    if current_version is not None:
                        logging.warning(
                            f"Schema version mismatch: found {current_version}, "
                            f"expected {EXPECTED_SCHEMA_VERSION}. Recreating tables."
                        )
                    else:
                        logging.info("No schema found, creating fresh database.")
                    self._create_schema()
                else:
                    logging.info(f"Schema version {current_version} is current")
            except sqlite3.Error as e:
                logging.error(f"Database initialization error: {e}")
                raise

    # -------------------------------------------------------------------------
    # Key/value blobs
    # -------------------------------------------------------------------------

    def put(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, value, time.time()),
            )
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
            return row[0] if row else None

    def delete(self, key: str) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    # -------------------------------------------------------------------------
    # Record snapshots
    # -------------------------------------------------------------------------

    def save_snapshot(self, entries: List[Dict[str, Any]]) -> None:
        """Persist an ordered snapshot payload (list of dicts)."""
        try:
            self.put(SNAPSHOT_KEY, json.dumps(entries))
            logging.debug(f"Snapshot saved: {len(entries)} records")
        except sqlite3.Error as e:
            logging.error(f"Error saving snapshot: {e}")

    def load_snapshot(self) -> List[Dict[str, Any]]:
        """Load the persisted snapshot; an unreadable blob yields an empty list."""
        try:
            blob = self.get(SNAPSHOT_KEY)
        except sqlite3.Error as e:
            logging.error(f"Error loading snapshot: {e}")
            return []
        if not blob:
            return []
        try:
            data = json.loads(blob)
        except ValueError as e:
            logging.warning(f"Discarding unreadable snapshot: {e}")
            return []
        if not isinstance(data, list):
            logging.warning("Discarding snapshot with unexpected shape")
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
