"""
Snapshot persistence for the record store.
"""

from .database import SnapshotDatabase, SNAPSHOT_KEY, EXPECTED_SCHEMA_VERSION

__all__ = ["SnapshotDatabase", "SNAPSHOT_KEY", "EXPECTED_SCHEMA_VERSION"]
