"""
Tests for the record store, duplicate filter and scan history.
"""

import pytest

from models.record import Record
from records.history import DuplicateFilter, ScanHistory
from records.store import RecordStore, derive_dedup_key
from scanner.errors import NoIdentityKey


def _rec(source="test", **fields) -> Record:
    return Record.from_fields(fields, source=source, last_seen=0.0)


class TestDedupKey:
    def test_uid_first(self):
        record = _rec(uid="1234", mobile="999", email="a@b.c")

        assert derive_dedup_key(record) == "uid:1234"

    def test_mobile_keeps_digits_only(self):
        assert derive_dedup_key(_rec(mobile="+91 99900-01111")) == "mobile:919990001111"

    def test_email_is_lowercased(self):
        assert derive_dedup_key(_rec(email="Jane@X.com")) == "email:jane@x.com"

    def test_name_dob_composite(self):
        assert derive_dedup_key(_rec(username="Jane Doe", dob="1990")) == "name_dob:jane doe|1990"

    def test_name_without_dob_has_no_key(self):
        assert derive_dedup_key(_rec(username="Jane Doe")) == ""

    def test_custom_order(self):
        record = _rec(uid="1234", email="a@b.c")

        assert derive_dedup_key(record, ["email", "uid"]) == "email:a@b.c"


class TestRecordStore:
    def test_unknown_key_kind_rejected(self):
        with pytest.raises(ValueError):
            RecordStore(key_order=["uid", "passport"])

    def test_insert_reports_created(self):
        store = RecordStore()

        outcome = store.upsert(_rec(email="jane@x.com"), now=10.0)

        assert outcome.created is True
        assert outcome.key == "email:jane@x.com"
        assert outcome.record.last_seen == 10.0
        assert len(store) == 1

    def test_upsert_is_idempotent(self):
        store = RecordStore()
        record = _rec(email="jane@x.com", username="Jane")

        store.upsert(record, now=1.0)
        second = store.upsert(record, now=2.0)

        assert second.created is False
        assert len(store) == 1
        assert store.get("email:jane@x.com").username == "Jane"
        assert store.get("email:jane@x.com").last_seen == 2.0

    def test_empty_fields_never_overwrite(self):
        store = RecordStore()
        store.upsert(_rec(uid="1", mobile="999", email="a@b.c"), now=1.0)

        outcome = store.upsert(_rec(uid="1", mobile="", username="Asha"), now=2.0)

        merged = outcome.record
        assert merged.mobile == "999"
        assert merged.email == "a@b.c"
        assert merged.username == "Asha"

    def test_most_recent_first(self):
        store = RecordStore()
        a = _rec(uid="A")
        b = _rec(uid="B")

        store.upsert(a, now=1.0)
        store.upsert(b, now=2.0)
        store.upsert(a, now=3.0)

        assert store.keys() == ["uid:A", "uid:B"]
        assert [key for key, _ in store.snapshot()] == ["uid:A", "uid:B"]

    def test_no_identity_leaves_store_untouched(self):
        store = RecordStore()
        store.upsert(_rec(uid="A"), now=1.0)

        with pytest.raises(NoIdentityKey):
            store.upsert(_rec(username="Nobody"), now=2.0)

        assert store.keys() == ["uid:A"]

    def test_snapshot_payload_carries_keys(self):
        store = RecordStore()
        store.upsert(_rec(uid="A", source="markup"), now=1.0)

        payload = store.to_snapshot_payload()

        assert payload[0]["key"] == "uid:A"
        assert payload[0]["source"] == "markup"
        assert payload[0]["last_seen"] == 1.0

    def test_restore_replaces_contents_in_order(self):
        store = RecordStore()
        store.upsert(_rec(uid="OLD"), now=1.0)

        count = store.restore([
            {"key": "uid:B", "uid": "B", "last_seen": 5.0},
            {"key": "uid:A", "uid": "A", "last_seen": 4.0},
            {"uid": "NOKEY"},
            {"key": "uid:B", "uid": "B-dup"},
        ])

        assert count == 2
        assert store.keys() == ["uid:B", "uid:A"]
        assert store.get("uid:B").uid == "B"
        assert store.get("uid:OLD") is None

    def test_restore_accepts_snapshot_pairs(self):
        source = RecordStore()
        source.upsert(_rec(uid="A"), now=1.0)
        source.upsert(_rec(uid="B"), now=2.0)

        target = RecordStore()
        target.restore(source.snapshot())

        assert target.keys() == source.keys()

    def test_restore_does_not_rederive_keys(self):
        store = RecordStore()

        store.restore([{"key": "legacy:42", "username": "Kept"}])

        assert store.get("legacy:42").username == "Kept"

    def test_clear(self):
        store = RecordStore()
        store.upsert(_rec(uid="A"), now=1.0)

        store.clear()

        assert len(store) == 0
        assert store.snapshot() == []


class TestDuplicateFilter:
    def test_same_value_within_cooldown_dropped(self):
        dup = DuplicateFilter(cooldown_ms=1200)

        assert dup.should_process("X", 1000.0) is True
        assert dup.should_process("X", 2000.0) is False

    def test_same_value_after_cooldown_accepted(self):
        dup = DuplicateFilter(cooldown_ms=1200)
        dup.should_process("X", 1000.0)

        assert dup.should_process("X", 2200.0) is True

    def test_different_value_always_accepted(self):
        dup = DuplicateFilter(cooldown_ms=1200)
        dup.should_process("X", 1000.0)

        assert dup.should_process("Y", 1001.0) is True
        assert dup.should_process("X", 1002.0) is True

    def test_reset(self):
        dup = DuplicateFilter()
        dup.should_process("X", 1000.0)

        dup.reset()

        assert dup.should_process("X", 1001.0) is True


class TestScanHistory:
    def test_newest_first_and_bounded(self):
        history = ScanHistory(max_items=3)

        for i in range(5):
            history.add(f"raw-{i}", float(i), "captured")

        assert [e.raw for e in history.entries()] == ["raw-4", "raw-3", "raw-2"]
        assert len(history) == 3

    def test_entry_to_dict(self):
        history = ScanHistory()
        history.add("raw", 1.5, "unrecognized")

        assert history.entries()[0].to_dict() == {"raw": "raw", "received_at": 1.5, "status": "unrecognized"}

    def test_clear(self):
        history = ScanHistory()
        history.add("raw", 1.0, "captured")

        history.clear()

        assert history.entries() == []
