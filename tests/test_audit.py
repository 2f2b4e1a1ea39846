"""
Test suite for audit module

Tests hash chaining, tamper detection and that events share the fate of
the storage unit they were written in.
"""

import pytest
from datetime import datetime, timezone

from bank_ledger.storage import InMemoryStorage, SQLiteStorage
from bank_ledger.audit import AuditTrail, AuditEvent, AuditEventType


class TestAuditTrail:
    """Test audit trail functionality"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.audit_trail = AuditTrail(self.storage)

    def log(self, entity_id="acc-1", event_type=AuditEventType.ACCOUNT_CREATED, **metadata):
        return self.audit_trail.log_event(event_type, "account", entity_id, metadata)

    def test_log_event(self):
        """First event starts the chain"""
        event = self.log(number="ACC-001")

        assert event.sequence == 1
        assert event.previous_hash == ""
        assert event.current_hash == event.calculate_hash()
        assert event.verify_hash()
        assert event.metadata == {"number": "ACC-001"}
        assert self.audit_trail.count_events() == 1

    def test_hash_chain(self):
        """Each event points at the hash of the one before"""
        first = self.log()
        second = self.log(event_type=AuditEventType.ACCOUNT_BLOCKED)
        third = self.log(event_type=AuditEventType.ACCOUNT_ACTIVATED)

        assert second.previous_hash == first.current_hash
        assert third.previous_hash == second.current_hash
        assert [e.sequence for e in self.audit_trail.get_all_events()] == [1, 2, 3]

    def test_metadata_is_serialized(self):
        """Datetimes and enums in metadata become JSON values"""
        stamp = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        event = self.log(at=stamp, kind=AuditEventType.ACCOUNT_UPDATED)
        assert event.metadata == {"at": stamp.isoformat(), "kind": "account_updated"}
        assert event.verify_hash()

    def test_events_for_entity(self):
        self.log("acc-1")
        self.log("acc-2")
        self.log("acc-1", AuditEventType.ACCOUNT_BLOCKED)
        self.log("acc-1", AuditEventType.ACCOUNT_ACTIVATED)

        events = self.audit_trail.get_events_for_entity("account", "acc-1")
        assert [e.event_type for e in events] == [
            AuditEventType.ACCOUNT_CREATED,
            AuditEventType.ACCOUNT_BLOCKED,
            AuditEventType.ACCOUNT_ACTIVATED,
        ]

        recent = self.audit_trail.get_events_for_entity("account", "acc-1", limit=2)
        assert [e.event_type for e in recent] == [
            AuditEventType.ACCOUNT_BLOCKED,
            AuditEventType.ACCOUNT_ACTIVATED,
        ]
        assert self.audit_trail.get_events_for_entity("transaction", "acc-1") == []

    def test_filter_all_events_by_type(self):
        self.log("acc-1")
        self.log("acc-1", AuditEventType.ACCOUNT_BLOCKED)
        self.log("acc-2")
        created = self.audit_trail.get_all_events(AuditEventType.ACCOUNT_CREATED)
        assert [e.entity_id for e in created] == ["acc-1", "acc-2"]

    def test_verify_integrity_clean_chain(self):
        for i in range(5):
            self.log(f"acc-{i}")
        result = self.audit_trail.verify_integrity()
        assert result["valid"] is True
        assert result["total_events"] == 5
        assert result["hash_errors"] == []
        assert result["chain_breaks"] == []

    def test_verify_integrity_detects_tampering(self):
        """Editing a stored event breaks its hash"""
        self.log("acc-1", amount="10.00 USD")
        target = self.log("acc-1", AuditEventType.ACCOUNT_UPDATED, amount="20.00 USD")
        self.log("acc-1", AuditEventType.ACCOUNT_BLOCKED)

        data = self.storage.load(self.audit_trail.table_name, target.id)
        data["metadata"]["amount"] = "99999.00 USD"
        self.storage.save(self.audit_trail.table_name, target.id, data)

        result = self.audit_trail.verify_integrity()
        assert result["valid"] is False
        assert [e["event_id"] for e in result["hash_errors"]] == [target.id]

    def test_verify_integrity_detects_chain_break(self):
        """A re-hashed event with a forged link is still caught"""
        self.log("acc-1")
        target = self.log("acc-1", AuditEventType.ACCOUNT_BLOCKED)

        forged = AuditEvent.from_dict(self.storage.load(self.audit_trail.table_name, target.id))
        forged.previous_hash = "0" * 64
        forged.current_hash = forged.calculate_hash()
        self.storage.save(self.audit_trail.table_name, target.id, forged.to_dict())

        result = self.audit_trail.verify_integrity()
        assert result["valid"] is False
        assert result["hash_errors"] == []
        assert [b["event_id"] for b in result["chain_breaks"]] == [target.id]

    def test_event_round_trips_through_dict(self):
        event = self.log(number="ACC-001")
        restored = AuditEvent.from_dict(event.to_dict())
        assert restored == event
        assert restored.verify_hash()

    @pytest.mark.parametrize("make_storage", [InMemoryStorage, SQLiteStorage])
    def test_rolled_back_event_leaves_no_gap(self, make_storage):
        """Events written in a failed unit disappear together with the head"""
        storage = make_storage()
        audit_trail = AuditTrail(storage)
        first = audit_trail.log_event(AuditEventType.ACCOUNT_CREATED, "account", "acc-1")

        with pytest.raises(RuntimeError):
            with storage.atomic():
                audit_trail.log_event(AuditEventType.ACCOUNT_BLOCKED, "account", "acc-1")
                raise RuntimeError("boom")

        assert audit_trail.count_events() == 1
        following = audit_trail.log_event(AuditEventType.ACCOUNT_ACTIVATED, "account", "acc-1")
        assert following.sequence == 2
        assert following.previous_hash == first.current_hash
        assert audit_trail.verify_integrity()["valid"] is True
        storage.close()
