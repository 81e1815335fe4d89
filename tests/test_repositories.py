"""Tests for repository classes."""

import json
from datetime import timezone

from powerlog.core.models import RechargeableBattery
from powerlog.db.models import BatteryRecord
from powerlog.db.repositories import BatteryRepository
from powerlog.db.repositories.battery import decode_history, encode_history


class TestHistoryCodec:
    """Test the history column encoding."""

    def test_encode_uses_wire_format(self, rechargeable):
        """Test events are stored as camelCase JSON, newest first."""
        data = json.loads(encode_history(rechargeable.charging_history))

        assert [e["id"] for e in data] == ["evt-2", "evt-1"]
        assert set(data[0]) == {"id", "date", "count"}

    def test_decode_empty(self):
        """Test empty or missing columns decode to no events."""
        assert decode_history(None) == []
        assert decode_history("") == []
        assert decode_history("[]") == []


class TestBatteryRepository:
    """Test BatteryRepository."""

    def test_list_empty(self, test_session):
        """Test list_batteries returns empty list when no batteries."""
        assert BatteryRepository(test_session).list_batteries() == []

    def test_upsert_create(self, test_session, rechargeable):
        """Test upsert creates a new battery."""
        repo = BatteryRepository(test_session)

        stored = repo.upsert(rechargeable)

        assert stored == rechargeable
        assert len(repo.list_batteries()) == 1

    def test_history_stored_as_json(self, test_session, rechargeable):
        """Test the ledger lives in one text column."""
        repo = BatteryRepository(test_session)
        repo.upsert(rechargeable)

        record = test_session.get(BatteryRecord, rechargeable.id)
        assert isinstance(record.charging_history, str)
        assert json.loads(record.charging_history)[0]["id"] == "evt-2"

    def test_upsert_replaces(self, test_session, rechargeable):
        """Test upsert replaces every column of an existing battery."""
        repo = BatteryRepository(test_session)
        repo.upsert(rechargeable)

        changed = rechargeable.model_copy(
            update={"name": "Eneloop Pro AA", "quantity": 1, "in_use": 4, "charging_history": ()}
        )
        stored = repo.upsert(changed)

        assert stored.name == "Eneloop Pro AA"
        assert stored.quantity == 1
        assert stored.in_use == 4
        assert stored.charging_history == ()
        assert len(repo.list_batteries()) == 1

    def test_upsert_replay(self, test_session, rechargeable):
        """Test writing the same battery twice gives the same row."""
        repo = BatteryRepository(test_session)

        first = repo.upsert(rechargeable)
        second = repo.upsert(rechargeable)

        assert first == second
        assert len(repo.list_batteries()) == 1

    def test_consumable_round_trip(self, test_session, primary):
        """Test consumables come back as consumables."""
        repo = BatteryRepository(test_session)
        repo.upsert(primary)

        stored = repo.get_battery(primary.id)
        assert stored == primary
        record = repo.get_by_id(primary.id)
        assert record.in_use == 0
        assert record.charging_history == "[]"

    def test_last_charged_is_utc(self, test_session, rechargeable):
        """Test timestamps come back timezone aware."""
        repo = BatteryRepository(test_session)
        repo.upsert(rechargeable)

        stored = repo.get_battery(rechargeable.id)
        assert isinstance(stored, RechargeableBattery)
        assert stored.last_charged.tzinfo is not None
        assert stored.last_charged.astimezone(timezone.utc) == rechargeable.last_charged

    def test_get_battery_not_found(self, test_session):
        """Test get_battery returns None for unknown ids."""
        assert BatteryRepository(test_session).get_battery("missing") is None

    def test_list_batteries(self, test_session, rechargeable, primary, button_cell):
        """Test list_batteries returns every battery."""
        repo = BatteryRepository(test_session)
        for battery in (rechargeable, primary, button_cell):
            repo.upsert(battery)

        ids = {b.id for b in repo.list_batteries()}
        assert ids == {rechargeable.id, primary.id, button_cell.id}

    def test_delete_by_id(self, test_session, rechargeable, primary):
        """Test deleting removes the battery and its ledger."""
        repo = BatteryRepository(test_session)
        repo.upsert(rechargeable)
        repo.upsert(primary)

        assert repo.delete_by_id(rechargeable.id) is True
        assert repo.get_battery(rechargeable.id) is None
        assert [b.id for b in repo.list_batteries()] == [primary.id]

    def test_delete_by_id_not_found(self, test_session):
        """Test deleting an unknown id is reported, not raised."""
        assert BatteryRepository(test_session).delete_by_id("missing") is False

    def test_record_repr(self, test_session, primary):
        """Test record string representation."""
        BatteryRepository(test_session).upsert(primary)
        record = test_session.get(BatteryRecord, primary.id)
        assert primary.id in repr(record)
        assert "primary" in repr(record)

    def test_invalid_rows_skipped(self, test_session, primary):
        """Test rows that no longer validate don't hide the rest."""
        repo = BatteryRepository(test_session)
        repo.upsert(primary)
        test_session.add_all(
            [
                BatteryRecord(id="legacy", name="Old Akku", category="Akku", quantity=-1),
                BatteryRecord(id="broken", name="Broken", category="rechargeable", charging_history="{oops"),
                BatteryRecord(id="fuel", name="Fuel cell", category="fuel cell"),
            ]
        )
        test_session.flush()

        assert repo.list_batteries() == [primary]
