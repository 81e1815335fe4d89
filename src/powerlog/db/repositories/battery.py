"""Battery repository."""

import json
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from powerlog.core.models import Battery, ChargingEvent, parse_battery
from powerlog.db.models.battery import BatteryRecord
from powerlog.db.repositories.base import BaseRepository

logger = structlog.get_logger(__name__)


def encode_history(events: tuple[ChargingEvent, ...]) -> str:
    """Serialize a recharge ledger for the history column."""
    return json.dumps([event.model_dump(mode="json", by_alias=True) for event in events])


def decode_history(raw: str | None) -> list[dict[str, Any]]:
    """Deserialize the history column; empty or missing means no events."""
    if not raw:
        return []
    return json.loads(raw)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; naive values are UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_row(battery: Battery) -> dict[str, Any]:
    """Flatten a battery into column values."""
    return {
        "id": battery.id,
        "name": battery.name,
        "brand": battery.brand,
        "size": battery.size,
        "category": battery.category.value,
        "quantity": battery.quantity,
        "total_quantity": battery.total_quantity,
        "min_quantity": battery.min_quantity,
        "in_use": battery.in_use,
        "usage_accumulator": battery.usage_accumulator,
        "capacity_mah": battery.capacity_mah,
        "charge_cycles": battery.charge_cycles,
        "last_charged": _as_utc(battery.last_charged),
        "charging_history": encode_history(battery.charging_history),
    }


def from_row(record: BatteryRecord) -> Battery:
    """Rebuild the domain battery from a stored row."""
    return parse_battery(
        {
            "id": record.id,
            "name": record.name,
            "brand": record.brand,
            "size": record.size,
            "category": record.category,
            "quantity": record.quantity,
            "total_quantity": record.total_quantity,
            "min_quantity": record.min_quantity,
            "in_use": record.in_use,
            "usage_accumulator": record.usage_accumulator,
            "capacity_mah": record.capacity_mah,
            "charge_cycles": record.charge_cycles,
            "last_charged": _as_utc(record.last_charged),
            "charging_history": decode_history(record.charging_history),
        }
    )


class BatteryRepository(BaseRepository[BatteryRecord]):
    """Repository for battery rows."""

    model = BatteryRecord

    def list_batteries(self) -> list[Battery]:
        """Get the whole inventory.

        Rows that no longer validate are logged and skipped.

        Returns:
            All valid batteries, oldest first.
        """
        stmt = select(BatteryRecord).order_by(BatteryRecord.created_at, BatteryRecord.name)
        batteries: list[Battery] = []
        for record in self.session.scalars(stmt).all():
            try:
                batteries.append(from_row(record))
            except (ValidationError, json.JSONDecodeError) as e:
                logger.warning("Skipping invalid battery row", battery_id=record.id, error=str(e))
        return batteries

    def get_battery(self, battery_id: str) -> Battery | None:
        """Get one battery by id.

        Args:
            battery_id: Battery id.

        Returns:
            Battery or None.
        """
        record = self.get_by_id(battery_id)
        return from_row(record) if record else None

    def upsert(self, battery: Battery) -> Battery:
        """Insert a battery or replace every column of the existing row.

        Args:
            battery: Full battery state.

        Returns:
            The stored battery.
        """
        dialect = self.session.bind.dialect.name if self.session.bind else "sqlite"

        data = to_row(battery)
        update_set = {k: v for k, v in data.items() if k != "id"}
        update_set["updated_at"] = func.now()

        if dialect == "postgresql":
            stmt = pg_insert(BatteryRecord).values(**data)
            stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=update_set)
        elif dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(BatteryRecord).values(**data)
            stmt = stmt.on_duplicate_key_update(**update_set)
        else:
            stmt = sqlite_insert(BatteryRecord).values(**data)
            stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=update_set)

        self.session.execute(stmt)
        self.session.flush()
        # Drop any cached instance so the read below sees the new row
        self.session.expire_all()

        return self.get_battery(battery.id)  # type: ignore[return-value]

    def delete_by_id(self, battery_id: str) -> bool:
        """Delete a battery and its embedded ledger.

        Args:
            battery_id: Battery id.

        Returns:
            True if a row was deleted.
        """
        record = self.get_by_id(battery_id)
        if record is None:
            return False
        self.delete(record)
        return True
