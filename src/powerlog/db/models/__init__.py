"""ORM models for PowerLog data."""

from powerlog.db.models.battery import BatteryRecord

__all__ = ["BatteryRecord"]
