"""Repository classes for database operations."""

from powerlog.db.repositories.battery import BatteryRepository

__all__ = ["BatteryRepository"]
