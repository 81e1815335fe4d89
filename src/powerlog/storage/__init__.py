"""Persistence backends for the battery inventory."""

from powerlog.storage.base import BatteryStore
from powerlog.storage.database import DatabaseStore
from powerlog.storage.remote import RemoteStore

__all__ = ["BatteryStore", "DatabaseStore", "RemoteStore"]
