"""Database module for PowerLog."""

from powerlog.db.base import Base, TimestampMixin
from powerlog.db.engine import create_engine, create_tables, get_session

__all__ = ["Base", "TimestampMixin", "create_engine", "create_tables", "get_session"]
