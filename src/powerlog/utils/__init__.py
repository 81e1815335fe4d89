"""Utility modules for PowerLog."""

from powerlog.utils.exceptions import (
    APIError,
    ConfigurationError,
    DatabaseError,
    InventoryValidationError,
    PersistenceError,
    PowerLogError,
)
from powerlog.utils.retry import retry_with_backoff

__all__ = [
    "APIError",
    "ConfigurationError",
    "DatabaseError",
    "InventoryValidationError",
    "PersistenceError",
    "PowerLogError",
    "retry_with_backoff",
]
