"""Custom exception hierarchy for PowerLog."""


class PowerLogError(Exception):
    """Base exception for all PowerLog errors."""

    pass


class ConfigurationError(PowerLogError):
    """Error in application configuration."""

    pass


class InventoryValidationError(PowerLogError):
    """A battery payload or operation argument was rejected before mutation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the offending field if known.
        """
        super().__init__(message)
        self.field = field


class PersistenceError(PowerLogError):
    """Storage was unreachable or rejected a write."""

    pass


class DatabaseError(PersistenceError):
    """Error with database operations."""

    pass


class APIError(PersistenceError):
    """Error communicating with the PowerLog REST API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize API error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code
