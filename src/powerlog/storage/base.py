"""Persistence contract for the battery inventory."""

from abc import ABC, abstractmethod

from powerlog.core.models import Battery


class BatteryStore(ABC):
    """Durable storage for batteries, one record per id.

    Implementations raise :class:`~powerlog.utils.exceptions.PersistenceError`
    (or a subclass) when storage is unreachable or rejects a request.
    """

    name: str

    @abstractmethod
    async def list_batteries(self) -> list[Battery]:
        """Fetch the full inventory."""
        pass

    @abstractmethod
    async def upsert(self, battery: Battery) -> str:
        """Create or replace a battery by id.

        Returns:
            The id that was written.
        """
        pass

    @abstractmethod
    async def delete(self, battery_id: str) -> None:
        """Remove a battery and its embedded history."""
        pass
