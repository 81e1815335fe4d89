"""Inventory service: local truth with best-effort persistence.

Every mutation is applied to the in-memory inventory right away and the
resulting battery is returned to the caller. The durable write runs as a
background task; if it fails the failure is logged and reported through the
``on_sync_error`` callback, but the local state is kept as it is.
"""

import asyncio
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from powerlog.core import lifecycle
from powerlog.core.cache import LocalCache
from powerlog.core.models import Battery, BatteryCategory
from powerlog.storage.base import BatteryStore
from powerlog.utils.exceptions import PersistenceError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncFailure:
    """A durable write that did not go through."""

    operation: str
    battery_id: str
    error: Exception


@dataclass(frozen=True)
class InventorySummary:
    """Headline numbers for the whole inventory."""

    types: int
    total_units: int
    ready_units: int
    in_use_units: int
    low_stock: int


def filter_batteries(
    batteries: Iterable[Battery], category: BatteryCategory | None = None
) -> list[Battery]:
    """Keep only batteries of one category (all of them if None)."""
    if category is None:
        return list(batteries)
    return [b for b in batteries if b.category is category]


def sort_batteries(
    batteries: Iterable[Battery], key: str = "category", descending: bool = False
) -> list[Battery]:
    """Sort batteries by an attribute name; missing values sort last."""

    def sort_key(battery: Battery) -> Any:
        value = getattr(battery, key)
        if isinstance(value, BatteryCategory):
            return list(BatteryCategory).index(value)
        if isinstance(value, str):
            return value.lower()
        return value

    batteries = list(batteries)
    present = [b for b in batteries if getattr(b, key, None) is not None]
    missing = [b for b in batteries if getattr(b, key, None) is None]
    return sorted(present, key=sort_key, reverse=descending) + missing


class InventoryService:
    """Battery operations against the in-memory inventory."""

    def __init__(
        self,
        store: BatteryStore,
        cache: LocalCache | None = None,
        *,
        strict: bool = False,
        on_sync_error: Callable[[SyncFailure], None] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Durable storage backend.
            cache: Optional local snapshot used as offline fallback.
            strict: Reject rechargeable writes that overcount owned units.
            on_sync_error: Called for every failed durable write.
        """
        self.store = store
        self.cache = cache
        self.strict = strict
        self.on_sync_error = on_sync_error
        self.offline = False
        self.failures: list[SyncFailure] = []
        self._batteries: dict[str, Battery] = {}
        self._pending: set[asyncio.Task[None]] = set()

    async def load(self) -> list[Battery]:
        """Fetch the inventory from storage, falling back to the local cache.

        Returns:
            The loaded inventory.
        """
        try:
            batteries = await self.store.list_batteries()
        except PersistenceError as e:
            self.offline = True
            cached = self.cache.load() if self.cache else None
            logger.warning(
                "Storage unreachable, using last known inventory",
                store=self.store.name,
                error=str(e),
                cached=cached is not None,
            )
            if cached is not None:
                self._batteries = {b.id: b for b in cached}
            return self.list_batteries()

        self.offline = False
        self._batteries = {b.id: b for b in batteries}
        self._save_cache()
        logger.debug("Inventory loaded", store=self.store.name, batteries=len(batteries))
        return self.list_batteries()

    def list_batteries(self, category: BatteryCategory | None = None) -> list[Battery]:
        """Current inventory, optionally limited to one category."""
        return filter_batteries(self._batteries.values(), category)

    def get(self, battery_id: str) -> Battery | None:
        return self._batteries.get(battery_id)

    async def consume(self, battery_id: str) -> Battery | None:
        """Use one unit of a battery.

        Args:
            battery_id: Battery id.

        Returns:
            The updated battery, or None if the id is unknown.
        """
        battery = self._batteries.get(battery_id)
        if battery is None:
            logger.debug("Ignoring consume for unknown battery", battery_id=battery_id)
            return None

        updated = lifecycle.consume(battery)
        if updated is battery:
            logger.info("Nothing ready to use", battery_id=battery_id)
            return battery
        return self._commit("consume", updated)

    async def recharge(self, battery_id: str, amount: int) -> Battery | None:
        """Move charged units from in use back to ready.

        Args:
            battery_id: Battery id.
            amount: Requested number of units (clamped to the in-use count).

        Returns:
            The updated battery, or None if the id is unknown.

        Raises:
            InventoryValidationError: If ``amount`` is below 1.
        """
        battery = self._batteries.get(battery_id)
        if battery is None:
            logger.debug("Ignoring recharge for unknown battery", battery_id=battery_id)
            return None

        updated = lifecycle.recharge(battery, amount)
        if updated is battery:
            return battery
        return self._commit("recharge", updated)

    async def upsert(self, payload: Mapping[str, Any]) -> Battery:
        """Create or replace a battery from a (partial) payload.

        Raises:
            InventoryValidationError: If the payload is rejected.
        """
        battery = lifecycle.build_battery(payload, strict=self.strict)
        if (
            battery.is_rechargeable
            and battery.quantity + battery.in_use > battery.total_quantity
        ):
            logger.warning(
                "Rechargeable stock exceeds units owned",
                battery_id=battery.id,
                quantity=battery.quantity,
                in_use=battery.in_use,
                total_quantity=battery.total_quantity,
            )
        return self._commit("upsert", battery)

    async def delete(self, battery_id: str) -> bool:
        """Remove a battery together with its recharge history.

        Returns:
            True if the battery existed.
        """
        if self._batteries.pop(battery_id, None) is None:
            return False
        self._save_cache()
        self._dispatch("delete", battery_id, self.store.delete(battery_id))
        return True

    async def delete_history_entry(self, battery_id: str, event_id: str) -> Battery | None:
        """Remove one recharge event without touching any counter."""
        battery = self._batteries.get(battery_id)
        if battery is None:
            return None

        updated = lifecycle.remove_history_entry(battery, event_id)
        if updated is battery:
            return battery
        return self._commit("delete_history_entry", updated)

    def summary(self) -> InventorySummary:
        batteries = self.list_batteries()
        return InventorySummary(
            types=len(batteries),
            total_units=sum(b.total_quantity for b in batteries),
            ready_units=sum(b.quantity for b in batteries),
            in_use_units=sum(b.in_use for b in batteries),
            low_stock=sum(1 for b in batteries if b.is_low_stock),
        )

    async def flush(self) -> None:
        """Wait for all pending durable writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _commit(self, operation: str, battery: Battery) -> Battery:
        self._batteries[battery.id] = battery
        self._save_cache()
        self._dispatch(operation, battery.id, self.store.upsert(battery))
        return battery

    def _save_cache(self) -> None:
        if self.cache:
            self.cache.save(self._batteries.values())

    def _dispatch(
        self, operation: str, battery_id: str, write: Coroutine[Any, Any, Any]
    ) -> None:
        task = asyncio.create_task(self._persist(operation, battery_id, write))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(
        self, operation: str, battery_id: str, write: Coroutine[Any, Any, Any]
    ) -> None:
        try:
            await write
        except PersistenceError as e:
            failure = SyncFailure(operation=operation, battery_id=battery_id, error=e)
            self.failures.append(failure)
            logger.error(
                "Persistence failed, keeping local state",
                operation=operation,
                battery_id=battery_id,
                error=str(e),
            )
            if self.on_sync_error:
                self.on_sync_error(failure)
        else:
            logger.debug("Persisted", operation=operation, battery_id=battery_id)
