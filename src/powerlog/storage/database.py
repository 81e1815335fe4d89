"""Battery store backed by a SQLAlchemy database."""

import asyncio

import structlog
from pydantic import ValidationError
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from powerlog.core.models import Battery
from powerlog.db.engine import get_session
from powerlog.db.repositories.battery import BatteryRepository
from powerlog.storage.base import BatteryStore
from powerlog.utils.exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class DatabaseStore(BatteryStore):
    """Stores each battery as one row, one session per request.

    Database calls run in a worker thread so background writes don't block
    the event loop.
    """

    name = "database"

    def __init__(self, engine: Engine) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine with the inventory tables created.
        """
        self.engine = engine

    async def list_batteries(self) -> list[Battery]:
        return await asyncio.to_thread(self._list_batteries)

    async def upsert(self, battery: Battery) -> str:
        return await asyncio.to_thread(self._upsert, battery)

    async def delete(self, battery_id: str) -> None:
        await asyncio.to_thread(self._delete, battery_id)

    def _list_batteries(self) -> list[Battery]:
        try:
            with get_session(self.engine) as session:
                return BatteryRepository(session).list_batteries()
        except SQLAlchemyError as e:
            logger.error("Failed to load batteries", error=str(e))
            raise DatabaseError(f"Failed to load batteries: {e}") from e

    def _upsert(self, battery: Battery) -> str:
        try:
            with get_session(self.engine) as session:
                BatteryRepository(session).upsert(battery)
        except (SQLAlchemyError, ValidationError) as e:
            logger.error("Failed to save battery", battery_id=battery.id, error=str(e))
            raise DatabaseError(f"Failed to save battery {battery.id}: {e}") from e
        logger.debug("Battery saved", battery_id=battery.id)
        return battery.id

    def _delete(self, battery_id: str) -> None:
        try:
            with get_session(self.engine) as session:
                deleted = BatteryRepository(session).delete_by_id(battery_id)
        except SQLAlchemyError as e:
            logger.error("Failed to delete battery", battery_id=battery_id, error=str(e))
            raise DatabaseError(f"Failed to delete battery {battery_id}: {e}") from e
        logger.debug("Battery deleted", battery_id=battery_id, found=deleted)
