"""Shared test fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from powerlog.config.settings import Settings
from powerlog.core.models import (
    BatteryCategory,
    ChargingEvent,
    ConsumableBattery,
    RechargeableBattery,
)
from powerlog.db import models as _  # noqa: F401
from powerlog.db.base import Base
from powerlog.db.engine import get_session
from powerlog.storage.base import BatteryStore


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings with a throwaway SQLite file and cache."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'powerlog.db'}",
        cache_file=str(tmp_path / "cache" / "batteries.json"),
        api_base_url="http://powerlog.test",
        max_retries=1,
        retry_delay=0,
        log_level="DEBUG",
    )


@pytest.fixture
def test_engine(test_settings):
    """Create test database engine with tables."""
    engine = create_engine(test_settings.database_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_session(test_engine) -> Session:
    """Create test database session."""
    with get_session(test_engine) as session:
        yield session


@pytest.fixture
def rechargeable() -> RechargeableBattery:
    """A batch of five rechargeable cells, one use away from a full cycle."""
    return RechargeableBattery(
        id="akku-aa",
        name="Eneloop AA",
        brand="Panasonic",
        size="AA",
        quantity=5,
        total_quantity=5,
        min_quantity=2,
        in_use=0,
        usage_accumulator=4,
        capacity_mah=1900,
        charge_cycles=3,
        last_charged=datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc),
        charging_history=(
            ChargingEvent(id="evt-2", date=datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc), count=2),
            ChargingEvent(id="evt-1", date=datetime(2024, 1, 2, 19, 30, tzinfo=timezone.utc), count=4),
        ),
    )


@pytest.fixture
def primary() -> ConsumableBattery:
    """Two alkaline cells."""
    return ConsumableBattery(
        id="alk-aaa",
        name="Alkaline AAA",
        brand="Varta",
        size="AAA",
        category=BatteryCategory.PRIMARY,
        quantity=2,
        total_quantity=2,
        min_quantity=1,
    )


@pytest.fixture
def button_cell() -> ConsumableBattery:
    """Button cells below their reorder threshold."""
    return ConsumableBattery(
        id="cr2032",
        name="CR2032",
        brand="Renata",
        size="CR2032",
        category=BatteryCategory.BUTTON_CELL,
        quantity=1,
        total_quantity=1,
        min_quantity=2,
    )


@pytest.fixture
def mock_store(rechargeable, primary, button_cell):
    """Create mock battery store holding three batteries."""
    store = AsyncMock(spec=BatteryStore)
    store.name = "mock"
    store.list_batteries.return_value = [rechargeable, primary, button_cell]
    store.upsert.side_effect = lambda battery: battery.id
    store.delete.return_value = None
    return store


@pytest.fixture
def sample_rechargeable_data():
    """Payload as posted by a client for a rechargeable battery."""
    return {
        "id": "akku-aaa",
        "name": "Eneloop AAA",
        "brand": "Panasonic",
        "size": "AAA",
        "category": "rechargeable",
        "quantity": 3,
        "totalQuantity": 4,
        "minQuantity": 2,
        "inUse": 1,
        "usageAccumulator": 2,
        "capacityMah": 800,
        "chargeCycles": 7,
        "lastCharged": "2024-02-01T10:00:00+00:00",
        "chargingHistory": [
            {"id": "evt-9", "date": "2024-02-01T10:00:00+00:00", "count": 1},
        ],
    }


@pytest.fixture
def server_rows():
    """Rows as returned by the PowerLog REST server."""
    return [
        {
            "id": "b1",
            "name": "AA",
            "brand": "Duracell",
            "size": "AA",
            "category": "Batterie",
            "quantity": 6,
            "totalQuantity": 6,
            "minQuantity": 2,
            "inUse": 0,
            "usageAccumulator": 0,
            "capacityMah": 0,
            "chargeCycles": 0,
            "lastCharged": "",
            "chargingHistory": [],
        },
        {
            "id": "b2",
            "name": "Eneloop AA",
            "brand": "Panasonic",
            "size": "AA",
            "category": "Akku",
            "quantity": 2,
            "totalQuantity": 4,
            "minQuantity": 1,
            "inUse": 2,
            "usageAccumulator": 3,
            "capacityMah": 1900,
            "chargeCycles": 5,
            "lastCharged": "2024-03-01T12:00:00.000Z",
            "chargingHistory": [
                {"id": "e1", "date": "2024-03-01T12:00:00.000Z", "count": 2},
            ],
        },
    ]
