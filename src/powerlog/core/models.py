"""Pydantic models for the battery inventory.

A battery record describes one item type (e.g. "Eneloop AA"), not a single
physical cell. The record shape depends on the category: consumable batteries
only track stock, rechargeable ones also track units deployed in devices,
cycle accumulation and a recharge ledger.
"""

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BatteryCategory(str, Enum):
    """Kind of battery, governs which fields and operations apply."""

    PRIMARY = "primary"
    BUTTON_CELL = "button_cell"
    RECHARGEABLE = "rechargeable"

    @classmethod
    def _missing_(cls, value: object) -> "BatteryCategory | None":
        if not isinstance(value, str):
            return None
        lookup = value.strip().lower()
        for member in cls:
            if lookup == member.name.lower():
                return member
        for label, legacy in _LEGACY_LABELS.items():
            if lookup == label.lower():
                return cls(legacy)
        return None

    @property
    def legacy_label(self) -> str:
        """Label the PowerLog web front end uses for this category."""
        return next(label for label, value in _LEGACY_LABELS.items() if value == self.value)


# Labels written by the legacy web front end
_LEGACY_LABELS = {
    "Batterie": "primary",
    "Knopfzelle": "button_cell",
    "Akku": "rechargeable",
}


class _WireModel(BaseModel):
    """Immutable model using camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ChargingEvent(_WireModel):
    """One recharge action: ``count`` units moved from in use to ready."""

    id: str = Field(min_length=1)
    date: datetime
    count: int = Field(default=0, ge=0)


class _BatteryBase(_WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    brand: str = ""
    size: str = ""
    category: BatteryCategory
    quantity: int = Field(default=0, ge=0)
    total_quantity: int = Field(default=0, ge=0)
    min_quantity: int = Field(default=0, ge=0)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> BatteryCategory:
        return BatteryCategory(value)

    @property
    def is_rechargeable(self) -> bool:
        return self.category is BatteryCategory.RECHARGEABLE

    @property
    def is_low_stock(self) -> bool:
        """Whether ready stock is at or below the reorder threshold."""
        return self.quantity <= self.min_quantity

    def to_payload(self) -> dict[str, Any]:
        """Flat JSON record with every column of the storage contract."""
        payload: dict[str, Any] = self.model_dump(mode="json", by_alias=True)
        payload.setdefault("inUse", 0)
        payload.setdefault("usageAccumulator", 0)
        payload.setdefault("capacityMah", None)
        payload.setdefault("chargeCycles", 0)
        payload.setdefault("lastCharged", None)
        payload.setdefault("chargingHistory", [])
        return payload


class ConsumableBattery(_BatteryBase):
    """Primary or button cell stock; used units are gone for good."""

    category: Literal[BatteryCategory.PRIMARY, BatteryCategory.BUTTON_CELL] = (
        BatteryCategory.PRIMARY
    )

    # Uniform read access for callers that don't branch on the variant

    @property
    def in_use(self) -> int:
        return 0

    @property
    def usage_accumulator(self) -> int:
        return 0

    @property
    def charge_cycles(self) -> int:
        return 0

    @property
    def capacity_mah(self) -> int | None:
        return None

    @property
    def last_charged(self) -> datetime | None:
        return None

    @property
    def charging_history(self) -> tuple[ChargingEvent, ...]:
        return ()


class RechargeableBattery(_BatteryBase):
    """Rechargeable batch with an in-use pool and a recharge ledger.

    ``total_quantity`` is the number of cells owned and acts as the batch size
    for cycle counting. ``charging_history`` is ordered newest first.
    """

    category: Literal[BatteryCategory.RECHARGEABLE] = BatteryCategory.RECHARGEABLE
    in_use: int = Field(default=0, ge=0)
    usage_accumulator: int = Field(default=0, ge=0)
    capacity_mah: int | None = Field(default=None, ge=0)
    charge_cycles: int = Field(default=0, ge=0)
    last_charged: datetime | None = None
    charging_history: tuple[ChargingEvent, ...] = ()

    @field_validator("last_charged", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("charging_history", mode="before")
    @classmethod
    def _decode_history(cls, value: Any) -> Any:
        if value is None or value == "":
            return ()
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        return value

    @property
    def batch_size(self) -> int:
        """Units per full cycle; never below 1."""
        return max(self.total_quantity, 1)

    @property
    def cycle_progress(self) -> float:
        """Fraction of the current cycle already used (0.0 - 1.0)."""
        return self.usage_accumulator / self.batch_size


def _battery_tag(value: Any) -> str | None:
    raw = value.get("category") if isinstance(value, dict) else getattr(value, "category", None)
    try:
        category = BatteryCategory(raw)
    except ValueError:
        return None
    return "rechargeable" if category is BatteryCategory.RECHARGEABLE else "consumable"


Battery = Annotated[
    Union[
        Annotated[ConsumableBattery, Tag("consumable")],
        Annotated[RechargeableBattery, Tag("rechargeable")],
    ],
    Discriminator(_battery_tag),
]

_battery_adapter: TypeAdapter[Battery] = TypeAdapter(Battery)
_battery_list_adapter: TypeAdapter[list[Battery]] = TypeAdapter(list[Battery])


def parse_battery(data: Any) -> ConsumableBattery | RechargeableBattery:
    """Validate a raw mapping into the matching battery variant.

    Raises:
        pydantic.ValidationError: If the data is not a valid battery.
    """
    return _battery_adapter.validate_python(data)


def parse_batteries(data: Any) -> list[ConsumableBattery | RechargeableBattery]:
    """Validate a sequence of raw mappings."""
    return _battery_list_adapter.validate_python(data)
