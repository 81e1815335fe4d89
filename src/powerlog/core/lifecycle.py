"""Battery lifecycle rules.

Every function here is pure: it takes a battery and returns the complete next
state as a new instance. When an operation does not apply the input instance
itself is returned, so ``result is battery`` means "nothing changed".
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from powerlog.core.models import (
    Battery,
    BatteryCategory,
    ChargingEvent,
    ConsumableBattery,
    RechargeableBattery,
    new_id,
    utcnow,
)
from powerlog.utils.exceptions import InventoryValidationError


def consume(battery: Battery) -> Battery:
    """Take one ready unit into use.

    Rechargeable units move to the in-use pool and advance the cycle
    accumulator; once a whole batch has been used the accumulator rolls over
    and ``charge_cycles`` goes up by one. Consumable units leave the stock for
    good.

    Args:
        battery: Current state.

    Returns:
        Next state, or ``battery`` itself when no unit is ready.
    """
    if battery.quantity <= 0:
        return battery

    if isinstance(battery, RechargeableBattery):
        accumulator = battery.usage_accumulator + 1
        cycles = battery.charge_cycles
        if accumulator >= battery.batch_size:
            accumulator = 0
            cycles += 1
        return battery.model_copy(
            update={
                "quantity": battery.quantity - 1,
                "in_use": battery.in_use + 1,
                "usage_accumulator": accumulator,
                "charge_cycles": cycles,
            }
        )

    return battery.model_copy(
        update={
            "quantity": battery.quantity - 1,
            "total_quantity": max(0, (battery.total_quantity or battery.quantity) - 1),
        }
    )


def append_event(
    history: tuple[ChargingEvent, ...], event: ChargingEvent
) -> tuple[ChargingEvent, ...]:
    """Insert an event at the head of the ledger."""
    return (event, *history)


def recharge(
    battery: Battery,
    amount: int,
    *,
    now: datetime | None = None,
    event_id: str | None = None,
) -> Battery:
    """Move up to ``amount`` units from in use back to ready.

    The amount is clamped to what is actually in use. A ledger entry is
    recorded for the moved count. Cycle counters are not touched.

    Args:
        battery: Current state.
        amount: Requested number of units, at least 1.
        now: Timestamp of the action (defaults to the current UTC time).
        event_id: Identifier for the ledger entry (generated if omitted).

    Returns:
        Next state, or ``battery`` itself for consumable batteries.

    Raises:
        InventoryValidationError: If ``amount`` is below 1.
    """
    if amount < 1:
        raise InventoryValidationError("Recharge amount must be at least 1", field="amount")

    if not isinstance(battery, RechargeableBattery):
        return battery

    move = min(battery.in_use, amount)
    now = now or utcnow()
    event = ChargingEvent(id=event_id or new_id(), date=now, count=move)

    return battery.model_copy(
        update={
            "quantity": battery.quantity + move,
            "in_use": battery.in_use - move,
            "last_charged": now,
            "charging_history": append_event(battery.charging_history, event),
        }
    )


def remove_history_entry(battery: Battery, event_id: str) -> Battery:
    """Drop one ledger entry; counters stay as they are."""
    history = battery.charging_history
    remaining = tuple(event for event in history if event.id != event_id)
    if len(remaining) == len(history):
        return battery
    return battery.model_copy(update={"charging_history": remaining})


def _lookup(payload: Mapping[str, Any], field: str) -> Any:
    if field in payload:
        return payload[field]
    return payload.get(to_camel(field))


def _count(payload: Mapping[str, Any], field: str) -> int:
    value = _lookup(payload, field)
    if value is None or value == "":
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    if number < 0:
        raise InventoryValidationError(f"{field} must not be negative", field=field)
    return number


def build_battery(payload: Mapping[str, Any], *, strict: bool = False) -> Battery:
    """Build a complete battery from a partial create/edit payload.

    Keys may be snake_case or camelCase. Fields that don't belong to the
    chosen category are dropped, missing counts default to 0 and a missing id
    is generated. For consumables the ready stock is the whole stock, so
    ``total_quantity`` follows ``quantity``.

    Args:
        payload: Raw battery fields.
        strict: Reject rechargeable payloads where ready plus in-use units
            exceed the units owned.

    Returns:
        Validated battery of the matching variant.

    Raises:
        InventoryValidationError: If the name is missing, the category is
            unknown or a field fails validation.
    """
    name = str(_lookup(payload, "name") or "").strip()
    if not name:
        raise InventoryValidationError("Battery name is required", field="name")

    raw_category = _lookup(payload, "category")
    try:
        category = BatteryCategory(raw_category) if raw_category else BatteryCategory.PRIMARY
    except ValueError:
        raise InventoryValidationError(
            f"Unknown battery category: {raw_category!r}", field="category"
        ) from None

    quantity = _count(payload, "quantity")
    fields: dict[str, Any] = {
        "id": str(_lookup(payload, "id") or new_id()),
        "name": name,
        "brand": str(_lookup(payload, "brand") or ""),
        "size": str(_lookup(payload, "size") or name),
        "category": category,
        "quantity": quantity,
        "min_quantity": _count(payload, "min_quantity"),
    }

    try:
        if category is not BatteryCategory.RECHARGEABLE:
            return ConsumableBattery(total_quantity=quantity, **fields)

        in_use = _count(payload, "in_use")
        total = _count(payload, "total_quantity")
        if strict and quantity + in_use > total:
            raise InventoryValidationError(
                f"Ready ({quantity}) plus in use ({in_use}) exceeds total quantity ({total})",
                field="total_quantity",
            )

        capacity = _lookup(payload, "capacity_mah")
        return RechargeableBattery(
            total_quantity=total,
            in_use=in_use,
            usage_accumulator=_count(payload, "usage_accumulator"),
            capacity_mah=_count(payload, "capacity_mah") if capacity not in (None, "") else None,
            charge_cycles=_count(payload, "charge_cycles"),
            last_charged=_lookup(payload, "last_charged") or None,
            charging_history=_lookup(payload, "charging_history") or (),
            **fields,
        )
    except ValidationError as e:
        raise InventoryValidationError(str(e)) from e
