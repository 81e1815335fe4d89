"""Battery lifecycle and inventory state."""

from powerlog.core.cache import LocalCache
from powerlog.core.inventory import (
    InventoryService,
    InventorySummary,
    SyncFailure,
    filter_batteries,
    sort_batteries,
)
from powerlog.core.lifecycle import build_battery, consume, recharge, remove_history_entry
from powerlog.core.models import (
    Battery,
    BatteryCategory,
    ChargingEvent,
    ConsumableBattery,
    RechargeableBattery,
    parse_battery,
    parse_batteries,
)

__all__ = [
    "Battery",
    "BatteryCategory",
    "ChargingEvent",
    "ConsumableBattery",
    "InventoryService",
    "InventorySummary",
    "LocalCache",
    "RechargeableBattery",
    "SyncFailure",
    "build_battery",
    "consume",
    "filter_batteries",
    "parse_batteries",
    "parse_battery",
    "recharge",
    "remove_history_entry",
    "sort_batteries",
]
