"""Battery ORM model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from powerlog.db.base import Base, TimestampMixin


class BatteryRecord(Base, TimestampMixin):
    """One battery type per row; the recharge ledger is embedded as JSON."""

    __tablename__ = "powerlog_batteries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    size: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Stock
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Rechargeable only
    in_use: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usage_accumulator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    capacity_mah: Mapped[int | None] = mapped_column(Integer, nullable=True)
    charge_cycles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_charged: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    charging_history: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    def __repr__(self) -> str:
        return f"<BatteryRecord(id={self.id}, name={self.name}, category={self.category})>"
