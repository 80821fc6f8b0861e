from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Date, DateTime, Integer, SmallInteger, String, Time

# Storage-imposed maximum of guests on a single occupancy row.
PER_ROW_CAP = 6


class Base(DeclarativeBase):
    pass


class OccupancyKind(StrEnum):
    BOOKING = "booking"
    ADMIN_BLOCK = "admin_block"


class SlotTemplate(Base):
    __tablename__ = "time_slots"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_time_slots_day"),
        CheckConstraint("start_time < end_time", name="chk_time_slots_time"),
        CheckConstraint("max_capacity >= 1", name="chk_time_slots_capacity"),
        Index("idx_time_slots_day", "day_of_week", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    records: Mapped[list["OccupancyRecord"]] = relationship(back_populates="slot")


class OccupancyRecord(Base):
    """A booking or an administrative block holding guests on one slot-day."""

    __tablename__ = "occupancy_records"
    __table_args__ = (
        CheckConstraint(f"guests BETWEEN 1 AND {PER_ROW_CAP}", name="chk_occ_guests"),
        CheckConstraint(
            "(kind = 'admin_block' AND reason IS NOT NULL) OR (kind = 'booking' AND reason IS NULL)",
            name="chk_occ_reason",
        ),
        Index("idx_occ_slot_day", "slot_id", "date"),
        Index("idx_occ_date_kind", "date", "kind"),
        Index("idx_occ_owner", "owner_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    slot_id: Mapped[int] = mapped_column(ForeignKey("time_slots.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[OccupancyKind] = mapped_column(
        Enum(
            OccupancyKind,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    slot: Mapped["SlotTemplate"] = relationship(back_populates="records")

    @property
    def is_block(self) -> bool:
        return self.kind == OccupancyKind.ADMIN_BLOCK


class SlotDayLock(Base):
    """Lock target serializing admissions for one (slot, date) pair."""

    __tablename__ = "slot_day_locks"

    slot_id: Mapped[int] = mapped_column(ForeignKey("time_slots.id"), primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
