from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .domain.blocks import BlockSurvey, FullDayStatus, LogicalBlock
from .domain.calendar import DateCheck
from .domain.occupancy import Occupancy
from .models import OccupancyRecord, SlotTemplate
from .usecases.availability import DaySummary, SlotAvailability
from .usecases.blocks import BlockResult
from .usecases.slots import DaySchedule


class DateInfoRead(BaseModel):
    date: dt.date
    valid: bool
    available: bool
    day_of_week: int
    day_name: str
    error: Optional[str] = None

    @classmethod
    def from_check(cls, check: DateCheck) -> "DateInfoRead":
        return cls(
            date=check.date,
            valid=check.valid,
            available=check.available,
            day_of_week=check.day_of_week,
            day_name=check.day_name,
            error=check.error,
        )


class SlotAvailabilityRead(BaseModel):
    slot_id: int
    day_of_week: int
    start_time: dt.time
    end_time: dt.time
    capacity: int
    committed: int
    available: int
    occupancy_pct: int
    is_available: bool

    @classmethod
    def from_domain(cls, item: SlotAvailability) -> "SlotAvailabilityRead":
        return cls(**_slot_fields(item.slot, item.occupancy))


class AdminSlotAvailabilityRead(SlotAvailabilityRead):
    blocked_by_me: bool
    blocked_by_others: List[str]

    @classmethod
    def from_domain(cls, item: SlotAvailability) -> "AdminSlotAvailabilityRead":
        return cls(
            **_slot_fields(item.slot, item.occupancy),
            blocked_by_me=item.blocked_by_me,
            blocked_by_others=list(item.blocked_by_others),
        )


def _slot_fields(slot: SlotTemplate, occupancy: Occupancy) -> dict:
    return {
        "slot_id": slot.id,
        "day_of_week": slot.day_of_week,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "capacity": occupancy.capacity,
        "committed": occupancy.committed,
        "available": occupancy.available,
        "occupancy_pct": occupancy.occupancy_pct,
        "is_available": occupancy.is_available,
    }


class OccupancyRead(BaseModel):
    slot_id: int
    date: dt.date
    capacity: int
    committed: int
    available: int
    occupancy_pct: int
    is_available: bool

    @classmethod
    def from_domain(cls, slot_id: int, day: dt.date, occupancy: Occupancy) -> "OccupancyRead":
        return cls(
            slot_id=slot_id,
            date=day,
            capacity=occupancy.capacity,
            committed=occupancy.committed,
            available=occupancy.available,
            occupancy_pct=occupancy.occupancy_pct,
            is_available=occupancy.is_available,
        )


class SlotSummaryRead(SlotAvailabilityRead):
    bookings: int
    booked_guests: int
    blocked_guests: int


class DaySummaryRead(BaseModel):
    date: dt.date
    total_slots: int
    available_slots: int
    total_capacity: int
    available_capacity: int
    total_bookings: int
    total_guests: int
    slots: List[SlotSummaryRead]

    @classmethod
    def from_domain(cls, summary: DaySummary) -> "DaySummaryRead":
        return cls(
            date=summary.date,
            total_slots=summary.total_slots,
            available_slots=summary.available_slots,
            total_capacity=summary.total_capacity,
            available_capacity=summary.available_capacity,
            total_bookings=summary.total_bookings,
            total_guests=summary.total_guests,
            slots=[
                SlotSummaryRead(
                    **_slot_fields(s.slot, s.occupancy),
                    bookings=s.bookings,
                    booked_guests=s.booked_guests,
                    blocked_guests=s.blocked_guests,
                )
                for s in summary.slots
            ],
        )


class ScheduleSlotRead(BaseModel):
    slot_id: int
    start_time: dt.time
    end_time: dt.time
    max_capacity: int


class DayScheduleRead(BaseModel):
    day_of_week: int
    day_name: str
    slots: List[ScheduleSlotRead]

    @classmethod
    def from_domain(cls, schedule: DaySchedule) -> "DayScheduleRead":
        return cls(
            day_of_week=schedule.day_of_week,
            day_name=schedule.day_name,
            slots=[
                ScheduleSlotRead(
                    slot_id=s.id, start_time=s.start_time, end_time=s.end_time, max_capacity=s.max_capacity
                )
                for s in schedule.slots
            ],
        )


class BookingCreate(BaseModel):
    slot_id: int = Field(ge=1)
    date: str = Field(description="Calendar date, YYYY-MM-DD")
    guests: int
    name: str
    email: str
    phone: str


class BookingRead(BaseModel):
    booking_id: int
    slot_id: int
    date: dt.date
    guests: int
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    remaining: Optional[int] = None
    created_at: Optional[dt.datetime] = None

    @classmethod
    def from_db(
        cls,
        *,
        booking: OccupancyRecord,
        slot: Optional[SlotTemplate] = None,
        remaining: Optional[int] = None,
    ) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            slot_id=booking.slot_id,
            date=booking.date,
            guests=booking.guests,
            name=booking.customer_name,
            email=booking.customer_email,
            phone=booking.customer_phone,
            start_time=slot.start_time if slot is not None else None,
            end_time=slot.end_time if slot is not None else None,
            remaining=remaining,
            created_at=booking.created_at,
        )


class FullDayBlockCreate(BaseModel):
    date: str = Field(description="Calendar date, YYYY-MM-DD")
    reason: str


class SlotBlockCreate(BaseModel):
    date: str = Field(description="Calendar date, YYYY-MM-DD")
    slot_ids: List[int]
    reason: str
    guests_per_slot: Optional[int] = None


class BlockResultRead(BaseModel):
    date: dt.date
    full_day: bool
    block_ids: List[str]
    rows_created: int
    blocked_slot_ids: List[int]
    skipped_slot_ids: List[int]
    fully_booked_slot_ids: List[int]

    @classmethod
    def from_domain(cls, result: BlockResult) -> "BlockResultRead":
        return cls(
            date=result.date,
            full_day=result.full_day,
            block_ids=result.block_ids,
            rows_created=len(result.created),
            blocked_slot_ids=list(result.blocked_slot_ids),
            skipped_slot_ids=list(result.skipped_slot_ids),
            fully_booked_slot_ids=list(result.fully_booked_slot_ids),
        )


class BlockRowRead(BaseModel):
    record_id: int
    slot_id: int
    guests: int
    reason: Optional[str]


class BlockSurveyRead(BaseModel):
    date: dt.date
    has_blocks: bool
    rows_by_admin: Dict[str, List[BlockRowRead]]
    blocked_slot_ids: List[int]
    can_block_full_day: bool

    @classmethod
    def from_domain(cls, block_survey: BlockSurvey) -> "BlockSurveyRead":
        return cls(
            date=block_survey.date,
            has_blocks=block_survey.has_blocks,
            rows_by_admin={
                owner: [
                    BlockRowRead(record_id=r.id, slot_id=r.slot_id, guests=r.guests, reason=r.reason)
                    for r in rows
                ]
                for owner, rows in block_survey.rows_by_admin.items()
            },
            blocked_slot_ids=sorted(block_survey.blocked_slot_ids),
            can_block_full_day=block_survey.can_block_full_day,
        )


class FullDayStatusRead(BaseModel):
    date: dt.date
    is_full_day: bool
    blocked_slot_ids: List[int]
    total_active_slots: int
    blocked_by_admin: Optional[str]

    @classmethod
    def from_domain(cls, status: FullDayStatus) -> "FullDayStatusRead":
        return cls(
            date=status.date,
            is_full_day=status.is_full_day,
            blocked_slot_ids=list(status.blocked_slot_ids),
            total_active_slots=status.total_active_slots,
            blocked_by_admin=status.blocked_by_admin,
        )


class LogicalBlockRead(BaseModel):
    block_id: str
    date: dt.date
    owner_id: str
    full_day: bool
    slot_ids: List[int]
    guests: int
    reason: str
    chunk_count: int
    created_at: Optional[dt.datetime] = None

    @classmethod
    def from_domain(cls, block: LogicalBlock) -> "LogicalBlockRead":
        return cls(
            block_id=block.block_id,
            date=block.date,
            owner_id=block.owner_id,
            full_day=block.is_full_day,
            slot_ids=list(block.slot_ids),
            guests=block.guests,
            reason=block.reason,
            chunk_count=block.chunk_count,
            created_at=block.created_at,
        )
