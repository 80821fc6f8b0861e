from dataclasses import dataclass
from typing import List

from ..models import PER_ROW_CAP
from .blocks import chunk_reason, split_into_chunks
from .errors import CapacityError


@dataclass(frozen=True)
class SlotDaySnapshot:
    slot_id: int
    capacity: int
    committed: int

    @property
    def available(self) -> int:
        return max(self.capacity - self.committed, 0)


@dataclass(frozen=True)
class PlannedRow:
    slot_id: int
    guests: int
    reason: str


def _spots(count: int) -> str:
    return f"{count} spot" if count == 1 else f"{count} spots"


def validate_admission(snapshot: SlotDaySnapshot, *, guests: int) -> int:
    """
    Pure admission check against a freshly read slot-day snapshot.
    Returns remaining capacity after admitting ``guests``; raises CapacityError otherwise.
    """
    if guests <= 0:
        raise CapacityError("guests must be positive", available=snapshot.available, requested=guests)

    available = snapshot.available
    if guests > available:
        raise CapacityError(
            f"Only {_spots(available)} available",
            available=available,
            requested=guests,
            slot_id=snapshot.slot_id,
        )
    return available - guests


def plan_block_rows(
    slot_id: int,
    guests: int,
    reason: str,
    *,
    full_day: bool,
    per_row_cap: int = PER_ROW_CAP,
) -> List[PlannedRow]:
    """Rows needed to hold ``guests`` on one slot-day, each tagged with its chunk position."""
    chunks = split_into_chunks(guests, per_row_cap)
    count = len(chunks)
    return [
        PlannedRow(
            slot_id=slot_id,
            guests=size,
            reason=chunk_reason(reason, index, count, full_day=full_day),
        )
        for index, size in enumerate(chunks, start=1)
    ]
