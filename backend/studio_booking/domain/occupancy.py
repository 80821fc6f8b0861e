from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from ..models import OccupancyKind, OccupancyRecord


@dataclass(frozen=True)
class Occupancy:
    committed: int
    capacity: int
    available: int
    occupancy_pct: int

    @property
    def is_available(self) -> bool:
        return self.available > 0


def compute_occupancy(capacity: int, records: Iterable[OccupancyRecord]) -> Occupancy:
    """Bookings and admin blocks consume capacity identically."""
    if capacity <= 0:
        raise ValueError("capacity must be positive")
    committed = sum(r.guests for r in records)
    available = max(0, capacity - committed)
    pct = round(100 * (capacity - available) / capacity)
    return Occupancy(committed=committed, capacity=capacity, available=available, occupancy_pct=pct)


def compute_occupancy_for_admin(capacity: int, records: Iterable[OccupancyRecord], admin_id: str) -> Occupancy:
    """View for one administrator: their own blocks do not reduce what they are shown.

    Every other viewer still sees those rows as consumed capacity; stored rows are untouched.
    """
    visible = [
        r for r in records if not (r.kind == OccupancyKind.ADMIN_BLOCK and r.owner_id == admin_id)
    ]
    return compute_occupancy(capacity, visible)


def as_closed(occupancy: Occupancy) -> Occupancy:
    return replace(occupancy, available=0, occupancy_pct=100)
