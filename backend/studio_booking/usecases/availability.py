from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from ..domain.blocks import survey
from ..domain.calendar import CalendarPolicy
from ..domain.catalog import outside_sunday_window
from ..domain.errors import NotFoundError
from ..domain.occupancy import Occupancy, as_closed, compute_occupancy, compute_occupancy_for_admin
from ..domain.repositories import CatalogCache, OccupancyRepository, SlotTemplateRepository
from ..models import OccupancyKind, OccupancyRecord, SlotTemplate
from .slots import slots_for_day


@dataclass(frozen=True)
class SlotAvailability:
    slot: SlotTemplate
    occupancy: Occupancy
    blocked_by_me: bool = False
    blocked_by_others: Tuple[str, ...] = ()

    @property
    def is_available(self) -> bool:
        return self.occupancy.is_available


def _guarded(slot: SlotTemplate, occupancy: Occupancy) -> Occupancy:
    return as_closed(occupancy) if outside_sunday_window(slot) else occupancy


async def _active_slot(slot_repo: SlotTemplateRepository, slot_id: int) -> SlotTemplate:
    slot = await slot_repo.get(slot_id)
    if slot is None or not slot.is_active:
        raise NotFoundError(f"time slot {slot_id} not found")
    return slot


async def get_occupancy(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    slot_id: int,
    day: date,
    policy: Optional[CalendarPolicy] = None,
) -> Occupancy:
    if policy is not None:
        policy.require_available(day)
    slot = await _active_slot(slot_repo, slot_id)
    records = await occ_repo.list_for_slot_day(slot.id, day)
    return _guarded(slot, compute_occupancy(slot.max_capacity, records))


async def get_occupancy_for_admin(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    slot_id: int,
    day: date,
    admin_id: str,
    policy: Optional[CalendarPolicy] = None,
) -> Occupancy:
    if policy is not None:
        policy.require_available(day)
    slot = await _active_slot(slot_repo, slot_id)
    records = await occ_repo.list_for_slot_day(slot.id, day)
    return _guarded(slot, compute_occupancy_for_admin(slot.max_capacity, records, admin_id))


def _by_slot(records: List[OccupancyRecord]) -> Dict[int, List[OccupancyRecord]]:
    grouped: Dict[int, List[OccupancyRecord]] = defaultdict(list)
    for record in records:
        grouped[record.slot_id].append(record)
    return grouped


async def get_availability(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    policy: CalendarPolicy,
    cache: Optional[CatalogCache] = None,
) -> List[SlotAvailability]:
    """Public availability of every active slot on ``day``."""
    check = policy.require_available(day)
    slots = await slots_for_day(slot_repo, day_of_week=check.day_of_week, cache=cache)
    if not slots:
        return []
    records = _by_slot(await occ_repo.list_for_date(day))

    items: List[SlotAvailability] = []
    for slot in slots:
        occupancy = _guarded(slot, compute_occupancy(slot.max_capacity, records.get(slot.id, [])))
        items.append(SlotAvailability(slot=slot, occupancy=occupancy))
    return items


async def get_admin_availability(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    admin_id: str,
    policy: CalendarPolicy,
    cache: Optional[CatalogCache] = None,
) -> List[SlotAvailability]:
    """Availability as shown to one administrator on the blocking screen."""
    check = policy.require_available(day)
    slots = await slots_for_day(slot_repo, day_of_week=check.day_of_week, cache=cache)
    if not slots:
        return []
    all_records = await occ_repo.list_for_date(day)
    records = _by_slot(all_records)
    block_survey = survey(day, admin_id, [r for r in all_records if r.kind == OccupancyKind.ADMIN_BLOCK])
    owners = block_survey.slot_owners()

    items: List[SlotAvailability] = []
    for slot in slots:
        occupancy = _guarded(slot, compute_occupancy_for_admin(slot.max_capacity, records.get(slot.id, []), admin_id))
        slot_owners = owners.get(slot.id, set())
        items.append(
            SlotAvailability(
                slot=slot,
                occupancy=occupancy,
                blocked_by_me=admin_id in slot_owners,
                blocked_by_others=tuple(sorted(slot_owners - {admin_id})),
            )
        )
    return items


@dataclass(frozen=True)
class SlotSummary:
    slot: SlotTemplate
    occupancy: Occupancy
    bookings: int
    booked_guests: int
    blocked_guests: int


@dataclass(frozen=True)
class DaySummary:
    date: date
    slots: List[SlotSummary]

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots(self) -> int:
        return sum(1 for s in self.slots if s.occupancy.is_available)

    @property
    def total_capacity(self) -> int:
        return sum(s.slot.max_capacity for s in self.slots)

    @property
    def available_capacity(self) -> int:
        return sum(s.occupancy.available for s in self.slots)

    @property
    def total_bookings(self) -> int:
        return sum(s.bookings for s in self.slots)

    @property
    def total_guests(self) -> int:
        return sum(s.booked_guests for s in self.slots)


async def get_day_summary(
    slot_repo: SlotTemplateRepository,
    occ_repo: OccupancyRepository,
    *,
    day: date,
    policy: CalendarPolicy,
    cache: Optional[CatalogCache] = None,
) -> DaySummary:
    """Capacity totals for ``day`` plus booking and block counts per slot.

    Totals follow the public view: blocks consume capacity and Sunday slots
    outside opening hours count as closed.
    """
    check = policy.require_available(day)
    slots = await slots_for_day(slot_repo, day_of_week=check.day_of_week, cache=cache)
    records = _by_slot(await occ_repo.list_for_date(day)) if slots else {}

    items: List[SlotSummary] = []
    for slot in slots:
        slot_records = records.get(slot.id, [])
        bookings = [r for r in slot_records if r.kind == OccupancyKind.BOOKING]
        items.append(
            SlotSummary(
                slot=slot,
                occupancy=_guarded(slot, compute_occupancy(slot.max_capacity, slot_records)),
                bookings=len(bookings),
                booked_guests=sum(r.guests for r in bookings),
                blocked_guests=sum(r.guests for r in slot_records if r.kind == OccupancyKind.ADMIN_BLOCK),
            )
        )
    return DaySummary(date=day, slots=items)
