from dataclasses import dataclass
from typing import List, Optional

from ..domain.calendar import DAY_NAMES
from ..domain.catalog import order_for_day, outside_sunday_window
from ..domain.repositories import CatalogCache, SlotTemplateRepository
from ..models import SlotTemplate


@dataclass(frozen=True)
class DaySchedule:
    day_of_week: int
    day_name: str
    slots: List[SlotTemplate]


async def slots_for_day(
    slot_repo: SlotTemplateRepository,
    *,
    day_of_week: int,
    cache: Optional[CatalogCache] = None,
) -> List[SlotTemplate]:
    if not 0 <= day_of_week <= 6:
        raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if cache is not None:
        cached = cache.get(day_of_week)
        if cached is not None:
            return cached
    slots = order_for_day(await slot_repo.list_active_for_day(day_of_week), day_of_week)
    if cache is not None:
        cache.set(day_of_week, slots)
    return slots


async def bookable_slots_for_day(
    slot_repo: SlotTemplateRepository,
    *,
    day_of_week: int,
    cache: Optional[CatalogCache] = None,
) -> List[SlotTemplate]:
    """Active slots that can take occupancy; Sunday templates outside the opening window are left out."""
    slots = await slots_for_day(slot_repo, day_of_week=day_of_week, cache=cache)
    return [s for s in slots if not outside_sunday_window(s)]


async def weekly_schedule(
    slot_repo: SlotTemplateRepository,
    *,
    cache: Optional[CatalogCache] = None,
) -> List[DaySchedule]:
    """Active templates grouped by weekday, Sunday first; weekdays without slots are omitted."""
    schedule: List[DaySchedule] = []
    for dow in range(7):
        slots = await slots_for_day(slot_repo, day_of_week=dow, cache=cache)
        if slots:
            schedule.append(DaySchedule(day_of_week=dow, day_name=DAY_NAMES[dow], slots=slots))
    return schedule
