from __future__ import annotations

from datetime import time
from typing import Iterable

from ..models import SlotTemplate

SUNDAY = 0
SUNDAY_OPENS = time(10, 0)
SUNDAY_CLOSES = time(15, 0)


def outside_sunday_window(slot: SlotTemplate) -> bool:
    """Data-quality guard: Sunday templates must sit inside 10:00-15:00.

    A misconfigured Sunday template is shown as unavailable rather than trusted.
    """
    if slot.day_of_week != SUNDAY:
        return False
    return slot.start_time < SUNDAY_OPENS or slot.end_time > SUNDAY_CLOSES


def order_for_day(slots: Iterable[SlotTemplate], dow: int) -> list[SlotTemplate]:
    return sorted(
        (s for s in slots if s.is_active and s.day_of_week == dow),
        key=lambda s: (s.start_time, s.id),
    )
