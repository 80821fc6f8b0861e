"""In-process TTL cache for the weekly slot catalog."""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from ..domain.calendar import day_of_week
from ..models import SlotTemplate

logger = logging.getLogger(__name__)


class SlotCatalogCache:
    """
    Caches active slot templates per weekday.

    Entries expire after ``ttl`` seconds and are dropped explicitly whenever a
    slot-day on that weekday is written to, so availability never lags a write.
    """

    def __init__(self, ttl: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[int, Tuple[float, list[SlotTemplate]]] = {}

    def get(self, dow: int) -> Optional[list[SlotTemplate]]:
        entry = self._entries.get(dow)
        if entry is None:
            return None
        stored_at, slots = entry
        if self._clock() - stored_at > self.ttl:
            del self._entries[dow]
            return None
        return list(slots)

    def set(self, dow: int, slots: list[SlotTemplate]) -> None:
        if self.ttl <= 0:
            return
        self._entries[dow] = (self._clock(), list(slots))

    def invalidate(self, dow: int) -> None:
        if self._entries.pop(dow, None) is not None:
            logger.debug("catalog cache invalidated for weekday %s", dow)

    def invalidate_slot_day(self, slot_id: int, day: date) -> None:
        self.invalidate(day_of_week(day))

    def clear(self) -> None:
        self._entries.clear()
