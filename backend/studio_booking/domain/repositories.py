from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol, Sequence

from ..models import OccupancyKind, OccupancyRecord, SlotTemplate
from .services import PlannedRow
from .validation import CustomerContact


class SlotTemplateRepository(Protocol):
    async def list_active_for_day(self, day_of_week: int) -> list[SlotTemplate]: ...

    async def get(self, slot_id: int) -> SlotTemplate | None: ...

    async def list_active_by_ids(self, slot_ids: Iterable[int]) -> list[SlotTemplate]: ...


class OccupancyRepository(Protocol):
    async def lock_slot_day(self, slot_id: int, day: date) -> None: ...

    async def list_for_slot_day(self, slot_id: int, day: date) -> list[OccupancyRecord]: ...

    async def list_for_date(self, day: date, kind: OccupancyKind | None = None) -> list[OccupancyRecord]: ...

    async def list_blocks(self, from_date: date | None = None) -> list[OccupancyRecord]: ...

    async def get(self, record_id: int) -> OccupancyRecord | None: ...

    async def list_bookings_by_owner(self, owner_id: str) -> list[OccupancyRecord]: ...

    async def create_booking(
        self,
        *,
        slot_id: int,
        day: date,
        guests: int,
        contact: CustomerContact,
    ) -> OccupancyRecord: ...

    async def create_blocks(
        self,
        *,
        day: date,
        owner_id: str,
        rows: Sequence[PlannedRow],
    ) -> list[OccupancyRecord]: ...

    async def delete_ids(self, record_ids: Sequence[int]) -> int: ...


class CatalogCache(Protocol):
    def get(self, dow: int) -> list[SlotTemplate] | None: ...

    def set(self, dow: int, slots: list[SlotTemplate]) -> None: ...

    def invalidate_slot_day(self, slot_id: int, day: date) -> None: ...
