import asyncio
import itertools
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence

import pytest
from studio_booking.domain.calendar import CalendarPolicy
from studio_booking.domain.errors import StorageError
from studio_booking.domain.services import PlannedRow
from studio_booking.domain.validation import CustomerContact
from studio_booking.models import OccupancyKind, OccupancyRecord, SlotTemplate

# Tuesday; the studio is closed on Mondays.
TODAY = date(2026, 10, 20)


def _slot(
    slot_id: int,
    day_of_week: int,
    start: str,
    end: str,
    capacity: int = 6,
    active: bool = True,
) -> SlotTemplate:
    return SlotTemplate(
        id=slot_id,
        day_of_week=day_of_week,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        max_capacity=capacity,
        is_active=active,
    )


def _record(
    record_id: int,
    slot_id: int,
    day: date,
    guests: int,
    kind: OccupancyKind = OccupancyKind.BOOKING,
    owner_id: str = "customer@example.com",
    reason: Optional[str] = None,
) -> OccupancyRecord:
    return OccupancyRecord(
        id=record_id,
        slot_id=slot_id,
        date=day,
        guests=guests,
        kind=kind,
        owner_id=owner_id,
        reason=reason if kind == OccupancyKind.ADMIN_BLOCK else None,
        created_at=datetime(2026, 10, 1, 12, 0),
    )


class FakeSlotRepo:
    def __init__(self, slots: Iterable[SlotTemplate]) -> None:
        self.slots = {s.id: s for s in slots}
        self.day_lookups = 0

    async def list_active_for_day(self, day_of_week: int) -> List[SlotTemplate]:
        self.day_lookups += 1
        return [s for s in self.slots.values() if s.is_active and s.day_of_week == day_of_week]

    async def get(self, slot_id: int) -> Optional[SlotTemplate]:
        return self.slots.get(slot_id)

    async def list_active_by_ids(self, slot_ids: Iterable[int]) -> List[SlotTemplate]:
        wanted = set(slot_ids)
        return [s for sid, s in sorted(self.slots.items()) if sid in wanted and s.is_active]


class FakeOccupancyRepo:
    """In-memory occupancy store; one instance stands in for one committed database."""

    def __init__(self, records: Iterable[OccupancyRecord] = ()) -> None:
        self.records: Dict[int, OccupancyRecord] = {r.id: r for r in records}
        self._ids = itertools.count(max(self.records, default=0) + 1)
        self.locks: List[tuple[int, date]] = []
        self.insert_calls = 0
        self.fail_inserts = False

    def _new_id(self) -> int:
        # Tests seed self.records directly, so skip ids already taken.
        record_id = next(self._ids)
        while record_id in self.records:
            record_id = next(self._ids)
        return record_id

    async def lock_slot_day(self, slot_id: int, day: date) -> None:
        self.locks.append((slot_id, day))

    async def list_for_slot_day(self, slot_id: int, day: date) -> List[OccupancyRecord]:
        return [r for r in self.records.values() if r.slot_id == slot_id and r.date == day]

    async def list_for_date(self, day: date, kind: Optional[OccupancyKind] = None) -> List[OccupancyRecord]:
        return [r for r in self.records.values() if r.date == day and (kind is None or r.kind == kind)]

    async def list_blocks(self, from_date: Optional[date] = None) -> List[OccupancyRecord]:
        return [
            r
            for r in self.records.values()
            if r.kind == OccupancyKind.ADMIN_BLOCK and (from_date is None or r.date >= from_date)
        ]

    async def get(self, record_id: int) -> Optional[OccupancyRecord]:
        return self.records.get(record_id)

    async def list_bookings_by_owner(self, owner_id: str) -> List[OccupancyRecord]:
        rows = [r for r in self.records.values() if r.kind == OccupancyKind.BOOKING and r.owner_id == owner_id]
        return sorted(rows, key=lambda r: (r.date, r.created_at, r.id), reverse=True)

    async def create_booking(
        self, *, slot_id: int, day: date, guests: int, contact: CustomerContact
    ) -> OccupancyRecord:
        self.insert_calls += 1
        if self.fail_inserts:
            raise StorageError("storage failure during booking insert")
        record = _record(self._new_id(), slot_id, day, guests, owner_id=contact.owner_id)
        record.customer_name = contact.name
        record.customer_email = contact.email
        record.customer_phone = contact.phone
        self.records[record.id] = record
        return record

    async def create_blocks(
        self, *, day: date, owner_id: str, rows: Sequence[PlannedRow]
    ) -> List[OccupancyRecord]:
        self.insert_calls += 1
        if self.fail_inserts:
            raise StorageError("storage failure during block insert")
        created = [
            _record(self._new_id(), row.slot_id, day, row.guests, OccupancyKind.ADMIN_BLOCK, owner_id, row.reason)
            for row in rows
        ]
        for record in created:
            self.records[record.id] = record
        return created

    async def delete_ids(self, record_ids: Sequence[int]) -> int:
        return sum(1 for rid in record_ids if self.records.pop(rid, None) is not None)

    def committed(self, slot_id: int, day: date) -> int:
        return sum(r.guests for r in self.records.values() if r.slot_id == slot_id and r.date == day)


@pytest.fixture
def make_slot() -> Callable[..., SlotTemplate]:
    return _slot


@pytest.fixture
def make_record() -> Callable[..., OccupancyRecord]:
    return _record


@pytest.fixture
def studio_slots() -> List[SlotTemplate]:
    return [
        _slot(1, 2, "10:00", "12:00", 6),
        _slot(2, 2, "12:30", "14:30", 6),
        _slot(3, 2, "16:00", "18:00", 20),
        _slot(4, 2, "19:00", "21:00", 6, active=False),
        _slot(5, 3, "10:00", "12:00", 6),
        _slot(10, 0, "10:00", "12:00", 6),
        _slot(11, 0, "14:00", "16:00", 6),
    ]


@pytest.fixture
def slot_repo(studio_slots: List[SlotTemplate]) -> FakeSlotRepo:
    return FakeSlotRepo(studio_slots)


@pytest.fixture
def occ_repo() -> FakeOccupancyRepo:
    return FakeOccupancyRepo()


@pytest.fixture
def booking_policy() -> CalendarPolicy:
    return CalendarPolicy(today=TODAY, horizon_days=90)


@pytest.fixture
def block_policy() -> CalendarPolicy:
    return CalendarPolicy(today=TODAY, horizon_days=180)


class LockingOccupancyRepo(FakeOccupancyRepo):
    """Transaction-scoped view over a shared store that honours slot-day locks.

    Reads yield to the event loop so concurrent admissions interleave the way
    separate database sessions would.
    """

    def __init__(self, store: "SharedStore") -> None:
        super().__init__()
        self.records = store.records
        self._ids = store.ids
        self._store = store
        self.held: List[asyncio.Lock] = []

    async def lock_slot_day(self, slot_id: int, day: date) -> None:
        await super().lock_slot_day(slot_id, day)
        lock = self._store.locks[(slot_id, day)]
        if lock in self.held:
            return
        await lock.acquire()
        self.held.append(lock)

    async def list_for_slot_day(self, slot_id: int, day: date) -> List[OccupancyRecord]:
        await asyncio.sleep(0)
        return await super().list_for_slot_day(slot_id, day)

    async def list_for_date(self, day: date, kind: Optional[OccupancyKind] = None) -> List[OccupancyRecord]:
        await asyncio.sleep(0)
        return await super().list_for_date(day, kind)


class SharedStore:
    def __init__(self) -> None:
        self.records: Dict[int, OccupancyRecord] = {}
        self.ids = itertools.count(1)
        self.locks: Dict[tuple[int, date], asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[LockingOccupancyRepo]:
        repo = LockingOccupancyRepo(self)
        try:
            yield repo
        finally:
            for lock in repo.held:
                lock.release()

    def committed(self, slot_id: int, day: date) -> int:
        return sum(r.guests for r in self.records.values() if r.slot_id == slot_id and r.date == day)


@pytest.fixture
def shared_store() -> SharedStore:
    return SharedStore()
