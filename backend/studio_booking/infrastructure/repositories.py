from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import StorageError
from ..domain.repositories import OccupancyRepository, SlotTemplateRepository
from ..domain.services import PlannedRow
from ..domain.validation import CustomerContact
from ..models import OccupancyKind, OccupancyRecord, SlotDayLock, SlotTemplate
from ..utils.time import utc_now_naive

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _storage_errors(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("storage failure during %s", operation)
        raise StorageError(f"storage failure during {operation}") from exc


class SqlAlchemySlotTemplateRepository(SlotTemplateRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active_for_day(self, day_of_week: int) -> List[SlotTemplate]:
        stmt = (
            select(SlotTemplate)
            .where(SlotTemplate.day_of_week == day_of_week, SlotTemplate.is_active.is_(True))
            .order_by(SlotTemplate.start_time, SlotTemplate.id)
        )
        async with _storage_errors("slot template lookup"):
            return list((await self.session.scalars(stmt)).all())

    async def get(self, slot_id: int) -> Optional[SlotTemplate]:
        async with _storage_errors("slot template lookup"):
            return await self.session.get(SlotTemplate, slot_id)

    async def list_active_by_ids(self, slot_ids: Iterable[int]) -> List[SlotTemplate]:
        ids = sorted(set(slot_ids))
        if not ids:
            return []
        stmt = (
            select(SlotTemplate)
            .where(SlotTemplate.id.in_(ids), SlotTemplate.is_active.is_(True))
            .order_by(SlotTemplate.id)
        )
        async with _storage_errors("slot template lookup"):
            return list((await self.session.scalars(stmt)).all())


class SqlAlchemyOccupancyRepository(OccupancyRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_slot_day(self, slot_id: int, day: date) -> None:
        """Take a row lock on the (slot, date) lock row, creating it on first use.

        Must run inside the admission transaction; the lock is held until commit.
        """
        stmt = select(SlotDayLock).where(SlotDayLock.slot_id == slot_id, SlotDayLock.date == day).with_for_update()
        async with _storage_errors("slot-day lock"):
            if await self.session.scalar(stmt) is not None:
                return
            try:
                async with self.session.begin_nested():
                    self.session.add(SlotDayLock(slot_id=slot_id, date=day, created_at=utc_now_naive()))
            except IntegrityError:
                # Created by a concurrent admission; the locking read below waits for it.
                logger.debug("slot-day lock row for %s/%s created concurrently", slot_id, day)
            await self.session.scalar(stmt)

    async def list_for_slot_day(self, slot_id: int, day: date) -> List[OccupancyRecord]:
        stmt = (
            select(OccupancyRecord)
            .where(OccupancyRecord.slot_id == slot_id, OccupancyRecord.date == day)
            .order_by(OccupancyRecord.id)
        )
        async with _storage_errors("occupancy lookup"):
            return list((await self.session.scalars(stmt)).all())

    async def list_for_date(self, day: date, kind: OccupancyKind | None = None) -> List[OccupancyRecord]:
        stmt = select(OccupancyRecord).where(OccupancyRecord.date == day)
        if kind is not None:
            stmt = stmt.where(OccupancyRecord.kind == kind)
        stmt = stmt.order_by(OccupancyRecord.created_at, OccupancyRecord.id)
        async with _storage_errors("occupancy lookup"):
            return list((await self.session.scalars(stmt)).all())

    async def list_blocks(self, from_date: date | None = None) -> List[OccupancyRecord]:
        stmt = select(OccupancyRecord).where(OccupancyRecord.kind == OccupancyKind.ADMIN_BLOCK)
        if from_date is not None:
            stmt = stmt.where(OccupancyRecord.date >= from_date)
        stmt = stmt.order_by(OccupancyRecord.date.desc(), OccupancyRecord.created_at.desc(), OccupancyRecord.id)
        async with _storage_errors("block lookup"):
            return list((await self.session.scalars(stmt)).all())

    async def get(self, record_id: int) -> Optional[OccupancyRecord]:
        async with _storage_errors("occupancy lookup"):
            return await self.session.get(OccupancyRecord, record_id)

    async def list_bookings_by_owner(self, owner_id: str) -> List[OccupancyRecord]:
        stmt = (
            select(OccupancyRecord)
            .where(OccupancyRecord.kind == OccupancyKind.BOOKING, OccupancyRecord.owner_id == owner_id)
            .order_by(OccupancyRecord.date.desc(), OccupancyRecord.created_at.desc(), OccupancyRecord.id.desc())
        )
        async with _storage_errors("booking lookup"):
            return list((await self.session.scalars(stmt)).all())

    async def create_booking(
        self,
        *,
        slot_id: int,
        day: date,
        guests: int,
        contact: CustomerContact,
    ) -> OccupancyRecord:
        record = OccupancyRecord(
            slot_id=slot_id,
            date=day,
            guests=guests,
            kind=OccupancyKind.BOOKING,
            owner_id=contact.owner_id,
            reason=None,
            customer_name=contact.name,
            customer_email=contact.email,
            customer_phone=contact.phone,
            created_at=utc_now_naive(),
        )
        async with _storage_errors("booking insert"):
            self.session.add(record)
            await self.session.flush()
        return record

    async def create_blocks(
        self,
        *,
        day: date,
        owner_id: str,
        rows: Sequence[PlannedRow],
    ) -> List[OccupancyRecord]:
        now = utc_now_naive()
        records = [
            OccupancyRecord(
                slot_id=row.slot_id,
                date=day,
                guests=row.guests,
                kind=OccupancyKind.ADMIN_BLOCK,
                owner_id=owner_id,
                reason=row.reason,
                created_at=now,
            )
            for row in rows
        ]
        async with _storage_errors("block insert"):
            self.session.add_all(records)
            await self.session.flush()
        return records

    async def delete_ids(self, record_ids: Sequence[int]) -> int:
        if not record_ids:
            return 0
        stmt = delete(OccupancyRecord).where(OccupancyRecord.id.in_(list(record_ids)))
        async with _storage_errors("occupancy delete"):
            result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
