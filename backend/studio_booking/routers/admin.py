import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import block_policy, get_catalog_cache, get_current_admin_id, get_session
from ..domain.calendar import parse_calendar_date
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyOccupancyRepository, SqlAlchemySlotTemplateRepository
from ..schemas import (
    AdminSlotAvailabilityRead,
    BlockResultRead,
    BlockSurveyRead,
    BookingRead,
    FullDayBlockCreate,
    FullDayStatusRead,
    LogicalBlockRead,
    OccupancyRead,
    SlotBlockCreate,
)
from ..usecases import availability as availability_usecase
from ..usecases import blocks as block_usecase
from ..usecases import bookings as booking_usecase
from ..usecases.blocks import BlockResult
from ..utils.audit_log import emit_audit_log
from .errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin_id)])


def _audit(**kwargs: object) -> None:
    try:
        emit_audit_log(**kwargs)  # type: ignore[arg-type]
    except RuntimeError as exc:
        logger.exception("audit log emission failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log"
        ) from exc


def _audit_block_created(result: BlockResult) -> None:
    if not result.created:
        return
    _audit(
        action="block.created",
        initiator="admin",
        actor_id=result.admin_id,
        day=result.date,
        slot_ids=list(result.blocked_slot_ids),
        guests=sum(r.guests for r in result.created),
        record_ids=[r.id for r in result.created],
        extra={"full_day": result.full_day, "block_ids": result.block_ids},
    )


@router.get("/availability", response_model=List[AdminSlotAvailabilityRead])
async def list_admin_availability(
    day: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> list[AdminSlotAvailabilityRead]:
    try:
        items = await availability_usecase.get_admin_availability(
            SqlAlchemySlotTemplateRepository(session),
            SqlAlchemyOccupancyRepository(session),
            day=parse_calendar_date(day),
            admin_id=admin_id,
            policy=block_policy(),
            cache=get_catalog_cache(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [AdminSlotAvailabilityRead.from_domain(item) for item in items]


@router.get("/availability/{slot_id}", response_model=OccupancyRead)
async def get_admin_slot_occupancy(
    slot_id: int = Path(..., ge=1),
    day: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> OccupancyRead:
    try:
        parsed = parse_calendar_date(day)
        occupancy = await availability_usecase.get_occupancy_for_admin(
            SqlAlchemySlotTemplateRepository(session),
            SqlAlchemyOccupancyRepository(session),
            slot_id=slot_id,
            day=parsed,
            admin_id=admin_id,
            policy=block_policy(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return OccupancyRead.from_domain(slot_id, parsed, occupancy)


@router.get("/blocks/survey", response_model=BlockSurveyRead)
async def survey_blocks(
    day: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> BlockSurveyRead:
    try:
        result = await block_usecase.survey_blocks(
            SqlAlchemyOccupancyRepository(session),
            day=parse_calendar_date(day),
            admin_id=admin_id,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return BlockSurveyRead.from_domain(result)


@router.get("/blocks/full-day", response_model=FullDayStatusRead)
async def detect_full_day(
    day: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> FullDayStatusRead:
    try:
        result = await block_usecase.detect_full_day_status(
            SqlAlchemySlotTemplateRepository(session),
            SqlAlchemyOccupancyRepository(session),
            day=parse_calendar_date(day),
            cache=get_catalog_cache(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return FullDayStatusRead.from_domain(result)


@router.post("/blocks/full-day", response_model=BlockResultRead, status_code=status.HTTP_201_CREATED)
async def block_full_day(
    payload: FullDayBlockCreate,
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> BlockResultRead:
    try:
        day = parse_calendar_date(payload.date)
        async with session.begin():
            result = await block_usecase.block_full_day(
                SqlAlchemySlotTemplateRepository(session),
                SqlAlchemyOccupancyRepository(session),
                day=day,
                reason=payload.reason,
                admin_id=admin_id,
                policy=block_policy(),
                cache=get_catalog_cache(),
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    _audit_block_created(result)
    return BlockResultRead.from_domain(result)


@router.post("/blocks/slots", response_model=BlockResultRead, status_code=status.HTTP_201_CREATED)
async def block_slots(
    payload: SlotBlockCreate,
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> BlockResultRead:
    try:
        day = parse_calendar_date(payload.date)
        async with session.begin():
            result = await block_usecase.block_specific_slots(
                SqlAlchemySlotTemplateRepository(session),
                SqlAlchemyOccupancyRepository(session),
                day=day,
                slot_ids=payload.slot_ids,
                reason=payload.reason,
                admin_id=admin_id,
                policy=block_policy(),
                guests_per_slot=payload.guests_per_slot,
                cache=get_catalog_cache(),
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    _audit_block_created(result)
    return BlockResultRead.from_domain(result)


@router.get("/blocks", response_model=List[LogicalBlockRead])
async def list_blocks(
    from_date: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> list[LogicalBlockRead]:
    try:
        blocks = await block_usecase.list_blocks(
            SqlAlchemySlotTemplateRepository(session),
            SqlAlchemyOccupancyRepository(session),
            from_date=parse_calendar_date(from_date) if from_date is not None else None,
            cache=get_catalog_cache(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [LogicalBlockRead.from_domain(block) for block in blocks]


@router.delete("/blocks/{block_id}", response_model=LogicalBlockRead)
async def remove_block(
    block_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> LogicalBlockRead:
    try:
        async with session.begin():
            block = await block_usecase.remove_block(
                SqlAlchemySlotTemplateRepository(session),
                SqlAlchemyOccupancyRepository(session),
                block_id=block_id,
                cache=get_catalog_cache(),
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    _audit(
        action="block.removed",
        initiator="admin",
        actor_id=admin_id,
        day=block.date,
        slot_ids=list(block.slot_ids),
        guests=block.guests,
        record_ids=list(block.record_ids),
        block_id=block.block_id,
        extra={"owner_id": block.owner_id},
    )
    return LogicalBlockRead.from_domain(block)


@router.get("/bookings", response_model=List[BookingRead])
async def list_bookings(
    day: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> list[BookingRead]:
    try:
        bookings = await booking_usecase.list_bookings(
            SqlAlchemyOccupancyRepository(session),
            day=parse_calendar_date(day),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [BookingRead.from_db(booking=b) for b in bookings]


@router.get("/bookings/search", response_model=List[BookingRead])
async def search_bookings(
    email: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> list[BookingRead]:
    try:
        bookings = await booking_usecase.find_bookings_by_email(SqlAlchemyOccupancyRepository(session), email=email)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [BookingRead.from_db(booking=b) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> BookingRead:
    try:
        booking = await booking_usecase.get_booking(SqlAlchemyOccupancyRepository(session), booking_id=booking_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return BookingRead.from_db(booking=booking)


@router.delete("/bookings/{booking_id}", response_model=BookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    admin_id: str = Depends(get_current_admin_id),
) -> BookingRead:
    try:
        async with session.begin():
            booking = await booking_usecase.cancel_booking(
                SqlAlchemyOccupancyRepository(session),
                booking_id=booking_id,
                cache=get_catalog_cache(),
            )
    except DomainError as exc:
        raise http_error(exc) from exc

    _audit(
        action="booking.cancelled",
        initiator="admin",
        actor_id=admin_id,
        day=booking.date,
        slot_ids=[booking.slot_id],
        guests=booking.guests,
        record_ids=[booking.id],
        extra={"customer": booking.owner_id},
    )
    return BookingRead.from_db(booking=booking)
