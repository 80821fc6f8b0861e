import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import booking_policy, get_catalog_cache, get_session
from ..domain.calendar import parse_calendar_date
from ..domain.errors import CapacityError, DomainError
from ..infrastructure.repositories import SqlAlchemyOccupancyRepository, SqlAlchemySlotTemplateRepository
from ..schemas import BookingCreate, BookingRead
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import emit_audit_log
from .errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["bookings"])


def _audit(**kwargs: object) -> None:
    try:
        emit_audit_log(**kwargs)  # type: ignore[arg-type]
    except RuntimeError as exc:
        logger.exception("audit log emission failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log"
        ) from exc


@router.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    session: AsyncSession = Depends(get_session),
) -> BookingRead:
    slot_repo = SqlAlchemySlotTemplateRepository(session)
    occ_repo = SqlAlchemyOccupancyRepository(session)
    try:
        day = parse_calendar_date(payload.date)
        async with session.begin():
            booking, slot, occupancy = await booking_usecase.admit_booking(
                slot_repo,
                occ_repo,
                slot_id=payload.slot_id,
                day=day,
                guests=payload.guests,
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                policy=booking_policy(),
                cache=get_catalog_cache(),
            )
    except CapacityError as exc:
        _audit(
            action="booking.rejected",
            initiator="customer",
            actor_id=payload.email.strip().lower(),
            day=day,
            slot_ids=[payload.slot_id],
            guests=payload.guests,
            message=exc.message,
            extra={"available": exc.available},
        )
        raise http_error(exc) from exc
    except DomainError as exc:
        raise http_error(exc) from exc

    _audit(
        action="booking.admitted",
        initiator="customer",
        actor_id=booking.owner_id,
        day=booking.date,
        slot_ids=[booking.slot_id],
        guests=booking.guests,
        record_ids=[booking.id],
        extra={"available_after": occupancy.available},
    )
    return BookingRead.from_db(booking=booking, slot=slot, remaining=occupancy.available)
