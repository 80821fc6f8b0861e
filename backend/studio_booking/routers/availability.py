from typing import List

from fastapi import APIRouter, Depends, Path, Query

from ..deps import booking_policy, get_catalog_cache, get_occupancy_repo, get_slot_repo
from ..domain.calendar import parse_calendar_date
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyOccupancyRepository, SqlAlchemySlotTemplateRepository
from ..schemas import DateInfoRead, DayScheduleRead, DaySummaryRead, OccupancyRead, SlotAvailabilityRead
from ..usecases import availability as availability_usecase
from ..usecases import slots as slot_usecase
from .errors import http_error

router = APIRouter(prefix="", tags=["availability"])


@router.get("/calendar/{day}", response_model=DateInfoRead)
async def describe_date(day: str) -> DateInfoRead:
    try:
        parsed = parse_calendar_date(day)
    except DomainError as exc:
        raise http_error(exc) from exc
    return DateInfoRead.from_check(booking_policy().describe(parsed))


@router.get("/availability", response_model=List[SlotAvailabilityRead])
async def list_availability(
    day: str = Query(..., alias="date", description="Calendar date, YYYY-MM-DD"),
    slot_repo: SqlAlchemySlotTemplateRepository = Depends(get_slot_repo),
    occ_repo: SqlAlchemyOccupancyRepository = Depends(get_occupancy_repo),
) -> list[SlotAvailabilityRead]:
    try:
        items = await availability_usecase.get_availability(
            slot_repo,
            occ_repo,
            day=parse_calendar_date(day),
            policy=booking_policy(),
            cache=get_catalog_cache(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return [SlotAvailabilityRead.from_domain(item) for item in items]


@router.get("/availability/summary", response_model=DaySummaryRead)
async def summarize_day(
    day: str = Query(..., alias="date", description="Calendar date, YYYY-MM-DD"),
    slot_repo: SqlAlchemySlotTemplateRepository = Depends(get_slot_repo),
    occ_repo: SqlAlchemyOccupancyRepository = Depends(get_occupancy_repo),
) -> DaySummaryRead:
    try:
        summary = await availability_usecase.get_day_summary(
            slot_repo,
            occ_repo,
            day=parse_calendar_date(day),
            policy=booking_policy(),
            cache=get_catalog_cache(),
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return DaySummaryRead.from_domain(summary)


@router.get("/availability/{slot_id}", response_model=OccupancyRead)
async def get_slot_occupancy(
    slot_id: int = Path(..., ge=1),
    day: str = Query(..., alias="date", description="Calendar date, YYYY-MM-DD"),
    slot_repo: SqlAlchemySlotTemplateRepository = Depends(get_slot_repo),
    occ_repo: SqlAlchemyOccupancyRepository = Depends(get_occupancy_repo),
) -> OccupancyRead:
    try:
        parsed = parse_calendar_date(day)
        occupancy = await availability_usecase.get_occupancy(
            slot_repo, occ_repo, slot_id=slot_id, day=parsed, policy=booking_policy()
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return OccupancyRead.from_domain(slot_id, parsed, occupancy)


@router.get("/schedule", response_model=List[DayScheduleRead])
async def weekly_schedule(
    slot_repo: SqlAlchemySlotTemplateRepository = Depends(get_slot_repo),
) -> list[DayScheduleRead]:
    try:
        days = await slot_usecase.weekly_schedule(slot_repo, cache=get_catalog_cache())
    except DomainError as exc:
        raise http_error(exc) from exc
    return [DayScheduleRead.from_domain(d) for d in days]
