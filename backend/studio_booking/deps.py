from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database import get_sessionmaker
from .domain.calendar import CalendarPolicy
from .infrastructure.cache import SlotCatalogCache
from .infrastructure.repositories import SqlAlchemyOccupancyRepository, SqlAlchemySlotTemplateRepository
from .utils.auth import decode_access_token
from .utils.time import today_in


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin_id(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise _unauthorized("Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Bearer token required")
    settings = get_settings()
    try:
        return decode_access_token(
            token.strip(),
            secret=settings.auth_secret,
            algorithms=[settings.auth_algorithm],
        )
    except ValueError as exc:
        raise _unauthorized("Invalid or expired token") from exc


@lru_cache
def get_catalog_cache() -> SlotCatalogCache:
    return SlotCatalogCache(ttl=get_settings().catalog_cache_ttl_seconds)


def booking_policy(settings: Settings | None = None) -> CalendarPolicy:
    settings = settings or get_settings()
    return CalendarPolicy(
        today=today_in(settings.venue_timezone),
        horizon_days=settings.booking_horizon_days,
        closed_weekday=settings.closed_weekday,
    )


def block_policy(settings: Settings | None = None) -> CalendarPolicy:
    settings = settings or get_settings()
    return CalendarPolicy(
        today=today_in(settings.venue_timezone),
        horizon_days=settings.block_horizon_days,
        closed_weekday=settings.closed_weekday,
    )


async def get_slot_repo(session: AsyncSession = Depends(get_session)) -> SqlAlchemySlotTemplateRepository:
    return SqlAlchemySlotTemplateRepository(session)


async def get_occupancy_repo(session: AsyncSession = Depends(get_session)) -> SqlAlchemyOccupancyRepository:
    return SqlAlchemyOccupancyRepository(session)
