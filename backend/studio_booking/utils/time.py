from datetime import date, datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo


@lru_cache
def venue_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def today_in(zone_name: str) -> date:
    """Current calendar date at the venue, independent of the server's timezone."""
    return datetime.now(venue_zone(zone_name)).date()


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
