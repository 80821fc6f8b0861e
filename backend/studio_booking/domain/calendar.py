"""Calendar rules: which dates can be booked or blocked."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta

from .errors import ValidationError

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONDAY = 1

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DateCheck:
    date: date
    valid: bool
    available: bool
    day_of_week: int
    day_name: str
    error: str | None = None


def parse_calendar_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` as a plain calendar date (no timezone involved)."""
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise ValidationError(f"invalid date: {value!r}, expected YYYY-MM-DD", field="date")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(f"invalid date: {value!r}", field="date") from exc


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def is_within_horizon(day: date, *, today: date, horizon_days: int) -> bool:
    return today <= day <= today + timedelta(days=horizon_days)


def is_business_day(dow: int, *, closed_weekday: int = MONDAY) -> bool:
    return dow != closed_weekday


def describe(day: date, *, today: date, horizon_days: int, closed_weekday: int = MONDAY) -> DateCheck:
    dow = day_of_week(day)
    valid = is_within_horizon(day, today=today, horizon_days=horizon_days)
    available = valid and is_business_day(dow, closed_weekday=closed_weekday)

    error: str | None = None
    if day < today:
        error = "Past dates cannot be selected"
    elif not valid:
        error = f"Dates more than {horizon_days} days ahead cannot be selected"
    elif not available:
        error = f"The studio is closed on {DAY_NAMES[closed_weekday]}s"

    return DateCheck(
        date=day,
        valid=valid,
        available=available,
        day_of_week=dow,
        day_name=DAY_NAMES[dow],
        error=error,
    )


def require_available(day: date, *, today: date, horizon_days: int, closed_weekday: int = MONDAY) -> DateCheck:
    check = describe(day, today=today, horizon_days=horizon_days, closed_weekday=closed_weekday)
    if check.error is not None:
        raise ValidationError(check.error, field="date")
    return check


@dataclass(frozen=True)
class CalendarPolicy:
    """Date window applied to one kind of caller (customer booking or admin blocking)."""

    today: date
    horizon_days: int
    closed_weekday: int = MONDAY

    def describe(self, day: date) -> DateCheck:
        return describe(day, today=self.today, horizon_days=self.horizon_days, closed_weekday=self.closed_weekday)

    def require_available(self, day: date) -> DateCheck:
        return require_available(
            day, today=self.today, horizon_days=self.horizon_days, closed_weekday=self.closed_weekday
        )
