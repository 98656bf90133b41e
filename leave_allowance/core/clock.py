"""
UTC clock and calendar helpers.

The current instant is read here and only at the outer boundaries
(snapshot builder, resolver, CLI). Calculator properties never call it.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union

DateLike = Union[date, datetime]

_ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: DateLike) -> datetime:
    """Interpret a date or datetime as a UTC instant.

    Dates become midnight UTC, naive datetimes are taken as UTC and aware
    datetimes are converted.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def start_of_year(year: int) -> datetime:
    """First instant of the year in UTC."""
    return datetime(year, 1, 1, tzinfo=timezone.utc)


def end_of_year(year: int) -> datetime:
    """Last millisecond of the year in UTC."""
    return datetime(year, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days elapsed from earlier to later, truncated toward zero."""
    delta = later - earlier
    whole_days = abs(delta) // _ONE_DAY
    return whole_days if delta >= timedelta(0) else -whole_days
