# meetwise/core/timeutils.py
"""
Calendar and timezone conversions.

Availability rules are stored as host-local wall-clock times keyed by a
Sunday-based weekday; meetings are stored as UTC instants. Everything that
crosses between the two goes through here.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = ZoneInfo("UTC")


def get_zone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone name; empty means UTC. Raises ValueError if unknown."""
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {name}") from e


def is_valid_zone(name: str | None) -> bool:
    try:
        get_zone(name)
    except ValueError:
        return False
    return True


def ensure_utc(dt: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def day_of_week(d: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def wall_clock_to_utc(d: date, t: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(d, t, tzinfo=tz).astimezone(UTC)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(instant).astimezone(tz).date()


def local_day_bounds(d: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants of local midnight at the start of ``d`` and of the next day."""
    start = datetime.combine(d, time.min, tzinfo=tz).astimezone(UTC)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=tz).astimezone(UTC)
    return start, end


def date_range(start: date, end: date) -> Iterator[date]:
    """Inclusive range of calendar dates."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
