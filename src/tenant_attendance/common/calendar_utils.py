"""Timezone-aware calendar helpers.

All time-of-day settings are "HH:MM" wall-clock strings in the tenant's
timezone. They only become absolute instants once combined with a specific
calendar date, so nothing here caches an instant across days.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Container
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError
from .datetime_utils import ensure_aware


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time of day {value!r} (expected HH:MM)")


def tenant_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        raise ValidationError(f"Unknown timezone {tz_name!r}")


def to_local(instant: datetime, tz_name: str) -> datetime:
    return ensure_aware(instant).astimezone(tenant_zone(tz_name))


def local_date(instant: datetime, tz_name: str) -> date:
    return to_local(instant, tz_name).date()


def combine_local(day: date, hhmm: str, tz_name: str) -> datetime:
    """Absolute instant of `hhmm` wall-clock time on `day` in `tz_name`."""
    return datetime.combine(day, parse_hhmm(hhmm), tzinfo=tenant_zone(tz_name))


def start_of_day(instant: datetime, tz_name: str) -> datetime:
    day = local_date(instant, tz_name)
    return datetime.combine(day, time.min, tzinfo=tenant_zone(tz_name))


def end_of_day(day: date, tz_name: str) -> datetime:
    """Last millisecond of `day` in `tz_name` (23:59:59.999 local)."""
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tenant_zone(tz_name))


def weekday_number(day: date) -> int:
    """Weekday with Sunday=0 ... Saturday=6."""
    return (day.weekday() + 1) % 7


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    seconds = (ensure_aware(end) - ensure_aware(start)).total_seconds()
    return int(math.trunc(seconds / 60))


def is_working_day(tenant, instant: datetime, holidays: Container[date]) -> bool:
    """Weekday is one of the tenant's working days and the date is not a holiday."""
    day = local_date(instant, tenant.timezone)
    return weekday_number(day) in tenant.working_days and day not in holidays


def next_occurrence_of_local_time(tz_name: str, hhmm: str, from_instant: datetime) -> datetime:
    """First instant strictly after `from_instant` whose local wall clock reads `hhmm`."""
    day = local_date(from_instant, tz_name)
    candidate = combine_local(day, hhmm, tz_name)
    if candidate <= ensure_aware(from_instant):
        candidate = combine_local(day + timedelta(days=1), hhmm, tz_name)
    return candidate
