from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    return ensure_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Reference clock.

    Note: Wrapped so services and the scheduler can be driven by a fixed clock in tests.
    """

    def now(self) -> datetime:
        return utc_now()
