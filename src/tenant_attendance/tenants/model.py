from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Optional

from ..core.constants import (
    DEFAULT_ATTENDANCE_CLOSE_TIME,
    DEFAULT_LATE_GRACE_MINUTES,
    DEFAULT_TIMEZONE,
    DEFAULT_WORK_END,
    DEFAULT_WORK_START,
    DEFAULT_WORKING_DAYS,
)


@dataclass(frozen=True)
class Tenant:
    """Domain entity: an organization and its attendance settings.

    Times of day are local wall-clock "HH:MM" strings in `timezone`;
    `working_days` uses Sunday=0 ... Saturday=6.
    """

    tenant_id: int
    name: str
    timezone: str = DEFAULT_TIMEZONE
    working_days: FrozenSet[int] = DEFAULT_WORKING_DAYS
    work_start: str = DEFAULT_WORK_START
    work_end: str = DEFAULT_WORK_END
    late_grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES
    attendance_close_enabled: bool = False
    attendance_close_time: Optional[str] = DEFAULT_ATTENDANCE_CLOSE_TIME
    is_active: bool = True

    def settings(self) -> dict:
        return {
            "timezone": self.timezone,
            "working_days": sorted(self.working_days),
            "work_start": self.work_start,
            "work_end": self.work_end,
            "late_grace_minutes": self.late_grace_minutes,
            "attendance_close_enabled": self.attendance_close_enabled,
            "attendance_close_time": self.attendance_close_time,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    tenant_id: int
    holiday_date: date
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "holiday_id": self.holiday_id,
            "tenant_id": self.tenant_id,
            "date": self.holiday_date.isoformat(),
            "description": self.description,
        }
