from __future__ import annotations

import calendar
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from ..common.calendar_utils import local_date, parse_hhmm, tenant_zone
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..common.validators import require_non_empty, require_non_negative
from ..core.exceptions import NotFoundError, ValidationError
from ..core.principals import AdminPrincipal
from .model import Holiday, Tenant
from .repository import HolidayRepository, TenantRepository

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = frozenset(
    {
        "name",
        "timezone",
        "working_days",
        "work_start",
        "work_end",
        "late_grace_minutes",
        "attendance_close_enabled",
        "attendance_close_time",
        "is_active",
    }
)

# Fields that move the tenant's absentee-check instant.
SCHEDULE_FIELDS = frozenset({"timezone", "working_days", "work_start", "is_active"})


class TimerControl(Protocol):
    def reschedule(self, tenant: Tenant) -> None:
        raise NotImplementedError


class TenantSettingsService:
    def __init__(
        self,
        tenants: TenantRepository,
        holidays: HolidayRepository,
        *,
        timers: Optional[TimerControl] = None,
        clock: Optional[Clock] = None,
    ):
        self._tenants = tenants
        self._holidays = holidays
        self._timers = timers
        self._clock = clock or SystemClock()

    def _tenant(self, admin: AdminPrincipal) -> Tenant:
        tenant = self._tenants.get_by_id(admin.tenant_id)
        if not tenant:
            raise NotFoundError("Organization not found")
        return tenant

    def _reschedule(self, tenant: Tenant) -> None:
        if self._timers is None:
            return
        try:
            self._timers.reschedule(tenant)
        except Exception:
            logger.exception("Failed to reschedule tenant %s after settings change", tenant.tenant_id)

    def get_settings(self, admin: AdminPrincipal) -> Tenant:
        return self._tenant(admin)

    @staticmethod
    def _clean(field: str, value: Any) -> Any:
        if field == "name":
            return require_non_empty(value, "Organization name")
        if field == "timezone":
            tenant_zone(value)
            return value
        if field in {"work_start", "work_end"}:
            return parse_hhmm(value).strftime("%H:%M")
        if field == "attendance_close_time":
            return parse_hhmm(value).strftime("%H:%M") if value else None
        if field == "working_days":
            try:
                days = frozenset(int(d) for d in value)
            except (TypeError, ValueError):
                raise ValidationError("Working days must be a list of weekday numbers")
            if not days:
                raise ValidationError("At least one working day is required")
            if any(d < 0 or d > 6 for d in days):
                raise ValidationError("Working days must be between 0 (Sunday) and 6 (Saturday)")
            return days
        if field == "late_grace_minutes":
            return require_non_negative(value, "Late grace minutes")
        return bool(value)

    def update_settings(self, admin: AdminPrincipal, **changes: Any) -> Tenant:
        unknown = set(changes) - SETTINGS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        before = self._tenant(admin)
        cleaned = {field: self._clean(field, value) for field, value in changes.items()}
        after = replace(before, **cleaned)

        if parse_hhmm(after.work_end) <= parse_hhmm(after.work_start):
            raise ValidationError("Work end time must be after work start time")
        if after.attendance_close_enabled and not after.attendance_close_time:
            raise ValidationError("Attendance close time is required when closing is enabled")

        if after == before:
            return before

        self._tenants.save(after)
        logger.info("Tenant %s settings updated: %s", after.tenant_id, ", ".join(sorted(cleaned)))

        if any(getattr(before, f) != getattr(after, f) for f in SCHEDULE_FIELDS):
            self._reschedule(after)
        return after

    def list_holidays(
        self,
        admin: AdminPrincipal,
        *,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Sequence[Holiday]:
        if month is not None and not year:
            raise ValidationError("Year is required when filtering by month")
        if not year:
            return self._holidays.list_range(admin.tenant_id, start=date.min, end=date.max)
        if month is None:
            return self._holidays.list_range(admin.tenant_id, start=date(year, 1, 1), end=date(year, 12, 31))
        if not 1 <= int(month) <= 12:
            raise ValidationError("Month must be between 1 and 12")
        last = calendar.monthrange(int(year), int(month))[1]
        return self._holidays.list_range(
            admin.tenant_id, start=date(int(year), int(month), 1), end=date(int(year), int(month), last)
        )

    def _touches_today(self, tenant: Tenant, day: date, now: Optional[datetime]) -> bool:
        now = ensure_aware(now) if now else self._clock.now()
        return local_date(now, tenant.timezone) == day

    def add_holiday(
        self,
        admin: AdminPrincipal,
        *,
        holiday_date: date,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Holiday:
        tenant = self._tenant(admin)
        holiday = self._holidays.create(
            tenant_id=tenant.tenant_id,
            holiday_date=holiday_date,
            description=(description or "").strip() or None,
        )
        logger.info("Tenant %s holiday added on %s", tenant.tenant_id, holiday_date.isoformat())
        if self._touches_today(tenant, holiday_date, now):
            self._reschedule(tenant)
        return holiday

    def remove_holiday(self, admin: AdminPrincipal, holiday_id: int, *, now: Optional[datetime] = None) -> None:
        tenant = self._tenant(admin)
        holiday = self._holidays.get_by_id(int(holiday_id))
        if not holiday or holiday.tenant_id != tenant.tenant_id:
            raise NotFoundError("Holiday not found")
        self._holidays.delete(holiday.holiday_id)
        logger.info("Tenant %s holiday removed on %s", tenant.tenant_id, holiday.holiday_date.isoformat())
        if self._touches_today(tenant, holiday.holiday_date, now):
            self._reschedule(tenant)
