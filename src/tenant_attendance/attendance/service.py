from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence, Tuple

from ..audit.service import AuditService
from ..common.calendar_utils import combine_local, end_of_day, local_date
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..common.locks import KeyedLocks
from ..core.constants import AUTO_COMPLETE_NOTE, DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    AttendanceClosed,
    AuthorizationError,
    NotCheckedIn,
    NotFoundError,
    ValidationError,
)
from ..core.principals import EmployeePrincipal
from ..employees.repository import EmployeeRepository
from ..notifications.service import NotificationService
from ..tenants.model import Tenant
from ..tenants.repository import TenantRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, GeoPoint, Punch
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Check-in / check-out state machine for one employee-day.

    The day key is always the tenant-local date of `now`. Side effects run in
    the order persist -> audit -> notify; only the persist step can fail the call.
    Every write to an entry, including corrections and auto-completion, runs
    under `entry_lock` for that employee-day.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        tenants: TenantRepository,
        employees: EmployeeRepository,
        audit: AuditService,
        notifications: NotificationService,
        *,
        clock: Optional[Clock] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
    ):
        self._attendance = attendance
        self._tenants = tenants
        self._employees = employees
        self._audit = audit
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._locks = KeyedLocks()

    def entry_lock(self, employee_id: int, work_date: date):
        """Serializes every write to one employee-day entry."""
        return self._locks.hold(("entry", int(employee_id), work_date))

    def _resolve(self, employee: EmployeePrincipal) -> Tenant:
        emp = self._employees.get_by_id(employee.employee_id)
        if not emp or emp.tenant_id != employee.tenant_id:
            raise NotFoundError("Employee not found")
        if not emp.is_active:
            raise AuthorizationError("Employee account is inactive")

        tenant = self._tenants.get_by_id(employee.tenant_id)
        if not tenant:
            raise NotFoundError("Organization not found. Please contact your administrator.")
        return tenant

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now) if now is not None else self._clock.now()

    def check_in(
        self,
        employee: EmployeePrincipal,
        *,
        location: Optional[GeoPoint] = None,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        tenant = self._resolve(employee)
        now = self._now(now)
        today = local_date(now, tenant.timezone)

        with self.entry_lock(employee.employee_id, today):
            existing = self._attendance.get_for_employee_and_date(employee.employee_id, today)
            if existing and existing.has_checked_in:
                raise AlreadyCheckedIn("You have already checked in today")

            if tenant.attendance_close_enabled and tenant.attendance_close_time:
                close_at = combine_local(today, tenant.attendance_close_time, tenant.timezone)
                if now > close_at:
                    raise AttendanceClosed(
                        f"Attendance is closed for today. Check-in not allowed after {tenant.attendance_close_time}"
                    )

            decision = self._factory.decide_checkin(tenant=tenant, check_in_at=now)
            punch = Punch(time=now, location=location, note=note)

            if existing:
                # Entry materialized without a check-in (e.g. marked absent or on leave).
                record = existing.with_punches(
                    check_in=punch,
                    check_out=None,
                    status=decision.status,
                    is_late=decision.is_late,
                    late_by_minutes=decision.late_by_minutes,
                    updated_at=now,
                )
                self._attendance.save(record)
            else:
                record = self._attendance.create(
                    AttendanceRecord(
                        attendance_id=0,
                        employee_id=employee.employee_id,
                        tenant_id=tenant.tenant_id,
                        work_date=today,
                        check_in=punch,
                        status=decision.status,
                        is_late=decision.is_late,
                        late_by_minutes=decision.late_by_minutes,
                        created_at=now,
                        updated_at=now,
                    )
                )

        logger.info(
            "Employee %s checked in for %s (tenant %s, late=%s, late_by=%s, grace=%s)",
            employee.employee_id,
            today.isoformat(),
            tenant.tenant_id,
            decision.is_late,
            decision.late_by_minutes,
            decision.within_grace_period,
        )

        self._audit.log_attendance_create(record, employee)
        if record.is_late:
            self._notifications.send_late_arrival(record)
        return record

    def check_out(
        self,
        employee: EmployeePrincipal,
        *,
        location: Optional[GeoPoint] = None,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        tenant = self._resolve(employee)
        now = self._now(now)
        today = local_date(now, tenant.timezone)

        with self.entry_lock(employee.employee_id, today):
            before = self._attendance.get_for_employee_and_date(employee.employee_id, today)
            if not before or not before.has_checked_in:
                raise NotCheckedIn("You must check in before checking out")
            if before.has_checked_out:
                raise AlreadyCheckedOut("You have already checked out today")

            record = before.with_punches(
                check_in=before.check_in,
                check_out=Punch(time=now, location=location, note=note),
                overtime_minutes=self._factory.overtime_minutes(tenant=tenant, check_out_at=now),
                updated_at=now,
            )
            self._attendance.save(record)

        logger.info(
            "Employee %s checked out for %s (hours=%.2f, overtime=%s)",
            employee.employee_id,
            today.isoformat(),
            record.working_hours,
            record.overtime_minutes,
        )

        self._audit.log_attendance_update(before, record, employee)
        return record

    def get_today(self, employee: EmployeePrincipal, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        """Today's entry or None; a missing entry is reported as absent, never materialized."""

        tenant = self._tenants.get_by_id(employee.tenant_id)
        if not tenant:
            return None
        today = local_date(self._now(now), tenant.timezone)
        return self._attendance.get_for_employee_and_date(employee.employee_id, today)

    def today_status(
        self, employee: EmployeePrincipal, *, now: Optional[datetime] = None
    ) -> Tuple[Optional[AttendanceRecord], AttendanceStatus]:
        record = self.get_today(employee, now=now)
        return record, (record.status if record else AttendanceStatus.ABSENT)

    def get_history(self, employee: EmployeePrincipal, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.get_recent_for_employee(employee.employee_id, int(limit))

    def correct_entry(
        self,
        record: AttendanceRecord,
        tenant: Tenant,
        *,
        check_in: Optional[Punch],
        check_out: Optional[Punch],
        now: datetime,
    ) -> AttendanceRecord:
        """Entry with punches replaced and derived fields re-derived; not persisted.

        Lateness is recomputed only when the check-in changed, using the same
        rule as a fresh check-in; overtime only when the check-out changed.
        """

        new_in = check_in or record.check_in
        new_out = check_out or record.check_out
        if new_out is not None and (new_in is None or new_out.time <= new_in.time):
            raise ValidationError("Check-out time must be after check-in time")

        changes = {"updated_at": now}
        if check_in is not None:
            decision = self._factory.decide_checkin(tenant=tenant, check_in_at=check_in.time)
            changes.update(status=decision.status, is_late=decision.is_late, late_by_minutes=decision.late_by_minutes)
        if check_out is not None:
            changes["overtime_minutes"] = self._factory.overtime_minutes(tenant=tenant, check_out_at=check_out.time)

        return record.with_punches(check_in=new_in, check_out=new_out, **changes)

    def auto_complete(
        self, record: AttendanceRecord, tenant: Tenant, *, now: datetime
    ) -> Optional[Tuple[AttendanceRecord, AttendanceRecord]]:
        """Close an open entry at the tenant-local end of its day.

        Returns (before, after), or None when the entry is no longer open.
        """

        with self.entry_lock(record.employee_id, record.work_date):
            before = self._attendance.get_by_id(record.attendance_id)
            if not before or not before.has_checked_in or before.has_checked_out:
                return None
            check_out = Punch(
                time=end_of_day(before.work_date, tenant.timezone),
                location=before.check_in.location,
                note=AUTO_COMPLETE_NOTE,
            )
            after = before.with_punches(check_in=before.check_in, check_out=check_out, updated_at=now)
            self._attendance.save(after)
        return before, after
