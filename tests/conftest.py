from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from tenant_attendance.attendance.model import AttendanceRecord
from tenant_attendance.attendance.service import AttendanceService
from tenant_attendance.audit.model import AuditRecord
from tenant_attendance.audit.service import AuditService
from tenant_attendance.core.enums import CorrectionStatus
from tenant_attendance.core.exceptions import AlreadyCheckedIn, ConflictError, DuplicatePending
from tenant_attendance.core.principals import AdminPrincipal, EmployeePrincipal
from tenant_attendance.corrections.model import CorrectionRequest
from tenant_attendance.corrections.service import CorrectionService
from tenant_attendance.employees.model import Employee
from tenant_attendance.notifications.service import NotificationService
from tenant_attendance.tenants.model import Holiday, Tenant


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class InMemoryTenants:
    def __init__(self, *tenants: Tenant):
        self.by_id = {t.tenant_id: t for t in tenants}

    def get_by_id(self, tenant_id: int) -> Optional[Tenant]:
        return self.by_id.get(tenant_id)

    def list_active(self):
        return [t for t in self.by_id.values() if t.is_active]

    def save(self, tenant: Tenant) -> None:
        self.by_id[tenant.tenant_id] = tenant

    def add(self, tenant: Tenant) -> Tenant:
        self.by_id[tenant.tenant_id] = tenant
        return tenant


class InMemoryHolidays:
    def __init__(self):
        self.by_id: dict[int, Holiday] = {}
        self._next_id = 1

    def is_holiday(self, tenant_id: int, day: date) -> bool:
        return any(h.tenant_id == tenant_id and h.holiday_date == day for h in self.by_id.values())

    def list_range(self, tenant_id: int, *, start: date, end: date):
        items = [h for h in self.by_id.values() if h.tenant_id == tenant_id and start <= h.holiday_date <= end]
        return sorted(items, key=lambda h: h.holiday_date)

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        return self.by_id.get(holiday_id)

    def create(self, *, tenant_id: int, holiday_date: date, description: Optional[str]) -> Holiday:
        if self.is_holiday(tenant_id, holiday_date):
            raise ConflictError("A holiday already exists on this date")
        holiday = Holiday(self._next_id, tenant_id, holiday_date, description)
        self.by_id[holiday.holiday_id] = holiday
        self._next_id += 1
        return holiday

    def delete(self, holiday_id: int) -> bool:
        return self.by_id.pop(holiday_id, None) is not None


class InMemoryEmployees:
    def __init__(self, *employees: Employee):
        self.by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self.by_id.get(employee_id)

    def list_active_for_tenant(self, tenant_id: int):
        return [e for e in self.by_id.values() if e.tenant_id == tenant_id and e.is_active]


class InMemoryAttendance:
    def __init__(self):
        self.by_id: dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.by_id.get(attendance_id)

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        for r in self.by_id.values():
            if r.employee_id == employee_id and r.work_date == work_date:
                return r
        return None

    def get_recent_for_employee(self, employee_id: int, limit: int):
        items = [r for r in self.by_id.values() if r.employee_id == employee_id]
        items.sort(key=lambda r: r.work_date, reverse=True)
        return items[:limit]

    def list_for_tenant_and_date(self, tenant_id: int, work_date: date):
        return [r for r in self.by_id.values() if r.tenant_id == tenant_id and r.work_date == work_date]

    def list_open_for_tenant_and_date(self, tenant_id: int, work_date: date):
        return [r for r in self.list_for_tenant_and_date(tenant_id, work_date) if r.has_checked_in and not r.has_checked_out]

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            if self.get_for_employee_and_date(record.employee_id, record.work_date):
                raise AlreadyCheckedIn("You have already checked in today")
            saved = replace(record, attendance_id=self._next_id)
            self.by_id[saved.attendance_id] = saved
            self._next_id += 1
            return saved

    def save(self, record: AttendanceRecord) -> None:
        self.by_id[record.attendance_id] = record


class InMemoryCorrections:
    def __init__(self):
        self.by_id: dict[int, CorrectionRequest] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        return self.by_id.get(correction_id)

    def find_pending_for_attendance(self, attendance_id: int) -> Optional[CorrectionRequest]:
        for c in self.by_id.values():
            if c.attendance_id == attendance_id and c.is_pending:
                return c
        return None

    def create(self, correction: CorrectionRequest) -> CorrectionRequest:
        with self._lock:
            if correction.is_pending and self.find_pending_for_attendance(correction.attendance_id):
                raise DuplicatePending("There is already a pending correction request for this attendance record")
            saved = replace(correction, correction_id=self._next_id)
            self.by_id[saved.correction_id] = saved
            self._next_id += 1
            return saved

    def decide(self, *, correction_id, status, reviewed_by, reviewed_at, review_notes) -> bool:
        with self._lock:
            current = self.by_id.get(correction_id)
            if not current or current.status != CorrectionStatus.PENDING:
                return False
            self.by_id[correction_id] = replace(
                current, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at, review_notes=review_notes
            )
            return True

    def list(self, *, tenant_id=None, employee_id=None, status=None, limit=50, offset=0):
        items = [
            c
            for c in self.by_id.values()
            if (tenant_id is None or c.tenant_id == tenant_id)
            and (employee_id is None or c.employee_id == employee_id)
            and (status is None or c.status == status)
        ]
        items.sort(key=lambda c: c.correction_id, reverse=True)
        return items[offset : offset + limit]


class InMemoryAudit:
    def __init__(self):
        self.records: list[AuditRecord] = []
        self.fail = False

    def append(self, record: AuditRecord) -> AuditRecord:
        if self.fail:
            raise RuntimeError("audit store unavailable")
        saved = replace(record, audit_id=len(self.records) + 1)
        self.records.append(saved)
        return saved

    def query(self, *, tenant_id, entity_type=None, entity_id=None, action=None, performed_by=None, limit=50, offset=0):
        items = [
            r
            for r in reversed(self.records)
            if r.tenant_id == tenant_id
            and (entity_type is None or r.entity_type == entity_type)
            and (entity_id is None or r.entity_id == entity_id)
            and (action is None or r.action == action)
            and (performed_by is None or r.performed_by == performed_by)
        ]
        return items[offset : offset + limit]

    def delete_older_than(self, cutoff: datetime) -> int:
        keep = [r for r in self.records if r.created_at >= cutoff]
        deleted = len(self.records) - len(keep)
        self.records = keep
        return deleted

    def actions(self):
        return [r.action.value for r in self.records]


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def notify(self, recipient_id, recipient_kind, notification_type, title, message, data=None) -> None:
        if self.fail:
            raise RuntimeError("notifier down")
        self.sent.append(
            {
                "recipient_id": recipient_id,
                "recipient_kind": recipient_kind.value,
                "type": notification_type.value,
                "title": title,
                "message": message,
                "data": data or {},
            }
        )

    def types(self):
        return [n["type"] for n in self.sent]


# 2026-03-02 is a Monday.
MONDAY = date(2026, 3, 2)


@pytest.fixture()
def clock():
    return FixedClock(utc(2026, 3, 2, 8, 0))


@pytest.fixture()
def tenant():
    return Tenant(tenant_id=1, name="Acme", timezone="UTC", work_start="09:00", work_end="18:00", late_grace_minutes=15)


@pytest.fixture()
def tenants(tenant):
    return InMemoryTenants(tenant)


@pytest.fixture()
def holidays():
    return InMemoryHolidays()


@pytest.fixture()
def employees():
    return InMemoryEmployees(
        Employee(employee_id=10, tenant_id=1, name="Alice"),
        Employee(employee_id=11, tenant_id=1, name="Bob"),
        Employee(employee_id=12, tenant_id=1, name="Carol", is_active=False),
        Employee(employee_id=20, tenant_id=2, name="Dan"),
    )


@pytest.fixture()
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture()
def corrections_repo():
    return InMemoryCorrections()


@pytest.fixture()
def audit_repo():
    return InMemoryAudit()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def audit_service(audit_repo, clock):
    return AuditService(audit_repo, clock=clock)


@pytest.fixture()
def notification_service(notifier):
    return NotificationService(notifier)


@pytest.fixture()
def attendance_service(attendance_repo, tenants, employees, audit_service, notification_service, clock):
    return AttendanceService(attendance_repo, tenants, employees, audit_service, notification_service, clock=clock)


@pytest.fixture()
def correction_service(
    corrections_repo, attendance_repo, tenants, attendance_service, audit_service, notification_service, clock
):
    return CorrectionService(
        corrections_repo,
        attendance_repo,
        tenants,
        attendance_service,
        audit_service,
        notification_service,
        clock=clock,
    )


@pytest.fixture()
def alice():
    return EmployeePrincipal(employee_id=10, tenant_id=1)


@pytest.fixture()
def bob():
    return EmployeePrincipal(employee_id=11, tenant_id=1)


@pytest.fixture()
def admin():
    return AdminPrincipal(admin_id=100, tenant_id=1)


@pytest.fixture()
def other_admin():
    return AdminPrincipal(admin_id=200, tenant_id=2)
