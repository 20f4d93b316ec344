from __future__ import annotations

import threading
import time
from dataclasses import replace
from datetime import date

import pytest

from conftest import MONDAY, InMemoryAttendance, utc
from tenant_attendance.attendance.model import AttendanceRecord, GeoPoint
from tenant_attendance.attendance.service import AttendanceService
from tenant_attendance.core.enums import AttendanceStatus
from tenant_attendance.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    AttendanceClosed,
    AuthorizationError,
    NotCheckedIn,
    NotFoundError,
)
from tenant_attendance.core.principals import EmployeePrincipal


class SlowAttendance(InMemoryAttendance):
    def get_for_employee_and_date(self, employee_id, work_date):
        record = super().get_for_employee_and_date(employee_id, work_date)
        time.sleep(0.05)
        return record


def test_inside_grace_then_late(attendance_service, alice, bob):
    on_grace = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 10))
    late = attendance_service.check_in(bob, now=utc(2026, 3, 2, 9, 20))

    assert on_grace.is_late is False
    assert on_grace.late_by_minutes == 0
    assert on_grace.status == AttendanceStatus.PRESENT

    assert late.is_late is True
    assert late.late_by_minutes == 20
    assert late.status == AttendanceStatus.LATE


@pytest.mark.parametrize(
    "minute, second, is_late, late_by",
    [
        (0, 0, False, 0),
        (15, 0, False, 0),
        (15, 59, False, 0),
        (16, 0, True, 16),
    ],
)
def test_grace_boundaries(attendance_service, alice, minute, second, is_late, late_by):
    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, minute, second))

    assert record.is_late is is_late
    assert record.late_by_minutes == late_by


def test_early_check_in_is_on_time(attendance_service, alice):
    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 7, 30))
    assert record.is_late is False
    assert record.late_by_minutes == 0


def test_second_check_in_fails_and_leaves_ledger_unchanged(attendance_service, attendance_repo, alice):
    first = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))

    with pytest.raises(AlreadyCheckedIn):
        attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 30))

    assert attendance_repo.get_by_id(first.attendance_id) == first
    assert len(attendance_repo.by_id) == 1


def test_day_key_is_tenant_local_date(attendance_service, tenants, tenant, alice):
    tenants.save(replace(tenant, timezone="Asia/Tokyo"))

    # 23:30 UTC on Monday is already Tuesday morning in Tokyo.
    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 23, 30))

    assert record.work_date == date(2026, 3, 3)
    assert record.is_late is False


def test_check_in_after_close_time_is_rejected(attendance_service, tenants, tenant, alice):
    tenants.save(replace(tenant, attendance_close_enabled=True, attendance_close_time="10:00"))

    with pytest.raises(AttendanceClosed):
        attendance_service.check_in(alice, now=utc(2026, 3, 2, 10, 1))

    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 10, 0))
    assert record.is_late is True


def test_already_checked_in_wins_over_closed(attendance_service, tenants, tenant, alice):
    attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
    tenants.save(replace(tenant, attendance_close_enabled=True, attendance_close_time="10:00"))

    with pytest.raises(AlreadyCheckedIn):
        attendance_service.check_in(alice, now=utc(2026, 3, 2, 11, 0))


def test_check_in_fills_an_entry_without_punches(attendance_service, attendance_repo, alice):
    absent = attendance_repo.create(
        AttendanceRecord(attendance_id=0, employee_id=10, tenant_id=1, work_date=MONDAY, status=AttendanceStatus.ABSENT)
    )

    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 5))

    assert record.attendance_id == absent.attendance_id
    assert record.status == AttendanceStatus.PRESENT
    assert record.has_checked_in


def test_unknown_and_inactive_employees(attendance_service):
    with pytest.raises(NotFoundError):
        attendance_service.check_in(EmployeePrincipal(employee_id=999, tenant_id=1), now=utc(2026, 3, 2, 9, 0))
    with pytest.raises(NotFoundError):
        attendance_service.check_in(EmployeePrincipal(employee_id=20, tenant_id=1), now=utc(2026, 3, 2, 9, 0))
    with pytest.raises(AuthorizationError):
        attendance_service.check_in(EmployeePrincipal(employee_id=12, tenant_id=1), now=utc(2026, 3, 2, 9, 0))


def test_check_in_side_effects_order(attendance_service, audit_repo, notifier, alice, bob):
    attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
    assert audit_repo.actions() == ["create"]
    assert notifier.sent == []

    attendance_service.check_in(bob, now=utc(2026, 3, 2, 10, 5))
    assert audit_repo.actions() == ["create", "create"]
    assert notifier.types() == ["late_arrival"]
    assert "1h 5m" in notifier.sent[0]["message"]


def test_side_effect_failures_do_not_fail_check_in(attendance_service, attendance_repo, audit_repo, notifier, alice):
    audit_repo.fail = True
    notifier.fail = True

    record = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 45))

    assert attendance_repo.get_by_id(record.attendance_id) == record
    assert record.is_late is True


def test_check_out_requires_check_in(attendance_service, alice):
    with pytest.raises(NotCheckedIn):
        attendance_service.check_out(alice, now=utc(2026, 3, 2, 17, 0))


def test_check_out_computes_hours_and_overtime(attendance_service, audit_repo, alice):
    location = GeoPoint(latitude=10.77, longitude=106.69)
    attendance_service.check_in(alice, location=location, now=utc(2026, 3, 2, 9, 0))

    record = attendance_service.check_out(alice, note="done", now=utc(2026, 3, 2, 18, 20, 30))

    assert record.working_hours == 9.34
    assert record.overtime_minutes == 20
    assert record.check_in.location == location
    assert record.check_out.note == "done"
    assert audit_repo.actions() == ["create", "update"]

    with pytest.raises(AlreadyCheckedOut):
        attendance_service.check_out(alice, now=utc(2026, 3, 2, 18, 30))


def test_check_out_before_work_end_has_no_overtime(attendance_service, alice):
    attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
    record = attendance_service.check_out(alice, now=utc(2026, 3, 2, 12, 30))

    assert record.working_hours == 3.5
    assert record.overtime_minutes == 0


def test_get_today_reports_absent_without_materializing(attendance_service, attendance_repo, alice):
    record, status = attendance_service.today_status(alice, now=utc(2026, 3, 2, 12, 0))

    assert record is None
    assert status == AttendanceStatus.ABSENT
    assert attendance_repo.by_id == {}

    attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
    assert attendance_service.get_today(alice, now=utc(2026, 3, 2, 12, 0)) is not None
    assert attendance_service.get_today(alice, now=utc(2026, 3, 3, 12, 0)) is None


def test_history_is_newest_first(attendance_service, alice):
    attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
    attendance_service.check_in(alice, now=utc(2026, 3, 3, 9, 0))
    attendance_service.check_in(alice, now=utc(2026, 3, 4, 9, 0))

    history = attendance_service.get_history(alice, limit=2)

    assert [r.work_date.day for r in history] == [4, 3]


def test_concurrent_check_outs_record_exactly_one(
    tenants, employees, audit_service, notification_service, clock, alice
):
    repo = SlowAttendance()
    service = AttendanceService(repo, tenants, employees, audit_service, notification_service, clock=clock)
    opened = service.check_in(alice, now=utc(2026, 3, 2, 9, 0))

    results = {}
    barrier = threading.Barrier(2)

    def check_out(hour):
        barrier.wait()
        try:
            results[hour] = service.check_out(alice, now=utc(2026, 3, 2, hour, 0))
        except AlreadyCheckedOut:
            results[hour] = None

    threads = [threading.Thread(target=check_out, args=(h,)) for h in (17, 19)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    [winner] = [r for r in results.values() if r is not None]
    assert list(results.values()).count(None) == 1
    assert repo.get_by_id(opened.attendance_id) == winner


def test_concurrent_check_ins_create_one_entry(
    tenants, employees, audit_service, notification_service, clock, alice
):
    repo = SlowAttendance()
    service = AttendanceService(repo, tenants, employees, audit_service, notification_service, clock=clock)
    outcomes = []
    barrier = threading.Barrier(4)

    def check_in():
        barrier.wait()
        try:
            service.check_in(alice, now=utc(2026, 3, 2, 9, 0))
            outcomes.append("ok")
        except AlreadyCheckedIn:
            outcomes.append("dup")

    threads = [threading.Thread(target=check_in) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["dup", "dup", "dup", "ok"]
    assert len(repo.by_id) == 1
