from __future__ import annotations

import threading
from dataclasses import replace

import pytest

from conftest import utc
from tenant_attendance.attendance.factory import AttendanceStrategyFactory
from tenant_attendance.attendance.model import GeoPoint, Punch
from tenant_attendance.core.enums import CorrectionStatus, CorrectionType
from tenant_attendance.core.exceptions import (
    AuthorizationError,
    DuplicatePending,
    InvalidReason,
    InvalidRequestType,
    NotFoundError,
    NotPending,
    ValidationError,
)

REASON = "Badge reader was offline this morning"


@pytest.fixture()
def office():
    return GeoPoint(latitude=21.03, longitude=105.85)


@pytest.fixture()
def worked_day(attendance_service, alice, office):
    attendance_service.check_in(alice, location=office, now=utc(2026, 3, 2, 9, 40))
    return attendance_service.check_out(alice, now=utc(2026, 3, 2, 18, 0))


def punch(*args):
    return Punch(time=utc(*args))


def test_submit_check_in_correction(correction_service, worked_day, alice, audit_repo, notifier, office):
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 8, 55),
        reason=REASON,
    )

    assert correction.status == CorrectionStatus.PENDING
    assert correction.request_type == CorrectionType.CHECK_IN
    assert correction.original_check_in == worked_day.check_in
    assert correction.original_check_out == worked_day.check_out
    assert correction.requested_check_in.location == office
    assert correction.requested_check_out is None
    assert audit_repo.actions()[-1] == "correction_request"
    assert notifier.sent[-1]["type"] == "correction_requested"
    assert notifier.sent[-1]["recipient_kind"] == "tenant"


def test_submit_check_order(correction_service, worked_day, alice, bob):
    with pytest.raises(NotFoundError):
        correction_service.submit(bob, attendance_id=worked_day.attendance_id, request_type="check-in", reason="x")
    with pytest.raises(NotFoundError):
        correction_service.submit(alice, attendance_id=999, request_type="check-in", reason=REASON)
    with pytest.raises(InvalidRequestType):
        correction_service.submit(alice, attendance_id=worked_day.attendance_id, request_type="lunch", reason="x")
    with pytest.raises(InvalidReason):
        correction_service.submit(
            alice, attendance_id=worked_day.attendance_id, request_type="check-in", reason="  too short "
        )
    with pytest.raises(ValidationError):
        correction_service.submit(
            alice,
            attendance_id=worked_day.attendance_id,
            request_type="both",
            requested_check_in=punch(2026, 3, 2, 8, 55),
            reason=REASON,
        )


def test_duplicate_pending_is_checked_before_anything_else(correction_service, worked_day, alice):
    correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-out",
        requested_check_out=punch(2026, 3, 2, 19, 0),
        reason=REASON,
    )

    with pytest.raises(DuplicatePending):
        correction_service.submit(alice, attendance_id=worked_day.attendance_id, request_type="bogus", reason="x")


def test_requested_times_must_stay_on_the_same_local_day(correction_service, worked_day, alice):
    with pytest.raises(ValidationError):
        correction_service.submit(
            alice,
            attendance_id=worked_day.attendance_id,
            request_type="check-out",
            requested_check_out=punch(2026, 3, 3, 0, 30),
            reason=REASON,
        )


def test_requested_check_out_must_follow_check_in(correction_service, worked_day, alice):
    with pytest.raises(ValidationError):
        correction_service.submit(
            alice,
            attendance_id=worked_day.attendance_id,
            request_type="check-out",
            requested_check_out=punch(2026, 3, 2, 9, 40),
            reason=REASON,
        )
    with pytest.raises(ValidationError):
        correction_service.submit(
            alice,
            attendance_id=worked_day.attendance_id,
            request_type="both",
            requested_check_in=punch(2026, 3, 2, 12, 0),
            requested_check_out=punch(2026, 3, 2, 11, 0),
            reason=REASON,
        )


def test_approved_check_in_matches_a_fresh_check_in(
    correction_service, attendance_repo, tenant, worked_day, alice, admin, audit_repo, notifier
):
    corrected_at = utc(2026, 3, 2, 9, 25)
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=Punch(time=corrected_at),
        reason=REASON,
    )

    approved, record = correction_service.approve(admin, correction.correction_id, now=utc(2026, 3, 3, 8, 0))
    fresh = AttendanceStrategyFactory().decide_checkin(tenant=tenant, check_in_at=corrected_at)

    assert approved.status == CorrectionStatus.APPROVED
    assert approved.reviewed_by == "100"
    assert approved.review_notes == "Approved"
    assert record.check_in.time == corrected_at
    assert (record.is_late, record.late_by_minutes, record.status) == (
        fresh.is_late,
        fresh.late_by_minutes,
        fresh.status,
    )
    assert record.late_by_minutes == 25
    assert record.working_hours == 8.58
    assert attendance_repo.get_by_id(worked_day.attendance_id) == record

    approve_audit = audit_repo.records[-1]
    assert approve_audit.action.value == "correction_approve"
    assert approve_audit.before["check_in"]["time"] == worked_day.check_in.time.isoformat()
    assert approve_audit.after["check_in"]["time"] == corrected_at.isoformat()
    assert notifier.sent[-1]["type"] == "correction_approved"


def test_approve_moving_check_in_inside_grace_clears_lateness(correction_service, worked_day, alice, admin):
    assert worked_day.is_late is True

    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 9, 10),
        reason=REASON,
    )
    _, record = correction_service.approve(admin, correction.correction_id)

    assert record.is_late is False
    assert record.late_by_minutes == 0


def test_check_out_correction_keeps_lateness_and_recomputes_overtime(correction_service, worked_day, alice, admin):
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="forgot-checkout",
        requested_check_out=punch(2026, 3, 2, 19, 30),
        reason=REASON,
    )
    _, record = correction_service.approve(admin, correction.correction_id, notes="ok")

    assert record.check_in == worked_day.check_in
    assert record.check_out.time == utc(2026, 3, 2, 19, 30)
    assert record.is_late == worked_day.is_late
    assert record.late_by_minutes == worked_day.late_by_minutes
    assert record.overtime_minutes == 90
    assert record.working_hours == 9.83


def test_approve_checks(correction_service, worked_day, alice, admin, other_admin):
    with pytest.raises(NotFoundError):
        correction_service.approve(admin, 404)

    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-out",
        requested_check_out=punch(2026, 3, 2, 18, 30),
        reason=REASON,
    )
    with pytest.raises(AuthorizationError):
        correction_service.approve(other_admin, correction.correction_id)

    correction_service.approve(admin, correction.correction_id)
    with pytest.raises(NotPending):
        correction_service.approve(admin, correction.correction_id)
    with pytest.raises(NotPending):
        correction_service.reject(admin, correction.correction_id, notes="Too late now")


def test_reject(correction_service, corrections_repo, attendance_repo, worked_day, alice, admin, audit_repo, notifier):
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 8, 0),
        reason=REASON,
    )

    with pytest.raises(InvalidReason):
        correction_service.reject(admin, correction.correction_id, notes="no")

    rejected = correction_service.reject(admin, correction.correction_id, notes="Camera shows 09:40")

    assert rejected.status == CorrectionStatus.REJECTED
    assert corrections_repo.get_by_id(correction.correction_id).status == CorrectionStatus.REJECTED
    assert attendance_repo.get_by_id(worked_day.attendance_id) == worked_day
    assert audit_repo.actions()[-1] == "correction_reject"
    assert notifier.sent[-1]["type"] == "correction_rejected"
    assert "Camera shows 09:40" in notifier.sent[-1]["message"]

    # A resolved request frees the entry for a new one.
    again = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 9, 30),
        reason=REASON,
    )
    assert again.is_pending


def test_concurrent_submits_leave_one_pending(correction_service, corrections_repo, worked_day, alice):
    results = []
    barrier = threading.Barrier(8)

    def submit():
        barrier.wait()
        try:
            correction_service.submit(
                alice,
                attendance_id=worked_day.attendance_id,
                request_type="check-out",
                requested_check_out=punch(2026, 3, 2, 18, 30),
                reason=REASON,
            )
            results.append("ok")
        except DuplicatePending:
            results.append("dup")

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("dup") == 7
    pending = corrections_repo.list(status=CorrectionStatus.PENDING)
    assert len(pending) == 1


def test_visibility_and_listing(correction_service, worked_day, alice, bob, admin, other_admin):
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-out",
        requested_check_out=punch(2026, 3, 2, 18, 30),
        reason=REASON,
    )

    assert correction_service.get(alice, correction.correction_id) == correction
    assert correction_service.get(admin, correction.correction_id) == correction
    with pytest.raises(NotFoundError):
        correction_service.get(bob, correction.correction_id)
    with pytest.raises(NotFoundError):
        correction_service.get(other_admin, correction.correction_id)

    assert [c.correction_id for c in correction_service.list_pending(admin)] == [correction.correction_id]
    assert correction_service.list_pending(other_admin) == []
    assert correction_service.list_for_employee(bob) == []
    assert len(correction_service.list_for_tenant(admin, employee_id=10)) == 1
    assert correction_service.list_for_tenant(admin, status=CorrectionStatus.APPROVED) == []


def test_record_auto_completion_does_not_block_pending(correction_service, worked_day, alice):
    pending = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 9, 0),
        reason=REASON,
    )
    auto = correction_service.record_auto_completion(
        replace(worked_day, check_out=None), worked_day.check_out, now=utc(2026, 3, 3, 0, 0)
    )

    assert pending.is_pending
    assert auto.status == CorrectionStatus.APPROVED
    assert auto.reviewed_by == "system"
    assert auto.request_type == CorrectionType.FORGOT_CHECKOUT


def test_requested_check_in_must_precede_recorded_check_out(correction_service, worked_day, alice):
    for requested in (punch(2026, 3, 2, 18, 0), punch(2026, 3, 2, 19, 0)):
        with pytest.raises(ValidationError):
            correction_service.submit(
                alice,
                attendance_id=worked_day.attendance_id,
                request_type="check-in",
                requested_check_in=requested,
                reason=REASON,
            )
    assert correction_service.list_for_employee(alice) == []


def test_correct_entry_rejects_check_in_after_check_out(attendance_service, worked_day, tenant):
    with pytest.raises(ValidationError):
        attendance_service.correct_entry(
            worked_day, tenant, check_in=punch(2026, 3, 2, 18, 30), check_out=None, now=utc(2026, 3, 2, 19, 0)
        )


def test_approve_validates_against_the_current_entry(
    correction_service, corrections_repo, attendance_service, attendance_repo, alice, admin
):
    opened = attendance_service.check_in(alice, now=utc(2026, 3, 2, 9, 40))
    correction = correction_service.submit(
        alice,
        attendance_id=opened.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 17, 0),
        reason=REASON,
    )
    closed = attendance_service.check_out(alice, now=utc(2026, 3, 2, 16, 0))

    with pytest.raises(ValidationError):
        correction_service.approve(admin, correction.correction_id)

    assert attendance_repo.get_by_id(opened.attendance_id) == closed
    assert corrections_repo.get_by_id(correction.correction_id).is_pending


def test_lost_review_race_leaves_the_ledger_untouched(
    correction_service, corrections_repo, attendance_repo, worked_day, alice, admin, audit_repo, monkeypatch
):
    correction = correction_service.submit(
        alice,
        attendance_id=worked_day.attendance_id,
        request_type="check-in",
        requested_check_in=punch(2026, 3, 2, 8, 55),
        reason=REASON,
    )
    monkeypatch.setattr(corrections_repo, "decide", lambda **kwargs: False)

    with pytest.raises(NotPending):
        correction_service.approve(admin, correction.correction_id)

    assert attendance_repo.get_by_id(worked_day.attendance_id) == worked_day
    assert "correction_approve" not in audit_repo.actions()
