from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence, Tuple, Union

from ..attendance.model import AttendanceRecord, Punch
from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceService
from ..audit.service import AuditService
from ..common.calendar_utils import local_date
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..common.locks import KeyedLocks
from ..common.validators import require_min_length
from ..core.constants import (
    AUTO_COMPLETE_REASON,
    AUTO_COMPLETE_REVIEW_NOTES,
    DEFAULT_APPROVAL_NOTES,
    MIN_CORRECTION_REASON_LENGTH,
    MIN_REJECTION_NOTES_LENGTH,
    SYSTEM_REVIEWER,
)
from ..core.enums import CorrectionStatus, CorrectionType
from ..core.exceptions import (
    AuthorizationError,
    DuplicatePending,
    InvalidReason,
    InvalidRequestType,
    NotFoundError,
    NotPending,
    ValidationError,
)
from ..core.principals import AdminPrincipal, EmployeePrincipal, Principal
from ..notifications.service import NotificationService
from ..tenants.model import Tenant
from ..tenants.repository import TenantRepository
from .model import CorrectionRequest
from .repository import CorrectionRepository

logger = logging.getLogger(__name__)


class CorrectionService:
    """Correction workflow: pending -> approved | rejected, terminal after that.

    Submissions are serialized per attendance record and reviews per
    correction, on top of the store's one-pending-per-record guarantee.
    """

    def __init__(
        self,
        corrections: CorrectionRepository,
        attendance: AttendanceRepository,
        tenants: TenantRepository,
        ledger: AttendanceService,
        audit: AuditService,
        notifications: NotificationService,
        *,
        clock: Optional[Clock] = None,
    ):
        self._corrections = corrections
        self._attendance = attendance
        self._tenants = tenants
        self._ledger = ledger
        self._audit = audit
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._locks = KeyedLocks()

    @staticmethod
    def _parse_type(value: Union[str, CorrectionType]) -> CorrectionType:
        try:
            return CorrectionType(value)
        except ValueError:
            raise InvalidRequestType("Invalid request type")

    def _tenant_for(self, tenant_id: int) -> Tenant:
        tenant = self._tenants.get_by_id(tenant_id)
        if not tenant:
            raise NotFoundError("Organization not found")
        return tenant

    @staticmethod
    def _require_same_day(at: datetime, record: AttendanceRecord, tenant: Tenant, label: str) -> None:
        if local_date(at, tenant.timezone) != record.work_date:
            raise ValidationError(f"Requested {label} time must be on the same date as the attendance record")

    def submit(
        self,
        employee: EmployeePrincipal,
        *,
        attendance_id: int,
        request_type: Union[str, CorrectionType],
        reason: str,
        requested_check_in: Optional[Punch] = None,
        requested_check_out: Optional[Punch] = None,
        now: Optional[datetime] = None,
    ) -> CorrectionRequest:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record or record.employee_id != employee.employee_id:
            raise NotFoundError("Attendance record not found")

        with self._locks.hold(("attendance", record.attendance_id)):
            if self._corrections.find_pending_for_attendance(record.attendance_id):
                raise DuplicatePending("There is already a pending correction request for this attendance record")

            kind = self._parse_type(request_type)
            reason = require_min_length(
                reason,
                "Reason",
                MIN_CORRECTION_REASON_LENGTH,
                error=InvalidReason,
            )
            tenant = self._tenant_for(record.tenant_id)
            fallback_location = record.check_in.location if record.check_in else None

            new_in = None
            if kind.touches_check_in:
                if requested_check_in is None:
                    raise ValidationError("Requested check-in time is required")
                at = ensure_aware(requested_check_in.time)
                self._require_same_day(at, record, tenant, "check-in")
                new_in = Punch(time=at, location=requested_check_in.location or fallback_location, note=requested_check_in.note)
                if not kind.touches_check_out and record.check_out and at >= record.check_out.time:
                    raise ValidationError("Requested check-in time must be before the recorded check-out time")

            new_out = None
            if kind.touches_check_out:
                if requested_check_out is None:
                    raise ValidationError("Requested check-out time is required")
                at = ensure_aware(requested_check_out.time)
                self._require_same_day(at, record, tenant, "check-out")
                effective_in = new_in or record.check_in
                if effective_in is None:
                    raise ValidationError("A check-out correction requires a check-in time")
                if at <= effective_in.time:
                    raise ValidationError("Requested check-out time must be after check-in time")
                new_out = Punch(time=at, location=requested_check_out.location or fallback_location, note=requested_check_out.note)

            correction = self._corrections.create(
                CorrectionRequest(
                    correction_id=None,
                    attendance_id=record.attendance_id,
                    employee_id=record.employee_id,
                    tenant_id=record.tenant_id,
                    request_type=kind,
                    reason=reason,
                    created_at=ensure_aware(now) if now else self._clock.now(),
                    original_check_in=record.check_in,
                    original_check_out=record.check_out,
                    requested_check_in=new_in,
                    requested_check_out=new_out,
                )
            )

        logger.info(
            "Correction %s (%s) submitted for attendance %s by employee %s",
            correction.correction_id,
            kind.value,
            record.attendance_id,
            employee.employee_id,
        )
        self._audit.log_correction_request(correction, employee)
        self._notifications.send_correction_requested(correction)
        return correction

    def _load_for_review(self, admin: AdminPrincipal, correction_id: int) -> CorrectionRequest:
        correction = self._corrections.get_by_id(int(correction_id))
        if not correction:
            raise NotFoundError("Correction request not found")
        if correction.tenant_id != admin.tenant_id:
            raise AuthorizationError("Unauthorized to review this correction")
        if not correction.is_pending:
            raise NotPending(f"This correction request has already been {correction.status.value}")
        return correction

    def _resolve(
        self,
        correction: CorrectionRequest,
        *,
        status: CorrectionStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        review_notes: str,
    ) -> CorrectionRequest:
        decided = self._corrections.decide(
            correction_id=int(correction.correction_id),
            status=status,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
            review_notes=review_notes,
        )
        if not decided:
            raise NotPending("This correction request has already been resolved")
        return replace(correction, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at, review_notes=review_notes)

    def approve(
        self,
        admin: AdminPrincipal,
        correction_id: int,
        *,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[CorrectionRequest, AttendanceRecord]:
        now = ensure_aware(now) if now else self._clock.now()

        with self._locks.hold(("correction", int(correction_id))):
            correction = self._load_for_review(admin, correction_id)
            record = self._attendance.get_by_id(correction.attendance_id)
            if not record:
                raise NotFoundError("Associated attendance record not found")
            tenant = self._tenant_for(record.tenant_id)
            kind = correction.request_type

            with self._ledger.entry_lock(record.employee_id, record.work_date):
                # Re-read: the entry may have changed since the request was filed.
                before = self._attendance.get_by_id(record.attendance_id) or record
                after = self._ledger.correct_entry(
                    before,
                    tenant,
                    check_in=correction.requested_check_in if kind.touches_check_in else None,
                    check_out=correction.requested_check_out if kind.touches_check_out else None,
                    now=now,
                )
                correction = self._resolve(
                    correction,
                    status=CorrectionStatus.APPROVED,
                    reviewed_by=admin.actor_id,
                    reviewed_at=now,
                    review_notes=(notes or "").strip() or DEFAULT_APPROVAL_NOTES,
                )
                self._attendance.save(after)

        logger.info("Correction %s approved by admin %s", correction.correction_id, admin.admin_id)
        self._audit.log_correction_approve(correction, admin, before, after)
        self._notifications.send_correction_approved(correction)
        return correction, after

    def reject(
        self,
        admin: AdminPrincipal,
        correction_id: int,
        *,
        notes: str,
        now: Optional[datetime] = None,
    ) -> CorrectionRequest:
        notes = require_min_length(
            notes,
            "Rejection notes",
            MIN_REJECTION_NOTES_LENGTH,
            error=InvalidReason,
        )
        now = ensure_aware(now) if now else self._clock.now()

        with self._locks.hold(("correction", int(correction_id))):
            correction = self._load_for_review(admin, correction_id)
            correction = self._resolve(
                correction,
                status=CorrectionStatus.REJECTED,
                reviewed_by=admin.actor_id,
                reviewed_at=now,
                review_notes=notes,
            )

        logger.info("Correction %s rejected by admin %s", correction.correction_id, admin.admin_id)
        self._audit.log_correction_reject(correction, admin)
        self._notifications.send_correction_rejected(correction)
        return correction

    def record_auto_completion(self, before: AttendanceRecord, check_out: Punch, *, now: datetime) -> CorrectionRequest:
        """Audit-only correction for a checkout synthesized by the nightly sweep."""

        return self._corrections.create(
            CorrectionRequest(
                correction_id=None,
                attendance_id=before.attendance_id,
                employee_id=before.employee_id,
                tenant_id=before.tenant_id,
                request_type=CorrectionType.FORGOT_CHECKOUT,
                reason=AUTO_COMPLETE_REASON,
                created_at=now,
                original_check_in=before.check_in,
                original_check_out=before.check_out,
                requested_check_out=check_out,
                status=CorrectionStatus.APPROVED,
                reviewed_by=SYSTEM_REVIEWER,
                reviewed_at=now,
                review_notes=AUTO_COMPLETE_REVIEW_NOTES,
            )
        )

    def get(self, principal: Principal, correction_id: int) -> CorrectionRequest:
        correction = self._corrections.get_by_id(int(correction_id))
        if not correction:
            raise NotFoundError("Correction request not found")
        if isinstance(principal, AdminPrincipal):
            visible = correction.tenant_id == principal.tenant_id
        else:
            visible = correction.employee_id == principal.employee_id
        if not visible:
            raise NotFoundError("Correction request not found")
        return correction

    def list_for_employee(
        self,
        employee: EmployeePrincipal,
        *,
        status: Optional[CorrectionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[CorrectionRequest]:
        return self._corrections.list(employee_id=employee.employee_id, status=status, limit=limit, offset=offset)

    def list_pending(self, admin: AdminPrincipal, *, limit: int = 50, offset: int = 0) -> Sequence[CorrectionRequest]:
        return self._corrections.list(
            tenant_id=admin.tenant_id, status=CorrectionStatus.PENDING, limit=limit, offset=offset
        )

    def list_for_tenant(
        self,
        admin: AdminPrincipal,
        *,
        status: Optional[CorrectionStatus] = None,
        employee_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[CorrectionRequest]:
        return self._corrections.list(
            tenant_id=admin.tenant_id, employee_id=employee_id, status=status, limit=limit, offset=offset
        )
