from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import Clock, SystemClock
from ..core.constants import DEFAULT_AUDIT_RETENTION_DAYS, SYSTEM_REVIEWER
from ..core.enums import ActorKind, AuditAction
from ..core.principals import AdminPrincipal, EmployeePrincipal
from ..corrections.model import CorrectionRequest
from .model import ENTITY_ATTENDANCE, ENTITY_CORRECTION, AuditRecord
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Audit sink.

    Writes never raise: a failed audit write is logged and the primary
    operation keeps its persisted state.
    """

    def __init__(self, audit: AuditRepository, *, clock: Optional[Clock] = None):
        self._audit = audit
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        tenant_id: int,
        entity_type: str,
        entity_id: int,
        action: AuditAction,
        performed_by: str,
        performed_by_kind: ActorKind,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditRecord]:
        entry = AuditRecord(
            audit_id=None,
            tenant_id=int(tenant_id),
            entity_type=entity_type,
            entity_id=int(entity_id),
            action=action,
            performed_by=performed_by,
            performed_by_kind=performed_by_kind,
            created_at=self._clock.now(),
            before=before,
            after=after,
            description=description,
            metadata=metadata or {},
        )
        try:
            saved = self._audit.append(entry)
        except Exception:
            logger.exception("Audit write failed: %s on %s:%s", action.value, entity_type, entity_id)
            return None
        logger.debug("Audit record created: %s on %s:%s", action.value, entity_type, entity_id)
        return saved

    def log_attendance_create(self, record: AttendanceRecord, employee: EmployeePrincipal) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=record.tenant_id,
            entity_type=ENTITY_ATTENDANCE,
            entity_id=record.attendance_id,
            action=AuditAction.CREATE,
            performed_by=employee.actor_id,
            performed_by_kind=employee.actor_kind,
            after=record.to_dict(),
            description=f"Employee {employee.employee_id} checked in",
            metadata={
                "check_in_time": record.check_in.time.isoformat() if record.check_in else None,
                "is_late": record.is_late,
                "late_by_minutes": record.late_by_minutes,
            },
        )

    def log_attendance_update(
        self,
        before: AttendanceRecord,
        after: AttendanceRecord,
        employee: EmployeePrincipal,
    ) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=after.tenant_id,
            entity_type=ENTITY_ATTENDANCE,
            entity_id=after.attendance_id,
            action=AuditAction.UPDATE,
            performed_by=employee.actor_id,
            performed_by_kind=employee.actor_kind,
            before=before.to_dict(),
            after=after.to_dict(),
            description=f"Employee {employee.employee_id} checked out",
            metadata={
                "check_out_time": after.check_out.time.isoformat() if after.check_out else None,
                "working_hours": after.working_hours,
                "overtime_minutes": after.overtime_minutes,
            },
        )

    def log_auto_complete(self, before: AttendanceRecord, after: AttendanceRecord) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=after.tenant_id,
            entity_type=ENTITY_ATTENDANCE,
            entity_id=after.attendance_id,
            action=AuditAction.AUTO_COMPLETE,
            performed_by=SYSTEM_REVIEWER,
            performed_by_kind=ActorKind.SYSTEM,
            before=before.to_dict(),
            after=after.to_dict(),
            description=f"System auto-completed checkout for employee {after.employee_id} (forgot to checkout)",
            metadata={
                "auto_check_out_time": after.check_out.time.isoformat() if after.check_out else None,
                "reason": "forgot_checkout",
            },
        )

    def log_correction_request(self, correction: CorrectionRequest, employee: EmployeePrincipal) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=correction.tenant_id,
            entity_type=ENTITY_CORRECTION,
            entity_id=correction.correction_id,
            action=AuditAction.CORRECTION_REQUEST,
            performed_by=employee.actor_id,
            performed_by_kind=employee.actor_kind,
            after=correction.to_dict(),
            description=f"Employee {employee.employee_id} requested attendance correction",
            metadata={
                "request_type": correction.request_type.value,
                "reason": correction.reason,
                "attendance_id": correction.attendance_id,
            },
        )

    def log_correction_approve(
        self,
        correction: CorrectionRequest,
        admin: AdminPrincipal,
        before: AttendanceRecord,
        after: AttendanceRecord,
    ) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=correction.tenant_id,
            entity_type=ENTITY_CORRECTION,
            entity_id=correction.correction_id,
            action=AuditAction.CORRECTION_APPROVE,
            performed_by=admin.actor_id,
            performed_by_kind=admin.actor_kind,
            before=before.to_dict(),
            after=after.to_dict(),
            description=f"Admin approved correction request from employee {correction.employee_id}",
            metadata={
                "correction_id": correction.correction_id,
                "attendance_id": correction.attendance_id,
                "request_type": correction.request_type.value,
                "review_notes": correction.review_notes,
            },
        )

    def log_correction_reject(self, correction: CorrectionRequest, admin: AdminPrincipal) -> Optional[AuditRecord]:
        return self.record(
            tenant_id=correction.tenant_id,
            entity_type=ENTITY_CORRECTION,
            entity_id=correction.correction_id,
            action=AuditAction.CORRECTION_REJECT,
            performed_by=admin.actor_id,
            performed_by_kind=admin.actor_kind,
            description=f"Admin rejected correction request from employee {correction.employee_id}",
            metadata={
                "correction_id": correction.correction_id,
                "attendance_id": correction.attendance_id,
                "request_type": correction.request_type.value,
                "review_notes": correction.review_notes,
                "reason": correction.reason,
            },
        )

    def query(self, admin: AdminPrincipal, **filters: Any) -> Sequence[AuditRecord]:
        return self._audit.query(tenant_id=admin.tenant_id, **filters)

    def for_attendance(self, admin: AdminPrincipal, attendance_id: int) -> Sequence[AuditRecord]:
        return self._audit.query(tenant_id=admin.tenant_id, entity_type=ENTITY_ATTENDANCE, entity_id=int(attendance_id))

    def cleanup(self, *, now: Optional[datetime] = None, retention_days: int = DEFAULT_AUDIT_RETENTION_DAYS) -> int:
        """Retention job: delete entries older than `retention_days`."""

        cutoff = (now or self._clock.now()) - timedelta(days=int(retention_days))
        deleted = self._audit.delete_older_than(cutoff)
        logger.info("Cleaned up %d audit records older than %s", deleted, cutoff.isoformat())
        return deleted
