from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..attendance.model import AttendanceRecord
from ..core.enums import NotificationType, RecipientKind
from ..corrections.model import CorrectionRequest
from ..employees.model import Employee
from ..tenants.model import Tenant
from .notifier import Notifier

logger = logging.getLogger(__name__)


def format_minutes(minutes: int) -> str:
    """90 -> '1h 30m', 45 -> '45m'."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


class NotificationService:
    """Builds attendance notifications and hands them to the notifier.

    Delivery is fire-and-forget: failures are logged and never propagate.
    """

    def __init__(self, notifier: Notifier):
        self._notifier = notifier

    def _send(
        self,
        recipient_id: int,
        recipient_kind: RecipientKind,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            self._notifier.notify(recipient_id, recipient_kind, notification_type, title, message, data or {})
        except Exception:
            logger.exception(
                "Notification %s for %s:%s failed", notification_type.value, recipient_kind.value, recipient_id
            )
            return False
        return True

    def send_late_arrival(self, record: AttendanceRecord) -> bool:
        return self._send(
            record.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.LATE_ARRIVAL,
            "Late Check-In",
            f"You checked in {format_minutes(record.late_by_minutes)} late today.",
            {
                "attendance_id": record.attendance_id,
                "late_by_minutes": record.late_by_minutes,
                "check_in_time": record.check_in.time.isoformat() if record.check_in else None,
            },
        )

    def send_check_in_reminder(self, employee: Employee, tenant: Tenant) -> bool:
        name = f" {employee.name}" if employee.name else ""
        return self._send(
            employee.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.CHECK_IN_REMINDER,
            "Attendance Reminder",
            f"Hi{name}, it looks like you haven't checked in for today's shift at {tenant.work_start}. "
            "Please check in.",
            {"tenant_id": tenant.tenant_id, "work_start": tenant.work_start},
        )

    def send_checkout_reminder(self, record: AttendanceRecord) -> bool:
        return self._send(
            record.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.CHECKOUT_REMINDER,
            "Remember to Check Out",
            "Don't forget to check out at the end of your workday.",
            {
                "attendance_id": record.attendance_id,
                "check_in_time": record.check_in.time.isoformat() if record.check_in else None,
            },
        )

    def send_forgot_checkout(self, record: AttendanceRecord) -> bool:
        return self._send(
            record.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.FORGOT_CHECKOUT,
            "Missed Check-Out",
            "You forgot to check out. Your attendance has been auto-completed. "
            "If this is incorrect, please submit a correction request.",
            {
                "attendance_id": record.attendance_id,
                "date": record.work_date.isoformat(),
                "check_in_time": record.check_in.time.isoformat() if record.check_in else None,
                "auto_check_out_time": record.check_out.time.isoformat() if record.check_out else None,
            },
        )

    def send_correction_requested(self, correction: CorrectionRequest) -> bool:
        return self._send(
            correction.tenant_id,
            RecipientKind.TENANT,
            NotificationType.CORRECTION_REQUESTED,
            "New Attendance Correction Request",
            f"Employee {correction.employee_id} has requested an attendance correction.",
            {
                "correction_id": correction.correction_id,
                "employee_id": correction.employee_id,
                "request_type": correction.request_type.value,
                "reason": correction.reason,
            },
        )

    def send_correction_approved(self, correction: CorrectionRequest) -> bool:
        return self._send(
            correction.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.CORRECTION_APPROVED,
            "Correction Request Approved",
            "Your attendance correction request has been approved.",
            {
                "correction_id": correction.correction_id,
                "attendance_id": correction.attendance_id,
                "review_notes": correction.review_notes,
            },
        )

    def send_correction_rejected(self, correction: CorrectionRequest) -> bool:
        return self._send(
            correction.employee_id,
            RecipientKind.EMPLOYEE,
            NotificationType.CORRECTION_REJECTED,
            "Correction Request Rejected",
            f"Your attendance correction request has been rejected. Reason: {correction.review_notes}",
            {
                "correction_id": correction.correction_id,
                "attendance_id": correction.attendance_id,
                "review_notes": correction.review_notes,
            },
        )
