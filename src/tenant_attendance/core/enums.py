from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Principal kinds known to the HTTP layer."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Ledger entry status as stored in the database."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    ON_LEAVE = "on-leave"


class CorrectionType(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    BOTH = "both"
    FORGOT_CHECKOUT = "forgot-checkout"

    @property
    def touches_check_in(self) -> bool:
        return self in (CorrectionType.CHECK_IN, CorrectionType.BOTH)

    @property
    def touches_check_out(self) -> bool:
        return self in (CorrectionType.CHECK_OUT, CorrectionType.BOTH, CorrectionType.FORGOT_CHECKOUT)


class CorrectionStatus(str, Enum):
    """Correction workflow: PENDING -> APPROVED | REJECTED (terminal)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RecipientKind(str, Enum):
    EMPLOYEE = "employee"
    TENANT = "tenant"


class ActorKind(str, Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"
    SYSTEM = "system"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    AUTO_COMPLETE = "auto_complete"
    CORRECTION_REQUEST = "correction_request"
    CORRECTION_APPROVE = "correction_approve"
    CORRECTION_REJECT = "correction_reject"


class NotificationType(str, Enum):
    LATE_ARRIVAL = "late_arrival"
    CHECK_IN_REMINDER = "check_in_reminder"
    CHECKOUT_REMINDER = "checkout_reminder"
    FORGOT_CHECKOUT = "forgot_checkout"
    CORRECTION_REQUESTED = "correction_requested"
    CORRECTION_APPROVED = "correction_approved"
    CORRECTION_REJECTED = "correction_rejected"
