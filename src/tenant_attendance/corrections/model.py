from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..attendance.model import Punch
from ..core.enums import CorrectionStatus, CorrectionType


@dataclass(frozen=True)
class CorrectionRequest:
    """Proposed amendment of one ledger entry.

    `original_*` is the snapshot taken at submission; `requested_*` the
    replacement values. Immutable once approved or rejected.
    """

    correction_id: Optional[int]
    attendance_id: int
    employee_id: int
    tenant_id: int
    request_type: CorrectionType
    reason: str
    created_at: datetime
    original_check_in: Optional[Punch] = None
    original_check_out: Optional[Punch] = None
    requested_check_in: Optional[Punch] = None
    requested_check_out: Optional[Punch] = None
    status: CorrectionStatus = CorrectionStatus.PENDING
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == CorrectionStatus.PENDING

    def to_dict(self) -> dict:
        def punch(p: Optional[Punch]):
            return p.to_dict() if p else None

        return {
            "correction_id": self.correction_id,
            "attendance_id": self.attendance_id,
            "employee_id": self.employee_id,
            "tenant_id": self.tenant_id,
            "request_type": self.request_type.value,
            "reason": self.reason,
            "status": self.status.value,
            "original_check_in": punch(self.original_check_in),
            "original_check_out": punch(self.original_check_out),
            "requested_check_in": punch(self.requested_check_in),
            "requested_check_out": punch(self.requested_check_out),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "review_notes": self.review_notes,
            "created_at": self.created_at.isoformat(),
        }
