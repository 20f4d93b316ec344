from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import CorrectionStatus
from .model import CorrectionRequest


class CorrectionRepository(Protocol):
    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        raise NotImplementedError

    def find_pending_for_attendance(self, attendance_id: int) -> Optional[CorrectionRequest]:
        raise NotImplementedError

    def create(self, correction: CorrectionRequest) -> CorrectionRequest:
        """Insert and return with id.

        Raises DuplicatePending when a pending request already exists for the
        same attendance record.
        """

        raise NotImplementedError

    def decide(
        self,
        *,
        correction_id: int,
        status: CorrectionStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        review_notes: Optional[str],
    ) -> bool:
        """Resolve a pending request. Returns False if it was not pending."""

        raise NotImplementedError

    def list(
        self,
        *,
        tenant_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        status: Optional[CorrectionStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[CorrectionRequest]:
        """Newest first."""

        raise NotImplementedError
