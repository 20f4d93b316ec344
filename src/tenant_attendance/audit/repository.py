from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AuditAction
from .model import AuditRecord


class AuditRepository(Protocol):
    def append(self, record: AuditRecord) -> AuditRecord:
        raise NotImplementedError

    def query(
        self,
        *,
        tenant_id: int,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
        performed_by: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AuditRecord]:
        """Newest first."""

        raise NotImplementedError

    def delete_older_than(self, cutoff: datetime) -> int:
        raise NotImplementedError
