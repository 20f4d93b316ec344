from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import ActorKind, AuditAction

ENTITY_ATTENDANCE = "Attendance"
ENTITY_CORRECTION = "AttendanceCorrection"


@dataclass(frozen=True)
class AuditRecord:
    """Append-only trail entry. Never updated; only the retention job deletes."""

    audit_id: Optional[int]
    tenant_id: int
    entity_type: str
    entity_id: int
    action: AuditAction
    performed_by: str
    performed_by_kind: ActorKind
    created_at: datetime
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "audit_id": self.audit_id,
            "tenant_id": self.tenant_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action.value,
            "performed_by": self.performed_by,
            "performed_by_kind": self.performed_by_kind.value,
            "created_at": self.created_at.isoformat(),
            "before": self.before,
            "after": self.after,
            "description": self.description,
            "metadata": self.metadata,
        }
