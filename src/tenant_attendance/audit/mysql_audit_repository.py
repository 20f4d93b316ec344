from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ActorKind, AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_db_datetime, from_json, to_db_datetime, to_json
from .model import AuditRecord
from .repository import AuditRepository


def _row_to_record(r: dict) -> AuditRecord:
    return AuditRecord(
        audit_id=int(r["audit_id"]),
        tenant_id=int(r["tenant_id"]),
        entity_type=r["entity_type"],
        entity_id=int(r["entity_id"]),
        action=AuditAction(r["action"]),
        performed_by=r["performed_by"],
        performed_by_kind=ActorKind(r["performed_by_kind"]),
        created_at=from_db_datetime(r["created_at"]),
        before=from_json(r.get("before_state")),
        after=from_json(r.get("after_state")),
        description=r.get("description"),
        metadata=from_json(r.get("metadata")) or {},
    )


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, record: AuditRecord) -> AuditRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_records(
                    tenant_id, entity_type, entity_id, action, before_state, after_state,
                    performed_by, performed_by_kind, description, metadata, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(record.tenant_id),
                    record.entity_type,
                    int(record.entity_id),
                    record.action.value,
                    to_json(record.before),
                    to_json(record.after),
                    record.performed_by,
                    record.performed_by_kind.value,
                    record.description,
                    to_json(record.metadata),
                    to_db_datetime(record.created_at),
                ),
            )
            return replace(record, audit_id=int(cur.lastrowid))

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
        clauses = ["tenant_id=%s"]
        params: list[object] = [int(tenant_id)]
        if entity_type is not None:
            clauses.append("entity_type=%s")
            params.append(entity_type)
        if entity_id is not None:
            clauses.append("entity_id=%s")
            params.append(int(entity_id))
        if action is not None:
            clauses.append("action=%s")
            params.append(action.value)
        if performed_by is not None:
            clauses.append("performed_by=%s")
            params.append(performed_by)
        params.extend([int(limit), int(offset)])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT audit_id, tenant_id, entity_type, entity_id, action, before_state, after_state,
                       performed_by, performed_by_kind, description, metadata, created_at
                FROM audit_records
                WHERE {where}
                ORDER BY created_at DESC, audit_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def delete_older_than(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM audit_records WHERE created_at < %s", (to_db_datetime(cutoff),))
            return int(cur.rowcount)
