from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..attendance.model import Punch
from ..core.enums import CorrectionStatus, CorrectionType
from ..core.exceptions import DuplicatePending
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    from_json,
    is_duplicate_key,
    to_db_datetime,
    to_json,
)
from .model import CorrectionRequest
from .repository import CorrectionRepository

_COLUMNS = """
    correction_id, attendance_id, employee_id, tenant_id, request_type,
    original_check_in, original_check_out, requested_check_in, requested_check_out,
    reason, status, reviewed_by, reviewed_at, review_notes, created_at
"""


def _punch_json(punch: Optional[Punch]) -> Optional[str]:
    return to_json(punch.to_dict()) if punch else None


def _row_to_correction(r: dict) -> CorrectionRequest:
    return CorrectionRequest(
        correction_id=int(r["correction_id"]),
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        tenant_id=int(r["tenant_id"]),
        request_type=CorrectionType(r["request_type"]),
        reason=r["reason"],
        created_at=from_db_datetime(r["created_at"]),
        original_check_in=Punch.from_dict(from_json(r.get("original_check_in"))),
        original_check_out=Punch.from_dict(from_json(r.get("original_check_out"))),
        requested_check_in=Punch.from_dict(from_json(r.get("requested_check_in"))),
        requested_check_out=Punch.from_dict(from_json(r.get("requested_check_out"))),
        status=CorrectionStatus(r["status"]),
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=from_db_datetime(r.get("reviewed_at")),
        review_notes=r.get("review_notes"),
    )


class MySQLCorrectionRepository(CorrectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_corrections WHERE correction_id=%s", (int(correction_id),))
            r = fetchone(cur)
            return _row_to_correction(r) if r else None

    def find_pending_for_attendance(self, attendance_id: int) -> Optional[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_corrections WHERE attendance_id=%s AND status=%s LIMIT 1",
                (int(attendance_id), CorrectionStatus.PENDING.value),
            )
            r = fetchone(cur)
            return _row_to_correction(r) if r else None

    def create(self, correction: CorrectionRequest) -> CorrectionRequest:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_corrections(
                        attendance_id, employee_id, tenant_id, request_type,
                        original_check_in, original_check_out, requested_check_in, requested_check_out,
                        reason, status, reviewed_by, reviewed_at, review_notes, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(correction.attendance_id),
                        int(correction.employee_id),
                        int(correction.tenant_id),
                        correction.request_type.value,
                        _punch_json(correction.original_check_in),
                        _punch_json(correction.original_check_out),
                        _punch_json(correction.requested_check_in),
                        _punch_json(correction.requested_check_out),
                        correction.reason,
                        correction.status.value,
                        correction.reviewed_by,
                        to_db_datetime(correction.reviewed_at),
                        correction.review_notes,
                        to_db_datetime(correction.created_at),
                    ),
                )
                correction_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise DuplicatePending("There is already a pending correction request for this attendance record")
            raise
        return replace(correction, correction_id=correction_id)

    def decide(
        self,
        *,
        correction_id: int,
        status: CorrectionStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        review_notes: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_corrections
                SET status=%s, reviewed_by=%s, reviewed_at=%s, review_notes=%s
                WHERE correction_id=%s AND status=%s
                """,
                (
                    status.value,
                    reviewed_by,
                    to_db_datetime(reviewed_at),
                    review_notes,
                    int(correction_id),
                    CorrectionStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def list(
        self,
        *,
        tenant_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        status: Optional[CorrectionStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[CorrectionRequest]:
        clauses = ["1=1"]
        params: list[object] = []
        if tenant_id is not None:
            clauses.append("tenant_id=%s")
            params.append(int(tenant_id))
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        params.extend([int(limit), int(offset)])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_corrections
                WHERE {where}
                ORDER BY created_at DESC, correction_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            )
            return [_row_to_correction(r) for r in fetchall(cur)]
