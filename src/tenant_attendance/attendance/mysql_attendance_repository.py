from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus
from ..core.exceptions import AlreadyCheckedIn
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    is_duplicate_key,
    to_db_datetime,
)
from .model import AttendanceRecord, GeoPoint, Punch
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, tenant_id, work_date,
    check_in_time, check_in_lat, check_in_lng, check_in_note,
    check_out_time, check_out_lat, check_out_lng, check_out_note,
    status, is_late, late_by_minutes, overtime_minutes, working_hours, created_at, updated_at
"""


def _punch_from_row(r: dict, prefix: str) -> Optional[Punch]:
    at = r.get(f"{prefix}_time")
    if at is None:
        return None
    lat, lng = r.get(f"{prefix}_lat"), r.get(f"{prefix}_lng")
    location = GeoPoint(float(lat), float(lng)) if lat is not None and lng is not None else None
    return Punch(time=from_db_datetime(at), location=location, note=r.get(f"{prefix}_note"))


def _punch_params(punch: Optional[Punch]) -> tuple:
    if punch is None:
        return (None, None, None, None)
    location = punch.location
    return (
        to_db_datetime(punch.time),
        location.latitude if location else None,
        location.longitude if location else None,
        punch.note,
    )


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        tenant_id=int(r["tenant_id"]),
        work_date=r["work_date"],
        check_in=_punch_from_row(r, "check_in"),
        check_out=_punch_from_row(r, "check_out"),
        status=AttendanceStatus(r["status"]),
        is_late=bool(r["is_late"]),
        late_by_minutes=int(r["late_by_minutes"]),
        overtime_minutes=int(r["overtime_minutes"]),
        working_hours=float(r["working_hours"]),
        created_at=from_db_datetime(r.get("created_at")),
        updated_at=from_db_datetime(r.get("updated_at")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, *, suffix: str = "") -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE {where} {suffix}", params)
            return [_row_to_record(r) for r in fetchall(cur)]

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        rows = self._select("employee_id=%s AND work_date=%s", (int(employee_id), work_date))
        return rows[0] if rows else None

    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        return self._select("employee_id=%s", (int(employee_id), int(limit)), suffix="ORDER BY work_date DESC LIMIT %s")

    def list_for_tenant_and_date(self, tenant_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        return self._select("tenant_id=%s AND work_date=%s", (int(tenant_id), work_date))

    def list_open_for_tenant_and_date(self, tenant_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        return self._select(
            "tenant_id=%s AND work_date=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL",
            (int(tenant_id), work_date),
            suffix="ORDER BY attendance_id",
        )

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO attendance_records({_COLUMNS.replace("attendance_id,", "", 1)})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(record.employee_id),
                        int(record.tenant_id),
                        record.work_date,
                        *_punch_params(record.check_in),
                        *_punch_params(record.check_out),
                        record.status.value,
                        1 if record.is_late else 0,
                        int(record.late_by_minutes),
                        int(record.overtime_minutes),
                        record.working_hours,
                        to_db_datetime(record.created_at),
                        to_db_datetime(record.updated_at),
                    ),
                )
                attendance_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise AlreadyCheckedIn("You have already checked in today")
            raise

        return replace(record, attendance_id=attendance_id)

    def save(self, record: AttendanceRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_in_lat=%s, check_in_lng=%s, check_in_note=%s,
                    check_out_time=%s, check_out_lat=%s, check_out_lng=%s, check_out_note=%s,
                    status=%s, is_late=%s, late_by_minutes=%s, overtime_minutes=%s, working_hours=%s,
                    updated_at=%s
                WHERE attendance_id=%s
                """,
                (
                    *_punch_params(record.check_in),
                    *_punch_params(record.check_out),
                    record.status.value,
                    1 if record.is_late else 0,
                    int(record.late_by_minutes),
                    int(record.overtime_minutes),
                    record.working_hours,
                    to_db_datetime(record.updated_at),
                    int(record.attendance_id),
                ),
            )
