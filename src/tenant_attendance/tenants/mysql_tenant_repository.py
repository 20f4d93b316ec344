from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import Holiday, Tenant
from .repository import HolidayRepository, TenantRepository

_TENANT_COLUMNS = """
    tenant_id, name, timezone, working_days, work_start, work_end, late_grace_minutes,
    attendance_close_enabled, attendance_close_time, is_active
"""


def _parse_days(value: str) -> frozenset:
    return frozenset(int(part) for part in (value or "").split(",") if part.strip())


def _row_to_tenant(r: dict) -> Tenant:
    return Tenant(
        tenant_id=int(r["tenant_id"]),
        name=r["name"],
        timezone=r["timezone"],
        working_days=_parse_days(r["working_days"]),
        work_start=r["work_start"],
        work_end=r["work_end"],
        late_grace_minutes=int(r["late_grace_minutes"]),
        attendance_close_enabled=bool(r["attendance_close_enabled"]),
        attendance_close_time=r.get("attendance_close_time"),
        is_active=bool(r["is_active"]),
    )


class MySQLTenantRepository(TenantRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, tenant_id: int) -> Optional[Tenant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TENANT_COLUMNS} FROM tenants WHERE tenant_id=%s", (int(tenant_id),))
            r = fetchone(cur)
            return _row_to_tenant(r) if r else None

    def list_active(self) -> Sequence[Tenant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TENANT_COLUMNS} FROM tenants WHERE is_active=1 ORDER BY tenant_id")
            return [_row_to_tenant(r) for r in fetchall(cur)]

    def save(self, tenant: Tenant) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE tenants
                SET name=%s, timezone=%s, working_days=%s, work_start=%s, work_end=%s,
                    late_grace_minutes=%s, attendance_close_enabled=%s, attendance_close_time=%s,
                    is_active=%s
                WHERE tenant_id=%s
                """,
                (
                    tenant.name,
                    tenant.timezone,
                    ",".join(str(d) for d in sorted(tenant.working_days)),
                    tenant.work_start,
                    tenant.work_end,
                    int(tenant.late_grace_minutes),
                    1 if tenant.attendance_close_enabled else 0,
                    tenant.attendance_close_time,
                    1 if tenant.is_active else 0,
                    int(tenant.tenant_id),
                ),
            )


def _row_to_holiday(r: dict) -> Holiday:
    return Holiday(
        holiday_id=int(r["holiday_id"]),
        tenant_id=int(r["tenant_id"]),
        holiday_date=r["holiday_date"],
        description=r.get("description"),
    )


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_holiday(self, tenant_id: int, day: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM holidays WHERE tenant_id=%s AND holiday_date=%s LIMIT 1",
                (int(tenant_id), day),
            )
            return fetchone(cur) is not None

    def list_range(self, tenant_id: int, *, start: date, end: date) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_id, tenant_id, holiday_date, description
                FROM holidays
                WHERE tenant_id=%s AND holiday_date BETWEEN %s AND %s
                ORDER BY holiday_date ASC
                """,
                (int(tenant_id), start, end),
            )
            return [_row_to_holiday(r) for r in fetchall(cur)]

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT holiday_id, tenant_id, holiday_date, description FROM holidays WHERE holiday_id=%s",
                (int(holiday_id),),
            )
            r = fetchone(cur)
            return _row_to_holiday(r) if r else None

    def create(self, *, tenant_id: int, holiday_date: date, description: Optional[str]) -> Holiday:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO holidays(tenant_id, holiday_date, description) VALUES(%s,%s,%s)",
                    (int(tenant_id), holiday_date, description),
                )
                holiday_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise ConflictError(f"A holiday already exists on {holiday_date.isoformat()}")
            raise
        return Holiday(holiday_id=holiday_id, tenant_id=int(tenant_id), holiday_date=holiday_date, description=description)

    def delete(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0
