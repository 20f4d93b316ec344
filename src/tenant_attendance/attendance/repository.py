from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_tenant_and_date(self, tenant_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open_for_tenant_and_date(self, tenant_id: int, work_date: date) -> Sequence[AttendanceRecord]:
        """Entries with a check-in but no check-out."""

        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a new entry and return it with its id.

        Raises AlreadyCheckedIn when (employee, date) already exists.
        """

        raise NotImplementedError

    def save(self, record: AttendanceRecord) -> None:
        raise NotImplementedError
