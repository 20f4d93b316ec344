from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["GeoPoint"]:
        if not data or data.get("latitude") is None or data.get("longitude") is None:
            return None
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass(frozen=True)
class Punch:
    """One side of a ledger entry: when, where, and an optional note."""

    time: datetime
    location: Optional[GeoPoint] = None
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "time": self.time.isoformat(),
            "location": self.location.to_dict() if self.location else None,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Punch"]:
        if not data or not data.get("time"):
            return None
        return cls(
            time=datetime.fromisoformat(data["time"]),
            location=GeoPoint.from_dict(data.get("location")),
            note=data.get("note"),
        )


def compute_working_hours(check_in: datetime, check_out: datetime) -> float:
    """Hours between the two instants, rounded half-up to 2 decimals."""
    hours = Decimal(str((check_out - check_in).total_seconds())) / Decimal(3600)
    return float(hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: the ledger entry of one employee for one tenant-local day."""

    attendance_id: int
    employee_id: int
    tenant_id: int
    work_date: date
    check_in: Optional[Punch] = None
    check_out: Optional[Punch] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    is_late: bool = False
    late_by_minutes: int = 0
    overtime_minutes: int = 0
    working_hours: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_checked_in(self) -> bool:
        return self.check_in is not None

    @property
    def has_checked_out(self) -> bool:
        return self.check_out is not None

    def with_punches(
        self,
        *,
        check_in: Optional[Punch],
        check_out: Optional[Punch],
        **changes: Any,
    ) -> "AttendanceRecord":
        """Copy with new punches; working hours follow whenever both are present."""

        if check_out is not None and check_in is None:
            raise ValueError("check_out requires check_in")
        working_hours = self.working_hours
        if check_in is not None and check_out is not None:
            working_hours = compute_working_hours(check_in.time, check_out.time)
        return replace(self, check_in=check_in, check_out=check_out, working_hours=working_hours, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attendance_id": self.attendance_id,
            "employee_id": self.employee_id,
            "tenant_id": self.tenant_id,
            "date": self.work_date.isoformat(),
            "check_in": self.check_in.to_dict() if self.check_in else None,
            "check_out": self.check_out.to_dict() if self.check_out else None,
            "status": self.status.value,
            "is_late": self.is_late,
            "late_by_minutes": self.late_by_minutes,
            "overtime_minutes": self.overtime_minutes,
            "working_hours": self.working_hours,
        }
