from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    is_late: bool = False
    late_by_minutes: int = 0
    within_grace_period: bool = False


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how a check-in is classified."""

    @abstractmethod
    def decide_checkin(self, *, minutes_late: int, grace_minutes: int) -> StatusDecision:
        raise NotImplementedError
