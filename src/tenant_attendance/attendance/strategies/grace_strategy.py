from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class GracePeriodStrategy(AttendanceStrategy):
    """After the expected start but inside the grace buffer: not counted late."""

    def decide_checkin(self, *, minutes_late: int, grace_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT, within_grace_period=True)
