from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in.

    `late_by_minutes` is the full time since the expected start, not the part beyond grace.
    """

    def decide_checkin(self, *, minutes_late: int, grace_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, is_late=True, late_by_minutes=minutes_late)
