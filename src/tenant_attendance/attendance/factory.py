from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.calendar_utils import combine_local, local_date, minutes_between
from ..tenants.model import Tenant
from .strategies.base import AttendanceStrategy, StatusDecision
from .strategies.grace_strategy import GracePeriodStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    Used by both the check-in path and approved check-in corrections, so a
    corrected check-in at T is classified exactly like a fresh check-in at T.
    """

    def for_checkin(self, *, minutes_late: int, grace_minutes: int) -> AttendanceStrategy:
        if minutes_late <= 0:
            return NormalStrategy()
        if minutes_late <= grace_minutes:
            return GracePeriodStrategy()
        return LateStrategy()

    def decide_checkin(self, *, tenant: Tenant, check_in_at: datetime) -> StatusDecision:
        day = local_date(check_in_at, tenant.timezone)
        expected = combine_local(day, tenant.work_start, tenant.timezone)
        minutes_late = max(0, minutes_between(expected, check_in_at))
        grace = int(tenant.late_grace_minutes)
        strategy = self.for_checkin(minutes_late=minutes_late, grace_minutes=grace)
        return strategy.decide_checkin(minutes_late=minutes_late, grace_minutes=grace)

    def overtime_minutes(self, *, tenant: Tenant, check_out_at: datetime) -> int:
        day = local_date(check_out_at, tenant.timezone)
        expected_end = combine_local(day, tenant.work_end, tenant.timezone)
        return max(0, minutes_between(expected_end, check_out_at))
