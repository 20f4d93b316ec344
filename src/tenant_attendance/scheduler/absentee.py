from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common.calendar_utils import is_working_day, local_date
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..employees.repository import EmployeeRepository
from ..notifications.service import NotificationService
from ..tenants.model import Tenant
from ..tenants.repository import HolidayRepository

logger = logging.getLogger(__name__)


class AbsenteeCheck:
    """Reminds active employees who have no ledger entry for the tenant-local day."""

    def __init__(
        self,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        holidays: HolidayRepository,
        notifications: NotificationService,
        *,
        clock: Optional[Clock] = None,
    ):
        self._employees = employees
        self._attendance = attendance
        self._holidays = holidays
        self._notifications = notifications
        self._clock = clock or SystemClock()

    def run(self, tenant: Tenant, *, now: Optional[datetime] = None) -> int:
        now = ensure_aware(now) if now else self._clock.now()
        today = local_date(now, tenant.timezone)

        holidays = {today} if self._holidays.is_holiday(tenant.tenant_id, today) else set()
        if not is_working_day(tenant, now, holidays):
            logger.info("Tenant %s: %s is not a working day, skipping absentee check", tenant.tenant_id, today)
            return 0

        checked = {r.employee_id for r in self._attendance.list_for_tenant_and_date(tenant.tenant_id, today)}
        sent = 0
        for employee in self._employees.list_active_for_tenant(tenant.tenant_id):
            if employee.employee_id in checked:
                continue
            if self._notifications.send_check_in_reminder(employee, tenant):
                sent += 1

        logger.info("Tenant %s: absentee check for %s sent %s reminder(s)", tenant.tenant_id, today, sent)
        return sent
