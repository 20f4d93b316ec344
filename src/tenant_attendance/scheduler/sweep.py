"""Nightly sweep: checkout reminders and auto-completion of forgotten checkouts.

Runs as one periodic tick on the reference clock. Each tick looks at every
active tenant in its own local time, so tenants in different timezones get
their evening passes at their own evening.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Set, Tuple

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceService
from ..audit.service import AuditService
from ..common.calendar_utils import combine_local, local_date
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..core.constants import DEFAULT_AUTO_COMPLETE_TIME, DEFAULT_CHECKOUT_REMINDER_TIME
from ..corrections.service import CorrectionService
from ..notifications.service import NotificationService
from ..tenants.model import Tenant
from ..tenants.repository import TenantRepository

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    reminders_sent: int = 0
    auto_completed: int = 0
    failed_tenants: List[int] = field(default_factory=list)


class NightlySweep:
    def __init__(
        self,
        tenants: TenantRepository,
        attendance: AttendanceRepository,
        ledger: AttendanceService,
        corrections: CorrectionService,
        audit: AuditService,
        notifications: NotificationService,
        *,
        clock: Optional[Clock] = None,
        reminder_time: str = DEFAULT_CHECKOUT_REMINDER_TIME,
        auto_complete_time: str = DEFAULT_AUTO_COMPLETE_TIME,
    ):
        self._tenants = tenants
        self._attendance = attendance
        self._ledger = ledger
        self._corrections = corrections
        self._audit = audit
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._reminder_time = reminder_time
        self._auto_complete_time = auto_complete_time

        # In-process only; a restart may remind the same day again.
        self._reminded: Set[Tuple[int, date]] = set()
        self._reminded_lock = threading.Lock()

    def tick(self, *, now: Optional[datetime] = None) -> SweepResult:
        now = ensure_aware(now) if now else self._clock.now()
        result = SweepResult()

        for tenant in self._tenants.list_active():
            try:
                reminded, completed = self.process_tenant(tenant, now=now)
            except Exception:
                logger.exception("Tenant %s: nightly sweep failed", tenant.tenant_id)
                result.failed_tenants.append(tenant.tenant_id)
                continue
            result.reminders_sent += reminded
            result.auto_completed += completed

        if result.reminders_sent or result.auto_completed or result.failed_tenants:
            logger.info(
                "Sweep at %s: %s reminder(s), %s auto-completed, failed tenants %s",
                now.isoformat(),
                result.reminders_sent,
                result.auto_completed,
                result.failed_tenants,
            )
        return result

    def process_tenant(self, tenant: Tenant, *, now: datetime) -> Tuple[int, int]:
        today = local_date(now, tenant.timezone)

        # Catch up on a previous day the last tick of which was missed.
        completed = self.auto_complete(tenant, today - timedelta(days=1), now=now)

        reminded = 0
        if now >= combine_local(today, self._reminder_time, tenant.timezone):
            reminded = self.remind(tenant, today)
        if now >= combine_local(today, self._auto_complete_time, tenant.timezone):
            completed += self.auto_complete(tenant, today, now=now)
        return reminded, completed

    def remind(self, tenant: Tenant, day: date) -> int:
        key = (tenant.tenant_id, day)
        with self._reminded_lock:
            if key in self._reminded:
                return 0

        sent = 0
        for record in self._attendance.list_open_for_tenant_and_date(tenant.tenant_id, day):
            if self._notifications.send_checkout_reminder(record):
                sent += 1

        with self._reminded_lock:
            self._reminded = {k for k in self._reminded if k[1] >= day - timedelta(days=1)}
            self._reminded.add(key)

        logger.info("Tenant %s: %s checkout reminder(s) for %s", tenant.tenant_id, sent, day)
        return sent

    def auto_complete(self, tenant: Tenant, day: date, *, now: datetime) -> int:
        completed = 0
        for record in self._attendance.list_open_for_tenant_and_date(tenant.tenant_id, day):
            try:
                after = self.complete_record(tenant, record, now=now)
            except Exception:
                logger.exception("Failed to auto-complete attendance %s", record.attendance_id)
                continue
            if after is not None:
                completed += 1

        if completed:
            logger.info("Tenant %s: auto-completed %s attendance record(s) for %s", tenant.tenant_id, completed, day)
        return completed

    def complete_record(self, tenant: Tenant, record: AttendanceRecord, *, now: datetime) -> Optional[AttendanceRecord]:
        """Close an open entry at the tenant-local end of its day.

        Returns None when the entry was closed in the meantime.
        """

        result = self._ledger.auto_complete(record, tenant, now=now)
        if result is None:
            return None
        before, after = result

        try:
            self._corrections.record_auto_completion(before, after.check_out, now=now)
        except Exception:
            logger.exception("Failed to record auto-completion correction for attendance %s", after.attendance_id)

        self._audit.log_auto_complete(before, after)
        self._notifications.send_forgot_checkout(after)
        return after
