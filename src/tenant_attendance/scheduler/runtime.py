from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..audit.service import AuditService
from ..common.calendar_utils import parse_hhmm, tenant_zone
from ..core.constants import (
    AUDIT_CLEANUP_TIME,
    DEFAULT_AUDIT_RETENTION_DAYS,
    DEFAULT_SWEEP_INTERVAL_MINUTES,
    DEFAULT_TIMER_CATCH_UP_MINUTES,
)
from .sweep import NightlySweep
from .timers import TenantTimerScheduler

logger = logging.getLogger(__name__)

ROLLOVER_JOB_ID = "tenant-timers-rollover"
CATCH_UP_JOB_ID = "tenant-timers-catch-up"
SWEEP_JOB_ID = "nightly-sweep"
AUDIT_CLEANUP_JOB_ID = "audit-retention"


class SchedulerRuntime:
    """Owns the process-wide BackgroundScheduler and its recurring jobs.

    Recurring jobs run on the fixed reference timezone; tenant-local timing
    is handled inside the timers and the sweep.
    """

    def __init__(
        self,
        scheduler: BackgroundScheduler,
        timers: TenantTimerScheduler,
        sweep: NightlySweep,
        audit: AuditService,
        *,
        reference_timezone: str = "UTC",
        rollover_time: str = "00:00",
        sweep_interval_minutes: int = DEFAULT_SWEEP_INTERVAL_MINUTES,
        timer_catch_up_minutes: int = DEFAULT_TIMER_CATCH_UP_MINUTES,
        audit_retention_days: int = DEFAULT_AUDIT_RETENTION_DAYS,
    ):
        self._scheduler = scheduler
        self._timers = timers
        self._sweep = sweep
        self._audit = audit
        self._zone = tenant_zone(reference_timezone)
        self._rollover = parse_hhmm(rollover_time)
        self._sweep_interval_minutes = int(sweep_interval_minutes)
        self._timer_catch_up_minutes = int(timer_catch_up_minutes)
        self._audit_retention_days = int(audit_retention_days)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def cleanup_audit(self, *, now: Optional[datetime] = None) -> int:
        return self._audit.cleanup(now=now, retention_days=self._audit_retention_days)

    def register_jobs(self) -> None:
        self._scheduler.add_job(
            self._timers.daily_rollover,
            "cron",
            hour=self._rollover.hour,
            minute=self._rollover.minute,
            timezone=self._zone,
            id=ROLLOVER_JOB_ID,
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=3600,
        )
        self._scheduler.add_job(
            self._timers.catch_up,
            "interval",
            minutes=self._timer_catch_up_minutes,
            id=CATCH_UP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        # First tick right away so a restart catches up on missed evenings.
        self._scheduler.add_job(
            self._sweep.tick,
            "interval",
            minutes=self._sweep_interval_minutes,
            next_run_time=datetime.now(self._zone),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        cleanup_at = parse_hhmm(AUDIT_CLEANUP_TIME)
        self._scheduler.add_job(
            self.cleanup_audit,
            "cron",
            hour=cleanup_at.hour,
            minute=cleanup_at.minute,
            timezone=self._zone,
            id=AUDIT_CLEANUP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=3600,
        )

    def start(self) -> None:
        if self.running:
            return
        self.register_jobs()
        self._scheduler.start()
        scheduled = self._timers.init()

        logger.info("Scheduler started")
        logger.info("   - tenant timer rollover daily at %s (%s)", self._rollover.strftime("%H:%M"), self._zone.key)
        logger.info("   - tenant timer catch-up every %s minute(s)", self._timer_catch_up_minutes)
        logger.info("   - sweep every %s minute(s)", self._sweep_interval_minutes)
        logger.info("   - %s absentee check(s) scheduled for today", scheduled)

    def shutdown(self, *, wait: bool = False) -> None:
        self._timers.shutdown()
        if self.running:
            self._scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")
