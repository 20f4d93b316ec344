"""Per-tenant absentee-check timers.

Every active tenant holds at most one pending APScheduler `date` job that
fires at the tenant's work start on the current tenant-local day, provided
that day is a working, non-holiday day and the instant is still ahead.
Nothing is persisted: after a restart `recover_all` recomputes everything
from tenant settings and never fires a missed instant retroactively.
"""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Dict, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from ..common.calendar_utils import combine_local, is_working_day, local_date
from ..common.datetime_utils import Clock, SystemClock, ensure_aware
from ..common.locks import KeyedLocks
from ..tenants.model import Tenant
from ..tenants.repository import HolidayRepository, TenantRepository
from .absentee import AbsenteeCheck

logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "absentee-check"


class TimerState(str, enum.Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    FIRED = "fired"


@dataclass(frozen=True)
class TenantTimer:
    state: TimerState = TimerState.UNSCHEDULED
    fire_at: Optional[datetime] = None
    token: Optional[str] = None
    day: Optional[date] = None


UNSCHEDULED = TenantTimer()


def job_id_for(tenant_id: int) -> str:
    return f"{JOB_ID_PREFIX}:{tenant_id}"


class TenantTimerScheduler:
    """Explicit Unscheduled -> Scheduled(fire_at) -> Fired state machine per tenant.

    Operations on one tenant are serialized by a per-tenant lock. The timer map
    itself is only touched under `_map_lock`, which never spans store I/O.
    A fired job carries the token it was scheduled with; a token that no
    longer matches the tenant's current timer means the job was superseded.
    """

    def __init__(
        self,
        tenants: TenantRepository,
        holidays: HolidayRepository,
        absentee_check: AbsenteeCheck,
        *,
        scheduler: BaseScheduler,
        clock: Optional[Clock] = None,
        misfire_grace_seconds: int = 300,
    ):
        self._tenants = tenants
        self._holidays = holidays
        self._absentee = absentee_check
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._misfire_grace_seconds = misfire_grace_seconds

        self._timers: Dict[int, TenantTimer] = {}
        self._map_lock = threading.Lock()
        self._tenant_locks = KeyedLocks()

    # -- map access -------------------------------------------------------

    def state_of(self, tenant_id: int) -> TenantTimer:
        with self._map_lock:
            return self._timers.get(tenant_id, UNSCHEDULED)

    def _put(self, tenant_id: int, timer: TenantTimer) -> None:
        with self._map_lock:
            if timer.state is TimerState.UNSCHEDULED:
                self._timers.pop(tenant_id, None)
            else:
                self._timers[tenant_id] = timer

    def _tracked_ids(self):
        with self._map_lock:
            return list(self._timers)

    def _remove_job(self, tenant_id: int) -> None:
        try:
            self._scheduler.remove_job(job_id_for(tenant_id))
        except JobLookupError:
            pass

    # -- calendar ---------------------------------------------------------

    def fire_time_for_today(self, tenant: Tenant, now: datetime) -> Optional[datetime]:
        """Work start on the tenant-local today, or None when nothing is due."""

        if not tenant.is_active:
            return None
        today = local_date(now, tenant.timezone)
        holidays = {today} if self._holidays.is_holiday(tenant.tenant_id, today) else set()
        if not is_working_day(tenant, now, holidays):
            return None
        start = combine_local(today, tenant.work_start, tenant.timezone)
        if start <= now:
            return None
        return start

    # -- operations -------------------------------------------------------

    def schedule_for_today(self, tenant: Tenant, *, now: Optional[datetime] = None) -> Optional[datetime]:
        now = ensure_aware(now) if now else self._clock.now()

        with self._tenant_locks.hold(tenant.tenant_id):
            if not tenant.is_active:
                self.cancel(tenant.tenant_id)
                return None

            fire_at = self.fire_time_for_today(tenant, now)
            if fire_at is None:
                logger.debug("Tenant %s: no absentee check due today", tenant.tenant_id)
                return None

            token = uuid.uuid4().hex
            self._remove_job(tenant.tenant_id)
            self._scheduler.add_job(
                self.run_due_check,
                "date",
                run_date=fire_at,
                args=[tenant.tenant_id, token],
                id=job_id_for(tenant.tenant_id),
                name=f"absentee check for tenant {tenant.tenant_id}",
                replace_existing=True,
                misfire_grace_time=self._misfire_grace_seconds,
            )
            self._put(
                tenant.tenant_id,
                TenantTimer(TimerState.SCHEDULED, fire_at, token, day=local_date(now, tenant.timezone)),
            )

        logger.info("Tenant %s: absentee check scheduled at %s", tenant.tenant_id, fire_at.isoformat())
        return fire_at

    def cancel(self, tenant_id: int) -> bool:
        with self._tenant_locks.hold(tenant_id):
            timer = self.state_of(tenant_id)
            self._remove_job(tenant_id)
            self._put(tenant_id, UNSCHEDULED)

        if timer.state is TimerState.SCHEDULED:
            logger.info("Tenant %s: absentee check cancelled", tenant_id)
            return True
        return False

    def reschedule(self, tenant: Tenant, *, now: Optional[datetime] = None) -> Optional[datetime]:
        with self._tenant_locks.hold(tenant.tenant_id):
            self.cancel(tenant.tenant_id)
            return self.schedule_for_today(tenant, now=now)

    def recover_all(self, *, now: Optional[datetime] = None) -> int:
        """Drop every tracked timer and recompute one for each active tenant."""

        now = ensure_aware(now) if now else self._clock.now()

        for tenant_id in self._tracked_ids():
            try:
                self.cancel(tenant_id)
            except Exception:
                logger.exception("Tenant %s: failed to cancel stale timer", tenant_id)

        scheduled = 0
        for tenant in self._tenants.list_active():
            try:
                if self.schedule_for_today(tenant, now=now) is not None:
                    scheduled += 1
            except Exception:
                logger.exception("Tenant %s: failed to schedule absentee check", tenant.tenant_id)

        logger.info("Recovered tenant timers: %s scheduled", scheduled)
        return scheduled

    def daily_rollover(self, *, now: Optional[datetime] = None) -> int:
        logger.info("Daily rollover of tenant timers")
        return self.recover_all(now=now)

    def catch_up(self, *, now: Optional[datetime] = None) -> int:
        """Schedule tenants whose local day began after their timer was computed.

        The rollover runs at one reference instant, which for many timezones
        is still the previous local day. Tenants whose timer already belongs
        to their current local date are left alone.
        """

        now = ensure_aware(now) if now else self._clock.now()
        scheduled = 0
        for tenant in self._tenants.list_active():
            try:
                with self._tenant_locks.hold(tenant.tenant_id):
                    if self.state_of(tenant.tenant_id).day == local_date(now, tenant.timezone):
                        continue
                    if self.reschedule(tenant, now=now) is not None:
                        scheduled += 1
            except Exception:
                logger.exception("Tenant %s: failed to catch up absentee check", tenant.tenant_id)

        if scheduled:
            logger.info("Caught up tenant timers: %s scheduled", scheduled)
        return scheduled

    def run_due_check(self, tenant_id: int, token: str) -> int:
        """Job callback. Re-reads the tenant so settings are never stale."""

        with self._tenant_locks.hold(tenant_id):
            timer = self.state_of(tenant_id)
            if timer.state is not TimerState.SCHEDULED or timer.token != token:
                logger.debug("Tenant %s: superseded absentee check ignored", tenant_id)
                return 0
            self._put(tenant_id, replace(timer, state=TimerState.FIRED))

        try:
            tenant = self._tenants.get_by_id(tenant_id)
            if not tenant or not tenant.is_active:
                logger.info("Tenant %s: inactive or missing at fire time", tenant_id)
                return 0
            return self._absentee.run(tenant, now=self._clock.now())
        except Exception:
            logger.exception("Tenant %s: absentee check failed", tenant_id)
            return 0

    # -- lifecycle --------------------------------------------------------

    def init(self) -> int:
        return self.recover_all()

    def shutdown(self) -> None:
        for tenant_id in self._tracked_ids():
            try:
                self.cancel(tenant_id)
            except Exception:
                logger.exception("Tenant %s: failed to cancel timer on shutdown", tenant_id)
