from __future__ import annotations

from dataclasses import dataclass

from apscheduler.schedulers.background import BackgroundScheduler

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditService
from .common.datetime_utils import SystemClock
from .core.constants import (
    DEFAULT_AUDIT_RETENTION_DAYS,
    DEFAULT_AUTO_COMPLETE_TIME,
    DEFAULT_CHECKOUT_REMINDER_TIME,
    DEFAULT_SWEEP_INTERVAL_MINUTES,
    DEFAULT_TIMER_CATCH_UP_MINUTES,
)
from .corrections.mysql_correction_repository import MySQLCorrectionRepository
from .corrections.service import CorrectionService
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .notifications.notifier import LoggingNotifier, MySQLNotifier, Notifier
from .notifications.service import NotificationService
from .scheduler.absentee import AbsenteeCheck
from .scheduler.runtime import SchedulerRuntime
from .scheduler.sweep import NightlySweep
from .scheduler.timers import TenantTimerScheduler
from .tenants.mysql_tenant_repository import MySQLHolidayRepository, MySQLTenantRepository
from .tenants.service import TenantSettingsService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    tenants_repo: MySQLTenantRepository
    holidays_repo: MySQLHolidayRepository
    employees_repo: MySQLEmployeeRepository
    attendance_repo: MySQLAttendanceRepository
    corrections_repo: MySQLCorrectionRepository
    audit_repo: MySQLAuditRepository

    audit_service: AuditService
    notification_service: NotificationService
    attendance_service: AttendanceService
    correction_service: CorrectionService
    tenant_settings_service: TenantSettingsService

    timers: TenantTimerScheduler
    sweep: NightlySweep
    scheduler_runtime: SchedulerRuntime


def build_notifier(kind: str, conn: DatabaseConnection, clock: SystemClock) -> Notifier:
    if kind == "mysql":
        return MySQLNotifier(conn, clock=clock)
    if kind == "log":
        return LoggingNotifier()
    raise ValueError(f"Unknown notifier {kind!r} (expected 'log' or 'mysql')")


def build_container(
    *,
    db_config: dict,
    notifier: str = "log",
    reference_timezone: str = "UTC",
    rollover_time: str = "00:00",
    sweep_interval_minutes: int = DEFAULT_SWEEP_INTERVAL_MINUTES,
    timer_catch_up_minutes: int = DEFAULT_TIMER_CATCH_UP_MINUTES,
    checkout_reminder_time: str = DEFAULT_CHECKOUT_REMINDER_TIME,
    auto_complete_time: str = DEFAULT_AUTO_COMPLETE_TIME,
    audit_retention_days: int = DEFAULT_AUDIT_RETENTION_DAYS,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    clock = SystemClock()

    tenants_repo = MySQLTenantRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    employees_repo = MySQLEmployeeRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    corrections_repo = MySQLCorrectionRepository(conn)
    audit_repo = MySQLAuditRepository(conn)

    audit_service = AuditService(audit_repo, clock=clock)
    notification_service = NotificationService(build_notifier(notifier, conn, clock))
    attendance_service = AttendanceService(
        attendance_repo,
        tenants_repo,
        employees_repo,
        audit_service,
        notification_service,
        clock=clock,
        strategy_factory=AttendanceStrategyFactory(),
    )
    correction_service = CorrectionService(
        corrections_repo,
        attendance_repo,
        tenants_repo,
        attendance_service,
        audit_service,
        notification_service,
        clock=clock,
    )

    aps = BackgroundScheduler(timezone=reference_timezone)
    timers = TenantTimerScheduler(
        tenants_repo,
        holidays_repo,
        AbsenteeCheck(employees_repo, attendance_repo, holidays_repo, notification_service, clock=clock),
        scheduler=aps,
        clock=clock,
    )
    sweep = NightlySweep(
        tenants_repo,
        attendance_repo,
        attendance_service,
        correction_service,
        audit_service,
        notification_service,
        clock=clock,
        reminder_time=checkout_reminder_time,
        auto_complete_time=auto_complete_time,
    )
    scheduler_runtime = SchedulerRuntime(
        aps,
        timers,
        sweep,
        audit_service,
        reference_timezone=reference_timezone,
        rollover_time=rollover_time,
        sweep_interval_minutes=sweep_interval_minutes,
        timer_catch_up_minutes=timer_catch_up_minutes,
        audit_retention_days=audit_retention_days,
    )
    tenant_settings_service = TenantSettingsService(tenants_repo, holidays_repo, timers=timers, clock=clock)

    return Container(
        conn=conn,
        tenants_repo=tenants_repo,
        holidays_repo=holidays_repo,
        employees_repo=employees_repo,
        attendance_repo=attendance_repo,
        corrections_repo=corrections_repo,
        audit_repo=audit_repo,
        audit_service=audit_service,
        notification_service=notification_service,
        attendance_service=attendance_service,
        correction_service=correction_service,
        tenant_settings_service=tenant_settings_service,
        timers=timers,
        sweep=sweep,
        scheduler_runtime=scheduler_runtime,
    )
