from __future__ import annotations

import atexit
import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .container import build_container
from .database.bootstrap import apply_schema
from .attendance.controller import register as register_attendance
from .common.web import register_error_handlers
from .corrections.controller import register as register_corrections
from .tenants.controller import register as register_tenants

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    container = build_container(
        db_config=db_config,
        notifier=getattr(settings, "NOTIFIER", "log"),
        reference_timezone=getattr(settings, "REFERENCE_TIMEZONE", "UTC"),
        rollover_time=getattr(settings, "ROLLOVER_TIME", "00:00"),
        sweep_interval_minutes=int(getattr(settings, "SWEEP_INTERVAL_MINUTES", 15)),
        timer_catch_up_minutes=int(getattr(settings, "TIMER_CATCH_UP_MINUTES", 15)),
        checkout_reminder_time=getattr(settings, "CHECKOUT_REMINDER_TIME", "18:00"),
        auto_complete_time=getattr(settings, "AUTO_COMPLETE_TIME", "23:59"),
        audit_retention_days=int(getattr(settings, "AUDIT_RETENTION_DAYS", 365)),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(container.conn)

    register_error_handlers(app)
    register_attendance(app, container)
    register_corrections(app, container)
    register_tenants(app, container)
    app.extensions["tenant_attendance"] = container

    if bool(getattr(settings, "SCHEDULER_ENABLED", False)):
        container.scheduler_runtime.start()
        atexit.register(container.scheduler_runtime.shutdown)

    return app
