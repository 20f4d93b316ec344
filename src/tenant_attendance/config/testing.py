import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tenant_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SCHEDULER_ENABLED = False
REFERENCE_TIMEZONE = "UTC"
ROLLOVER_TIME = "00:00"
SWEEP_INTERVAL_MINUTES = 15
TIMER_CATCH_UP_MINUTES = 15
CHECKOUT_REMINDER_TIME = "18:00"
AUTO_COMPLETE_TIME = "23:59"
AUDIT_RETENTION_DAYS = 365

NOTIFIER = "log"
