import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tenant_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SCHEDULER_ENABLED = bool(int(os.getenv("SCHEDULER_ENABLED", "1")))
REFERENCE_TIMEZONE = os.getenv("REFERENCE_TIMEZONE", "UTC")
ROLLOVER_TIME = os.getenv("ROLLOVER_TIME", "00:00")
SWEEP_INTERVAL_MINUTES = int(os.getenv("SWEEP_INTERVAL_MINUTES", "15"))
TIMER_CATCH_UP_MINUTES = int(os.getenv("TIMER_CATCH_UP_MINUTES", "15"))
CHECKOUT_REMINDER_TIME = os.getenv("CHECKOUT_REMINDER_TIME", "18:00")
AUTO_COMPLETE_TIME = os.getenv("AUTO_COMPLETE_TIME", "23:59")
AUDIT_RETENTION_DAYS = int(os.getenv("AUDIT_RETENTION_DAYS", "365"))

NOTIFIER = os.getenv("NOTIFIER", "mysql")
