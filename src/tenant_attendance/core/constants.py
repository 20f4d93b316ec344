"""Tenant defaults, workflow limits and scheduler timings."""

DEFAULT_TIMEZONE = "UTC"
DEFAULT_WORK_START = "09:00"
DEFAULT_WORK_END = "18:00"
DEFAULT_WORKING_DAYS = frozenset({1, 2, 3, 4, 5})
DEFAULT_LATE_GRACE_MINUTES = 15
DEFAULT_ATTENDANCE_CLOSE_TIME = "10:00"

DEFAULT_HISTORY_LIMIT = 30

MIN_CORRECTION_REASON_LENGTH = 10
MIN_REJECTION_NOTES_LENGTH = 5
DEFAULT_APPROVAL_NOTES = "Approved"

SYSTEM_REVIEWER = "system"
AUTO_COMPLETE_NOTE = "Auto-completed by system (forgot to checkout)"
AUTO_COMPLETE_REASON = "System auto-completed - Employee forgot to checkout"
AUTO_COMPLETE_REVIEW_NOTES = "Automatically approved by system"

DEFAULT_CHECKOUT_REMINDER_TIME = "18:00"
DEFAULT_AUTO_COMPLETE_TIME = "23:59"
DEFAULT_SWEEP_INTERVAL_MINUTES = 15
DEFAULT_TIMER_CATCH_UP_MINUTES = 15
DEFAULT_AUDIT_RETENTION_DAYS = 365
AUDIT_CLEANUP_TIME = "03:00"
