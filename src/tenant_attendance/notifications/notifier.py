from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from ..common.datetime_utils import Clock, SystemClock
from ..core.enums import NotificationType, RecipientKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, to_db_datetime, to_json

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        recipient_id: int,
        recipient_kind: RecipientKind,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Writes notifications to the log; used when no delivery channel is configured."""

    def notify(self, recipient_id, recipient_kind, notification_type, title, message, data=None) -> None:
        logger.info(
            "Notification %s for %s:%s - %s: %s",
            notification_type.value,
            recipient_kind.value,
            recipient_id,
            title,
            message,
        )


class MySQLNotifier(Notifier):
    """Stores notifications in the inbox table; push/email delivery reads from there."""

    def __init__(self, conn_factory: DatabaseConnection, *, clock: Optional[Clock] = None):
        self._conn_factory = conn_factory
        self._clock = clock or SystemClock()

    def notify(self, recipient_id, recipient_kind, notification_type, title, message, data=None) -> None:
        created_at: datetime = self._clock.now()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(
                    recipient_id, recipient_kind, notification_type, title, message, data, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(recipient_id),
                    recipient_kind.value,
                    notification_type.value,
                    title,
                    message,
                    to_json(data or {}),
                    to_db_datetime(created_at),
                ),
            )
        logger.debug("Notification stored: %s for %s:%s", notification_type.value, recipient_kind.value, recipient_id)
