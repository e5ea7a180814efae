"""
Notification Sinks.

============================================================
PURPOSE
============================================================
Delivery targets for developer alerts.

- LoggingSink: writes each alert to the application log
- DatabaseSink: appends to the notifications history table

Sinks return True when delivered. The dispatcher treats any
raised exception as a failed delivery and keeps going.

============================================================
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from sqlalchemy.orm import sessionmaker

from storage.database import session_scope
from storage.repositories import NotificationRepository

from .models import Notification, NotificationType


logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Base class for notification sinks."""

    name: str = "sink"

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        ...

    async def close(self) -> None:
        """Release resources held by the sink."""


class LoggingSink(NotificationSink):
    """Writes alerts to the log; suspicious and rug-pull alerts at WARNING."""

    name = "log"

    def __init__(self, logger_name: str = "notifications") -> None:
        self._logger = logging.getLogger(logger_name)

    async def send(self, notification: Notification) -> bool:
        level = logging.INFO
        if notification.notification_type in (NotificationType.SUSPICIOUS, NotificationType.RUG_PULL):
            level = logging.WARNING
        self._logger.log(
            level,
            f"[{notification.notification_type.value}] developer={notification.developer_id} "
            f"{notification.title}: {notification.message}",
        )
        return True


class DatabaseSink(NotificationSink):
    """Persists alerts as notification history rows."""

    name = "database"

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _write(self, notification: Notification) -> None:
        with session_scope(self._session_factory) as session:
            NotificationRepository(session).create(
                developer_id=notification.developer_id,
                notification_type=notification.notification_type.value,
                title=notification.title,
                message=notification.message,
                token_id=notification.token_id,
            )

    async def send(self, notification: Notification) -> bool:
        await asyncio.to_thread(self._write, notification)
        return True
