"""
Notifications Package.

Developer alerts (launch, migration, suspicious activity, rug
pull) and the sinks that deliver them.
"""

from .builders import (
    launch_notification,
    migration_notification,
    rug_pull_notification,
    suspicious_notification,
)
from .config import NotificationConfig, get_config, set_config
from .dispatcher import NotificationDispatcher
from .models import Notification, NotificationType
from .sinks import DatabaseSink, LoggingSink, NotificationSink
from .telegram import TelegramFormatter, TelegramRateLimiter, TelegramSink


def build_sinks(config: NotificationConfig, session_factory=None) -> list[NotificationSink]:
    """Sinks enabled by config."""
    sinks: list[NotificationSink] = []
    if config.log_notifications:
        sinks.append(LoggingSink())
    if config.persist_history and session_factory is not None:
        sinks.append(DatabaseSink(session_factory))
    if config.telegram_enabled:
        sinks.append(TelegramSink(
            bot_token=config.telegram_bot_token,
            chat_ids=config.telegram_chat_ids,
            rate_limiter=TelegramRateLimiter(
                max_per_minute=config.telegram_max_per_minute,
                max_per_hour=config.telegram_max_per_hour,
            ),
        ))
    return sinks


__all__ = [
    "Notification",
    "NotificationType",
    "NotificationConfig",
    "get_config",
    "set_config",
    "NotificationDispatcher",
    "NotificationSink",
    "LoggingSink",
    "DatabaseSink",
    "TelegramSink",
    "TelegramFormatter",
    "TelegramRateLimiter",
    "build_sinks",
    "launch_notification",
    "migration_notification",
    "suspicious_notification",
    "rug_pull_notification",
]
