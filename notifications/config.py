"""
Notification Configuration.

Telegram delivery is enabled only when both TELEGRAM_BOT_TOKEN
and TELEGRAM_CHAT_ID are set.
"""

import os
from dataclasses import dataclass, field
from typing import Any, List, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class NotificationConfig:
    """Sink selection and delivery limits."""

    log_notifications: bool = True
    persist_history: bool = True
    queue_size: int = 1000

    telegram_bot_token: str = ""
    telegram_chat_ids: List[str] = field(default_factory=list)
    telegram_max_per_minute: int = 20
    telegram_max_per_hour: int = 100

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_ids)

    @classmethod
    def from_env(cls) -> "NotificationConfig":
        chat_ids = [
            c.strip()
            for c in os.environ.get("TELEGRAM_CHAT_ID", "").split(",")
            if c.strip()
        ]
        return cls(
            log_notifications=os.environ.get("DEVTRACKER_LOG_NOTIFICATIONS", "true").lower() != "false",
            persist_history=os.environ.get("DEVTRACKER_PERSIST_NOTIFICATIONS", "true").lower() != "false",
            queue_size=int(os.environ.get("DEVTRACKER_NOTIFICATION_QUEUE_SIZE", "1000")),
            telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN", ""),
            telegram_chat_ids=chat_ids,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "log_notifications": self.log_notifications,
            "persist_history": self.persist_history,
            "queue_size": self.queue_size,
            "telegram_enabled": self.telegram_enabled,
            "telegram_chats": len(self.telegram_chat_ids),
        }


_default_config: Optional[NotificationConfig] = None


def get_config() -> NotificationConfig:
    """Get the default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = NotificationConfig.from_env()
    return _default_config


def set_config(config: NotificationConfig) -> None:
    """Set the default configuration."""
    global _default_config
    _default_config = config
