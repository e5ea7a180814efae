"""
Telegram Notification Sink.

============================================================
PURPOSE
============================================================
Send developer alerts to Telegram chats.

PRINCIPLES:
- Notification-only, NO bot commands
- Rate limiting to prevent spam
- HTML formatting with escaped user content

============================================================
"""

import asyncio
import html
import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional

import aiohttp

from .models import Notification, NotificationType
from .sinks import NotificationSink


logger = logging.getLogger(__name__)


# ============================================================
# MESSAGE FORMATTER
# ============================================================

class TelegramFormatter:
    """Formats notifications as Telegram HTML."""

    TYPE_ICONS = {
        NotificationType.LAUNCH: "🚀",
        NotificationType.MIGRATION: "✅",
        NotificationType.SUSPICIOUS: "⚠️",
        NotificationType.RUG_PULL: "🚨",
    }

    @classmethod
    def format(cls, notification: Notification) -> str:
        icon = cls.TYPE_ICONS.get(notification.notification_type, "📌")
        lines = [
            f"{icon} <b>{html.escape(notification.title)}</b>",
            "",
            html.escape(notification.message),
            "",
            f"👤 Developer <code>{notification.developer_id}</code>",
        ]
        if notification.token_address:
            lines.append(f"🪙 <code>{html.escape(notification.token_address)}</code>")
        lines.append(f"🕐 {notification.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        return "\n".join(lines)


# ============================================================
# RATE LIMITER
# ============================================================

class TelegramRateLimiter:
    """Sliding-window limits per minute and per hour."""

    def __init__(
        self,
        max_per_minute: int = 20,
        max_per_hour: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_per_minute = max_per_minute
        self._max_per_hour = max_per_hour
        self._clock = clock
        self._minute_window: Deque[float] = deque()
        self._hour_window: Deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> bool:
        """Try to acquire a send slot."""
        async with self._lock:
            now = self._clock()

            while self._minute_window and self._minute_window[0] <= now - 60:
                self._minute_window.popleft()
            while self._hour_window and self._hour_window[0] <= now - 3600:
                self._hour_window.popleft()

            if len(self._minute_window) >= self._max_per_minute:
                return False
            if len(self._hour_window) >= self._max_per_hour:
                return False

            self._minute_window.append(now)
            self._hour_window.append(now)
            return True


# ============================================================
# TELEGRAM SINK
# ============================================================

class TelegramSink(NotificationSink):
    """Sends notifications through the Telegram Bot API."""

    name = "telegram"
    BASE_URL = "https://api.telegram.org/bot"

    def __init__(
        self,
        bot_token: str,
        chat_ids: List[str],
        rate_limiter: Optional[TelegramRateLimiter] = None,
        timeout_seconds: float = 10.0,
    ):
        self._bot_token = bot_token
        self._chat_ids = list(chat_ids)
        self._rate_limiter = rate_limiter or TelegramRateLimiter()
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

        if not (self._bot_token and self._chat_ids):
            logger.warning("TelegramSink NOT configured - check TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(self, notification: Notification) -> bool:
        if not (self._bot_token and self._chat_ids):
            return False

        if not await self._rate_limiter.acquire():
            logger.warning("Telegram rate limit reached, message not sent")
            return False

        message = TelegramFormatter.format(notification)
        success = True
        for chat_id in self._chat_ids:
            if not await self._send_message(chat_id, message):
                success = False
        return success

    async def _send_message(self, chat_id: str, message: str) -> bool:
        """Send message to a specific chat."""
        url = f"{self.BASE_URL}{self._bot_token}/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            session = await self._get_session()
            async with session.post(url, json=payload) as response:
                if response.status == 200:
                    return True
                body = await response.text()
                logger.error(f"Telegram API error: {response.status} - {body}")
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending Telegram message: {e}")
            return False
