"""
Notification Dispatcher.

============================================================
PURPOSE
============================================================
Fan out developer alerts to every configured sink without
blocking event processing.

- publish() enqueues and returns immediately
- One worker task drains the queue and calls each sink
- A failing sink is logged; other sinks still receive the alert
- A full queue drops the alert with a warning

============================================================
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .models import Notification
from .sinks import NotificationSink


logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Queue-backed fan-out to notification sinks."""

    def __init__(self, sinks: List[NotificationSink], queue_size: int = 1000) -> None:
        self._sinks = list(sinks)
        self._queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

        self._published = 0
        self._delivered = 0
        self._dropped = 0
        self._sink_failures = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info(f"Notification dispatcher started with sinks: {[s.name for s in self._sinks]}")

    async def stop(self) -> None:
        """Deliver queued alerts, then stop the worker and close sinks."""
        if self._worker is not None:
            await self._queue.join()
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        for sink in self._sinks:
            await sink.close()
        logger.info(f"Notification dispatcher stopped: {self.stats()}")

    def publish(self, notification: Notification) -> bool:
        """Enqueue an alert. Returns False when it was dropped."""
        if self._queue is None:
            logger.warning(f"Dispatcher not started, dropping {notification.notification_type.value} alert")
            self._dropped += 1
            return False
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.warning(f"Notification queue full, dropping {notification.notification_type.value} alert")
            self._dropped += 1
            return False
        self._published += 1
        return True

    async def deliver(self, notification: Notification) -> int:
        """Send to every sink now. Returns the number of sinks that accepted it."""
        delivered = 0
        for sink in self._sinks:
            try:
                if await sink.send(notification):
                    delivered += 1
            except Exception as e:
                self._sink_failures += 1
                logger.error(f"Sink {sink.name} failed for {notification.notification_type.value}: {e}")
        if delivered:
            self._delivered += 1
        return delivered

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()

    def stats(self) -> Dict[str, int]:
        return {
            "published": self._published,
            "delivered": self._delivered,
            "dropped": self._dropped,
            "sink_failures": self._sink_failures,
            "pending": self._queue.qsize() if self._queue is not None else 0,
        }
