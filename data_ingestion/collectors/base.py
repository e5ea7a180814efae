"""
Data Ingestion - Base Event Source.

============================================================
PURPOSE
============================================================
Abstract base classes for all event sources.

An event source produces a lazy, unbounded sequence of raw
provider payloads. The base class owns the connection state
machine:

    DISCONNECTED -> CONNECTING -> STREAMING | POLLING
         ^                              |
         +------- backoff <-------------+  (SourceUnavailable)

Reconnects back off exponentially (2, 4, 8 ... capped at
backoff_max_seconds) and give up after reconnect_attempts
consecutive failures. A successful connect (streaming) or poll resets the count.

============================================================
DESIGN PRINCIPLES
============================================================
- No business logic - collection only
- Every transport error surfaces as SourceUnavailable
- One source failing never affects another

============================================================
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import aiohttp

from data_ingestion.types import (
    SourceConfig,
    SourceState,
    SourceStats,
    SourceTag,
    SourceUnavailable,
)

PayloadHandler = Callable[["EventSource", Dict[str, Any]], Awaitable[None]]

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class EventSource(ABC):
    """
    Abstract base class for event sources.

    ============================================================
    LIFECYCLE
    ============================================================
    1. run(handler) connects and feeds every payload to handler
    2. On SourceUnavailable the connection is closed and retried
    3. stop() or task cancellation ends run()

    ============================================================
    """

    #: State entered once connected
    active_state: SourceState = SourceState.POLLING

    def __init__(self, config: SourceConfig, source_tag: SourceTag) -> None:
        self._config = config
        self._source_tag = source_tag
        self._logger = logging.getLogger(f"source.{config.source_name}")
        self._stats = SourceStats(source_name=config.source_name)
        self._stopped = False
        self._failures = 0
        self._sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @property
    def name(self) -> str:
        return self._config.source_name

    @property
    def source_tag(self) -> SourceTag:
        return self._source_tag

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def state(self) -> SourceState:
        return self._stats.state

    @property
    def stats(self) -> SourceStats:
        return self._stats

    @property
    def supports_backfill(self) -> bool:
        return False

    # =========================================================
    # ABSTRACT METHODS - Must be implemented by subclasses
    # =========================================================

    @abstractmethod
    async def _connect(self) -> None:
        """
        Open the connection / client session.

        Raises:
            SourceUnavailable: On connection errors
        """

    @abstractmethod
    def _stream(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield raw payloads until the connection fails or closes.

        Raises:
            SourceUnavailable: On transport errors
        """

    @abstractmethod
    async def _close(self) -> None:
        """Release the connection. Must be safe to call twice."""

    async def backfill(self, max_pages: Optional[int] = None) -> AsyncIterator[Dict[str, Any]]:
        """Replay historical payloads. Only restartable sources support this."""
        raise NotImplementedError(f"{self.name} does not support backfill")
        yield {}  # pragma: no cover

    # =========================================================
    # STATE MACHINE
    # =========================================================

    def _set_state(self, state: SourceState) -> None:
        if state is not self._stats.state:
            self._logger.debug(f"{self.name}: {self._stats.state.value} -> {state.value}")
        self._stats.state = state

    async def run(self, handler: PayloadHandler) -> None:
        """
        Connect, stream and reconnect until stopped or out of attempts.

        Args:
            handler: Coroutine applied to every payload. It must
                contain its own per-event failures.
        """
        self._failures = 0
        self._stopped = False

        while not self._stopped:
            self._set_state(SourceState.CONNECTING)
            try:
                await self._connect()
                self._set_state(self.active_state)
                if self.active_state is SourceState.STREAMING:
                    self._failures = 0
                self._logger.info(f"{self.name} connected ({self.active_state.value})")

                async for payload in self._stream():
                    self._stats.received += 1
                    await handler(self, payload)
                    if self._stopped:
                        break

                if self._stopped:
                    break
                raise SourceUnavailable(f"{self.name} stream ended", source=self.name)

            except SourceUnavailable as e:
                self._failures += 1
                self._stats.last_error = e.message
                self._logger.warning(f"{self.name} unavailable: {e.message}")
            finally:
                await self._close()
                self._set_state(SourceState.DISCONNECTED)

            if self._failures > self._config.reconnect_attempts:
                self._logger.error(
                    f"{self.name}: giving up after {self._config.reconnect_attempts} reconnect attempts"
                )
                return

            backoff = min(2 ** self._failures, self._config.backoff_max_seconds)
            self._stats.reconnects += 1
            self._logger.info(f"{self.name}: reconnecting in {backoff}s (attempt {self._failures})")
            await self._sleep(backoff)

        self._logger.info(f"{self.name} stopped")

    def stop(self) -> None:
        """Ask run() to return after the current payload."""
        self._stopped = True


class HttpPollingSource(EventSource):
    """
    Base class for pull-style sources over HTTP.

    Subclasses implement _poll() returning the payloads of one
    poll cycle. Requests are retried with exponential backoff on
    network errors, timeouts, 429 and 5xx responses.
    """

    active_state = SourceState.POLLING

    def __init__(self, config: SourceConfig, source_tag: SourceTag) -> None:
        super().__init__(config, source_tag)
        self._session: Optional[aiohttp.ClientSession] = None

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _connect(self) -> None:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers=self._default_headers(),
            )

    async def _close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @abstractmethod
    async def _poll(self) -> list[Dict[str, Any]]:
        """Fetch the payloads of one poll cycle."""

    async def _stream(self) -> AsyncIterator[Dict[str, Any]]:
        while not self._stopped:
            payloads = await self._poll()
            self._failures = 0
            for payload in payloads:
                yield payload
            await self._sleep(self._config.polling_interval_seconds)

    async def _request_json(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """
        HTTP request with retry and backoff.

        Raises:
            SourceUnavailable: after max_retries failed attempts, or
                immediately on a non-retryable error status
        """
        if self._session is None:
            await self._connect()

        last_error = ""
        attempts = max(1, self._config.max_retries)
        for attempt in range(attempts):
            try:
                async with self._session.request(method, url, **kwargs) as response:
                    if response.status in RETRYABLE_STATUSES:
                        last_error = f"HTTP {response.status}"
                    elif response.status >= 400:
                        body = await response.text()
                        raise SourceUnavailable(
                            f"HTTP {response.status} from {self.name}: {body[:200]}",
                            source=self.name,
                            status_code=response.status,
                        )
                    else:
                        return await response.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = f"{type(e).__name__}: {e}"

            if attempt < attempts - 1:
                wait_time = 2 ** attempt  # Exponential backoff
                self._logger.warning(
                    f"Request attempt {attempt + 1} failed for {self.name}, "
                    f"retrying in {wait_time}s: {last_error}"
                )
                await self._sleep(wait_time)

        raise SourceUnavailable(
            f"All {attempts} attempts failed for {self.name}: {last_error}",
            source=self.name,
            details={"url": url, "last_error": last_error},
        )
