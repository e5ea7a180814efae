"""
Data Ingestion - PumpPortal WebSocket Source.

============================================================
RESPONSIBILITY
============================================================
Streams token creations and migrations from the PumpPortal
real-time data websocket.

- Subscribes to new-token and migration streams
- Skips control messages (subscription acks, errors)
- Yields raw message dicts for the on-chain normalizer

============================================================
DATA FLOW
============================================================
1. Connect to wss://pumpportal.fun/api/data
2. Send {"method": "subscribeNewToken"} / {"method": "subscribeMigration"}
3. Parse incoming JSON messages
4. Yield data messages; reconnect on close

============================================================
"""

import json
from typing import Any, AsyncIterator, Dict, List

import websockets

from data_ingestion.types import PumpPortalConfig, SourceState, SourceTag, SourceUnavailable

from .base import EventSource

SUBSCRIBE_NEW_TOKEN = {"method": "subscribeNewToken"}
SUBSCRIBE_MIGRATION = {"method": "subscribeMigration"}


class PumpPortalSource(EventSource):
    """Push-style on-chain feed over websocket."""

    active_state = SourceState.STREAMING

    def __init__(self, config: PumpPortalConfig) -> None:
        super().__init__(config, SourceTag.ONCHAIN_FEED)
        self._config: PumpPortalConfig = config
        self._websocket = None

    def _subscriptions(self) -> List[Dict[str, str]]:
        subscriptions = []
        if self._config.subscribe_new_tokens:
            subscriptions.append(SUBSCRIBE_NEW_TOKEN)
        if self._config.subscribe_migrations:
            subscriptions.append(SUBSCRIBE_MIGRATION)
        return subscriptions

    async def _connect(self) -> None:
        try:
            self._websocket = await websockets.connect(
                self._config.ws_url,
                ping_interval=self._config.ping_interval_seconds,
                open_timeout=self._config.timeout_seconds,
            )
            for subscription in self._subscriptions():
                await self._websocket.send(json.dumps(subscription))
                self._logger.debug(f"Sent {subscription['method']}")
        except (OSError, websockets.WebSocketException, TimeoutError) as e:
            raise SourceUnavailable(
                f"WebSocket connection failed: {e}",
                source=self.name,
            ) from e

    async def _stream(self) -> AsyncIterator[Dict[str, Any]]:
        if self._websocket is None:
            return

        try:
            async for message in self._websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    self._stats.rejected += 1
                    self._logger.warning(f"Invalid JSON from {self.name}: {str(message)[:120]}")
                    continue

                if not self._is_data_message(data):
                    continue
                yield data
        except websockets.ConnectionClosed as e:
            raise SourceUnavailable(
                f"WebSocket closed: {e}",
                source=self.name,
            ) from e
        except OSError as e:
            raise SourceUnavailable(f"WebSocket error: {e}", source=self.name) from e

    def _is_data_message(self, data: Any) -> bool:
        """Acks arrive as {"message": ...}; failures as {"errors": ...}."""
        if not isinstance(data, dict):
            return False
        if "message" in data and "mint" not in data:
            self._logger.debug(f"{self.name}: {data['message']}")
            return False
        if "errors" in data:
            self._logger.warning(f"{self.name} reported errors: {data['errors']}")
            return False
        return True

    async def _close(self) -> None:
        if self._websocket is not None:
            try:
                await self._websocket.close()
            except (OSError, websockets.WebSocketException) as e:
                self._logger.warning(f"Error closing WebSocket: {e}")
            finally:
                self._websocket = None
