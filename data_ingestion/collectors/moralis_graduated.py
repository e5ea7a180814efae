"""
Data Ingestion - Moralis Graduated Token Source.

============================================================
RESPONSIBILITY
============================================================
Polls the Moralis Solana gateway for tokens that graduated
from the pump.fun bonding curve.

- Live mode: polls the newest page every polling interval and
  skips mints emitted recently (bounded by size and age)
- Backfill: walks cursor pages up to backfill_max_pages
- Creator lookup: graduated records carry no creator, so the
  first swap of the token is fetched and its wallet is used

============================================================
ENDPOINTS
============================================================
GET /token/mainnet/exchange/{exchange}/graduated?limit=&cursor=
GET /token/mainnet/{mint}/swaps?limit=1&order=ASC

Both require the X-API-Key header.

============================================================
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from data_ingestion.creator_cache import CreatorCache
from data_ingestion.deduplicator import EventDeduplicator
from data_ingestion.types import MoralisConfig, SourceTag, SourceUnavailable

from .base import HttpPollingSource


class MoralisGraduatedSource(HttpPollingSource):
    """Pull-style indexer source for graduated tokens."""

    def __init__(self, config: MoralisConfig, creator_cache: CreatorCache) -> None:
        super().__init__(config, SourceTag.INDEXER)
        self._config: MoralisConfig = config
        self._creators = creator_cache
        # Recently emitted mints; the newest page repeats between polls
        self._seen_mints = EventDeduplicator(
            max_size=config.seen_mints_max_size,
            ttl_seconds=config.seen_mints_ttl_seconds,
        )

    @property
    def supports_backfill(self) -> bool:
        return True

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "X-API-Key": self._config.api_key,
        }

    def _graduated_url(self) -> str:
        return (
            f"{self._config.base_url}/token/mainnet/exchange/"
            f"{self._config.exchange}/graduated"
        )

    # =========================================================
    # FETCHING
    # =========================================================

    async def _fetch_page(self, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        params: Dict[str, Any] = {"limit": self._config.page_limit}
        if cursor:
            params["cursor"] = cursor

        data = await self._request_json("GET", self._graduated_url(), params=params)
        if not isinstance(data, dict):
            raise SourceUnavailable(
                f"Unexpected response shape from {self.name}",
                source=self.name,
            )

        records = [r for r in data.get("result") or [] if isinstance(r, dict)]
        self._logger.debug(f"Fetched {len(records)} graduated tokens")
        return records, data.get("cursor") or None

    async def _lookup_creator(self, mint: str) -> Optional[str]:
        """Creator of a token: cache first, then the wallet of its first swap."""
        cached = self._creators.get(mint)
        if cached:
            return cached

        url = f"{self._config.base_url}/token/mainnet/{mint}/swaps"
        try:
            data = await self._request_json("GET", url, params={"limit": 1, "order": "ASC"})
        except SourceUnavailable as e:
            if e.status_code == 404:
                return None
            raise

        swaps = data.get("result") if isinstance(data, dict) else None
        if not swaps:
            return None
        creator = swaps[0].get("walletAddress")
        if creator:
            self._creators.put(mint, creator)
        return creator

    async def _enrich(self, record: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(record)
        mint = payload.get("tokenAddress") or payload.get("mint")
        if isinstance(mint, str) and mint and not payload.get("creator"):
            creator = await self._lookup_creator(mint)
            if creator:
                payload["creator"] = creator
        return payload

    # =========================================================
    # LIVE / BACKFILL
    # =========================================================

    async def _poll(self) -> List[Dict[str, Any]]:
        records, _ = await self._fetch_page()
        payloads = []
        marked: List[str] = []
        try:
            for record in records:
                mint = record.get("tokenAddress") or record.get("mint")
                if isinstance(mint, str) and mint:
                    if not self._seen_mints.should_process(mint):
                        continue
                    marked.append(mint)
                payloads.append(await self._enrich(record))
        except SourceUnavailable:
            # The page is dropped, so none of its mints count as emitted
            for mint in marked:
                self._seen_mints.release(mint)
            raise
        return payloads

    async def backfill(self, max_pages: Optional[int] = None) -> AsyncIterator[Dict[str, Any]]:
        """Walk cursor pages from newest to oldest."""
        pages = max_pages or self._config.backfill_max_pages
        await self._connect()
        try:
            cursor: Optional[str] = None
            for page in range(pages):
                records, cursor = await self._fetch_page(cursor)
                self._logger.info(f"Backfill page {page + 1}/{pages}: {len(records)} tokens")
                for record in records:
                    yield await self._enrich(record)
                if not cursor or not records:
                    break
        finally:
            await self._close()
