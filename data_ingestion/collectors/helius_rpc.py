"""
Data Ingestion - Helius RPC Migration Source.

============================================================
RESPONSIBILITY
============================================================
Polls the PumpSwap AMM program for new transactions and
expands them into Helius enhanced transactions.

1. getSignaturesForAddress(program_id, until=last_seen), paging
   back with `before` while pages come back full (up to
   catchup_max_pages)
2. Drop failed transactions (err != null)
3. POST /v0/transactions with the signature batch
4. Yield each enhanced transaction (feePayer, tokenTransfers)

The newest signature of every poll is remembered so the next
poll only returns newer activity. Backfill pages backwards
with the `before` parameter.

============================================================
"""

from typing import Any, AsyncIterator, Dict, List, Optional

from data_ingestion.types import HeliusConfig, SourceTag, SourceUnavailable

from .base import HttpPollingSource


class HeliusMigrationSource(HttpPollingSource):
    """Pull-style on-chain migration source."""

    def __init__(self, config: HeliusConfig) -> None:
        super().__init__(config, SourceTag.ONCHAIN_FEED)
        self._config: HeliusConfig = config
        self._last_signature: Optional[str] = None
        self._request_id = 0

    @property
    def supports_backfill(self) -> bool:
        return True

    @property
    def last_signature(self) -> Optional[str]:
        return self._last_signature

    # =========================================================
    # RPC
    # =========================================================

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        self._request_id += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        data = await self._request_json(
            "POST",
            self._config.rpc_url,
            params={"api-key": self._config.api_key},
            json=body,
        )
        if not isinstance(data, dict):
            raise SourceUnavailable(f"Malformed RPC response for {method}", source=self.name)
        if data.get("error"):
            raise SourceUnavailable(
                f"RPC error for {method}: {data['error']}",
                source=self.name,
                details={"error": data["error"]},
            )
        return data.get("result")

    async def _signatures(
        self,
        before: Optional[str] = None,
        until: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        options: Dict[str, Any] = {"limit": self._config.signature_limit}
        if before:
            options["before"] = before
        if until:
            options["until"] = until
        result = await self._rpc("getSignaturesForAddress", [self._config.program_id, options])
        return [s for s in result or [] if isinstance(s, dict) and s.get("signature")]

    async def _enhanced(self, signatures: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Expand successful signatures into enhanced transactions."""
        ok = [s for s in signatures if not s.get("err")]
        if not ok:
            return []

        block_times = {s["signature"]: s.get("blockTime") for s in ok}
        data = await self._request_json(
            "POST",
            f"{self._config.api_base_url}/v0/transactions",
            params={"api-key": self._config.api_key},
            json={"transactions": list(block_times)},
        )
        if not isinstance(data, list):
            raise SourceUnavailable(
                "Enhanced transactions response is not a list",
                source=self.name,
            )

        payloads = []
        for tx in data:
            if not isinstance(tx, dict):
                continue
            if tx.get("timestamp") is None and tx.get("signature") in block_times:
                tx = {**tx, "timestamp": block_times[tx["signature"]]}
            payloads.append(tx)
        return payloads

    # =========================================================
    # LIVE / BACKFILL
    # =========================================================

    async def _new_signatures(self) -> List[Dict[str, Any]]:
        """Every signature newer than the last poll, newest first."""
        if self._last_signature is None:
            return await self._signatures()

        limit = self._config.signature_limit
        collected: List[Dict[str, Any]] = []
        before: Optional[str] = None
        for _ in range(self._config.catchup_max_pages):
            page = await self._signatures(before=before, until=self._last_signature)
            collected.extend(page)
            if len(page) < limit:
                return collected
            before = page[-1]["signature"]

        self._logger.warning(
            f"More than {len(collected)} signatures since {self._last_signature}; "
            f"older activity in the gap was skipped"
        )
        return collected

    async def _poll(self) -> List[Dict[str, Any]]:
        signatures = await self._new_signatures()
        if not signatures:
            return []

        limit = self._config.signature_limit
        payloads: List[Dict[str, Any]] = []
        for start in range(0, len(signatures), limit):
            payloads.extend(await self._enhanced(signatures[start:start + limit]))
        # Newest first from the RPC
        self._last_signature = signatures[0]["signature"]
        # Oldest first to the pipeline
        return list(reversed(payloads))

    async def backfill(self, max_pages: Optional[int] = None) -> AsyncIterator[Dict[str, Any]]:
        """Page backwards through program history."""
        pages = max_pages or 10
        await self._connect()
        try:
            before: Optional[str] = None
            for page in range(pages):
                signatures = await self._signatures(before=before)
                if not signatures:
                    break
                payloads = await self._enhanced(signatures)
                self._logger.info(
                    f"Backfill page {page + 1}/{pages}: {len(signatures)} signatures, "
                    f"{len(payloads)} transactions"
                )
                for payload in payloads:
                    yield payload
                before = signatures[-1]["signature"]
        finally:
            await self._close()
