"""
Data Ingestion - On-Chain Feed Normalizer.

============================================================
RESPONSIBILITY
============================================================
Normalizes on-chain payloads into canonical events.

Supported payload shapes:
- PumpPortal websocket messages
    txType "create"     -> LaunchEvent (creator = traderPublicKey)
    txType "migration"  -> MigrationEvent pump.fun -> pumpswap
- Helius enhanced transactions (feePayer + tokenTransfers)
    -> MigrationEvent pump.fun -> raydium

Launch events record mint -> creator in the creator cache.
PumpPortal migration messages carry no creator, so the actor
wallet comes from that cache.

============================================================
"""

from typing import Any, Mapping, Optional

from ..creator_cache import CreatorCache
from ..types import CanonicalEvent, LaunchEvent, MigrationEvent, SourceTag
from .base import Clock, EventNormalizer, optional_str

PUMP_FUN = "pump.fun"
PUMPSWAP = "pumpswap"
RAYDIUM = "raydium"

# Wrapped SOL appears in most swap transfers and is never the migrated mint
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


class OnChainNormalizer(EventNormalizer):
    """Normalizer for the onchain-feed source tag."""

    source_tag = SourceTag.ONCHAIN_FEED

    def __init__(self, creator_cache: CreatorCache, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._creators = creator_cache

    def normalize(self, payload: Mapping[str, Any]) -> CanonicalEvent:
        tx_type = payload.get("txType")
        if tx_type == "create":
            return self._pumpportal_create(payload)
        if tx_type == "migration":
            return self._pumpportal_migration(payload)
        if "feePayer" in payload or "tokenTransfers" in payload:
            return self._helius_migration(payload)
        raise self._malformed(f"unsupported on-chain payload (txType={tx_type!r})", payload)

    def _pumpportal_create(self, payload: Mapping[str, Any]) -> LaunchEvent:
        signature = self._require_event_id(payload, "signature")
        mint = self._require_address(payload, "mint")
        creator = self._require_address(payload, "traderPublicKey")

        self._creators.put(mint, creator)

        return LaunchEvent(
            event_id=signature,
            token_address=mint,
            actor_wallet=creator,
            timestamp=self._timestamp(payload.get("timestamp")),
            source=self.source_tag,
            name=optional_str(payload, "name"),
            symbol=optional_str(payload, "symbol"),
            transaction_signature=signature,
        )

    def _pumpportal_migration(self, payload: Mapping[str, Any]) -> MigrationEvent:
        signature = self._require_event_id(payload, "signature")
        mint = self._require_address(payload, "mint")
        creator = self._creators.get(mint) or optional_str(payload, "creator")
        if creator is None:
            raise self._malformed(f"creator of {mint} unknown", payload)

        return MigrationEvent(
            event_id=signature,
            token_address=mint,
            actor_wallet=creator,
            timestamp=self._timestamp(payload.get("timestamp")),
            source=self.source_tag,
            from_platform=PUMP_FUN,
            to_platform=PUMPSWAP,
            transaction_signature=signature,
        )

    def _helius_migration(self, payload: Mapping[str, Any]) -> MigrationEvent:
        signature = self._require_event_id(payload, "signature")
        fee_payer = self._require_address(payload, "feePayer")
        mint = _migrated_mint(payload)
        if mint is None:
            raise self._malformed("no token mint in transfers or balance changes", payload)

        return MigrationEvent(
            event_id=signature,
            token_address=mint,
            actor_wallet=fee_payer,
            timestamp=self._timestamp(payload.get("timestamp")),
            source=self.source_tag,
            from_platform=PUMP_FUN,
            to_platform=RAYDIUM,
            transaction_signature=signature,
        )


def _items(value: Any) -> tuple:
    return tuple(value) if isinstance(value, (list, tuple)) else ()


def _mint_of(entry: Any) -> Optional[str]:
    mint = entry.get("mint") if isinstance(entry, Mapping) else None
    if isinstance(mint, str) and mint and mint != WRAPPED_SOL_MINT:
        return mint
    return None


def _migrated_mint(payload: Mapping[str, Any]) -> Optional[str]:
    """First non-SOL mint in token transfers, then in account balance changes."""
    for transfer in _items(payload.get("tokenTransfers")):
        mint = _mint_of(transfer)
        if mint:
            return mint
    for account in _items(payload.get("accountData")):
        if not isinstance(account, Mapping):
            continue
        for change in _items(account.get("tokenBalanceChanges")):
            mint = _mint_of(change)
            if mint:
                return mint
    return None
