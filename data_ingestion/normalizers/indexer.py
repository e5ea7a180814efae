"""
Data Ingestion - Indexer Normalizer.

Normalizes Moralis graduated-token records into MigrationEvents
(pump.fun -> pumpswap).

Event id:
- The record's transaction signature when the indexer supplies one
- Otherwise "graduated:<tokenAddress>". A token graduates at most
  once, so the address alone identifies the real-world event and
  replays of the same record map to the same id.

The actor wallet comes from the creator cache, then from a
creator field the collector attached to the record.
"""

from typing import Any, Mapping, Optional

from ..creator_cache import CreatorCache
from ..types import MigrationEvent, SourceTag
from .base import Clock, EventNormalizer, optional_str
from .onchain import PUMP_FUN, PUMPSWAP

SIGNATURE_KEYS = ("signature", "transactionSignature", "transactionHash")
CREATOR_KEYS = ("creator", "creatorAddress", "deployer")


class IndexerNormalizer(EventNormalizer):
    """Normalizer for the indexer source tag."""

    source_tag = SourceTag.INDEXER

    def __init__(self, creator_cache: CreatorCache, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._creators = creator_cache

    def normalize(self, payload: Mapping[str, Any]) -> MigrationEvent:
        mint = self._require_address(payload, "tokenAddress", "mint")

        signature = next(
            (optional_str(payload, key) for key in SIGNATURE_KEYS if optional_str(payload, key)),
            None,
        )
        if signature is not None:
            event_id = signature
        elif optional_str(payload, "graduatedAt") is not None:
            event_id = f"graduated:{mint}"
        else:
            event_id = self._require_event_id(payload, *SIGNATURE_KEYS)

        creator = self._creators.get(mint)
        if creator is None:
            creator = next(
                (optional_str(payload, key) for key in CREATOR_KEYS if optional_str(payload, key)),
                None,
            )
        if creator is None:
            raise self._malformed(f"creator of {mint} unknown", payload)

        return MigrationEvent(
            event_id=event_id,
            token_address=mint,
            actor_wallet=creator,
            timestamp=self._timestamp(payload.get("graduatedAt")),
            source=self.source_tag,
            name=optional_str(payload, "name"),
            symbol=optional_str(payload, "symbol"),
            from_platform=PUMP_FUN,
            to_platform=PUMPSWAP,
            transaction_signature=signature,
        )
