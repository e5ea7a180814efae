"""
Data Ingestion - Normalizers Package.

This package contains all event normalization modules.
Each normalizer converts one family of raw provider payloads to
the canonical LaunchEvent / MigrationEvent shape.

Normalizers:
- onchain: PumpPortal websocket messages, Helius transactions
- indexer: Moralis graduated-token records
- social: Twitter recent-search results
"""

from typing import Any, Dict, Mapping, Optional

from ..creator_cache import CreatorCache
from ..types import CanonicalEvent, SourceTag
from .base import Clock, EventNormalizer
from .indexer import IndexerNormalizer
from .onchain import OnChainNormalizer
from .social import SocialNormalizer


class PayloadNormalizer:
    """Dispatches a raw payload to the normalizer for its source tag."""

    def __init__(self, creator_cache: CreatorCache, clock: Optional[Clock] = None) -> None:
        self._normalizers: Dict[SourceTag, EventNormalizer] = {
            SourceTag.ONCHAIN_FEED: OnChainNormalizer(creator_cache, clock),
            SourceTag.INDEXER: IndexerNormalizer(creator_cache, clock),
            SourceTag.SOCIAL: SocialNormalizer(creator_cache, clock),
        }

    def normalize(self, payload: Mapping[str, Any], source_tag: SourceTag) -> CanonicalEvent:
        return self._normalizers[SourceTag(source_tag)].normalize(payload)


__all__ = [
    "EventNormalizer",
    "OnChainNormalizer",
    "IndexerNormalizer",
    "SocialNormalizer",
    "PayloadNormalizer",
]
