"""
Data Ingestion - Social Normalizer.

Normalizes Twitter recent-search results into LaunchEvents that
attribute a known mint to its creator and carry the author's
handle for social linking.

Payload shape (one tweet with its expanded author):
    {"tweet": {"id", "text", "created_at", "author_id"},
     "author": {"id", "username", "name"}}

The tweet id is the event id. The mint is the first Solana
address in the text whose creator is in the creator cache; a
tweet naming no known mint cannot be attributed and is rejected.
"""

import re
from typing import Any, Mapping, Optional

from ..creator_cache import CreatorCache
from ..types import LaunchEvent, SourceTag
from .base import Clock, EventNormalizer, optional_str

# Base58, 32-44 characters
SOLANA_ADDRESS_RE = re.compile(r"\b[1-9A-HJ-NP-Za-km-z]{32,44}\b")


class SocialNormalizer(EventNormalizer):
    """Normalizer for the social source tag."""

    source_tag = SourceTag.SOCIAL

    def __init__(self, creator_cache: CreatorCache, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._creators = creator_cache

    def normalize(self, payload: Mapping[str, Any]) -> LaunchEvent:
        tweet = payload.get("tweet")
        if not isinstance(tweet, Mapping):
            raise self._malformed("missing tweet", payload)
        author = payload.get("author") if isinstance(payload.get("author"), Mapping) else {}

        tweet_id = self._require_event_id(tweet, "id")
        text = optional_str(tweet, "text") or ""

        candidates = SOLANA_ADDRESS_RE.findall(text)
        if not candidates:
            raise self._malformed(f"tweet {tweet_id} names no token address", tweet)

        for mint in candidates:
            creator = self._creators.get(mint)
            if creator is not None:
                break
        else:
            raise self._malformed(f"tweet {tweet_id} names no token with a known creator", tweet)

        return LaunchEvent(
            event_id=f"tweet:{tweet_id}",
            token_address=mint,
            actor_wallet=creator,
            timestamp=self._timestamp(tweet.get("created_at")),
            source=self.source_tag,
            social_handle=optional_str(author, "username"),
            social_user_id=optional_str(author, "id") or optional_str(tweet, "author_id"),
        )
