"""
Data Ingestion - Twitter Recent Search Source.

============================================================
RESPONSIBILITY
============================================================
Polls the Twitter v2 recent-search endpoint for posts that
announce launches and yields one payload per post:

    {"tweet": {...}, "author": {...}}

The social normalizer links the author to the developer who
created the token mentioned in the text. since_id keeps polls
incremental.

============================================================
"""

from typing import Any, Dict, List, Optional

from data_ingestion.types import SourceTag, SourceUnavailable, TwitterConfig

from .base import HttpPollingSource


class TwitterSearchSource(HttpPollingSource):
    """Pull-style social source."""

    def __init__(self, config: TwitterConfig) -> None:
        super().__init__(config, SourceTag.SOCIAL)
        self._config: TwitterConfig = config
        self._since_id: Optional[str] = None

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._config.bearer_token}",
        }

    async def _poll(self) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "query": self._config.query,
            "max_results": max(10, min(self._config.max_results, 100)),
            "tweet.fields": "author_id,created_at",
            "expansions": "author_id",
            "user.fields": "username,name",
        }
        if self._since_id:
            params["since_id"] = self._since_id

        data = await self._request_json(
            "GET",
            f"{self._config.base_url}/tweets/search/recent",
            params=params,
        )
        if not isinstance(data, dict):
            raise SourceUnavailable("Unexpected search response", source=self.name)

        meta = data.get("meta") or {}
        if meta.get("newest_id"):
            self._since_id = meta["newest_id"]

        return split_search_response(data)


def split_search_response(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Pair each tweet with its expanded author, oldest first."""
    users = {
        u["id"]: u
        for u in (data.get("includes") or {}).get("users") or []
        if isinstance(u, dict) and u.get("id")
    }
    payloads = []
    for tweet in reversed(data.get("data") or []):
        if not isinstance(tweet, dict):
            continue
        payloads.append({
            "tweet": tweet,
            "author": users.get(tweet.get("author_id"), {}),
        })
    return payloads
