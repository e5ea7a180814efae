"""
Data Ingestion - Creator Cache.

Maps token mint addresses to the wallet that created them.
Launch events fill it; migration and social payloads that carry
only a mint read it to find the actor wallet.

Least recently used entries are evicted beyond max_size and
entries expire after ttl_seconds.
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional


class CreatorCache:
    """Bounded mint -> creator wallet map."""

    def __init__(
        self,
        max_size: int = 50_000,
        ttl_seconds: float = 7 * 24 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[str, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, mint: str, creator: str) -> None:
        with self._lock:
            self._entries[mint] = (creator, self._clock())
            self._entries.move_to_end(mint)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def get(self, mint: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(mint)
            if entry is None:
                return None
            creator, stored_at = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[mint]
                return None
            self._entries.move_to_end(mint)
            return creator

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
