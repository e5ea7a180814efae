"""
Data Ingestion - Event Deduplicator.

============================================================
PURPOSE
============================================================
At-most-once gate in front of the pipeline.

should_process() is a single atomic check-and-set: the first
caller for an event id gets True, every concurrent or later
caller gets False until the id is released or evicted.

============================================================
EVICTION
============================================================
- Bounded by max_size; the oldest ids are dropped first
- Ids older than ttl_seconds are dropped on the next call
- The persisted processed_events table catches replays of
  evicted ids

============================================================
"""

import threading
import time
from collections import OrderedDict
from typing import Callable


class EventDeduplicator:
    """Bounded, TTL-limited processed-event set."""

    def __init__(
        self,
        max_size: int = 100_000,
        ttl_seconds: float = 24 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._seen: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def _purge_expired(self, now: float) -> None:
        while self._seen:
            event_id, marked_at = next(iter(self._seen.items()))
            if now - marked_at < self._ttl:
                break
            del self._seen[event_id]

    def should_process(self, event_id: str) -> bool:
        """
        Mark event_id as seen.

        Returns:
            True if the caller is the first to see this id and
            must process it, False if it was already seen
        """
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if event_id in self._seen:
                return False
            self._seen[event_id] = now
            while len(self._seen) > self._max_size:
                self._seen.popitem(last=False)
            return True

    def release(self, event_id: str) -> None:
        """Forget an id whose processing failed so a retry can apply it."""
        with self._lock:
            self._seen.pop(event_id, None)

    def __contains__(self, event_id: str) -> bool:
        with self._lock:
            self._purge_expired(self._clock())
            return event_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
