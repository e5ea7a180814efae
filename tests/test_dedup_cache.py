"""
Tests for the event deduplicator and the creator cache.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from data_ingestion.creator_cache import CreatorCache
from data_ingestion.deduplicator import EventDeduplicator


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================
# DEDUPLICATOR
# ============================================================

class TestEventDeduplicator:
    """Tests for EventDeduplicator."""

    def test_first_sight_processes(self):
        """Test that only the first caller for an id gets True."""
        dedup = EventDeduplicator()
        assert dedup.should_process("sig1") is True
        assert dedup.should_process("sig1") is False
        assert "sig1" in dedup

    def test_release_allows_retry(self):
        """Test that a released id can be processed again."""
        dedup = EventDeduplicator()
        dedup.should_process("sig1")
        dedup.release("sig1")
        assert dedup.should_process("sig1") is True

    def test_release_unknown_is_noop(self):
        """Test that releasing an unseen id does nothing."""
        dedup = EventDeduplicator()
        dedup.release("never")
        assert len(dedup) == 0

    def test_oldest_evicted_beyond_max_size(self):
        """Test that the set is bounded."""
        dedup = EventDeduplicator(max_size=2)
        for event_id in ("a", "b", "c"):
            dedup.should_process(event_id)

        assert len(dedup) == 2
        assert "a" not in dedup
        assert dedup.should_process("a") is True

    def test_expired_ids_forgotten(self):
        """Test that ids older than the TTL are dropped."""
        clock = FakeClock()
        dedup = EventDeduplicator(ttl_seconds=60, clock=clock)
        dedup.should_process("sig1")

        clock.advance(59)
        assert dedup.should_process("sig1") is False
        clock.advance(1)
        assert dedup.should_process("sig1") is True

    def test_concurrent_check_and_set(self):
        """Test that exactly one of many concurrent callers wins."""
        dedup = EventDeduplicator()
        barrier = threading.Barrier(16)

        def _attempt(_):
            barrier.wait()
            return dedup.should_process("sig-race")

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(_attempt, range(16)))

        assert results.count(True) == 1

    def test_invalid_size(self):
        """Test that a zero max_size is rejected."""
        with pytest.raises(ValueError):
            EventDeduplicator(max_size=0)


# ============================================================
# CREATOR CACHE
# ============================================================

class TestCreatorCache:
    """Tests for CreatorCache."""

    def test_put_and_get(self):
        """Test basic lookup."""
        cache = CreatorCache()
        cache.put("MINT1", "WALLET1")
        assert cache.get("MINT1") == "WALLET1"
        assert cache.get("MINT2") is None

    def test_least_recently_used_evicted(self):
        """Test that a read refreshes an entry's position."""
        cache = CreatorCache(max_size=2)
        cache.put("MINT1", "W1")
        cache.put("MINT2", "W2")
        cache.get("MINT1")
        cache.put("MINT3", "W3")

        assert cache.get("MINT1") == "W1"
        assert cache.get("MINT2") is None
        assert len(cache) == 2

    def test_entries_expire(self):
        """Test that entries past the TTL are dropped on read."""
        clock = FakeClock()
        cache = CreatorCache(ttl_seconds=10, clock=clock)
        cache.put("MINT1", "W1")

        clock.advance(10)
        assert cache.get("MINT1") is None
        assert len(cache) == 0

    def test_put_overwrites(self):
        """Test that a second put replaces the creator."""
        cache = CreatorCache()
        cache.put("MINT1", "W1")
        cache.put("MINT1", "W2")
        assert cache.get("MINT1") == "W2"
