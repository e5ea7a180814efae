"""
Tests for payload normalizers.

============================================================
PURPOSE
============================================================
Each provider payload shape maps to the expected canonical
event, and payloads without a token, an actor or a stable id
are rejected with the right error.

============================================================
"""

from datetime import datetime

import pytest

from data_ingestion.creator_cache import CreatorCache
from data_ingestion.normalizers import PayloadNormalizer
from data_ingestion.types import (
    CanonicalEvent,
    EventKind,
    LaunchEvent,
    MalformedEvent,
    MigrationEvent,
    SourceTag,
    UnidentifiableEvent,
)


MINT = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"
CREATOR = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
FIXED_NOW = datetime(2025, 6, 1, 0, 0, 0)
# 2025-01-01 12:00:00 UTC
TS_SECONDS = 1735732800


@pytest.fixture
def cache():
    return CreatorCache()


@pytest.fixture
def normalizer(cache):
    return PayloadNormalizer(cache, clock=lambda: FIXED_NOW)


def pumpportal_create(**overrides):
    payload = {
        "signature": "5create",
        "mint": MINT,
        "traderPublicKey": CREATOR,
        "txType": "create",
        "name": "Dog Coin",
        "symbol": "DOG",
        "timestamp": TS_SECONDS * 1000,
    }
    payload.update(overrides)
    return payload


# ============================================================
# ON-CHAIN FEED
# ============================================================

class TestOnChainNormalizer:
    """Tests for PumpPortal and Helius payloads."""

    def test_pumpportal_create(self, normalizer, cache):
        """Test that a create message becomes a LaunchEvent and fills the cache."""
        event = normalizer.normalize(pumpportal_create(), SourceTag.ONCHAIN_FEED)

        assert isinstance(event, LaunchEvent)
        assert event.kind is EventKind.NEW_TOKEN
        assert event.event_id == "5create"
        assert event.token_address == MINT
        assert event.actor_wallet == CREATOR
        assert event.name == "Dog Coin"
        assert event.symbol == "DOG"
        assert event.timestamp == datetime(2025, 1, 1, 12, 0, 0)
        assert cache.get(MINT) == CREATOR

    def test_pumpportal_migration_uses_cache(self, normalizer):
        """Test that a migration message resolves the creator from an earlier launch."""
        normalizer.normalize(pumpportal_create(), SourceTag.ONCHAIN_FEED)
        event = normalizer.normalize(
            {"signature": "5migrate", "mint": MINT, "txType": "migration"},
            SourceTag.ONCHAIN_FEED,
        )

        assert isinstance(event, MigrationEvent)
        assert event.actor_wallet == CREATOR
        assert event.from_platform == "pump.fun"
        assert event.to_platform == "pumpswap"
        assert event.timestamp == FIXED_NOW

    def test_pumpportal_migration_unknown_creator(self, normalizer):
        """Test that a migration of an unseen mint is malformed."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(
                {"signature": "5migrate", "mint": MINT, "txType": "migration"},
                SourceTag.ONCHAIN_FEED,
            )

    def test_missing_signature_is_unidentifiable(self, normalizer):
        """Test that ids are never invented."""
        payload = pumpportal_create()
        del payload["signature"]
        with pytest.raises(UnidentifiableEvent):
            normalizer.normalize(payload, SourceTag.ONCHAIN_FEED)

    def test_missing_mint_is_malformed(self, normalizer):
        """Test that a create without a mint is rejected."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(pumpportal_create(mint=""), SourceTag.ONCHAIN_FEED)

    def test_missing_creator_is_malformed(self, normalizer):
        """Test that a create without a creator is rejected."""
        payload = pumpportal_create()
        del payload["traderPublicKey"]
        with pytest.raises(MalformedEvent):
            normalizer.normalize(payload, SourceTag.ONCHAIN_FEED)

    def test_helius_transaction(self, normalizer):
        """Test that an enhanced transaction maps to a raydium migration."""
        payload = {
            "signature": "5helius",
            "feePayer": CREATOR,
            "timestamp": TS_SECONDS,
            "tokenTransfers": [
                {"mint": "So11111111111111111111111111111111111111112"},
                {"mint": MINT},
            ],
        }
        event = normalizer.normalize(payload, SourceTag.ONCHAIN_FEED)

        assert isinstance(event, MigrationEvent)
        assert event.token_address == MINT
        assert event.actor_wallet == CREATOR
        assert event.to_platform == "raydium"
        assert event.timestamp == datetime(2025, 1, 1, 12, 0, 0)

    def test_helius_balance_changes_fallback(self, normalizer):
        """Test that the mint is found in account balance changes."""
        payload = {
            "signature": "5helius",
            "feePayer": CREATOR,
            "tokenTransfers": [],
            "accountData": [{"tokenBalanceChanges": [{"mint": MINT}]}],
        }
        assert normalizer.normalize(payload, SourceTag.ONCHAIN_FEED).token_address == MINT

    def test_helius_without_mint(self, normalizer):
        """Test that a transaction moving only SOL is malformed."""
        payload = {"signature": "5helius", "feePayer": CREATOR, "tokenTransfers": []}
        with pytest.raises(MalformedEvent):
            normalizer.normalize(payload, SourceTag.ONCHAIN_FEED)

    @pytest.mark.parametrize("transfers", [7, "not-a-list", {"mint": MINT}])
    def test_helius_scalar_transfers_malformed(self, normalizer, transfers):
        """Test that non-list transfer fields are treated as carrying no mint."""
        payload = {
            "signature": "5helius",
            "feePayer": CREATOR,
            "tokenTransfers": transfers,
            "accountData": 3,
        }
        with pytest.raises(MalformedEvent):
            normalizer.normalize(payload, SourceTag.ONCHAIN_FEED)

    @pytest.mark.parametrize("timestamp", [10 ** 20, -10 ** 20, float("nan")])
    def test_out_of_range_timestamp_uses_clock(self, normalizer, timestamp):
        """Test that an unrepresentable timestamp falls back to the clock."""
        event = normalizer.normalize(pumpportal_create(timestamp=timestamp), SourceTag.ONCHAIN_FEED)
        assert event.timestamp == FIXED_NOW

    def test_unsupported_payload(self, normalizer):
        """Test that trade messages are rejected."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(pumpportal_create(txType="buy"), SourceTag.ONCHAIN_FEED)


# ============================================================
# INDEXER
# ============================================================

class TestIndexerNormalizer:
    """Tests for Moralis graduated-token records."""

    def test_graduated_record(self, normalizer):
        """Test a record without a signature gets a deterministic id."""
        record = {
            "tokenAddress": MINT,
            "name": "Dog Coin",
            "symbol": "DOG",
            "graduatedAt": "2025-01-01T12:00:00.000Z",
            "creator": CREATOR,
        }
        event = normalizer.normalize(record, SourceTag.INDEXER)

        assert isinstance(event, MigrationEvent)
        assert event.event_id == f"graduated:{MINT}"
        assert event.actor_wallet == CREATOR
        assert event.timestamp == datetime(2025, 1, 1, 12, 0, 0)
        assert event.transaction_signature is None

    def test_replayed_record_same_id(self, normalizer):
        """Test that the same record twice yields the same event id."""
        record = {"tokenAddress": MINT, "graduatedAt": "2025-01-01T12:00:00Z", "creator": CREATOR}
        first = normalizer.normalize(record, SourceTag.INDEXER)
        second = normalizer.normalize(dict(record), SourceTag.INDEXER)
        assert first.event_id == second.event_id

    def test_signature_preferred(self, normalizer):
        """Test that a supplied signature is the event id."""
        record = {"tokenAddress": MINT, "signature": "5sig", "creatorAddress": CREATOR}
        event = normalizer.normalize(record, SourceTag.INDEXER)
        assert event.event_id == "5sig"
        assert event.transaction_signature == "5sig"

    def test_cache_wins_over_payload_creator(self, normalizer, cache):
        """Test that the cached creator is used first."""
        cache.put(MINT, "CACHEDWALLET")
        record = {"tokenAddress": MINT, "graduatedAt": "2025-01-01T12:00:00Z", "creator": CREATOR}
        assert normalizer.normalize(record, SourceTag.INDEXER).actor_wallet == "CACHEDWALLET"

    def test_no_id(self, normalizer):
        """Test that a record without signature or graduation time is unidentifiable."""
        with pytest.raises(UnidentifiableEvent):
            normalizer.normalize({"tokenAddress": MINT, "creator": CREATOR}, SourceTag.INDEXER)

    def test_no_creator(self, normalizer):
        """Test that a record with no resolvable creator is malformed."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(
                {"tokenAddress": MINT, "graduatedAt": "2025-01-01T12:00:00Z"},
                SourceTag.INDEXER,
            )


# ============================================================
# SOCIAL
# ============================================================

class TestSocialNormalizer:
    """Tests for tweet payloads."""

    def _tweet(self, text, tweet_id="1800000000000000001"):
        return {
            "tweet": {
                "id": tweet_id,
                "text": text,
                "created_at": "2025-01-01T12:00:00.000Z",
                "author_id": "42",
            },
            "author": {"id": "42", "username": "devhandle", "name": "Dev"},
        }

    def test_tweet_about_known_mint(self, normalizer, cache):
        """Test that a tweet naming a cached mint attributes it with the author's handle."""
        cache.put(MINT, CREATOR)
        event = normalizer.normalize(self._tweet(f"Just launched {MINT} on pump.fun"), SourceTag.SOCIAL)

        assert isinstance(event, LaunchEvent)
        assert event.event_id == "tweet:1800000000000000001"
        assert event.token_address == MINT
        assert event.actor_wallet == CREATOR
        assert event.social_handle == "devhandle"
        assert event.social_user_id == "42"
        assert event.transaction_signature is None

    def test_tweet_without_address(self, normalizer):
        """Test that a tweet naming no address is malformed."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(self._tweet("gm"), SourceTag.SOCIAL)

    def test_tweet_about_unknown_mint(self, normalizer):
        """Test that an address without a known creator is malformed."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize(self._tweet(f"look at {MINT}"), SourceTag.SOCIAL)

    def test_missing_tweet(self, normalizer):
        """Test that a payload without a tweet is malformed."""
        with pytest.raises(MalformedEvent):
            normalizer.normalize({"author": {}}, SourceTag.SOCIAL)


# ============================================================
# CANONICAL EVENTS
# ============================================================

class TestCanonicalEvent:
    """Tests for the canonical event types."""

    def test_base_event_is_abstract(self):
        """Test that only concrete event kinds can be built."""
        with pytest.raises(TypeError):
            CanonicalEvent("e1", MINT, CREATOR, FIXED_NOW, SourceTag.ONCHAIN_FEED)

    def test_kinds(self):
        """Test that each concrete event reports its kind."""
        launch = LaunchEvent("e1", MINT, CREATOR, FIXED_NOW, SourceTag.ONCHAIN_FEED)
        migration = MigrationEvent("e2", MINT, CREATOR, FIXED_NOW, SourceTag.INDEXER)

        assert launch.kind is EventKind.NEW_TOKEN
        assert migration.kind is EventKind.MIGRATION
        assert migration.to_dict()["kind"] == "Migration"
