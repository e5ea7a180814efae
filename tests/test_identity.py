"""
Tests for the identity resolver.

============================================================
PURPOSE
============================================================
Wallet -> developer resolution, create-if-absent under
concurrency, wallet association and social linking.

============================================================
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from developer_tracking import (
    AssociationBelowThreshold,
    AssociationMethod,
    DeveloperNotFound,
    IdentityResolver,
    WalletAlreadyAssociated,
    WalletCandidate,
    WalletClusterer,
)
from storage.database import read_scope
from storage.repositories import (
    DeveloperRepository,
    SocialLinkRepository,
    WalletAssociationRepository,
)


class StaticClusterer(WalletClusterer):
    def __init__(self, candidates):
        self._candidates = candidates

    def find_related(self, wallet):
        return self._candidates


def _developer_count(session_factory) -> int:
    with read_scope(session_factory) as session:
        return len(DeveloperRepository(session).list_ids())


# ============================================================
# RESOLVE
# ============================================================

class TestResolve:
    """Tests for IdentityResolver.resolve."""

    def test_new_wallet_creates_developer(self, resolver, session_factory):
        """Test that a never-seen wallet creates a zero-token developer scored 10 with a primary association."""
        developer_id = resolver.resolve("WALLET_A")

        with read_scope(session_factory) as session:
            developer = DeveloperRepository(session).get_by_id(developer_id)
            association = WalletAssociationRepository(session).get_by_wallet("WALLET_A")

            assert developer.primary_wallet == "WALLET_A"
            assert developer.total_tokens_launched == 0
            assert developer.reputation_score == 10
            assert association.developer_id == developer_id
            assert association.confidence == 100
            assert association.association_method == "primary"

    def test_same_wallet_returns_same_id(self, resolver, session_factory):
        """Test that resolution is stable."""
        first = resolver.resolve("WALLET_A")
        second = resolver.resolve("WALLET_A")
        assert first == second
        assert _developer_count(session_factory) == 1

    def test_distinct_wallets_distinct_developers(self, resolver):
        """Test that two unknown wallets get two developers."""
        assert resolver.resolve("WALLET_A") != resolver.resolve("WALLET_B")

    def test_empty_wallet_rejected(self, resolver):
        """Test that an empty address raises ValueError."""
        with pytest.raises(ValueError):
            resolver.resolve("")

    def test_concurrent_first_sight_creates_one_developer(self, resolver, session_factory):
        """Test that parallel resolves of a new wallet agree on one developer."""
        barrier = threading.Barrier(8)

        def _resolve(_):
            barrier.wait()
            return resolver.resolve("WALLET_RACE")

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(_resolve, range(8)))

        assert len(set(ids)) == 1
        assert _developer_count(session_factory) == 1

    def test_resolvers_sharing_store_agree(self, session_factory, tracker_config):
        """Test that a second resolver instance finds the developer created by the first."""
        first = IdentityResolver(session_factory, tracker_config)
        second = IdentityResolver(session_factory, tracker_config)
        assert first.resolve("WALLET_A") == second.resolve("WALLET_A")
        assert _developer_count(session_factory) == 1

    def test_lookup_unknown_wallet(self, resolver):
        """Test that lookup never creates."""
        assert resolver.lookup("NOBODY") is None


# ============================================================
# ASSOCIATE
# ============================================================

class TestAssociate:
    """Tests for IdentityResolver.associate."""

    def test_associate_links_wallet(self, resolver):
        """Test that an associated wallet resolves to the developer."""
        developer_id = resolver.resolve("WALLET_A")
        view = resolver.associate(developer_id, "WALLET_A2", 85, AssociationMethod.TRANSACTION_PATTERN)

        assert view.developer_id == developer_id
        assert view.confidence == 85
        assert view.association_method == "transaction-pattern"
        assert resolver.resolve("WALLET_A2") == developer_id

    def test_associate_is_idempotent(self, resolver):
        """Test that re-associating the same wallet to the same developer succeeds."""
        developer_id = resolver.resolve("WALLET_A")
        resolver.associate(developer_id, "WALLET_A2", 90)
        view = resolver.associate(developer_id, "WALLET_A2", 90)
        assert view.developer_id == developer_id

    def test_wallet_owned_by_other_developer(self, resolver):
        """Test that stealing another developer's wallet fails."""
        first = resolver.resolve("WALLET_A")
        second = resolver.resolve("WALLET_B")

        with pytest.raises(WalletAlreadyAssociated) as exc_info:
            resolver.associate(second, "WALLET_A", 100)

        assert exc_info.value.existing_developer_id == first
        assert resolver.resolve("WALLET_A") == first

    def test_below_threshold_rejected(self, resolver):
        """Test that confidence under the threshold is refused."""
        developer_id = resolver.resolve("WALLET_A")
        with pytest.raises(AssociationBelowThreshold):
            resolver.associate(developer_id, "WALLET_A2", 69)
        assert resolver.lookup("WALLET_A2") is None

    def test_confidence_out_of_range(self, resolver):
        """Test that confidence must lie in 0..100."""
        developer_id = resolver.resolve("WALLET_A")
        with pytest.raises(ValueError):
            resolver.associate(developer_id, "WALLET_A2", 101)

    def test_unknown_developer(self, resolver):
        """Test that associating to a missing developer fails."""
        with pytest.raises(DeveloperNotFound):
            resolver.associate(999, "WALLET_X", 90)


# ============================================================
# DISCOVERY
# ============================================================

class TestDiscoverRelated:
    """Tests for clusterer-driven association."""

    def test_links_confident_candidates_only(self, session_factory, tracker_config):
        """Test that only candidates at or above the threshold are linked."""
        clusterer = StaticClusterer([
            WalletCandidate("WALLET_SIB1", 95),
            WalletCandidate("WALLET_SIB2", 70),
            WalletCandidate("WALLET_WEAK", 40),
        ])
        resolver = IdentityResolver(session_factory, tracker_config, clusterer)
        developer_id = resolver.resolve("WALLET_A")

        linked = resolver.discover_related(developer_id)

        assert sorted(v.wallet_address for v in linked) == ["WALLET_SIB1", "WALLET_SIB2"]
        assert resolver.lookup("WALLET_WEAK") is None

    def test_skips_wallets_of_other_developers(self, session_factory, tracker_config):
        """Test that a candidate owned elsewhere is skipped, not merged."""
        clusterer = StaticClusterer([WalletCandidate("WALLET_B", 99)])
        resolver = IdentityResolver(session_factory, tracker_config, clusterer)
        developer_a = resolver.resolve("WALLET_A")
        developer_b = resolver.resolve("WALLET_B")

        assert resolver.discover_related(developer_a) == []
        assert resolver.lookup("WALLET_B") == developer_b


# ============================================================
# SOCIAL
# ============================================================

class TestLinkSocialAccount:
    """Tests for social account linking."""

    def test_link_sets_display_name(self, resolver, session_factory):
        """Test that the first linked handle becomes the display name."""
        developer_id = resolver.resolve("WALLET_A")
        assert resolver.link_social_account(developer_id, "@devhandle", external_user_id="42") is True

        with read_scope(session_factory) as session:
            developer = DeveloperRepository(session).get_by_id(developer_id)
            links = SocialLinkRepository(session).list_for_developer(developer_id)
            assert developer.display_name == "@devhandle"
            assert [link.handle for link in links] == ["devhandle"]
            assert links[0].external_user_id == "42"

    def test_relinking_is_noop(self, resolver):
        """Test that linking the same handle twice creates one link."""
        developer_id = resolver.resolve("WALLET_A")
        resolver.link_social_account(developer_id, "devhandle")
        assert resolver.link_social_account(developer_id, "devhandle") is False

    def test_handle_of_other_developer_untouched(self, resolver, session_factory):
        """Test that a handle linked to one developer is not moved to another."""
        first = resolver.resolve("WALLET_A")
        second = resolver.resolve("WALLET_B")
        resolver.link_social_account(first, "devhandle")

        assert resolver.link_social_account(second, "devhandle") is False
        with read_scope(session_factory) as session:
            link = SocialLinkRepository(session).get_by_handle("twitter", "devhandle")
            assert link.developer_id == first
