"""
Shared fixtures for the developer tracker test suite.

Every test gets a fresh in-memory SQLite database with all
tables created.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from data_ingestion.deduplicator import EventDeduplicator
from data_ingestion.pipeline import EventPipeline
from data_ingestion.types import LaunchEvent, MigrationEvent, SourceTag
from developer_tracking import (
    IdentityResolver,
    StatisticsAggregator,
    TokenStatus,
    TokenView,
    TrackerConfig,
)
from storage.database import create_all_tables, create_database_engine, create_session_factory


BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


# ============================================================
# DATABASE
# ============================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


# ============================================================
# DEVELOPER TRACKING
# ============================================================

@pytest.fixture
def tracker_config():
    return TrackerConfig()


@pytest.fixture
def resolver(session_factory, tracker_config):
    return IdentityResolver(session_factory, tracker_config)


@pytest.fixture
def aggregator(session_factory, tracker_config):
    return StatisticsAggregator(session_factory, tracker_config)


@pytest.fixture
def deduplicator():
    return EventDeduplicator(max_size=1000)


@pytest.fixture
def pipeline(session_factory, deduplicator, resolver, aggregator):
    return EventPipeline(session_factory, deduplicator, resolver, aggregator)


# ============================================================
# EVENT / TOKEN FACTORIES
# ============================================================

@pytest.fixture
def launch_event():
    """Factory for launch events."""
    def _make(
        event_id: str,
        token: str,
        wallet: str,
        minutes: int = 0,
        name: Optional[str] = None,
        symbol: Optional[str] = None,
        social_handle: Optional[str] = None,
    ) -> LaunchEvent:
        return LaunchEvent(
            event_id=event_id,
            token_address=token,
            actor_wallet=wallet,
            timestamp=BASE_TIME + timedelta(minutes=minutes),
            source=SourceTag.ONCHAIN_FEED,
            name=name,
            symbol=symbol,
            social_handle=social_handle,
            transaction_signature=event_id,
        )
    return _make


@pytest.fixture
def migration_event():
    """Factory for migration events."""
    def _make(
        event_id: str,
        token: str,
        wallet: str,
        minutes: int = 60,
        source: SourceTag = SourceTag.ONCHAIN_FEED,
    ) -> MigrationEvent:
        return MigrationEvent(
            event_id=event_id,
            token_address=token,
            actor_wallet=wallet,
            timestamp=BASE_TIME + timedelta(minutes=minutes),
            source=source,
            from_platform="pump.fun",
            to_platform="pumpswap",
            transaction_signature=event_id,
        )
    return _make


@pytest.fixture
def token_view():
    """Factory for detached token views used by the pure scorers."""
    counter = {"id": 0}

    def _make(status: TokenStatus, minutes: Optional[int] = 0, developer_id: int = 1) -> TokenView:
        counter["id"] += 1
        return TokenView(
            id=counter["id"],
            token_address=f"TOKEN{counter['id']}",
            developer_id=developer_id,
            status=status,
            launched_at=None if minutes is None else BASE_TIME + timedelta(minutes=minutes),
        )
    return _make
