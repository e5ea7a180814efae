"""
Data Ingestion - Event Pipeline.

============================================================
RESPONSIBILITY
============================================================
Applies one canonical event to the record store:

1. Deduplicator       drop ids already seen in this process
2. Identity Resolver  wallet -> developer (created if new); skipped
                      when the token already has an owner
3. Token upsert       create token / transition to migrated,
                      append migration log, mark event processed
4. Aggregator         re-derive counters, reputation and risk
                      of the token's owner

Step 3 runs in one transaction. The processed_events row is
written in that same transaction, so replaying an event after a
restart finds it and changes nothing.

============================================================
FAILURE HANDLING
============================================================
Any exception releases the event id from the deduplicator and
propagates. The orchestrator logs it, counts it and moves on to
the next event.

============================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from developer_tracking import (
    AggregationResult,
    IdentityResolver,
    InvalidStatusTransition,
    StatisticsAggregator,
    TokenNotFound,
    TokenStatus,
    TokenView,
)
from storage.database import read_scope, session_scope
from storage.models.base import utc_now
from storage.repositories import (
    DuplicateRecordError,
    MigrationEventRepository,
    ProcessedEventRepository,
    TokenRepository,
)

from .deduplicator import EventDeduplicator
from .types import CanonicalEvent, EventKind, PipelineOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedEvent:
    """Token-level effect of one event."""
    token: TokenView
    token_created: bool
    migrated_now: bool


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run."""
    outcome: PipelineOutcome
    event: CanonicalEvent
    developer_id: Optional[int] = None
    applied: Optional[AppliedEvent] = None
    aggregation: Optional[AggregationResult] = None


@dataclass(frozen=True)
class StatusChange:
    """Outcome of a manual token status update."""
    token: TokenView
    previous_status: TokenStatus
    aggregation: AggregationResult


class EventPipeline:
    """Synchronous per-event pipeline. Safe to call from worker threads."""

    def __init__(
        self,
        session_factory: sessionmaker,
        deduplicator: EventDeduplicator,
        resolver: IdentityResolver,
        aggregator: StatisticsAggregator,
    ) -> None:
        self._session_factory = session_factory
        self._dedup = deduplicator
        self._resolver = resolver
        self._aggregator = aggregator

    def process(self, event: CanonicalEvent) -> PipelineResult:
        """
        Run one event through the pipeline.

        Returns:
            PipelineResult with outcome APPLIED, or DUPLICATE when the
            event id was already seen in memory or in the store
        """
        if not self._dedup.should_process(event.event_id):
            logger.debug(f"Duplicate event {event.event_id} dropped")
            return PipelineResult(outcome=PipelineOutcome.DUPLICATE, event=event)

        try:
            # An existing token keeps its owner; only a new token attributes the actor
            developer_id = self._token_owner(event.token_address)
            if developer_id is None:
                developer_id = self._resolver.resolve(event.actor_wallet)

            try:
                applied = self._apply(event, developer_id)
            except DuplicateRecordError:
                # Another writer inserted the same token or event id first
                applied = self._apply(event, developer_id)

            if applied is None:
                logger.debug(f"Event {event.event_id} already applied")
                return PipelineResult(
                    outcome=PipelineOutcome.DUPLICATE,
                    event=event,
                    developer_id=developer_id,
                )

            owner_id = applied.token.developer_id
            if event.social_handle:
                self._resolver.link_social_account(
                    owner_id,
                    event.social_handle,
                    external_user_id=event.social_user_id,
                )

            aggregation = self._aggregator.recompute(owner_id)
        except Exception:
            self._dedup.release(event.event_id)
            raise

        logger.info(
            f"Applied {event.kind.value} {event.token_address} "
            f"developer={owner_id} reputation={aggregation.stats.reputation_score} "
            f"risk={aggregation.risk.risk_score}"
        )
        return PipelineResult(
            outcome=PipelineOutcome.APPLIED,
            event=event,
            developer_id=owner_id,
            applied=applied,
            aggregation=aggregation,
        )

    def _token_owner(self, token_address: str) -> Optional[int]:
        with read_scope(self._session_factory) as session:
            token = TokenRepository(session).get_by_address(token_address)
            return token.developer_id if token is not None else None

    def _apply(self, event: CanonicalEvent, developer_id: int) -> Optional[AppliedEvent]:
        is_migration = event.kind is EventKind.MIGRATION

        with session_scope(self._session_factory) as session:
            processed = ProcessedEventRepository(session)
            if processed.exists(event.event_id):
                return None

            tokens = TokenRepository(session)
            token = tokens.get_by_address(event.token_address)
            created = False
            migrated_now = False

            if token is None:
                status = TokenStatus.MIGRATED if is_migration else TokenStatus.ACTIVE
                token = tokens.create(
                    developer_id=developer_id,
                    token_address=event.token_address,
                    status=status.value,
                    launched_at=None if is_migration else event.timestamp,
                    migrated_at=event.timestamp if is_migration else None,
                    name=event.name,
                    symbol=event.symbol,
                )
                created = True
                migrated_now = is_migration
            else:
                if token.developer_id != developer_id:
                    logger.warning(
                        f"Token {event.token_address} belongs to developer {token.developer_id}, "
                        f"event {event.event_id} attributes it to {developer_id}; keeping owner"
                    )
                if not is_migration:
                    tokens.fill_metadata(token, event.name, event.symbol, event.timestamp)

            if is_migration:
                current = TokenStatus(token.status)
                if current is TokenStatus.ACTIVE:
                    tokens.write_status(token, TokenStatus.MIGRATED.value, migrated_at=event.timestamp)
                    migrated_now = True
                elif current is not TokenStatus.MIGRATED:
                    logger.info(
                        f"Ignoring migration of {event.token_address}: already {current.value}"
                    )
                self._log_migration(session, token.id, event)

            processed.create(event.event_id, event.source.value)
            view = TokenView.from_record(token)

        return AppliedEvent(token=view, token_created=created, migrated_now=migrated_now)

    def _log_migration(self, session, token_id: int, event: CanonicalEvent) -> None:
        signature = event.transaction_signature
        if not signature:
            return
        migrations = MigrationEventRepository(session)
        if migrations.get_by_signature(signature) is not None:
            return
        migrations.create(
            token_id=token_id,
            transaction_signature=signature,
            migrated_at=event.timestamp,
            from_platform=event.from_platform,
            to_platform=event.to_platform,
        )

    # =========================================================
    # MANUAL TRIAGE
    # =========================================================

    def update_token_status(self, token_address: str, status: TokenStatus) -> StatusChange:
        """
        Move an active token to a terminal status.

        Setting a token to the status it already has is a no-op
        apart from the stats recompute.

        Raises:
            TokenNotFound: unknown token
            InvalidStatusTransition: target is active, or token is
                already in a different terminal status
        """
        status = TokenStatus(status)
        with session_scope(self._session_factory) as session:
            tokens = TokenRepository(session)
            token = tokens.get_by_address(token_address)
            if token is None:
                raise TokenNotFound(token_address)

            previous = TokenStatus(token.status)
            if status is TokenStatus.ACTIVE and previous is not TokenStatus.ACTIVE:
                raise InvalidStatusTransition(token_address, previous.value, status.value)
            if previous.is_terminal and previous is not status:
                raise InvalidStatusTransition(token_address, previous.value, status.value)

            if previous is not status:
                migrated_at = utc_now() if status is TokenStatus.MIGRATED else None
                tokens.write_status(token, status.value, migrated_at=migrated_at)
                logger.info(f"Token {token_address}: {previous.value} -> {status.value}")
            view = TokenView.from_record(token)

        aggregation = self._aggregator.recompute(view.developer_id)
        return StatusChange(token=view, previous_status=previous, aggregation=aggregation)
