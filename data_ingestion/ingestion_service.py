"""
Data Ingestion - Ingestion Service.

============================================================
RESPONSIBILITY
============================================================
Orchestrates event ingestion for developer tracking.

- Runs every enabled event source as its own asyncio task
- Normalizes each raw payload and runs it through the pipeline
- Publishes developer alerts for launches, migrations,
  newly suspicious developers and rug pulls
- Exposes the developer read operations and ingestion counters

============================================================
DESIGN PRINCIPLES
============================================================
- Failure isolation: a bad event is logged, counted and
  dropped; the source keeps streaming
- Failure isolation between sources: each source reconnects
  on its own schedule
- The synchronous pipeline runs in worker threads so one slow
  database write never stalls a websocket reader
- Shutdown lets in-flight pipeline runs finish

============================================================
WORKFLOW
============================================================
1. Build sources, normalizer and pipeline from configuration
2. start(): launch the dispatcher and one task per source
3. For each payload:
   a. Normalize (MalformedEvent / UnidentifiableEvent -> rejected)
   b. Pipeline: dedup -> resolve -> token upsert -> recompute
   c. Publish notifications for the outcome
4. stop(): stop sources, await in-flight runs, drain alerts

============================================================
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import sessionmaker

from developer_tracking import (
    DeveloperProfile,
    DeveloperReadService,
    DeveloperSortKey,
    DeveloperView,
    IdentityResolver,
    RiskReport,
    StatisticsAggregator,
    TokenStatus,
    TrackerConfig,
    WalletClusterer,
)
from developer_tracking import get_config as get_tracker_config
from notifications import (
    NotificationConfig,
    NotificationDispatcher,
    build_sinks,
    launch_notification,
    migration_notification,
    rug_pull_notification,
    suspicious_notification,
)
from notifications import get_config as get_notification_config
from storage.models.base import utc_now

from .collectors import (
    EventSource,
    HeliusMigrationSource,
    MoralisGraduatedSource,
    PumpPortalSource,
    TwitterSearchSource,
)
from .config import IngestionConfig
from .config import get_config as get_ingestion_config
from .creator_cache import CreatorCache
from .deduplicator import EventDeduplicator
from .normalizers import PayloadNormalizer
from .pipeline import EventPipeline, PipelineResult, StatusChange
from .types import (
    CanonicalEvent,
    EventKind,
    IngestionStats,
    MalformedEvent,
    PipelineOutcome,
    SourceStats,
    SourceTag,
    UnidentifiableEvent,
)


logger = logging.getLogger(__name__)


class IngestionService:
    """
    Orchestrates developer-tracking ingestion.

    ============================================================
    USAGE
    ============================================================
    ```python
    session_factory = initialize_database()
    service = IngestionService.from_config(session_factory)

    await service.start()
    ...
    await service.stop()

    service.list_top_developers(DeveloperSortKey.REPUTATION, 10)
    ```

    ============================================================
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        pipeline: EventPipeline,
        normalizer: PayloadNormalizer,
        read_service: DeveloperReadService,
        aggregator: StatisticsAggregator,
        sources: Optional[List[EventSource]] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        deduplicator: Optional[EventDeduplicator] = None,
        creator_cache: Optional[CreatorCache] = None,
    ) -> None:
        self._session_factory = session_factory
        self._pipeline = pipeline
        self._normalizer = normalizer
        self._read_service = read_service
        self._aggregator = aggregator
        self._dispatcher = dispatcher
        self._dedup = deduplicator
        self._creator_cache = creator_cache

        self._sources: Dict[str, EventSource] = {}
        self._stats = IngestionStats()
        for source in sources or []:
            self.register_source(source)

        self._tasks: Dict[str, asyncio.Task] = {}
        self._in_flight: Set[asyncio.Future] = set()
        self._running = False

    @classmethod
    def from_config(
        cls,
        session_factory: sessionmaker,
        ingestion_config: Optional[IngestionConfig] = None,
        tracker_config: Optional[TrackerConfig] = None,
        notification_config: Optional[NotificationConfig] = None,
        clusterer: Optional[WalletClusterer] = None,
    ) -> "IngestionService":
        """Wire the full pipeline and every configured source."""
        ingestion_config = ingestion_config or get_ingestion_config()
        tracker_config = tracker_config or get_tracker_config()
        notification_config = notification_config or get_notification_config()

        deduplicator = EventDeduplicator(
            max_size=ingestion_config.dedup_max_size,
            ttl_seconds=ingestion_config.dedup_ttl_seconds,
        )
        creator_cache = CreatorCache(
            max_size=ingestion_config.creator_cache_max_size,
            ttl_seconds=ingestion_config.creator_cache_ttl_seconds,
        )
        resolver = IdentityResolver(session_factory, tracker_config, clusterer)
        aggregator = StatisticsAggregator(
            session_factory,
            tracker_config,
            lock_stripes=tracker_config.wallet_lock_stripes,
        )
        pipeline = EventPipeline(session_factory, deduplicator, resolver, aggregator)

        sources: List[EventSource] = [
            PumpPortalSource(ingestion_config.pumpportal),
            HeliusMigrationSource(ingestion_config.helius),
            MoralisGraduatedSource(ingestion_config.moralis, creator_cache),
            TwitterSearchSource(ingestion_config.twitter),
        ]

        dispatcher = NotificationDispatcher(
            build_sinks(notification_config, session_factory),
            queue_size=notification_config.queue_size,
        )

        return cls(
            session_factory=session_factory,
            pipeline=pipeline,
            normalizer=PayloadNormalizer(creator_cache),
            read_service=DeveloperReadService(session_factory, tracker_config),
            aggregator=aggregator,
            sources=sources,
            dispatcher=dispatcher,
            deduplicator=deduplicator,
            creator_cache=creator_cache,
        )

    # =========================================================
    # SOURCE REGISTRY
    # =========================================================

    def register_source(self, source: EventSource) -> None:
        if source.name in self._sources:
            raise ValueError(f"Source {source.name} already registered")
        self._sources[source.name] = source
        self._stats.sources[source.name] = source.stats

    def get_source(self, name: str) -> Optional[EventSource]:
        return self._sources.get(name)

    @property
    def source_names(self) -> List[str]:
        return list(self._sources)

    @property
    def read_service(self) -> DeveloperReadService:
        return self._read_service

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================
    # LIFECYCLE
    # =========================================================

    async def start(self) -> None:
        """Start the dispatcher and one task per enabled source."""
        if self._running:
            logger.warning("Ingestion service already running")
            return
        self._running = True

        await self.start_notifications()

        for name, source in self._sources.items():
            if not source.is_enabled:
                logger.info(f"Source {name} disabled, skipping")
                continue
            self._tasks[name] = asyncio.create_task(
                source.run(self._handle_payload),
                name=f"source-{name}",
            )

        logger.info(f"Ingestion service started with sources: {list(self._tasks)}")

    async def wait(self) -> None:
        """Block until every source task has ended."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        """Stop sources, let in-flight events finish, drain notifications."""
        if not self._running:
            return
        self._running = False

        for source in self._sources.values():
            source.stop()
        for task in self._tasks.values():
            task.cancel()
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for name, result in zip(self._tasks, results):
            if isinstance(result, Exception):
                logger.error(f"Source {name} ended with error: {result}")
        self._tasks.clear()

        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight events")
            await asyncio.gather(*self._in_flight, return_exceptions=True)

        await self.stop_notifications()

        logger.info(f"Ingestion service stopped: {self._stats.to_dict()}")

    async def start_notifications(self) -> None:
        """Start alert delivery without starting sources (one-shot modes)."""
        if self._dispatcher is not None:
            await self._dispatcher.start()

    async def stop_notifications(self) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.stop()

    # =========================================================
    # EVENT HANDLING
    # =========================================================

    async def _handle_payload(self, source: EventSource, payload: Dict[str, Any]) -> None:
        await self.ingest_payload(payload, source.source_tag, source.stats)

    async def ingest_payload(
        self,
        payload: Dict[str, Any],
        source_tag: SourceTag,
        stats: Optional[SourceStats] = None,
    ) -> Optional[PipelineResult]:
        """Normalize one raw payload and process it. Never raises for a bad event."""
        stats = stats or self._stats.for_source(SourceTag(source_tag).value)
        try:
            event = self._normalizer.normalize(payload, source_tag)
        except (MalformedEvent, UnidentifiableEvent) as e:
            stats.rejected += 1
            logger.warning(f"Rejected {SourceTag(source_tag).value} payload: {e.message}")
            return None
        except Exception as e:
            stats.rejected += 1
            stats.last_error = str(e)
            logger.error(f"Could not normalize {SourceTag(source_tag).value} payload: {e}", exc_info=True)
            return None
        return await self.submit(event, stats)

    async def submit(
        self,
        event: CanonicalEvent,
        stats: Optional[SourceStats] = None,
    ) -> Optional[PipelineResult]:
        """
        Run one canonical event through the pipeline.

        Returns the pipeline result, or None when the event failed.
        """
        stats = stats or self._stats.for_source(event.source.value)

        future = asyncio.ensure_future(asyncio.to_thread(self._pipeline.process, event))
        self._in_flight.add(future)
        future.add_done_callback(self._in_flight.discard)

        try:
            # Shielded so a source cancellation does not orphan the worker thread
            result = await asyncio.shield(future)
        except Exception as e:
            stats.failed += 1
            stats.last_error = str(e)
            logger.error(f"Failed to process {event.kind.value} {event.event_id}: {e}")
            return None

        stats.last_event_at = utc_now()
        if result.outcome is PipelineOutcome.DUPLICATE:
            stats.duplicates += 1
        else:
            stats.applied += 1
            self._publish_for(result)
        return result

    def _publish_for(self, result: PipelineResult) -> None:
        if self._dispatcher is None or result.applied is None:
            return

        applied = result.applied
        if applied.token_created and result.event.kind is EventKind.NEW_TOKEN:
            self._dispatcher.publish(launch_notification(applied.token))
        if applied.migrated_now:
            self._dispatcher.publish(migration_notification(
                applied.token,
                result.event.from_platform,
                result.event.to_platform,
            ))
        if result.aggregation is not None and result.aggregation.became_suspicious:
            self._dispatcher.publish(suspicious_notification(result.aggregation))

    # =========================================================
    # BACKFILL / TRIAGE / RESCORE
    # =========================================================

    async def backfill(self, source_name: str, max_pages: Optional[int] = None) -> SourceStats:
        """
        Replay a restartable source's history through the pipeline.

        Raises:
            KeyError: unknown source
            ValueError: source cannot backfill
        """
        source = self._sources.get(source_name)
        if source is None:
            raise KeyError(f"Unknown source: {source_name}")
        if not source.supports_backfill:
            raise ValueError(f"Source {source_name} does not support backfill")

        stats = self._stats.for_source(f"{source_name}-backfill")
        logger.info(f"Backfilling {source_name} (max_pages={max_pages})")
        async for payload in source.backfill(max_pages):
            stats.received += 1
            await self.ingest_payload(payload, source.source_tag, stats)

        logger.info(f"Backfill of {source_name} complete: {stats.to_dict()}")
        return stats

    async def update_token_status(self, token_address: str, status: TokenStatus) -> StatusChange:
        """Manual triage; publishes rug-pull and suspicious alerts."""
        change = await asyncio.to_thread(self._pipeline.update_token_status, token_address, status)

        if self._dispatcher is not None:
            if change.token.status is TokenStatus.RUGGED and change.previous_status is not TokenStatus.RUGGED:
                self._dispatcher.publish(rug_pull_notification(change.token))
            if change.aggregation.became_suspicious:
                self._dispatcher.publish(suspicious_notification(change.aggregation))
        return change

    async def rescore(self) -> int:
        """Recompute stats, reputation and risk for every developer."""
        return await asyncio.to_thread(self._aggregator.recompute_all)

    # =========================================================
    # READ OPERATIONS
    # =========================================================

    def get_developer(self, developer_id: int) -> Optional[DeveloperView]:
        return self._read_service.get_developer(developer_id)

    def get_developer_by_wallet(self, wallet: str) -> Optional[DeveloperView]:
        return self._read_service.get_developer_by_wallet(wallet)

    def get_developer_by_token(self, token_address: str) -> Optional[DeveloperView]:
        return self._read_service.get_developer_by_token(token_address)

    def list_top_developers(
        self,
        sort_by: DeveloperSortKey = DeveloperSortKey.REPUTATION,
        limit: Optional[int] = None,
    ) -> List[DeveloperView]:
        return self._read_service.list_top_developers(sort_by, limit)

    def search_developers(self, query: str, limit: Optional[int] = None) -> List[DeveloperView]:
        return self._read_service.search_developers(query, limit)

    def get_developer_profile(self, developer_id: int) -> Optional[DeveloperProfile]:
        return self._read_service.get_developer_profile(developer_id)

    def get_risk_report(self, developer_id: int) -> Optional[RiskReport]:
        return self._read_service.get_risk_report(developer_id)

    # =========================================================
    # HEALTH & METRICS
    # =========================================================

    def stats(self) -> Dict[str, Any]:
        data = self._stats.to_dict()
        data["running"] = self._running
        if self._dedup is not None:
            data["dedup_size"] = len(self._dedup)
        if self._creator_cache is not None:
            data["creator_cache_size"] = len(self._creator_cache)
        if self._dispatcher is not None:
            data["notifications"] = self._dispatcher.stats()
        return data
