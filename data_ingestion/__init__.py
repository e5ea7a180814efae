"""
Data Ingestion Package.

This package turns raw provider payloads into developer and
token records.

Sub-packages:
- collectors: Event sources (websocket and HTTP polling)
- normalizers: Raw payload -> canonical launch / migration event

Main service:
- ingestion_service: Orchestrates sources, pipeline and alerts
"""

from data_ingestion.collectors import (
    EventSource,
    HeliusMigrationSource,
    HttpPollingSource,
    MoralisGraduatedSource,
    PumpPortalSource,
    TwitterSearchSource,
)
from data_ingestion.config import IngestionConfig, get_config, set_config
from data_ingestion.creator_cache import CreatorCache
from data_ingestion.deduplicator import EventDeduplicator
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.normalizers import PayloadNormalizer
from data_ingestion.pipeline import AppliedEvent, EventPipeline, PipelineResult, StatusChange
from data_ingestion.types import (
    CanonicalEvent,
    EventKind,
    HeliusConfig,
    IngestionError,
    IngestionStats,
    LaunchEvent,
    MalformedEvent,
    MigrationEvent,
    MoralisConfig,
    PipelineOutcome,
    PumpPortalConfig,
    SourceConfig,
    SourceState,
    SourceStats,
    SourceTag,
    SourceUnavailable,
    TwitterConfig,
    UnidentifiableEvent,
)


__all__ = [
    # Service
    "IngestionService",
    "IngestionConfig",
    "get_config",
    "set_config",
    # Pipeline
    "EventPipeline",
    "PipelineResult",
    "AppliedEvent",
    "StatusChange",
    "EventDeduplicator",
    "CreatorCache",
    "PayloadNormalizer",
    # Sources
    "EventSource",
    "HttpPollingSource",
    "PumpPortalSource",
    "HeliusMigrationSource",
    "MoralisGraduatedSource",
    "TwitterSearchSource",
    # Types - Enums
    "SourceTag",
    "EventKind",
    "SourceState",
    "PipelineOutcome",
    # Types - Configs
    "SourceConfig",
    "PumpPortalConfig",
    "MoralisConfig",
    "HeliusConfig",
    "TwitterConfig",
    # Types - Events
    "CanonicalEvent",
    "LaunchEvent",
    "MigrationEvent",
    # Types - Metrics
    "SourceStats",
    "IngestionStats",
    # Types - Errors
    "IngestionError",
    "MalformedEvent",
    "UnidentifiableEvent",
    "SourceUnavailable",
]
