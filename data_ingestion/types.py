"""
Data Ingestion - Type Definitions.

============================================================
PURPOSE
============================================================
Shared types for the data ingestion layer.

- Source tags, event kinds and source states
- Per-source configuration dataclasses
- Canonical launch / migration events
- Counters for monitoring
- Error types

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable data structures where possible
- Clear typing for all fields
- No business logic
- Serializable for monitoring

============================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


# =============================================================
# ENUMS
# =============================================================

class SourceTag(str, Enum):
    """Family of a raw payload; selects the normalizer."""
    ONCHAIN_FEED = "onchain-feed"
    INDEXER = "indexer"
    SOCIAL = "social"


class EventKind(str, Enum):
    """Variant of a canonical event."""
    NEW_TOKEN = "NewToken"
    MIGRATION = "Migration"


class SourceState(str, Enum):
    """
    Connection state of one event source.

    DISCONNECTED -> CONNECTING -> STREAMING | POLLING
    -> DISCONNECTED (on failure) -> CONNECTING (after backoff)
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    POLLING = "polling"


class PipelineOutcome(str, Enum):
    """What happened to one event in the pipeline."""
    APPLIED = "applied"
    DUPLICATE = "duplicate"


# =============================================================
# CONFIGURATION TYPES
# =============================================================

@dataclass(frozen=True)
class SourceConfig:
    """Base configuration for all event sources."""
    source_name: str
    enabled: bool = True
    polling_interval_seconds: float = 10.0
    max_retries: int = 3
    timeout_seconds: float = 30.0
    reconnect_attempts: int = 10
    backoff_max_seconds: float = 60.0


@dataclass(frozen=True)
class PumpPortalConfig(SourceConfig):
    """Configuration for the PumpPortal real-time websocket."""
    ws_url: str = "wss://pumpportal.fun/api/data"
    subscribe_new_tokens: bool = True
    subscribe_migrations: bool = True
    ping_interval_seconds: float = 20.0


@dataclass(frozen=True)
class MoralisConfig(SourceConfig):
    """Configuration for the Moralis graduated-token indexer."""
    api_key: str = ""
    base_url: str = "https://solana-gateway.moralis.io"
    exchange: str = "pumpfun"
    page_limit: int = 100
    backfill_max_pages: int = 10
    seen_mints_max_size: int = 5_000
    seen_mints_ttl_seconds: float = 6 * 3600


@dataclass(frozen=True)
class HeliusConfig(SourceConfig):
    """Configuration for the Helius RPC migration poller."""
    api_key: str = ""
    rpc_url: str = "https://mainnet.helius-rpc.com"
    api_base_url: str = "https://api.helius.xyz"
    program_id: str = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"
    signature_limit: int = 50
    catchup_max_pages: int = 10


@dataclass(frozen=True)
class TwitterConfig(SourceConfig):
    """Configuration for the Twitter recent-search social source."""
    bearer_token: str = ""
    base_url: str = "https://api.twitter.com/2"
    query: str = "pump.fun (launched OR launching) -is:retweet"
    max_results: int = 50


# =============================================================
# CANONICAL EVENTS
# =============================================================

@dataclass(frozen=True)
class CanonicalEvent(ABC):
    """
    Provider-independent event.

    event_id is the provider's stable id for the real-world
    event (a transaction signature or a post id) and is the
    deduplication key. transaction_signature is set only when the
    event is backed by an on-chain transaction.
    """
    event_id: str
    token_address: str
    actor_wallet: str
    timestamp: datetime
    source: SourceTag

    name: Optional[str] = None
    symbol: Optional[str] = None
    from_platform: Optional[str] = None
    to_platform: Optional[str] = None
    social_handle: Optional[str] = None
    social_user_id: Optional[str] = None
    transaction_signature: Optional[str] = None

    @property
    @abstractmethod
    def kind(self) -> EventKind:
        ...

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "event_id": self.event_id,
            "token_address": self.token_address,
            "actor_wallet": self.actor_wallet,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class LaunchEvent(CanonicalEvent):
    """A token was created by actor_wallet."""

    @property
    def kind(self) -> EventKind:
        return EventKind.NEW_TOKEN


@dataclass(frozen=True)
class MigrationEvent(CanonicalEvent):
    """A token left its bonding venue."""

    @property
    def kind(self) -> EventKind:
        return EventKind.MIGRATION


# =============================================================
# METRIC TYPES
# =============================================================

@dataclass
class SourceStats:
    """Counters for one event source."""
    source_name: str
    state: SourceState = SourceState.DISCONNECTED

    received: int = 0
    applied: int = 0
    duplicates: int = 0
    rejected: int = 0
    failed: int = 0
    reconnects: int = 0

    last_event_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "source": self.source_name,
            "state": self.state.value,
            "received": self.received,
            "applied": self.applied,
            "duplicates": self.duplicates,
            "rejected": self.rejected,
            "failed": self.failed,
            "reconnects": self.reconnects,
            "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
            "last_error": self.last_error,
        }


@dataclass
class IngestionStats:
    """Aggregated counters for the ingestion service."""
    sources: Dict[str, SourceStats] = field(default_factory=dict)

    def for_source(self, source_name: str) -> SourceStats:
        if source_name not in self.sources:
            self.sources[source_name] = SourceStats(source_name=source_name)
        return self.sources[source_name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_applied": sum(s.applied for s in self.sources.values()),
            "total_failed": sum(s.failed for s in self.sources.values()),
            "sources": {name: s.to_dict() for name, s in self.sources.items()},
        }


# =============================================================
# ERROR TYPES
# =============================================================

class IngestionError(Exception):
    """Base exception for ingestion errors."""

    def __init__(
        self,
        message: str,
        source: str,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.recoverable = recoverable
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source": self.source,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class MalformedEvent(IngestionError):
    """Payload lacks a token address or a resolvable actor wallet."""

    def __init__(self, message: str, source: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, source, recoverable=False, details=details)


class UnidentifiableEvent(IngestionError):
    """Payload carries no stable event id; it cannot be deduplicated."""

    def __init__(self, message: str, source: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, source, recoverable=False, details=details)


class SourceUnavailable(IngestionError):
    """External source connection or poll failed."""

    def __init__(
        self,
        message: str,
        source: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, source, recoverable=True, details=details)
        self.status_code = status_code
