"""
Developer Tracking Data Models - Token lifecycle, stats and read views.

Views are detached dataclasses built from ORM records so callers
never hold live sessions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TokenStatus(Enum):
    """Lifecycle status of a launched token."""
    ACTIVE = "active"          # Non-terminal, still trading on the bonding venue
    MIGRATED = "migrated"      # Terminal success
    BONDED = "bonded"          # Terminal success
    FAILED = "failed"          # Terminal failure
    RUGGED = "rugged"          # Terminal failure
    ABANDONED = "abandoned"    # Terminal failure

    @property
    def is_terminal(self) -> bool:
        return self is not TokenStatus.ACTIVE

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES

    @property
    def is_success(self) -> bool:
        return self in (TokenStatus.MIGRATED, TokenStatus.BONDED)


FAILURE_STATUSES = frozenset({
    TokenStatus.FAILED,
    TokenStatus.RUGGED,
    TokenStatus.ABANDONED,
})


class AssociationMethod(Enum):
    """How a wallet was attributed to a developer."""
    PRIMARY = "primary"
    TRANSACTION_PATTERN = "transaction-pattern"
    MANUAL = "manual"
    SOCIAL_LINK = "social-link"


class DeveloperSortKey(Enum):
    """Orderings accepted by list_top_developers."""
    MIGRATION_RATE = "migrationRate"
    REPUTATION = "reputation"
    MIGRATED_COUNT = "migratedCount"


class RiskLevel(Enum):
    """Coarse risk bucket shown to users."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TokenView:
    """Detached token row."""
    id: int
    token_address: str
    developer_id: int
    status: TokenStatus
    name: Optional[str] = None
    symbol: Optional[str] = None
    launched_at: Optional[datetime] = None
    migrated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "TokenView":
        return cls(
            id=record.id,
            token_address=record.token_address,
            developer_id=record.developer_id,
            status=TokenStatus(record.status),
            name=record.name,
            symbol=record.symbol,
            launched_at=record.launched_at,
            migrated_at=record.migrated_at,
        )


@dataclass(frozen=True)
class DeveloperStats:
    """Counters and derived scores written back onto a developer."""
    total_tokens_launched: int
    migrated_tokens: int
    bonded_tokens: int
    failed_tokens: int
    migration_success_rate: int
    reputation_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tokens_launched": self.total_tokens_launched,
            "migrated_tokens": self.migrated_tokens,
            "bonded_tokens": self.bonded_tokens,
            "failed_tokens": self.failed_tokens,
            "migration_success_rate": self.migration_success_rate,
            "reputation_score": self.reputation_score,
        }


@dataclass(frozen=True)
class RiskAssessment:
    """Output of the risk detector."""
    is_suspicious: bool
    patterns: tuple[str, ...]
    risk_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_suspicious": self.is_suspicious,
            "patterns": list(self.patterns),
            "risk_score": self.risk_score,
        }


@dataclass(frozen=True)
class RiskProfile:
    """Risk level with the human-readable factors behind it."""
    level: RiskLevel
    factors: tuple[str, ...]


@dataclass(frozen=True)
class DeveloperView:
    """Detached developer row with derived stats."""
    id: int
    primary_wallet: str
    display_name: Optional[str]
    total_tokens_launched: int
    migrated_tokens: int
    bonded_tokens: int
    failed_tokens: int
    migration_success_rate: int
    reputation_score: int
    risk_score: int
    is_suspicious: bool
    risk_patterns: tuple[str, ...]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "DeveloperView":
        return cls(
            id=record.id,
            primary_wallet=record.primary_wallet,
            display_name=record.display_name,
            total_tokens_launched=record.total_tokens_launched,
            migrated_tokens=record.migrated_tokens,
            bonded_tokens=record.bonded_tokens,
            failed_tokens=record.failed_tokens,
            migration_success_rate=record.migration_success_rate,
            reputation_score=record.reputation_score,
            risk_score=record.risk_score,
            is_suspicious=record.is_suspicious,
            risk_patterns=tuple(record.risk_patterns or ()),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


@dataclass(frozen=True)
class WalletView:
    wallet_address: str
    developer_id: int
    confidence: int
    association_method: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SocialLinkView:
    platform: str
    handle: str
    external_user_id: Optional[str]
    linkage_type: str
    verified: bool


@dataclass(frozen=True)
class DeveloperProfile:
    """Developer with wallets, tokens (newest first) and social links."""
    developer: DeveloperView
    wallets: tuple[WalletView, ...] = field(default_factory=tuple)
    tokens: tuple[TokenView, ...] = field(default_factory=tuple)
    social_links: tuple[SocialLinkView, ...] = field(default_factory=tuple)
