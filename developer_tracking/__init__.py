"""
Developer Tracking Module.

Canonical developer identities, per-developer statistics and the
derived reputation and risk scores.

Usage:
    from developer_tracking import (
        IdentityResolver,
        StatisticsAggregator,
        DeveloperReadService,
    )

    resolver = IdentityResolver(session_factory)
    developer_id = resolver.resolve("7xKX...")

    aggregator = StatisticsAggregator(session_factory)
    result = aggregator.recompute(developer_id)
    print(f"Reputation: {result.stats.reputation_score}")
    print(f"Risk: {result.risk.risk_score} {result.risk.patterns}")

    reader = DeveloperReadService(session_factory)
    top = reader.list_top_developers("migrationRate", limit=20)

Pure scoring:
    from developer_tracking import score, migration_success_rate, detect_risk

    score(0, 0, 0, 0)                 # 10
    migration_success_rate(3, 2)      # 67
"""

from .config import RiskThresholds, TrackerConfig, get_config, set_config
from .exceptions import (
    AssociationBelowThreshold,
    DeveloperNotFound,
    DeveloperTrackingError,
    InvalidStatusTransition,
    StatsWriteConflict,
    TokenNotFound,
    WalletAlreadyAssociated,
)
from .models import (
    AssociationMethod,
    DeveloperProfile,
    DeveloperSortKey,
    DeveloperStats,
    DeveloperView,
    FAILURE_STATUSES,
    RiskAssessment,
    RiskLevel,
    RiskProfile,
    SocialLinkView,
    TokenStatus,
    TokenView,
    WalletView,
)
from .reputation import migration_success_rate, round_half_up, score
from .risk import assess_developer_risk, detect_risk, risk_level
from .identity import IdentityResolver, NullClusterer, WalletCandidate, WalletClusterer
from .aggregator import AggregationResult, StatisticsAggregator, derive_stats
from .read_service import DeveloperReadService, RiskReport

__all__ = [
    # Config
    "TrackerConfig",
    "RiskThresholds",
    "get_config",
    "set_config",
    # Exceptions
    "DeveloperTrackingError",
    "WalletAlreadyAssociated",
    "AssociationBelowThreshold",
    "DeveloperNotFound",
    "TokenNotFound",
    "InvalidStatusTransition",
    "StatsWriteConflict",
    # Models
    "TokenStatus",
    "FAILURE_STATUSES",
    "AssociationMethod",
    "DeveloperSortKey",
    "RiskLevel",
    "TokenView",
    "DeveloperStats",
    "RiskAssessment",
    "RiskProfile",
    "DeveloperView",
    "WalletView",
    "SocialLinkView",
    "DeveloperProfile",
    # Scoring
    "score",
    "migration_success_rate",
    "round_half_up",
    "detect_risk",
    "risk_level",
    "assess_developer_risk",
    # Services
    "IdentityResolver",
    "WalletClusterer",
    "NullClusterer",
    "WalletCandidate",
    "StatisticsAggregator",
    "AggregationResult",
    "derive_stats",
    "DeveloperReadService",
    "RiskReport",
]
