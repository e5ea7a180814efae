"""
Developer Tracking Configuration - Scoring thresholds and identity settings.

All thresholds are configurable for tuning. Values are read from
environment variables (DEVTRACKER_*) after loading .env.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


@dataclass
class RiskThresholds:
    """Rule thresholds of the risk detector."""

    # High failure rate
    failure_rate_threshold: float = 0.5
    failure_rate_min_tokens: int = 3
    failure_rate_points: int = 40

    # Multiple rug pulls
    rug_count_threshold: int = 2
    rug_points: int = 50

    # Rapid launch/abandon among the most recent launches
    recent_window: int = 5
    recent_abandoned_threshold: int = 3
    abandon_points: int = 30

    # Never migrated
    no_migration_min_tokens: int = 5
    no_migration_points: int = 20

    suspicious_threshold: int = 50

    def to_dict(self) -> dict[str, Any]:
        return {
            "failure_rate_threshold": self.failure_rate_threshold,
            "failure_rate_min_tokens": self.failure_rate_min_tokens,
            "rug_count_threshold": self.rug_count_threshold,
            "recent_window": self.recent_window,
            "recent_abandoned_threshold": self.recent_abandoned_threshold,
            "no_migration_min_tokens": self.no_migration_min_tokens,
            "suspicious_threshold": self.suspicious_threshold,
        }


@dataclass
class TrackerConfig:
    """Main configuration for developer tracking."""

    # Identity resolution
    association_threshold: int = 70     # Minimum confidence to link a wallet
    wallet_lock_stripes: int = 64

    # Aggregation
    stats_write_attempts: int = 5

    # Read API
    default_list_limit: int = 50
    max_list_limit: int = 500

    risk: RiskThresholds = field(default_factory=RiskThresholds)

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        return cls(
            association_threshold=_env_int("DEVTRACKER_ASSOCIATION_THRESHOLD", 70),
            wallet_lock_stripes=_env_int("DEVTRACKER_WALLET_LOCK_STRIPES", 64),
            stats_write_attempts=_env_int("DEVTRACKER_STATS_WRITE_ATTEMPTS", 5),
            default_list_limit=_env_int("DEVTRACKER_DEFAULT_LIST_LIMIT", 50),
            max_list_limit=_env_int("DEVTRACKER_MAX_LIST_LIMIT", 500),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "association_threshold": self.association_threshold,
            "wallet_lock_stripes": self.wallet_lock_stripes,
            "stats_write_attempts": self.stats_write_attempts,
            "default_list_limit": self.default_list_limit,
            "max_list_limit": self.max_list_limit,
            "risk": self.risk.to_dict(),
        }


# Default configuration instance
_default_config: Optional[TrackerConfig] = None


def get_config() -> TrackerConfig:
    """Get the default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = TrackerConfig.from_env()
    return _default_config


def set_config(config: TrackerConfig) -> None:
    """Set the default configuration."""
    global _default_config
    _default_config = config
