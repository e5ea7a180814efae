"""
Data Ingestion Configuration - Source settings and pipeline sizing.

Values are read from environment variables after loading .env.
A source whose credentials are missing is disabled instead of
failing at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from .types import HeliusConfig, MoralisConfig, PumpPortalConfig, TwitterConfig

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class IngestionConfig:
    """Main configuration for the ingestion service."""

    # Deduplication
    dedup_max_size: int = 100_000
    dedup_ttl_seconds: float = 86_400.0

    # Creator cache
    creator_cache_max_size: int = 50_000
    creator_cache_ttl_seconds: float = 7 * 86_400.0

    # Sources
    pumpportal: PumpPortalConfig = field(
        default_factory=lambda: PumpPortalConfig(source_name="pumpportal")
    )
    moralis: MoralisConfig = field(
        default_factory=lambda: MoralisConfig(source_name="moralis", enabled=False)
    )
    helius: HeliusConfig = field(
        default_factory=lambda: HeliusConfig(source_name="helius", enabled=False)
    )
    twitter: TwitterConfig = field(
        default_factory=lambda: TwitterConfig(source_name="twitter", enabled=False)
    )

    @classmethod
    def from_env(cls) -> "IngestionConfig":
        poll_interval = _env_float("DEVTRACKER_POLL_INTERVAL_SECONDS", 10.0)
        reconnect_attempts = _env_int("DEVTRACKER_RECONNECT_ATTEMPTS", 10)
        backoff_max = _env_float("DEVTRACKER_BACKOFF_MAX_SECONDS", 60.0)

        moralis_key = os.environ.get("MORALIS_API_KEY", "")
        helius_key = os.environ.get("HELIUS_API_KEY", "")
        twitter_token = os.environ.get("TWITTER_BEARER_TOKEN", "")

        return cls(
            dedup_max_size=_env_int("DEVTRACKER_DEDUP_MAX_SIZE", 100_000),
            dedup_ttl_seconds=_env_float("DEVTRACKER_DEDUP_TTL_SECONDS", 86_400.0),
            creator_cache_max_size=_env_int("DEVTRACKER_CREATOR_CACHE_SIZE", 50_000),
            creator_cache_ttl_seconds=_env_float("DEVTRACKER_CREATOR_CACHE_TTL_SECONDS", 7 * 86_400.0),
            pumpportal=PumpPortalConfig(
                source_name="pumpportal",
                enabled=_env_bool("DEVTRACKER_PUMPPORTAL_ENABLED", True),
                reconnect_attempts=reconnect_attempts,
                backoff_max_seconds=backoff_max,
                ws_url=os.environ.get("PUMPPORTAL_WS_URL", "wss://pumpportal.fun/api/data"),
            ),
            moralis=MoralisConfig(
                source_name="moralis",
                enabled=bool(moralis_key) and _env_bool("DEVTRACKER_MORALIS_ENABLED", True),
                polling_interval_seconds=_env_float("DEVTRACKER_MORALIS_POLL_SECONDS", 60.0),
                reconnect_attempts=reconnect_attempts,
                backoff_max_seconds=backoff_max,
                api_key=moralis_key,
            ),
            helius=HeliusConfig(
                source_name="helius",
                enabled=bool(helius_key) and _env_bool("DEVTRACKER_HELIUS_ENABLED", True),
                polling_interval_seconds=poll_interval,
                reconnect_attempts=reconnect_attempts,
                backoff_max_seconds=backoff_max,
                api_key=helius_key,
                rpc_url=os.environ.get("HELIUS_RPC_URL", "https://mainnet.helius-rpc.com"),
            ),
            twitter=TwitterConfig(
                source_name="twitter",
                enabled=bool(twitter_token) and _env_bool("DEVTRACKER_TWITTER_ENABLED", True),
                polling_interval_seconds=_env_float("DEVTRACKER_TWITTER_POLL_SECONDS", 60.0),
                reconnect_attempts=reconnect_attempts,
                backoff_max_seconds=backoff_max,
                bearer_token=twitter_token,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Secrets are reported as configured / not configured only."""
        return {
            "dedup_max_size": self.dedup_max_size,
            "dedup_ttl_seconds": self.dedup_ttl_seconds,
            "creator_cache_max_size": self.creator_cache_max_size,
            "creator_cache_ttl_seconds": self.creator_cache_ttl_seconds,
            "sources": {
                "pumpportal": {"enabled": self.pumpportal.enabled, "ws_url": self.pumpportal.ws_url},
                "moralis": {"enabled": self.moralis.enabled, "api_key_set": bool(self.moralis.api_key)},
                "helius": {"enabled": self.helius.enabled, "api_key_set": bool(self.helius.api_key)},
                "twitter": {"enabled": self.twitter.enabled, "bearer_token_set": bool(self.twitter.bearer_token)},
            },
        }


# Default configuration instance
_default_config: Optional[IngestionConfig] = None


def get_config() -> IngestionConfig:
    """Get the default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = IngestionConfig.from_env()
    return _default_config


def set_config(config: IngestionConfig) -> None:
    """Set the default configuration."""
    global _default_config
    _default_config = config
