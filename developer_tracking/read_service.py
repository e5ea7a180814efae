"""
Developer Read Service - Queries behind the dashboard and extension.

Every method opens its own read-only session and returns detached
views, so results stay valid after the session closes.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import asc, desc
from sqlalchemy.orm import sessionmaker

from storage.database import read_scope
from storage.models import DeveloperRecord
from storage.repositories import (
    DeveloperRepository,
    SocialLinkRepository,
    TokenRepository,
    WalletAssociationRepository,
)

from .config import TrackerConfig, get_config
from .models import (
    DeveloperProfile,
    DeveloperSortKey,
    DeveloperView,
    RiskAssessment,
    RiskLevel,
    SocialLinkView,
    TokenView,
    WalletView,
)
from .risk import assess_developer_risk

logger = logging.getLogger(__name__)


# Ties always fall back to the oldest developer first
_SORT_ORDERS = {
    DeveloperSortKey.MIGRATION_RATE: (
        desc(DeveloperRecord.migration_success_rate),
        desc(DeveloperRecord.migrated_tokens),
        asc(DeveloperRecord.id),
    ),
    DeveloperSortKey.REPUTATION: (
        desc(DeveloperRecord.reputation_score),
        asc(DeveloperRecord.id),
    ),
    DeveloperSortKey.MIGRATED_COUNT: (
        desc(DeveloperRecord.migrated_tokens),
        asc(DeveloperRecord.id),
    ),
}


@dataclass(frozen=True)
class RiskReport:
    """Stored risk assessment with its level and factors."""
    developer_id: int
    risk_score: int
    is_suspicious: bool
    patterns: tuple[str, ...]
    level: RiskLevel
    factors: tuple[str, ...]


class DeveloperReadService:
    """Read operations over aggregated developer data."""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: Optional[TrackerConfig] = None,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or get_config()

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self._config.default_list_limit
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        return min(limit, self._config.max_list_limit)

    def get_developer(self, developer_id: int) -> Optional[DeveloperView]:
        with read_scope(self._session_factory) as session:
            record = DeveloperRepository(session).get_by_id(developer_id)
            return DeveloperView.from_record(record) if record else None

    def get_developer_by_wallet(self, wallet: str) -> Optional[DeveloperView]:
        """Developer owning a primary or associated wallet."""
        with read_scope(self._session_factory) as session:
            record = DeveloperRepository(session).get_by_wallet(wallet)
            return DeveloperView.from_record(record) if record else None

    def get_developer_by_token(self, token_address: str) -> Optional[DeveloperView]:
        with read_scope(self._session_factory) as session:
            record = DeveloperRepository(session).get_by_token(token_address)
            return DeveloperView.from_record(record) if record else None

    def list_top_developers(
        self,
        sort_by: Union[DeveloperSortKey, str] = DeveloperSortKey.REPUTATION,
        limit: Optional[int] = None,
    ) -> list[DeveloperView]:
        """
        Top developers by the given key.

        Args:
            sort_by: "migrationRate", "reputation" or "migratedCount"
            limit: Maximum results, capped at max_list_limit

        Raises:
            ValueError: unknown sort key or non-positive limit
        """
        key = DeveloperSortKey(sort_by)
        limit = self._clamp_limit(limit)
        with read_scope(self._session_factory) as session:
            records = DeveloperRepository(session).list_ordered(list(_SORT_ORDERS[key]), limit)
            return [DeveloperView.from_record(record) for record in records]

    def search_developers(self, query: str, limit: Optional[int] = None) -> list[DeveloperView]:
        """Substring search over display names and wallets."""
        query = (query or "").strip()
        if not query:
            return []
        limit = self._clamp_limit(limit)
        with read_scope(self._session_factory) as session:
            records = DeveloperRepository(session).search(query, limit)
            return [DeveloperView.from_record(record) for record in records]

    def get_developer_profile(self, developer_id: int) -> Optional[DeveloperProfile]:
        """Developer with wallets, tokens (newest first) and social links."""
        with read_scope(self._session_factory) as session:
            record = DeveloperRepository(session).get_by_id(developer_id)
            if record is None:
                return None

            wallets = tuple(
                WalletView(
                    wallet_address=w.wallet_address,
                    developer_id=w.developer_id,
                    confidence=w.confidence,
                    association_method=w.association_method,
                    created_at=w.created_at,
                )
                for w in WalletAssociationRepository(session).list_for_developer(developer_id)
            )
            tokens = tuple(
                TokenView.from_record(t)
                for t in TokenRepository(session).list_for_developer(developer_id, newest_first=True)
            )
            links = tuple(
                SocialLinkView(
                    platform=link.platform,
                    handle=link.handle,
                    external_user_id=link.external_user_id,
                    linkage_type=link.linkage_type,
                    verified=link.verified,
                )
                for link in SocialLinkRepository(session).list_for_developer(developer_id)
            )
            return DeveloperProfile(
                developer=DeveloperView.from_record(record),
                wallets=wallets,
                tokens=tokens,
                social_links=links,
            )

    def get_risk_report(self, developer_id: int) -> Optional[RiskReport]:
        developer = self.get_developer(developer_id)
        if developer is None:
            return None
        assessment = RiskAssessment(
            is_suspicious=developer.is_suspicious,
            patterns=developer.risk_patterns,
            risk_score=developer.risk_score,
        )
        profile = assess_developer_risk(assessment, developer.reputation_score)
        return RiskReport(
            developer_id=developer_id,
            risk_score=developer.risk_score,
            is_suspicious=developer.is_suspicious,
            patterns=developer.risk_patterns,
            level=profile.level,
            factors=profile.factors,
        )
