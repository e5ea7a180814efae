"""
Statistics Aggregator.

============================================================
RESPONSIBILITY
============================================================
Re-derives a developer's counters, reputation and risk from
the tokens it currently owns and writes them back in one
statement.

============================================================
DESIGN PRINCIPLES
============================================================
- Full re-derivation, never incremental counters. Replaying
  or repeating a recompute gives the same row.
- Recomputes of one developer are serialized in-process by a
  striped lock.
- The write is a compare-and-set on stats_version. If another
  writer updated the developer since the tokens were read,
  the recompute starts over with fresh data, so an older
  derivation never overwrites a newer one.

============================================================
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.orm import sessionmaker

from storage.database import session_scope
from storage.repositories import DeveloperRepository, RepositoryException, TokenRepository

from .config import TrackerConfig, get_config
from .exceptions import DeveloperNotFound, DeveloperTrackingError, StatsWriteConflict
from .models import DeveloperStats, RiskAssessment, TokenStatus, TokenView
from .reputation import migration_success_rate, score
from .risk import detect_risk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """Outcome of one recompute."""
    developer_id: int
    stats: DeveloperStats
    risk: RiskAssessment
    stats_version: int
    was_suspicious: bool

    @property
    def became_suspicious(self) -> bool:
        return self.risk.is_suspicious and not self.was_suspicious


def derive_stats(tokens: Sequence[TokenView]) -> DeveloperStats:
    """Count tokens by status bucket and derive the scores."""
    total = len(tokens)
    migrated = sum(1 for token in tokens if token.status is TokenStatus.MIGRATED)
    bonded = sum(1 for token in tokens if token.status is TokenStatus.BONDED)
    failed = sum(1 for token in tokens if token.status.is_failure)
    return DeveloperStats(
        total_tokens_launched=total,
        migrated_tokens=migrated,
        bonded_tokens=bonded,
        failed_tokens=failed,
        migration_success_rate=migration_success_rate(total, migrated),
        reputation_score=score(total, migrated, bonded, failed),
    )


class StatisticsAggregator:
    """Serialized, version-checked recomputation of developer stats."""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: Optional[TrackerConfig] = None,
        lock_stripes: int = 64,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or get_config()
        self._locks = [threading.Lock() for _ in range(max(1, lock_stripes))]

    def _lock_for(self, developer_id: int) -> threading.Lock:
        return self._locks[developer_id % len(self._locks)]

    def recompute(self, developer_id: int) -> AggregationResult:
        """
        Re-derive and persist one developer's statistics.

        Raises:
            DeveloperNotFound: unknown developer
            StatsWriteConflict: version kept changing on every attempt
        """
        attempts = max(1, self._config.stats_write_attempts)
        with self._lock_for(developer_id):
            for attempt in range(1, attempts + 1):
                result = self._recompute_once(developer_id)
                if result is not None:
                    logger.debug(
                        f"Developer {developer_id} stats v{result.stats_version}: "
                        f"{result.stats.to_dict()}"
                    )
                    return result
                logger.info(
                    f"Stats version conflict for developer {developer_id} "
                    f"(attempt {attempt}/{attempts}), re-deriving"
                )
        raise StatsWriteConflict(developer_id, attempts)

    def _recompute_once(self, developer_id: int) -> Optional[AggregationResult]:
        with session_scope(self._session_factory) as session:
            developers = DeveloperRepository(session)
            developer = developers.get_by_id(developer_id)
            if developer is None:
                raise DeveloperNotFound(developer_id)

            version = developer.stats_version
            was_suspicious = developer.is_suspicious
            tokens = [
                TokenView.from_record(record)
                for record in TokenRepository(session).list_for_developer(developer_id)
            ]
            stats = derive_stats(tokens)
            risk = detect_risk(tokens, self._config.risk)

            written = developers.write_stats(
                developer_id,
                version,
                risk_score=risk.risk_score,
                is_suspicious=risk.is_suspicious,
                risk_patterns=list(risk.patterns),
                **stats.to_dict(),
            )
            if not written:
                return None

        return AggregationResult(
            developer_id=developer_id,
            stats=stats,
            risk=risk,
            stats_version=version + 1,
            was_suspicious=was_suspicious,
        )

    def recompute_all(self) -> int:
        """
        Re-derive every developer.

        A developer that fails is logged and skipped.

        Returns:
            Number of developers updated
        """
        with session_scope(self._session_factory) as session:
            developer_ids = DeveloperRepository(session).list_ids()

        updated = 0
        for developer_id in developer_ids:
            try:
                self.recompute(developer_id)
                updated += 1
            except (DeveloperTrackingError, RepositoryException) as e:
                logger.error(f"Rescore failed for developer {developer_id}: {e}")
        logger.info(f"Rescored {updated}/{len(developer_ids)} developers")
        return updated
