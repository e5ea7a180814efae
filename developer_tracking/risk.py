"""
Risk Detector - Suspicious launch pattern scan.

Rules are independent. Their points add up and the total is
clamped to 100:

    high failure rate            +40  (>50% failed, at least 3 tokens)
    multiple rug pulls           +50  (2 or more rugged)
    rapid launch/abandon         +30  (3+ abandoned among the 5 newest)
    no successful migrations     +20  (none migrated, at least 5 tokens)

A developer is suspicious at a risk score of 50 or more.
"""

from datetime import datetime
from typing import Optional, Sequence

from .config import RiskThresholds
from .models import (
    FAILURE_STATUSES,
    RiskAssessment,
    RiskLevel,
    RiskProfile,
    TokenStatus,
    TokenView,
)

MAX_RISK = 100
LOW_REPUTATION_THRESHOLD = 30


def _recency_key(token: TokenView) -> tuple:
    # Tokens without a launch time count as oldest
    launched = token.launched_at or datetime.min
    return (token.launched_at is not None, launched, token.id)


def detect_risk(
    tokens: Sequence[TokenView],
    thresholds: Optional[RiskThresholds] = None,
) -> RiskAssessment:
    """
    Scan a developer's token history.

    Args:
        tokens: Every token owned by the developer, any order
        thresholds: Rule thresholds (defaults apply if omitted)

    Returns:
        RiskAssessment with matched patterns in rule order
    """
    t = thresholds or RiskThresholds()
    total = len(tokens)
    patterns: list[str] = []
    risk = 0

    failed = sum(1 for token in tokens if token.status in FAILURE_STATUSES)
    if total >= t.failure_rate_min_tokens and failed / total > t.failure_rate_threshold:
        risk += t.failure_rate_points
        patterns.append("high failure rate")

    rugged = sum(1 for token in tokens if token.status is TokenStatus.RUGGED)
    if rugged >= t.rug_count_threshold:
        risk += t.rug_points
        patterns.append(f"multiple rug pulls ({rugged})")

    recent = sorted(tokens, key=_recency_key, reverse=True)[:t.recent_window]
    recent_abandoned = sum(1 for token in recent if token.status is TokenStatus.ABANDONED)
    if recent_abandoned >= t.recent_abandoned_threshold:
        risk += t.abandon_points
        patterns.append("rapid launch/abandon pattern")

    migrated = any(token.status is TokenStatus.MIGRATED for token in tokens)
    if not migrated and total >= t.no_migration_min_tokens:
        risk += t.no_migration_points
        patterns.append("no successful migrations")

    risk = min(risk, MAX_RISK)
    return RiskAssessment(
        is_suspicious=risk >= t.suspicious_threshold,
        patterns=tuple(patterns),
        risk_score=risk,
    )


def risk_level(risk_score: int) -> RiskLevel:
    if risk_score >= 80:
        return RiskLevel.CRITICAL
    if risk_score >= 60:
        return RiskLevel.HIGH
    if risk_score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess_developer_risk(assessment: RiskAssessment, reputation_score: int) -> RiskProfile:
    """Bucket a risk assessment and list the factors behind it."""
    factors = list(assessment.patterns)
    if reputation_score < LOW_REPUTATION_THRESHOLD:
        factors.append("Low reputation score")
    return RiskProfile(level=risk_level(assessment.risk_score), factors=tuple(factors))
