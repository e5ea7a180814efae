"""
Notification builders.

Turn pipeline outcomes into Notification objects. Builders are
pure: they never touch the store or the network.
"""

from typing import Optional

from developer_tracking import AggregationResult, TokenView

from .models import Notification, NotificationType


def _token_label(token: TokenView) -> str:
    if token.name and token.symbol:
        return f"{token.name} ({token.symbol})"
    return token.name or token.symbol or token.token_address


def launch_notification(token: TokenView) -> Notification:
    return Notification(
        notification_type=NotificationType.LAUNCH,
        developer_id=token.developer_id,
        token_id=token.id,
        token_address=token.token_address,
        title="New Token Launch",
        message=f"A tracked developer launched a new token: {_token_label(token)}",
    )


def migration_notification(
    token: TokenView,
    from_platform: Optional[str],
    to_platform: Optional[str],
) -> Notification:
    source = from_platform or "bonding curve"
    target = to_platform or "open market"
    return Notification(
        notification_type=NotificationType.MIGRATION,
        developer_id=token.developer_id,
        token_id=token.id,
        token_address=token.token_address,
        title="Successful Migration",
        message=f"{_token_label(token)} successfully migrated from {source} to {target}",
        data={"from_platform": from_platform, "to_platform": to_platform},
    )


def suspicious_notification(aggregation: AggregationResult) -> Notification:
    risk = aggregation.risk
    patterns = ", ".join(risk.patterns) or "none"
    return Notification(
        notification_type=NotificationType.SUSPICIOUS,
        developer_id=aggregation.developer_id,
        title="Suspicious Activity Detected",
        message=(
            f"A tracked developer shows suspicious patterns: {patterns}. "
            f"Risk score: {risk.risk_score}/100"
        ),
        data={"patterns": list(risk.patterns), "risk_score": risk.risk_score},
    )


def rug_pull_notification(token: TokenView, reason: str = "marked as rugged") -> Notification:
    return Notification(
        notification_type=NotificationType.RUG_PULL,
        developer_id=token.developer_id,
        token_id=token.id,
        token_address=token.token_address,
        title="Rug Pull Detected",
        message=f"{_token_label(token)} appears to be a rug pull. Reason: {reason}",
    )
