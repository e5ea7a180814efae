"""
Developer Tracking Exceptions - Identity and token lifecycle errors.

Raised to callers of associate() and manual triage operations.
Never raised during normal ingestion of first-seen wallets.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class DeveloperTrackingError(Exception):
    """Base exception for developer tracking errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class WalletAlreadyAssociated(DeveloperTrackingError):
    """Wallet is already linked to a different developer."""

    def __init__(
        self,
        wallet: str,
        developer_id: int,
        existing_developer_id: int,
    ) -> None:
        super().__init__(
            f"Wallet {wallet} already belongs to developer {existing_developer_id}",
            details={
                "wallet": wallet,
                "developer_id": developer_id,
                "existing_developer_id": existing_developer_id,
            },
        )
        self.wallet = wallet
        self.developer_id = developer_id
        self.existing_developer_id = existing_developer_id


class AssociationBelowThreshold(DeveloperTrackingError):
    """Association evidence is weaker than the configured threshold."""

    def __init__(self, wallet: str, confidence: int, threshold: int) -> None:
        super().__init__(
            f"Confidence {confidence} for {wallet} is below threshold {threshold}",
            details={"wallet": wallet, "confidence": confidence, "threshold": threshold},
        )
        self.confidence = confidence
        self.threshold = threshold


class DeveloperNotFound(DeveloperTrackingError):
    """No developer with the given id."""

    def __init__(self, developer_id: int) -> None:
        super().__init__(
            f"Developer {developer_id} not found",
            details={"developer_id": developer_id},
        )
        self.developer_id = developer_id


class TokenNotFound(DeveloperTrackingError):
    """No token with the given address."""

    def __init__(self, token_address: str) -> None:
        super().__init__(
            f"Token {token_address} not found",
            details={"token_address": token_address},
        )
        self.token_address = token_address


class InvalidStatusTransition(DeveloperTrackingError):
    """Token status may only move from active to one terminal state."""

    def __init__(self, token_address: str, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move token {token_address} from {current} to {requested}",
            details={
                "token_address": token_address,
                "current": current,
                "requested": requested,
            },
        )
        self.current = current
        self.requested = requested


class StatsWriteConflict(DeveloperTrackingError):
    """Derived stats could not be written after repeated version conflicts."""

    def __init__(self, developer_id: int, attempts: int) -> None:
        super().__init__(
            f"Stats for developer {developer_id} kept changing after {attempts} attempts",
            details={"developer_id": developer_id, "attempts": attempts},
        )
        self.developer_id = developer_id
