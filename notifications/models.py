"""
Notification Models.

Alert types emitted by the ingestion service and the message
payload handed to sinks.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from storage.models.base import utc_now


class NotificationType(str, Enum):
    """Kind of developer alert."""
    LAUNCH = "launch"
    MIGRATION = "migration"
    SUSPICIOUS = "suspicious"
    RUG_PULL = "rug_pull"


@dataclass(frozen=True)
class Notification:
    """One alert about a developer, optionally tied to a token."""
    notification_type: NotificationType
    developer_id: int
    title: str
    message: str
    token_id: Optional[int] = None
    token_address: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.notification_type.value,
            "developer_id": self.developer_id,
            "title": self.title,
            "message": self.message,
            "token_id": self.token_id,
            "token_address": self.token_address,
            "data": dict(self.data),
            "created_at": self.created_at.isoformat(),
        }
