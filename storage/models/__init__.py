"""
Storage Models Package.

This package contains all ORM models for the developer tracker
database.

============================================================
MODEL ORGANIZATION
============================================================

Identity (developers.py)
- DeveloperRecord
- WalletAssociationRecord
- SocialLinkRecord

Token history (developers.py)
- TokenRecord
- MigrationEventRecord

Ingestion bookkeeping (developers.py)
- ProcessedEventRecord
- NotificationRecord

============================================================
"""

from storage.models.base import Base, TimestampMixin, to_naive_utc, utc_now
from storage.models.developers import (
    DeveloperRecord,
    MigrationEventRecord,
    NotificationRecord,
    ProcessedEventRecord,
    SocialLinkRecord,
    TokenRecord,
    WalletAssociationRecord,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "utc_now",
    "to_naive_utc",
    "DeveloperRecord",
    "WalletAssociationRecord",
    "TokenRecord",
    "MigrationEventRecord",
    "SocialLinkRecord",
    "ProcessedEventRecord",
    "NotificationRecord",
]
