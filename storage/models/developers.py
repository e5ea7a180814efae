"""
Developer Domain ORM Models.

============================================================
PURPOSE
============================================================
Tables backing developer identity, token history and the
derived reputation / risk statistics.

============================================================
DATA LIFECYCLE ROLE
============================================================
- developers: created on first-seen wallet, never deleted,
  derived columns rewritten by the statistics aggregator
- wallet_associations: immutable once created
- tokens: status moves from active to one terminal state
- migration_events: append-only, unique per signature
- social_links: developer to social account linkage
- processed_events: durable record of applied event ids
- notifications: history of delivered alerts

============================================================
UNIQUE CONSTRAINTS
============================================================
- developers.primary_wallet
- wallet_associations.wallet_address
- tokens.token_address
- migration_events.transaction_signature
- processed_events.event_id
- social_links (platform, handle)

============================================================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage.models.base import Base, TimestampMixin, utc_now


class DeveloperRecord(Base, TimestampMixin):
    """
    Canonical identity of a token-launching actor.

    Counters and scores are never incremented in place. They
    are re-derived from the developer's tokens and written
    together, guarded by stats_version.
    """

    __tablename__ = "developers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    primary_wallet: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Wallet that first identified this developer"
    )

    display_name: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Name from linked social identity or manual override"
    )

    # Aggregated counters
    total_tokens_launched: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    migrated_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonded_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Derived scores
    migration_success_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reputation_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_suspicious: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    risk_patterns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    stats_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Bumped on every derived-stats write"
    )

    wallets: Mapped[list["WalletAssociationRecord"]] = relationship(
        back_populates="developer",
        order_by="WalletAssociationRecord.id",
    )

    __table_args__ = (
        Index("ix_developers_reputation_score", "reputation_score"),
        Index("ix_developers_migration_success_rate", "migration_success_rate"),
    )

    def __repr__(self) -> str:
        return f"<DeveloperRecord id={self.id} wallet={self.primary_wallet}>"


class WalletAssociationRecord(Base):
    """Link from a wallet address to exactly one developer."""

    __tablename__ = "wallet_associations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    developer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("developers.id"),
        nullable=False,
        index=True,
    )

    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    confidence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=100,
        comment="Evidentiary strength of the link (0-100)"
    )

    association_method: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)

    developer: Mapped[DeveloperRecord] = relationship(back_populates="wallets")

    def __repr__(self) -> str:
        return (
            f"<WalletAssociationRecord wallet={self.wallet_address} "
            f"developer_id={self.developer_id}>"
        )


class TokenRecord(Base, TimestampMixin):
    """One launched asset, owned by exactly one developer."""

    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    developer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("developers.id"),
        nullable=False,
        index=True,
    )

    token_address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    symbol: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="active",
        comment="active, migrated, bonded, failed, rugged, abandoned"
    )

    launched_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    migrated_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<TokenRecord {self.token_address} status={self.status}>"


class MigrationEventRecord(Base):
    """Append-only migration log, one row per transaction signature."""

    __tablename__ = "migration_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    token_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tokens.id"),
        nullable=False,
        index=True,
    )

    transaction_signature: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )

    from_platform: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    to_platform: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    migrated_at: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)


class SocialLinkRecord(Base, TimestampMixin):
    """Social account or community linked to a developer."""

    __tablename__ = "social_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    developer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("developers.id"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String(32), nullable=False, default="twitter")
    handle: Mapped[str] = mapped_column(String(64), nullable=False)
    external_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    linkage_type: Mapped[str] = mapped_column(String(16), nullable=False, default="account")
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("platform", "handle", name="uq_social_links_platform_handle"),
    )


class ProcessedEventRecord(Base):
    """Durable marker for an event id that has been applied."""

    __tablename__ = "processed_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)


class NotificationRecord(Base):
    """Delivered alert history."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    developer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    token_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notification_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
