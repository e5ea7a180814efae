"""
Developer Repositories.

============================================================
PURPOSE
============================================================
Repositories for developer identity, token history and
ingestion bookkeeping tables.

============================================================
DATA LIFECYCLE
============================================================
- Developers: insert once, derived stats rewritten through a
  version-checked update
- Wallet associations, migration events, processed events:
  append-only
- Tokens: insert once, status written by the pipeline only

============================================================
REPOSITORIES
============================================================
- DeveloperRepository
- WalletAssociationRepository
- TokenRepository
- MigrationEventRepository
- SocialLinkRepository
- ProcessedEventRepository
- NotificationRepository

============================================================
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import desc, exists, or_, select, update
from sqlalchemy.orm import Session

from storage.models.base import utc_now
from storage.models.developers import (
    DeveloperRecord,
    MigrationEventRecord,
    NotificationRecord,
    ProcessedEventRecord,
    SocialLinkRecord,
    TokenRecord,
    WalletAssociationRecord,
)
from storage.repositories.base import BaseRepository


class DeveloperRepository(BaseRepository[DeveloperRecord]):
    """
    Repository for developer records.

    Derived statistics are only written through write_stats(),
    which performs a compare-and-set on stats_version.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, DeveloperRecord, "DeveloperRepository")

    def create(
        self,
        primary_wallet: str,
        display_name: Optional[str] = None,
        reputation_score: int = 0,
    ) -> DeveloperRecord:
        """
        Insert a developer for a never-seen wallet.

        reputation_score seeds the derived score of a developer with
        no tokens until the first recompute.

        Raises:
            DuplicateRecordError: primary_wallet already exists
        """
        entity = DeveloperRecord(
            primary_wallet=primary_wallet,
            display_name=display_name,
            total_tokens_launched=0,
            migrated_tokens=0,
            bonded_tokens=0,
            failed_tokens=0,
            migration_success_rate=0,
            reputation_score=reputation_score,
            risk_score=0,
            is_suspicious=False,
            risk_patterns=[],
            stats_version=0,
        )
        return self._add(entity, {"field": "primary_wallet", "value": primary_wallet})

    def get_by_id(self, developer_id: int) -> Optional[DeveloperRecord]:
        return self._get_by_id(developer_id)

    def get_by_id_or_raise(self, developer_id: int) -> DeveloperRecord:
        return self._get_by_id_or_raise(developer_id)

    def get_by_primary_wallet(self, wallet: str) -> Optional[DeveloperRecord]:
        stmt = select(DeveloperRecord).where(DeveloperRecord.primary_wallet == wallet)
        return self._execute_scalar(stmt, "get_by_primary_wallet")

    def get_by_wallet(self, wallet: str) -> Optional[DeveloperRecord]:
        """Developer owning a wallet, via its primary wallet or any association."""
        developer = self.get_by_primary_wallet(wallet)
        if developer is not None:
            return developer
        stmt = (
            select(DeveloperRecord)
            .join(
                WalletAssociationRecord,
                WalletAssociationRecord.developer_id == DeveloperRecord.id,
            )
            .where(WalletAssociationRecord.wallet_address == wallet)
        )
        return self._execute_scalar(stmt, "get_by_wallet")

    def get_by_token(self, token_address: str) -> Optional[DeveloperRecord]:
        stmt = (
            select(DeveloperRecord)
            .join(TokenRecord, TokenRecord.developer_id == DeveloperRecord.id)
            .where(TokenRecord.token_address == token_address)
        )
        return self._execute_scalar(stmt, "get_by_token")

    def list_ordered(self, order_by: List[Any], limit: int) -> List[DeveloperRecord]:
        """
        List developers in the given column order.

        Args:
            order_by: SQLAlchemy order clauses, most significant first
            limit: Maximum records to return
        """
        stmt = select(DeveloperRecord).order_by(*order_by).limit(limit)
        return self._execute_query(stmt, "list_ordered")

    def list_ids(self) -> List[int]:
        stmt = select(DeveloperRecord.id).order_by(DeveloperRecord.id)
        return self._execute_query(stmt, "list_ids")

    def search(self, query: str, limit: int) -> List[DeveloperRecord]:
        """
        Case-insensitive substring search.

        Matches display name, primary wallet or any associated
        wallet. LIKE wildcards in the query are escaped.
        """
        associated = exists().where(
            WalletAssociationRecord.developer_id == DeveloperRecord.id,
            WalletAssociationRecord.wallet_address.icontains(query, autoescape=True),
        )
        stmt = (
            select(DeveloperRecord)
            .where(
                or_(
                    DeveloperRecord.display_name.icontains(query, autoescape=True),
                    DeveloperRecord.primary_wallet.icontains(query, autoescape=True),
                    associated,
                )
            )
            .order_by(desc(DeveloperRecord.reputation_score), DeveloperRecord.id)
            .limit(limit)
        )
        return self._execute_query(stmt, "search")

    def write_stats(
        self,
        developer_id: int,
        expected_version: int,
        **fields: Any,
    ) -> bool:
        """
        Compare-and-set write of derived statistics.

        Args:
            developer_id: Developer to update
            expected_version: stats_version the values were derived at
            **fields: Column values to write

        Returns:
            True if the row still had expected_version and was
            updated, False if another writer got there first
        """
        stmt = (
            update(DeveloperRecord)
            .where(
                DeveloperRecord.id == developer_id,
                DeveloperRecord.stats_version == expected_version,
            )
            .values(
                stats_version=expected_version + 1,
                updated_at=utc_now(),
                **fields,
            )
            .execution_options(synchronize_session=False)
        )
        return self._execute_update(stmt, "write_stats") == 1

    def set_display_name(self, developer: DeveloperRecord, display_name: str) -> None:
        developer.display_name = display_name
        self._flush("set_display_name")


class WalletAssociationRepository(BaseRepository[WalletAssociationRecord]):
    """Repository for wallet to developer links. Append-only."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, WalletAssociationRecord, "WalletAssociationRepository")

    def create(
        self,
        developer_id: int,
        wallet_address: str,
        confidence: int,
        association_method: str,
    ) -> WalletAssociationRecord:
        """
        Raises:
            DuplicateRecordError: wallet_address already linked
        """
        entity = WalletAssociationRecord(
            developer_id=developer_id,
            wallet_address=wallet_address,
            confidence=confidence,
            association_method=association_method,
        )
        return self._add(entity, {"field": "wallet_address", "value": wallet_address})

    def get_by_wallet(self, wallet_address: str) -> Optional[WalletAssociationRecord]:
        stmt = select(WalletAssociationRecord).where(
            WalletAssociationRecord.wallet_address == wallet_address
        )
        return self._execute_scalar(stmt, "get_by_wallet")

    def list_for_developer(self, developer_id: int) -> List[WalletAssociationRecord]:
        stmt = (
            select(WalletAssociationRecord)
            .where(WalletAssociationRecord.developer_id == developer_id)
            .order_by(WalletAssociationRecord.id)
        )
        return self._execute_query(stmt, "list_for_developer")


class TokenRepository(BaseRepository[TokenRecord]):
    """Repository for launched tokens."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, TokenRecord, "TokenRepository")

    def create(
        self,
        developer_id: int,
        token_address: str,
        status: str,
        launched_at: Optional[datetime] = None,
        migrated_at: Optional[datetime] = None,
        name: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> TokenRecord:
        """
        Raises:
            DuplicateRecordError: token_address already exists
        """
        entity = TokenRecord(
            developer_id=developer_id,
            token_address=token_address,
            status=status,
            launched_at=launched_at,
            migrated_at=migrated_at,
            name=name,
            symbol=symbol,
        )
        return self._add(entity, {"field": "token_address", "value": token_address})

    def get_by_address(self, token_address: str) -> Optional[TokenRecord]:
        stmt = select(TokenRecord).where(TokenRecord.token_address == token_address)
        return self._execute_scalar(stmt, "get_by_address")

    def list_for_developer(
        self,
        developer_id: int,
        newest_first: bool = False,
    ) -> List[TokenRecord]:
        """
        List every token owned by a developer.

        Args:
            developer_id: Owning developer
            newest_first: Order by launch time descending
        """
        stmt = select(TokenRecord).where(TokenRecord.developer_id == developer_id)
        if newest_first:
            stmt = stmt.order_by(
                desc(TokenRecord.launched_at), desc(TokenRecord.id)
            )
        else:
            stmt = stmt.order_by(TokenRecord.id)
        return self._execute_query(stmt, "list_for_developer")

    def write_status(
        self,
        token: TokenRecord,
        status: str,
        migrated_at: Optional[datetime] = None,
    ) -> TokenRecord:
        token.status = status
        if migrated_at is not None:
            token.migrated_at = migrated_at
        self._flush("write_status")
        return token

    def fill_metadata(
        self,
        token: TokenRecord,
        name: Optional[str],
        symbol: Optional[str],
        launched_at: Optional[datetime],
    ) -> None:
        """Fill in fields a later launch event knows and the first one did not."""
        if token.name is None and name:
            token.name = name
        if token.symbol is None and symbol:
            token.symbol = symbol
        if token.launched_at is None and launched_at is not None:
            token.launched_at = launched_at
        self._flush("fill_metadata")


class MigrationEventRepository(BaseRepository[MigrationEventRecord]):
    """Repository for the append-only migration log."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, MigrationEventRecord, "MigrationEventRepository")

    def create(
        self,
        token_id: int,
        transaction_signature: str,
        migrated_at: datetime,
        from_platform: Optional[str] = None,
        to_platform: Optional[str] = None,
    ) -> MigrationEventRecord:
        """
        Raises:
            DuplicateRecordError: signature already recorded
        """
        entity = MigrationEventRecord(
            token_id=token_id,
            transaction_signature=transaction_signature,
            migrated_at=migrated_at,
            from_platform=from_platform,
            to_platform=to_platform,
        )
        return self._add(
            entity,
            {"field": "transaction_signature", "value": transaction_signature},
        )

    def get_by_signature(self, signature: str) -> Optional[MigrationEventRecord]:
        stmt = select(MigrationEventRecord).where(
            MigrationEventRecord.transaction_signature == signature
        )
        return self._execute_scalar(stmt, "get_by_signature")

    def list_for_token(self, token_id: int) -> List[MigrationEventRecord]:
        stmt = (
            select(MigrationEventRecord)
            .where(MigrationEventRecord.token_id == token_id)
            .order_by(MigrationEventRecord.migrated_at)
        )
        return self._execute_query(stmt, "list_for_token")


class SocialLinkRepository(BaseRepository[SocialLinkRecord]):
    """Repository for social account linkages."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, SocialLinkRecord, "SocialLinkRepository")

    def create(
        self,
        developer_id: int,
        handle: str,
        platform: str = "twitter",
        external_user_id: Optional[str] = None,
        linkage_type: str = "account",
    ) -> SocialLinkRecord:
        entity = SocialLinkRecord(
            developer_id=developer_id,
            platform=platform,
            handle=handle,
            external_user_id=external_user_id,
            linkage_type=linkage_type,
            verified=False,
        )
        return self._add(entity, {"field": "handle", "value": handle})

    def get_by_handle(self, platform: str, handle: str) -> Optional[SocialLinkRecord]:
        stmt = select(SocialLinkRecord).where(
            SocialLinkRecord.platform == platform,
            SocialLinkRecord.handle == handle,
        )
        return self._execute_scalar(stmt, "get_by_handle")

    def list_for_developer(self, developer_id: int) -> List[SocialLinkRecord]:
        stmt = (
            select(SocialLinkRecord)
            .where(SocialLinkRecord.developer_id == developer_id)
            .order_by(SocialLinkRecord.id)
        )
        return self._execute_query(stmt, "list_for_developer")


class ProcessedEventRepository(BaseRepository[ProcessedEventRecord]):
    """Durable processed-event set."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, ProcessedEventRecord, "ProcessedEventRepository")

    def exists(self, event_id: str) -> bool:
        stmt = select(ProcessedEventRecord.id).where(
            ProcessedEventRecord.event_id == event_id
        )
        return self._execute_scalar(stmt, "exists") is not None

    def create(self, event_id: str, source: str) -> ProcessedEventRecord:
        """
        Raises:
            DuplicateRecordError: event already applied
        """
        entity = ProcessedEventRecord(event_id=event_id, source=source)
        return self._add(entity, {"field": "event_id", "value": event_id})


class NotificationRepository(BaseRepository[NotificationRecord]):
    """Notification history."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, NotificationRecord, "NotificationRepository")

    def create(
        self,
        developer_id: int,
        notification_type: str,
        title: str,
        message: str,
        token_id: Optional[int] = None,
    ) -> NotificationRecord:
        entity = NotificationRecord(
            developer_id=developer_id,
            token_id=token_id,
            notification_type=notification_type,
            title=title,
            message=message,
        )
        return self._add(entity)

    def list_for_developer(
        self,
        developer_id: int,
        limit: int = 50,
    ) -> List[NotificationRecord]:
        stmt = (
            select(NotificationRecord)
            .where(NotificationRecord.developer_id == developer_id)
            .order_by(desc(NotificationRecord.created_at), desc(NotificationRecord.id))
            .limit(limit)
        )
        return self._execute_query(stmt, "list_for_developer")
