"""
Identity Resolver.

============================================================
RESPONSIBILITY
============================================================
Maps wallet addresses to canonical developer ids.

- resolve(): find the owner of a wallet or create a developer
  for a never-seen wallet
- associate(): attach an additional wallet to a developer
- discover_related(): run the wallet clusterer and associate
  candidates above the confidence threshold
- link_social_account(): attach a social handle and derive
  the display name

============================================================
CONCURRENCY
============================================================
Create-if-absent is guarded twice:
1. Striped per-wallet locks serialize callers in this process.
2. Unique constraints on developers.primary_wallet and
   wallet_associations.wallet_address catch other processes.
   A unique violation means the row was created elsewhere;
   the resolver re-reads instead of failing.

============================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from sqlalchemy.orm import sessionmaker

from storage.database import read_scope, session_scope
from storage.repositories import (
    DeveloperRepository,
    DuplicateRecordError,
    SocialLinkRepository,
    WalletAssociationRepository,
)

from .config import TrackerConfig, get_config
from .exceptions import (
    AssociationBelowThreshold,
    DeveloperNotFound,
    WalletAlreadyAssociated,
)
from .models import AssociationMethod, WalletView
from .reputation import score

logger = logging.getLogger(__name__)

PRIMARY_CONFIDENCE = 100


@dataclass(frozen=True)
class WalletCandidate:
    """A wallet the clusterer believes belongs to the same actor."""
    wallet: str
    confidence: int
    method: AssociationMethod = AssociationMethod.TRANSACTION_PATTERN


class WalletClusterer(ABC):
    """
    Pluggable related-wallet finder.

    Implementations return candidates with a confidence in
    [0, 100]. Only candidates at or above the resolver's
    association threshold are linked.
    """

    @abstractmethod
    def find_related(self, wallet: str) -> Sequence[WalletCandidate]:
        ...


class NullClusterer(WalletClusterer):
    """Clusterer that never proposes related wallets."""

    def find_related(self, wallet: str) -> Sequence[WalletCandidate]:
        return ()


class IdentityResolver:
    """Wallet to developer resolution with create-if-absent."""

    def __init__(
        self,
        session_factory: sessionmaker,
        config: Optional[TrackerConfig] = None,
        clusterer: Optional[WalletClusterer] = None,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or get_config()
        self._clusterer = clusterer or NullClusterer()
        self._locks = [threading.Lock() for _ in range(max(1, self._config.wallet_lock_stripes))]

    def _lock_for(self, wallet: str) -> threading.Lock:
        return self._locks[hash(wallet) % len(self._locks)]

    # =========================================================
    # RESOLUTION
    # =========================================================

    def lookup(self, wallet: str) -> Optional[int]:
        """Owner of a wallet, or None if the wallet was never seen."""
        with read_scope(self._session_factory) as session:
            association = WalletAssociationRepository(session).get_by_wallet(wallet)
            if association is not None:
                return association.developer_id
            developer = DeveloperRepository(session).get_by_primary_wallet(wallet)
            return developer.id if developer is not None else None

    def resolve(self, wallet: str) -> int:
        """
        Developer id for a wallet, creating the developer if needed.

        Concurrent calls for the same never-seen wallet return the
        same id and create exactly one developer.
        """
        if not wallet:
            raise ValueError("wallet must be a non-empty address")

        with self._lock_for(wallet):
            existing = self.lookup(wallet)
            if existing is not None:
                return existing

            try:
                with session_scope(self._session_factory) as session:
                    developer = DeveloperRepository(session).create(
                        wallet, reputation_score=score(0, 0, 0, 0)
                    )
                    WalletAssociationRepository(session).create(
                        developer_id=developer.id,
                        wallet_address=wallet,
                        confidence=PRIMARY_CONFIDENCE,
                        association_method=AssociationMethod.PRIMARY.value,
                    )
                    developer_id = developer.id
            except DuplicateRecordError:
                existing = self.lookup(wallet)
                if existing is None:
                    raise
                logger.debug(f"Wallet {wallet} was created concurrently as developer {existing}")
                return existing

        logger.info(f"Created developer {developer_id} for wallet {wallet}")
        return developer_id

    # =========================================================
    # ASSOCIATION
    # =========================================================

    def associate(
        self,
        developer_id: int,
        wallet: str,
        confidence: int,
        method: Union[AssociationMethod, str] = AssociationMethod.MANUAL,
    ) -> WalletView:
        """
        Attach a wallet to an existing developer.

        Idempotent when the wallet is already linked to the same
        developer.

        Raises:
            ValueError: confidence outside [0, 100] or empty wallet
            AssociationBelowThreshold: confidence under the threshold
            DeveloperNotFound: unknown developer_id
            WalletAlreadyAssociated: wallet belongs to another developer
        """
        if not wallet:
            raise ValueError("wallet must be a non-empty address")
        if not 0 <= confidence <= 100:
            raise ValueError(f"confidence must be within 0-100, got {confidence}")
        threshold = self._config.association_threshold
        if confidence < threshold:
            raise AssociationBelowThreshold(wallet, confidence, threshold)
        method_value = AssociationMethod(method).value

        with self._lock_for(wallet):
            try:
                return self._associate_once(developer_id, wallet, confidence, method_value)
            except DuplicateRecordError:
                owner = self.lookup(wallet)
                if owner is None:
                    raise
                if owner != developer_id:
                    raise WalletAlreadyAssociated(wallet, developer_id, owner)
                return self._existing_view(wallet)

    def _associate_once(
        self,
        developer_id: int,
        wallet: str,
        confidence: int,
        method: str,
    ) -> WalletView:
        with session_scope(self._session_factory) as session:
            developers = DeveloperRepository(session)
            associations = WalletAssociationRepository(session)

            if developers.get_by_id(developer_id) is None:
                raise DeveloperNotFound(developer_id)

            existing = associations.get_by_wallet(wallet)
            if existing is not None:
                if existing.developer_id != developer_id:
                    raise WalletAlreadyAssociated(wallet, developer_id, existing.developer_id)
                return _wallet_view(existing)

            primary_owner = developers.get_by_primary_wallet(wallet)
            if primary_owner is not None and primary_owner.id != developer_id:
                raise WalletAlreadyAssociated(wallet, developer_id, primary_owner.id)

            record = associations.create(
                developer_id=developer_id,
                wallet_address=wallet,
                confidence=confidence,
                association_method=method,
            )
            view = _wallet_view(record)

        logger.info(
            f"Associated wallet {wallet} with developer {developer_id} "
            f"(confidence={confidence}, method={method})"
        )
        return view

    def _existing_view(self, wallet: str) -> WalletView:
        with read_scope(self._session_factory) as session:
            record = WalletAssociationRepository(session).get_by_wallet(wallet)
            return _wallet_view(record)

    def discover_related(self, developer_id: int) -> list[WalletView]:
        """
        Link clusterer candidates for a developer's primary wallet.

        Candidates below the threshold are ignored. Candidates that
        already belong to another developer are skipped, since
        merging identities is not supported.
        """
        with read_scope(self._session_factory) as session:
            developer = DeveloperRepository(session).get_by_id(developer_id)
            if developer is None:
                raise DeveloperNotFound(developer_id)
            primary_wallet = developer.primary_wallet

        linked: list[WalletView] = []
        for candidate in self._clusterer.find_related(primary_wallet):
            if candidate.wallet == primary_wallet:
                continue
            if candidate.confidence < self._config.association_threshold:
                logger.debug(
                    f"Skipping candidate {candidate.wallet} for developer {developer_id}: "
                    f"confidence {candidate.confidence}"
                )
                continue
            try:
                linked.append(
                    self.associate(developer_id, candidate.wallet, candidate.confidence, candidate.method)
                )
            except WalletAlreadyAssociated as e:
                logger.warning(f"Cluster candidate not linked: {e.message}")
        return linked

    # =========================================================
    # SOCIAL IDENTITY
    # =========================================================

    def link_social_account(
        self,
        developer_id: int,
        handle: str,
        external_user_id: Optional[str] = None,
        platform: str = "twitter",
    ) -> bool:
        """
        Link a social handle to a developer.

        The developer's display name is set from the handle if it
        has none. A handle already linked to another developer is
        left untouched.

        Returns:
            True if a new link was created
        """
        handle = handle.lstrip("@")
        try:
            with session_scope(self._session_factory) as session:
                links = SocialLinkRepository(session)
                developers = DeveloperRepository(session)

                developer = developers.get_by_id(developer_id)
                if developer is None:
                    raise DeveloperNotFound(developer_id)

                existing = links.get_by_handle(platform, handle)
                if existing is not None:
                    if existing.developer_id != developer_id:
                        logger.warning(
                            f"@{handle} already linked to developer {existing.developer_id}, "
                            f"not relinking to {developer_id}"
                        )
                    return False

                links.create(
                    developer_id=developer_id,
                    handle=handle,
                    platform=platform,
                    external_user_id=external_user_id,
                )
                if not developer.display_name:
                    developers.set_display_name(developer, f"@{handle}")
        except DuplicateRecordError:
            logger.debug(f"@{handle} was linked concurrently")
            return False

        logger.info(f"Linked @{handle} to developer {developer_id}")
        return True


def _wallet_view(record) -> WalletView:
    return WalletView(
        wallet_address=record.wallet_address,
        developer_id=record.developer_id,
        confidence=record.confidence,
        association_method=record.association_method,
        created_at=record.created_at,
    )
