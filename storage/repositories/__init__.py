"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
The Repository Layer is the ONLY gateway to persistent storage.
All database access MUST go through repository classes.

============================================================
ARCHITECTURE PRINCIPLES
============================================================
1. Session Injection: Sessions are injected, not created internally
2. Explicit Methods: No generic 'execute', clear method names
3. Callers own commits: repositories only flush
4. Exception Handling: All DB errors wrapped in repository exceptions

============================================================
USAGE
============================================================

    from storage.database import session_scope
    from storage.repositories import DeveloperRepository

    with session_scope(session_factory) as session:
        developer = DeveloperRepository(session).get_by_wallet(wallet)

============================================================
"""

# =============================================================
# EXCEPTIONS
# =============================================================
from storage.repositories.exceptions import (
    RepositoryException,
    RecordNotFoundError,
    DuplicateRecordError,
    IntegrityError,
    RecordStoreUnavailable,
    QueryError,
    TransactionError,
)

# =============================================================
# BASE REPOSITORY
# =============================================================
from storage.repositories.base import BaseRepository

# =============================================================
# DEVELOPER REPOSITORIES
# =============================================================
from storage.repositories.developers import (
    DeveloperRepository,
    WalletAssociationRepository,
    TokenRepository,
    MigrationEventRepository,
    SocialLinkRepository,
    ProcessedEventRepository,
    NotificationRepository,
)

# =============================================================
# PUBLIC API
# =============================================================
__all__ = [
    # Exceptions
    "RepositoryException",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "IntegrityError",
    "RecordStoreUnavailable",
    "QueryError",
    "TransactionError",

    # Base
    "BaseRepository",

    # Developers
    "DeveloperRepository",
    "WalletAssociationRepository",
    "TokenRepository",
    "MigrationEventRepository",
    "SocialLinkRepository",
    "ProcessedEventRepository",
    "NotificationRepository",
]
