"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Manages database engines, session factories and transaction
boundaries for the developer tracker.

- Builds the engine from DATABASE_URL (SQLite by default)
- Provides the session factory injected into services
- Commits or rolls back one unit of work per session_scope()
- Creates the schema at startup

============================================================
DESIGN PRINCIPLES
============================================================
- Sessions are created by the caller's factory, never globally
  inside a repository
- Hard failures on persistence errors
- Connection-level errors surface as RecordStoreUnavailable

============================================================
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from storage.models.base import Base
from storage.repositories.exceptions import RecordStoreUnavailable, TransactionError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///devtracker.db"

# =============================================================
# DATABASE ENGINE
# =============================================================

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("DATABASE_URL")
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")
    return url


def _safe_url(url: str) -> str:
    return url.split("@")[-1]


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create a SQLAlchemy engine.

    SQLite URLs get a thread-shareable connection (the pipeline
    runs in worker threads); in-memory SQLite shares one
    connection through StaticPool. Everything else uses a
    QueuePool.

    Args:
        database_url: Override for DATABASE_URL
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    url = database_url or get_database_url()
    logger.info(f"Creating database engine for: {_safe_url(url)}")

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": pool_timeout}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def on_sqlite_connect(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            logger.debug("SQLite connection established")

        return engine

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        echo=echo,
    )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> Engine:
    """Get the process engine, creating if necessary."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the process session factory, creating if necessary."""
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
    return _SessionFactory


# =============================================================
# SESSION MANAGEMENT
# =============================================================


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    One unit of work.

    Commits only if no exception occurs and rolls back on ANY
    exception, which is re-raised unchanged.

    Usage:
        with session_scope(factory) as session:
            TokenRepository(session).create(...)
            # Commits automatically at end

    Raises:
        RecordStoreUnavailable: commit failed at connection level
        TransactionError: commit failed otherwise
    """
    session = session_factory()
    try:
        yield session
        try:
            session.commit()
        except OperationalError as e:
            logger.error(f"Commit failed, record store unavailable: {e}")
            session.rollback()
            raise RecordStoreUnavailable(
                repository_name="session_scope",
                operation="commit",
                original_error=str(e),
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Commit failed, rolling back: {e}")
            session.rollback()
            raise TransactionError(
                repository_name="session_scope",
                operation="commit",
                phase="commit",
                original_error=str(e),
            ) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def read_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Read-only session. Never commits."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


def verify_database_connection(engine: Engine) -> bool:
    """
    Verify database connection is working.

    Raises:
        RecordStoreUnavailable: if connection fails
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise RecordStoreUnavailable(
            repository_name="database",
            operation="verify_connection",
            original_error=str(e),
        ) from e


def create_all_tables(engine: Engine) -> None:
    """Create all tracker tables that do not exist yet."""
    # Register models with the metadata
    import storage.models  # noqa: F401

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def initialize_database(engine: Optional[Engine] = None) -> sessionmaker:
    """
    Full database initialization sequence.

    1. Verify connection
    2. Create tables if not exist

    Returns:
        Session factory bound to the initialized engine
    """
    engine = engine or get_engine()
    verify_database_connection(engine)
    create_all_tables(engine)
    return create_session_factory(engine)
