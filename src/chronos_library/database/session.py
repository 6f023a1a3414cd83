"""
Database session management for the Chronos Library ledger.

This module provides connection management and transaction handling for
SQLAlchemy. Every ledger operation runs as one transaction:

1. Atomicity: multi-step writes commit together or not at all
2. Serialization: on SQLite every write transaction starts with
   ``BEGIN IMMEDIATE`` so concurrent writers queue on the database lock instead
   of racing on a stale snapshot; read-only transactions use a deferred
   ``BEGIN`` and keep reading while a writer holds the lock
3. Bounded waits: lock waits give up after ``transaction_timeout`` seconds
4. Error mapping: store errors surface as ``DependencyFailureError``
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import DependencyFailureError, RepositoryException
from .schema import Base

logger = logging.getLogger(__name__)

# Execution option naming the SQLite BEGIN mode for a connection
SQLITE_BEGIN_OPTION = "sqlite_begin"


def _is_memory_url(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


class DatabaseManager:
    """
    Manages database connections and sessions for the ledger.

    This class provides:
    - Engine creation with SQLite locking and foreign keys configured
    - Session factory with explicit transactions
    - Database initialization and health checks
    """

    def __init__(self, database_url: str | None = None, timeout: float | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured one.
            timeout: Lock wait limit in seconds. If None, uses the configured one.
        """
        config = get_config()
        if database_url is None:
            database_url = config.get_database_url()
            logger.info("Using database at: %s", database_url)

        self.database_url = database_url
        self.timeout = timeout if timeout is not None else config.transaction_timeout
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        For SQLite the engine:
        - uses a pooled connection per thread (a single shared connection for
          in-memory databases)
        - turns on foreign key enforcement
        - takes the write lock when a transaction begins, unless the
          connection is marked read-only
        """
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                engine_args = {
                    "connect_args": {"check_same_thread": False, "timeout": self.timeout},
                    "echo": False,
                }
                if _is_memory_url(self.database_url):
                    engine_args["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **engine_args)

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    # Hand transaction control to the "begin" listener below
                    dbapi_connection.isolation_level = None
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()

                @event.listens_for(self._engine, "begin")
                def begin_transaction(conn):
                    mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "IMMEDIATE")
                    conn.exec_driver_sql(f"BEGIN {mode}")
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    pool_timeout=self.timeout,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                # Reload rows in every transaction; counters change under us
                expire_on_commit=True,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """
        Create a new database session.

        Each thread or request should use its own session.
        """
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = session.get(Book, isbn)
        # Session is automatically committed or rolled back
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except RepositoryException:
            session.rollback()
            raise
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose and forget the global manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """
    Get a new database session.

    Sessions are context managers; ``with get_session() as session:`` closes
    the session on exit.
    """
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Convenience context manager for database sessions."""
    with get_db_manager().session_scope() as session:
        yield session


@contextmanager
def transaction_scope(
    session: Session, operation: str, read_only: bool = False
) -> Generator[Session, None, None]:
    """
    Run one ledger operation as a single transaction on ``session``.

    Commits when the block finishes. Any exception rolls everything back;
    ledger errors propagate unchanged and SQLAlchemy errors (lock timeouts,
    constraint violations, lost connections) become ``DependencyFailureError``.

    A ``read_only`` transaction that starts here begins deferred on SQLite,
    so it reads alongside an in-flight writer instead of queueing for the
    write lock.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)
        read_only: True if the block only reads
    """
    try:
        if read_only and not session.in_transaction():
            session.connection(execution_options={SQLITE_BEGIN_OPTION: "DEFERRED"})
        yield session
        session.commit()
    except RepositoryException:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Database operation '%s' failed", operation)
        raise DependencyFailureError(f"Database operation '{operation}' failed: {e!s}") from e
    except Exception:
        session.rollback()
        raise
