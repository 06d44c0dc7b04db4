"""SQLite database operations.

Handles database connection and session management. Every write to the
catalog or ledger happens inside one session, committed as a whole or
rolled back as a whole.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import UnavailableError
from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager."""

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[float] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:". If None,
                     uses CIRCULATION_DB_PATH or the default location.
            busy_timeout: Seconds SQLite waits for a locked database before
                          giving up. If None, uses CIRCULATION_BUSY_TIMEOUT.
        """
        config = get_config()
        if db_path is None:
            db_path = str(config.db_path)
        if busy_timeout is None:
            busy_timeout = config.busy_timeout

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False, "timeout": busy_timeout},
            )
        event.listen(self.engine, "connect", _enable_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        # One connection means one transaction at a time
        self._connection_lock = threading.RLock() if self._is_memory else None

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def is_memory(self) -> bool:
        return self._is_memory

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import ledger models to register them with Base
        from ..ledger.models import BorrowRecord  # noqa: F401

        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        In-memory databases run every session on one shared connection, so
        sessions there are serialized: a rollback in one thread must never
        discard another thread's pending writes.
        """
        with self._session_guard():
            session = self.SessionLocal()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def _session_guard(self) -> Generator[None, None, None]:
        if self._connection_lock is None:
            yield
            return
        with self._connection_lock:
            yield

    @contextmanager
    def unit_of_work(self) -> Generator[Session, None, None]:
        """Run a block as one atomic transaction.

        Same commit/rollback behaviour as ``get_session``, but storage
        contention (a locked database, a timed-out connection) surfaces as
        ``UnavailableError`` after the rollback.
        """
        try:
            with self.get_session() as session:
                yield session
        except OperationalError as e:
            logger.warning("Unit of work aborted by storage: %s", e.orig)
            raise UnavailableError(f"Storage unavailable: {e.orig}") from e


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    if _db is not None:
        _db.engine.dispose()
    _db = None
