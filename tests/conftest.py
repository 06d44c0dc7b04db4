"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the circulation package,
including file-backed databases, stores, and sample catalog data.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from circulation.catalog import CatalogStore
from circulation.config import reset_config
from circulation.db.models import Book, User
from circulation.db.schemas import BookCreate, UserCreate, UserRole
from circulation.db.sqlite import Database, reset_db
from circulation.ledger import LedgerStore
from circulation.lending import BookLockRegistry, BorrowEngine, LendingFacade
from circulation.users import UserStore


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    for suffix in ("", "-journal", "-wal", "-shm"):
        path = Path(str(db_path) + suffix)
        if path.exists():
            path.unlink()


@pytest.fixture(scope="function")
def db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed test database instance."""
    # Reset any global state
    reset_db()
    reset_config()

    # Set environment variable for test database
    os.environ["CIRCULATION_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    database.engine.dispose()
    reset_db()
    reset_config()
    if "CIRCULATION_DB_PATH" in os.environ:
        del os.environ["CIRCULATION_DB_PATH"]


@pytest.fixture
def memory_db() -> Database:
    """Create an in-memory database for single-threaded tests."""
    database = Database(":memory:")
    database.create_tables()
    return database


# ============================================================================
# Store and Engine Fixtures
# ============================================================================


@pytest.fixture
def catalog(db: Database) -> CatalogStore:
    return CatalogStore(db)


@pytest.fixture
def ledger(db: Database) -> LedgerStore:
    return LedgerStore(db)


@pytest.fixture
def users(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def engine(db: Database) -> BorrowEngine:
    """Create an engine with its own lock registry and no retry delay."""
    return BorrowEngine(
        db,
        locks=BookLockRegistry(),
        lock_timeout=5.0,
        retry_max=3,
        retry_base_delay=0.0,
    )


@pytest.fixture
def facade(engine: BorrowEngine) -> LendingFacade:
    return LendingFacade(engine)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="The Left Hand of Darkness",
        author="Ursula K. Le Guin",
        description="An envoy visits the planet Gethen.",
    )


@pytest.fixture
def sample_book(catalog: CatalogStore, sample_book_data: BookCreate) -> Book:
    """Create and return an available book."""
    return catalog.create_book(sample_book_data)


@pytest.fixture
def sample_books(catalog: CatalogStore) -> list[Book]:
    """Create several books."""
    return [
        catalog.create_book(BookCreate(title=f"Book {i + 1}", author=f"Author {i + 1}"))
        for i in range(5)
    ]


@pytest.fixture
def sample_user(users: UserStore) -> User:
    """Create and return a regular user."""
    return users.create_user(UserCreate(email="alice@example.com"))


@pytest.fixture
def other_user(users: UserStore) -> User:
    """Create and return a second regular user."""
    return users.create_user(UserCreate(email="bob@example.com"))


@pytest.fixture
def admin_user(users: UserStore) -> User:
    """Create and return an admin user."""
    return users.create_user(UserCreate(email="admin@example.com", role=UserRole.ADMIN))
