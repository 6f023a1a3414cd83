"""Test configuration and fixtures for the Chronos Library ledger.

1. Isolated test databases - each test gets its own SQLite file under tmp_path
2. Configuration isolation - the global config and database manager are reset
3. Sample data - created through the repositories so counters start balanced
"""

import os
from collections.abc import Generator
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from chronos_library.config import LedgerConfig, reset_config
from chronos_library.database.book_repository import BookRepository
from chronos_library.database.circulation_repository import CirculationRepository
from chronos_library.database.patron_repository import PatronRepository
from chronos_library.database.session import DatabaseManager, get_db_manager, reset_db_manager
from chronos_library.models import Book, Patron

# === Environment and configuration ===


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch) -> Generator[None, None, None]:
    """Run every test without CHRONOS_LIBRARY_* variables or a stray .env file."""
    for key in list(os.environ):
        if key.startswith("CHRONOS_LIBRARY_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)

    reset_config()
    reset_db_manager()
    yield
    reset_db_manager()
    reset_config()


@pytest.fixture
def test_config(tmp_path: Path) -> LedgerConfig:
    return LedgerConfig(
        server_name="test-chronos-library",
        database_path=tmp_path / "config_test.db",
        debug=True,
        log_level="DEBUG",
    )


# === Test database fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """A file-backed database with the schema created.

    The manager is also installed as the global one, so code that calls
    ``get_session()`` (the MCP tools and resources) sees the same database.
    """
    manager = get_db_manager(test_database_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def test_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """A second, independent session on the same database."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


# === Repositories ===


@pytest.fixture
def book_repo(test_session: Session) -> BookRepository:
    return BookRepository(test_session)


@pytest.fixture
def patron_repo(test_session: Session) -> PatronRepository:
    return PatronRepository(test_session)


@pytest.fixture
def circulation_repo(test_session: Session) -> CirculationRepository:
    return CirculationRepository(test_session, today=lambda: date(2024, 3, 1))


# === Sample data ===


@pytest.fixture
def sample_book_data() -> dict:
    return {
        "isbn": "9780134685479",
        "title": "The Great Gatsby",
        "author_name": "F. Scott Fitzgerald",
        "category_name": "Fiction",
        "year_of_publication": 1925,
        "total_copies": 3,
    }


@pytest.fixture
def sample_patron_data() -> dict:
    return {
        "name": "John Smith",
        "email": "john.smith@example.com",
        "address": "1 Main Street",
        "phone": "555-0101",
    }


@pytest.fixture
def sample_book(book_repo: BookRepository, sample_book_data: dict) -> Book:
    return book_repo.add_book(sample_book_data)


@pytest.fixture
def single_copy_book(book_repo: BookRepository) -> Book:
    return book_repo.add_book(
        {
            "isbn": "9780452284234",
            "title": "1984",
            "author_name": "George Orwell",
            "category_name": "Science Fiction",
            "year_of_publication": 1949,
            "total_copies": 1,
        }
    )


@pytest.fixture
def sample_patron(patron_repo: PatronRepository, sample_patron_data: dict) -> Patron:
    return patron_repo.add_patron(sample_patron_data)


@pytest.fixture
def second_patron(patron_repo: PatronRepository) -> Patron:
    return patron_repo.add_patron({"name": "Jane Doe", "email": "jane.doe@example.com"})
