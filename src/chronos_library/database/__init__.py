"""
Database package for the Chronos Library ledger.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session and transaction management (session.py)
- One repository per record kind, each method a single transaction
"""

from .author_repository import AuthorRepository, CategoryRepository
from .book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from .circulation_repository import CirculationRepository
from .patron_repository import PatronCreateSchema, PatronRepository, PatronUpdateSchema
from .repository import (
    BaseRepository,
    ConflictError,
    DependencyFailureError,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    OutOfStockError,
    RepositoryException,
)
from .schema import Author, Base, Book, BookAuthor, BookCategory, Category, Loan, Patron
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    session_scope,
    transaction_scope,
)

__all__ = [
    "Author",
    "AuthorRepository",
    "Base",
    "BaseRepository",
    "Book",
    "BookAuthor",
    "BookCategory",
    "BookCreateSchema",
    "BookRepository",
    "BookUpdateSchema",
    "Category",
    "CategoryRepository",
    "CirculationRepository",
    "ConflictError",
    "DatabaseManager",
    "DependencyFailureError",
    "DuplicateError",
    "InvalidInputError",
    "Loan",
    "NotFoundError",
    "OutOfStockError",
    "Patron",
    "PatronCreateSchema",
    "PatronRepository",
    "PatronUpdateSchema",
    "RepositoryException",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "session_scope",
    "transaction_scope",
]
