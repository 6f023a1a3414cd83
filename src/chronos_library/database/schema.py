"""
SQLAlchemy database schema for the Chronos Library ledger.

Five entity tables (authors, categories, books, patrons, loans) and two
association tables (book_authors, book_categories). The books table carries
the cached ``copies_available`` counter; the loans table is the ledger whose
open rows that counter must agree with:

    copies_available == total_copies - count(loans on the book with return_date IS NULL)

Constraints enforced by the store:
1. ``0 <= copies_available <= total_copies``
2. Loans reference existing books and patrons (foreign keys)
3. Author and category names are unique, so find-or-create cannot duplicate them
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

# Base class for all SQLAlchemy models
Base = declarative_base()


class Author(Base):
    """
    Authors table.

    Rows are created implicitly the first time a book names the author and are
    never updated or deleted by the ledger.
    """

    __tablename__ = "authors"

    author_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)

    created_at = Column(DateTime, nullable=False, default=func.now())

    book_links = relationship("BookAuthor", back_populates="author")

    __table_args__ = (CheckConstraint("length(trim(name)) > 0", name="check_author_name"),)


class Category(Base):
    """Categories table, found-or-created by name like authors."""

    __tablename__ = "categories"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    created_at = Column(DateTime, nullable=False, default=func.now())

    book_links = relationship("BookCategory", back_populates="category")

    __table_args__ = (CheckConstraint("length(trim(name)) > 0", name="check_category_name"),)


class Book(Base):
    """
    Books table - the library catalog.

    ``copies_available`` is a rolling counter, not recomputed state. Every
    ledger transition (loan created, loan returned) adjusts it inside the same
    transaction that changes the loan.
    """

    __tablename__ = "books"

    # ISBN is the natural key and is never changed after creation
    isbn = Column(String(32), primary_key=True)
    title = Column(String(500), nullable=False, index=True)
    year_of_publication = Column(Integer, nullable=True)
    copies_available = Column(Integer, nullable=False)
    total_copies = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    # Links are owned by the book and go away with it
    author_links = relationship(
        "BookAuthor",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookAuthor.position",
    )
    category_links = relationship(
        "BookCategory",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookCategory.position",
    )
    loans = relationship("Loan", back_populates="book")

    __table_args__ = (
        Index("idx_book_availability", "copies_available"),
        CheckConstraint("copies_available >= 0", name="check_copies_available_non_negative"),
        CheckConstraint(
            "copies_available <= total_copies", name="check_copies_available_not_exceed_total"
        ),
        CheckConstraint("total_copies > 0", name="check_total_copies_positive"),
        CheckConstraint("length(trim(title)) > 0", name="check_book_title"),
    )


class BookAuthor(Base):
    """Book-Author association; ``position`` keeps link insertion order."""

    __tablename__ = "book_authors"

    isbn = Column(String(32), ForeignKey("books.isbn"), primary_key=True)
    author_id = Column(Integer, ForeignKey("authors.author_id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    book = relationship("Book", back_populates="author_links")
    author = relationship("Author", back_populates="book_links")

    __table_args__ = (
        UniqueConstraint("isbn", "position", name="unique_book_author_position"),
        Index("idx_book_author_author", "author_id"),
    )


class BookCategory(Base):
    """Book-Category association; ``position`` keeps link insertion order."""

    __tablename__ = "book_categories"

    isbn = Column(String(32), ForeignKey("books.isbn"), primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.category_id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    book = relationship("Book", back_populates="category_links")
    category = relationship("Category", back_populates="book_links")

    __table_args__ = (
        UniqueConstraint("isbn", "position", name="unique_book_category_position"),
        Index("idx_book_category_category", "category_id"),
    )


class Patron(Base):
    """
    Patrons table - library members.

    Email is required but deliberately not unique.
    """

    __tablename__ = "patrons"

    patron_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    loans = relationship("Loan", back_populates="patron")

    __table_args__ = (
        Index("idx_patron_email", "email"),
        CheckConstraint("length(trim(name)) > 0", name="check_patron_name"),
        CheckConstraint("length(trim(email)) > 0", name="check_patron_email"),
    )


class Loan(Base):
    """
    Loans table - the lending ledger.

    A loan is Open while ``return_date`` is NULL and becomes Closed exactly
    once, when the return is recorded. Loans are never deleted.
    """

    __tablename__ = "loans"

    loan_id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(32), ForeignKey("books.isbn"), nullable=False)
    patron_id = Column(Integer, ForeignKey("patrons.patron_id"), nullable=False)
    loan_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())

    book = relationship("Book", back_populates="loans")
    patron = relationship("Patron", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_book_open", "isbn", "return_date"),
        Index("idx_loan_patron", "patron_id"),
        CheckConstraint(
            "return_date IS NULL OR return_date >= loan_date", name="check_return_after_loan"
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.return_date is None
