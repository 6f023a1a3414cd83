"""
Book repository implementation for the Chronos Library ledger.

This repository is the catalog manager:

1. **AddBook**: author and category find-or-create, the book row and both
   links, all in one transaction
2. **Listings**: books joined with their author and category names
3. **Updates**: title, configured total copies, and a guarded escape hatch for
   setting the available-copy counter directly
4. **Deletes**: refused while any loan references the book

Every method returns Pydantic models, never ORM rows.
"""

import logging
from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..database.schema import Book as BookDB
from ..database.schema import BookAuthor, BookCategory
from ..database.schema import Loan as LoanDB
from ..database.session import transaction_scope
from ..models.book import Book as BookModel
from .author_repository import AuthorRepository, CategoryRepository
from .repository import (
    BaseRepository,
    ConflictError,
    DuplicateError,
    InvalidInputError,
    count_loans,
    validate_input,
)

logger = logging.getLogger(__name__)


class BookCreateSchema(BaseModel):
    """Input for AddBook."""

    model_config = ConfigDict(str_strip_whitespace=True)

    isbn: str = Field(..., min_length=1, max_length=32)
    title: str = Field(..., min_length=1, max_length=500)
    author_name: str = Field(..., min_length=1, max_length=200)
    category_name: str = Field(..., min_length=1, max_length=100)
    year_of_publication: int | None = Field(None, ge=0)
    total_copies: int = Field(..., ge=1)

    @field_validator("year_of_publication")
    @classmethod
    def validate_year(cls, v: int | None) -> int | None:
        if v is not None and v > datetime.now().year + 1:
            raise ValueError("Publication year cannot be more than one year ahead")
        return v


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=500)
    copies_available: int | None = Field(None, ge=0)
    total_copies: int | None = Field(None, ge=1)


class BookRepository(BaseRepository[BookDB, BookUpdateSchema, BookModel]):
    """
    Repository for book data access.

    Author and category resolution is delegated to the author and category
    repositories, which share this repository's session and transaction.
    """

    def __init__(self, session: Session, page_size: int | None = None):
        super().__init__(session, page_size)
        self.authors = AuthorRepository(session, page_size)
        self.categories = CategoryRepository(session, page_size)

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _to_response_model(self, db_obj: BookDB) -> BookModel:
        return BookModel(
            isbn=db_obj.isbn,
            title=db_obj.title,
            year_of_publication=db_obj.year_of_publication,
            copies_available=db_obj.copies_available,
            total_copies=db_obj.total_copies,
            authors=[link.author.name for link in db_obj.author_links],
            categories=[link.category.name for link in db_obj.category_links],
        )

    def _with_links(self, query):
        return query.options(
            selectinload(BookDB.author_links).joinedload(BookAuthor.author),
            selectinload(BookDB.category_links).joinedload(BookCategory.category),
        )

    def add_book(self, data: BookCreateSchema | Mapping[str, Any]) -> BookModel:
        """
        Add a book together with its author and category.

        All five writes (author, category, book, two links) commit together;
        on any failure none of them persists.

        Returns:
            The created book with author and category names attached

        Raises:
            InvalidInputError: If a required field is missing or malformed
            DuplicateError: If the ISBN is already catalogued
            DependencyFailureError: If the store cannot complete the transaction
        """
        book_data = validate_input(BookCreateSchema, data)

        with transaction_scope(self.session, "add book"):
            if self.session.get(BookDB, book_data.isbn) is not None:
                raise DuplicateError(f"Book with ISBN {book_data.isbn} already exists")

            author = self.authors.find_or_create(book_data.author_name)
            category = self.categories.find_or_create(book_data.category_name)

            try:
                with self.session.begin_nested():
                    book = BookDB(
                        isbn=book_data.isbn,
                        title=book_data.title,
                        year_of_publication=book_data.year_of_publication,
                        copies_available=book_data.total_copies,
                        total_copies=book_data.total_copies,
                    )
                    book.author_links.append(BookAuthor(author=author, position=0))
                    book.category_links.append(BookCategory(category=category, position=0))
                    self.session.add(book)
                    self.session.flush()
            except IntegrityError as e:
                # Only an ISBN collision is a duplicate; other constraint
                # failures propagate as store errors
                if self.session.get(BookDB, book_data.isbn) is not None:
                    raise DuplicateError(
                        f"Book with ISBN {book_data.isbn} already exists"
                    ) from e
                raise

            logger.info(
                "Added book %s (%r) with %d copies", book.isbn, book.title, book.total_copies
            )
            return self._to_response_model(book)

    def get_book(self, isbn: str) -> BookModel:
        """
        Get book by ISBN.

        Raises:
            NotFoundError: If the book is not catalogued
        """
        return self.get_by_id(isbn)

    def list_books(self, available_only: bool = False) -> Iterator[BookModel]:
        """
        Lazily yield every book in ISBN order with its author and category names.

        The iterator is finite and read-only; call again to start over.
        """
        query = self._with_links(select(BookDB)).order_by(BookDB.isbn)
        if available_only:
            query = query.where(BookDB.copies_available > 0)

        yield from self._iter_pages(
            query, BookDB.isbn, lambda row: self._to_response_model(row[0])
        )

    def update_book(self, isbn: str, data: BookUpdateSchema | Mapping[str, Any]) -> BookModel:
        """
        Update a book's title and copy counts.

        ``total_copies`` moves ``copies_available`` by the same amount so the
        loan-derived count still holds. ``copies_available`` overwrites the
        counter directly and is meant for correcting drift; prefer the lending
        operations for everyday changes.

        Raises:
            InvalidInputError: If no field is given or a count is out of range
            NotFoundError: If the book is not catalogued
            ConflictError: If the new total is below the number of open loans
        """
        update = validate_input(BookUpdateSchema, data)
        fields = update.model_dump(exclude_unset=True, exclude_none=True)
        if not fields:
            raise InvalidInputError("No book fields to update")

        with transaction_scope(self.session, "update book"):
            book = self._require(isbn, for_update=True)

            if "total_copies" in fields:
                new_total = fields["total_copies"]
                _, open_loans = count_loans(self.session, LoanDB.isbn == isbn)
                if new_total < open_loans:
                    raise ConflictError(
                        f"Cannot reduce '{book.title}' to {new_total} copies: "
                        f"{open_loans} are out on loan"
                    )
                delta = new_total - book.total_copies
                book.total_copies = new_total
                book.copies_available = max(0, min(new_total, book.copies_available + delta))

            if "copies_available" in fields:
                value = fields["copies_available"]
                if value > book.total_copies:
                    raise InvalidInputError(
                        f"copies_available ({value}) cannot exceed total_copies "
                        f"({book.total_copies})"
                    )
                logger.warning(
                    "Available copies of %s set directly from %d to %d",
                    isbn,
                    book.copies_available,
                    value,
                )
                book.copies_available = value

            if "title" in fields:
                book.title = fields["title"]

            self.session.flush()
            logger.info("Updated book %s: %s", isbn, ", ".join(sorted(fields)))
            return self._to_response_model(book)

    def delete_book(self, isbn: str) -> BookModel:
        """
        Delete a book and its author/category links.

        Returns:
            The book as it was before deletion

        Raises:
            NotFoundError: If the book is not catalogued
            ConflictError: If any loan, open or closed, references the book
        """
        with transaction_scope(self.session, "delete book"):
            book = self._require(isbn, for_update=True)

            loans, open_loans = count_loans(self.session, LoanDB.isbn == isbn)
            if loans:
                raise ConflictError(
                    f"Book {isbn} has {loans} loan(s) on record ({open_loans} open) "
                    "and cannot be deleted"
                )

            deleted = self._to_response_model(book)
            self.session.delete(book)
            self.session.flush()
            logger.info("Deleted book %s", isbn)
            return deleted

    def link_author(self, isbn: str, author_name: str) -> BookModel:
        """Attach another author to a book; re-linking the same name is a no-op."""
        with transaction_scope(self.session, "link author"):
            book = self._require(isbn)
            author = self.authors.find_or_create(author_name)

            if all(link.author_id != author.author_id for link in book.author_links):
                position = max((link.position for link in book.author_links), default=-1) + 1
                book.author_links.append(BookAuthor(author=author, position=position))
                self.session.flush()
                logger.info("Linked author %r to book %s", author.name, isbn)

            return self._to_response_model(book)

    def link_category(self, isbn: str, category_name: str) -> BookModel:
        """Attach another category to a book; re-linking the same name is a no-op."""
        with transaction_scope(self.session, "link category"):
            book = self._require(isbn)
            category = self.categories.find_or_create(category_name)

            if all(link.category_id != category.category_id for link in book.category_links):
                position = max((link.position for link in book.category_links), default=-1) + 1
                book.category_links.append(BookCategory(category=category, position=position))
                self.session.flush()
                logger.info("Linked category %r to book %s", category.name, isbn)

            return self._to_response_model(book)
