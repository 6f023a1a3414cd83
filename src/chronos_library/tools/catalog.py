"""Catalog Tools - Book Management

Adds, edits and removes books in the catalog. Authors and categories are
named in free text and created on first use.

Tools:
- add_book: Catalogue a new book with its author and category
- update_book: Change a book's title or copy counts
- delete_book: Remove a book that has never been lent
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.session import get_session
from ..errors import RepositoryException
from ..observability import trace_tool
from .common import (
    format_error_response,
    log_operation,
    repository_error_response,
    success_response,
)

logger = logging.getLogger(__name__)


class AddBookInput(BookCreateSchema):
    """Input schema for adding a book."""


class UpdateBookInput(BookUpdateSchema):
    """Input schema for updating a book. Omitted fields are left unchanged."""

    isbn: str = Field(..., min_length=1, max_length=32, description="ISBN of the book to update")


class DeleteBookInput(BaseModel):
    """Input schema for deleting a book."""

    isbn: str = Field(..., min_length=1, max_length=32, description="ISBN of the book to delete")


@trace_tool("add_book")
async def add_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Catalogue a book.

    Client calls: tool.call("add_book", {"isbn": "...", "title": "...", ...})
    """
    try:
        try:
            params = AddBookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid add_book parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        log_operation("add_book_start", isbn=params.isbn, total_copies=params.total_copies)

        with get_session() as session:
            try:
                book = BookRepository(session).add_book(params.model_dump())
            except RepositoryException as e:
                log_operation("add_book_failed", isbn=params.isbn, error_type=e.kind)
                return repository_error_response(e)

        return success_response(
            f"Added '{book.title}' by {', '.join(book.authors)} "
            f"({book.total_copies} {'copy' if book.total_copies == 1 else 'copies'})",
            book=book.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in add_book tool")
        return format_error_response("Unexpected error", str(e))


@trace_tool("update_book")
async def update_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Update a book's title or copy counts.

    Client calls: tool.call("update_book", {"isbn": "...", "total_copies": 3})
    """
    try:
        try:
            params = UpdateBookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid update_book parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        changes = params.model_dump(exclude_unset=True, exclude={"isbn"})
        log_operation("update_book_start", isbn=params.isbn, fields=",".join(sorted(changes)))

        with get_session() as session:
            try:
                book = BookRepository(session).update_book(params.isbn, changes)
            except RepositoryException as e:
                log_operation("update_book_failed", isbn=params.isbn, error_type=e.kind)
                return repository_error_response(e)

        return success_response(
            f"Updated '{book.title}': {book.copies_available} of {book.total_copies} "
            "copies available",
            book=book.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in update_book tool")
        return format_error_response("Unexpected error", str(e))


@trace_tool("delete_book")
async def delete_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Delete a book that no loan refers to.

    Client calls: tool.call("delete_book", {"isbn": "..."})
    """
    try:
        try:
            params = DeleteBookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid delete_book parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        with get_session() as session:
            try:
                book = BookRepository(session).delete_book(params.isbn)
            except RepositoryException as e:
                log_operation("delete_book_failed", isbn=params.isbn, error_type=e.kind)
                return repository_error_response(e)

        return success_response(f"Deleted '{book.title}'", book=book.model_dump(mode="json"))

    except Exception as e:
        logger.exception("Unexpected error in delete_book tool")
        return format_error_response("Unexpected error", str(e))


add_book = {
    "name": "add_book",
    "description": (
        "Add a book to the catalog with its author and category. Unknown authors and "
        "categories are created. All copies start out available."
    ),
    "inputSchema": AddBookInput.model_json_schema(),
    "handler": add_book_handler,
}

update_book = {
    "name": "update_book",
    "description": (
        "Update a book's title or copy counts. Changing total_copies shifts the available "
        "count by the same amount and is refused if fewer copies than are on loan would "
        "remain. Setting copies_available directly is meant for correcting drift."
    ),
    "inputSchema": UpdateBookInput.model_json_schema(),
    "handler": update_book_handler,
}

delete_book = {
    "name": "delete_book",
    "description": "Delete a book. Refused while any loan, open or closed, refers to it.",
    "inputSchema": DeleteBookInput.model_json_schema(),
    "handler": delete_book_handler,
}
