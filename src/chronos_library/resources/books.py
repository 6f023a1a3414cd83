"""Book Resources - Library Catalog Access

Exposes the catalog as read-only resources.

Resources:
- library://books/list - Every book with its author and category names
- library://books/available - Books with at least one copy on the shelf
- library://books/{isbn} - One book by ISBN
- library://authors/list - Known authors, by name
- library://categories/list - Known categories, by name
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.book_repository import BookRepository
from ..database.session import session_scope
from ..errors import NotFoundError, RepositoryException

logger = logging.getLogger(__name__)


async def list_books_handler() -> dict[str, Any]:
    """Returns the whole catalog.

    Client requests library://books/list to browse the books.
    """
    try:
        with session_scope() as session:
            books = [book.model_dump(mode="json") for book in BookRepository(session).list_books()]
        return {"books": books, "total": len(books)}

    except RepositoryException as e:
        logger.exception("Error in books/list resource")
        raise ResourceError(f"Failed to retrieve book list: {e!s}") from e


async def list_available_books_handler() -> dict[str, Any]:
    """Returns books that can be lent right now."""
    try:
        with session_scope() as session:
            repo = BookRepository(session)
            books = [book.model_dump(mode="json") for book in repo.list_books(available_only=True)]
        return {"books": books, "total": len(books)}

    except RepositoryException as e:
        logger.exception("Error in books/available resource")
        raise ResourceError(f"Failed to retrieve available books: {e!s}") from e


async def get_book_handler(isbn: str) -> dict[str, Any]:
    """Returns details for a specific book."""
    try:
        logger.debug("MCP Resource Request - books/%s", isbn)
        with session_scope() as session:
            return BookRepository(session).get_book(isbn).model_dump(mode="json")

    except NotFoundError as e:
        raise ResourceError(f"Book not found: {isbn}") from e
    except RepositoryException as e:
        logger.exception("Error in books/{isbn} resource")
        raise ResourceError(f"Failed to retrieve book details: {e!s}") from e


async def list_authors_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            repo = BookRepository(session)
            authors = [author.model_dump() for author in repo.authors.list_authors()]
        return {"authors": authors, "total": len(authors)}

    except RepositoryException as e:
        logger.exception("Error in authors/list resource")
        raise ResourceError(f"Failed to retrieve authors: {e!s}") from e


async def list_categories_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            repo = BookRepository(session)
            categories = [category.model_dump() for category in repo.categories.list_categories()]
        return {"categories": categories, "total": len(categories)}

    except RepositoryException as e:
        logger.exception("Error in categories/list resource")
        raise ResourceError(f"Failed to retrieve categories: {e!s}") from e


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Catalog",
        "description": "Every book in the catalog, with author and category names",
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri": "library://books/available",
        "name": "Available Books",
        "description": "Books with at least one copy available to lend",
        "mime_type": "application/json",
        "handler": list_available_books_handler,
    },
    {
        "uri_template": "library://books/{isbn}",
        "name": "Book Details",
        "description": "One book by ISBN, with copy counts",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
    {
        "uri": "library://authors/list",
        "name": "Authors",
        "description": "Every author named in the catalog",
        "mime_type": "application/json",
        "handler": list_authors_handler,
    },
    {
        "uri": "library://categories/list",
        "name": "Categories",
        "description": "Every category named in the catalog",
        "mime_type": "application/json",
        "handler": list_categories_handler,
    },
]
