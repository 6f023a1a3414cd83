"""Tests for the catalog MCP tools."""

import pytest

from chronos_library.tools.catalog import (
    add_book_handler,
    delete_book_handler,
    update_book_handler,
)


@pytest.fixture
def book_arguments(sample_book_data) -> dict:
    return dict(sample_book_data)


class TestAddBookTool:
    async def test_add_book_success(self, db_manager, book_arguments, book_repo):
        result = await add_book_handler(book_arguments)

        assert not result.get("isError")
        assert result["content"][0]["type"] == "text"
        assert "Added 'The Great Gatsby' by F. Scott Fitzgerald (3 copies)" in (
            result["content"][0]["text"]
        )
        assert result["data"]["book"]["copies_available"] == 3
        assert book_repo.get_book(book_arguments["isbn"]).authors == ["F. Scott Fitzgerald"]

    async def test_add_book_duplicate(self, db_manager, book_arguments):
        await add_book_handler(book_arguments)
        result = await add_book_handler(book_arguments)

        assert result["isError"] is True
        assert result["data"]["error"] == "duplicate_key"
        assert result["content"][0]["text"].startswith("Duplicate:")

    async def test_add_book_invalid(self, db_manager, book_arguments):
        book_arguments["total_copies"] = 0

        result = await add_book_handler(book_arguments)

        assert result["isError"] is True
        assert result["data"]["error"] == "validation_error"
        assert "Invalid parameters" in result["content"][0]["text"]


class TestUpdateBookTool:
    async def test_update_total_copies(self, db_manager, sample_book):
        result = await update_book_handler({"isbn": sample_book.isbn, "total_copies": 5})

        assert not result.get("isError")
        assert result["data"]["book"]["total_copies"] == 5
        assert "5 of 5 copies available" in result["content"][0]["text"]

    async def test_update_without_fields(self, db_manager, sample_book):
        result = await update_book_handler({"isbn": sample_book.isbn})

        assert result["isError"] is True
        assert result["data"]["error"] == "validation_error"

    async def test_update_missing_book(self, db_manager):
        result = await update_book_handler({"isbn": "missing", "title": "x"})

        assert result["data"]["error"] == "not_found"


class TestDeleteBookTool:
    async def test_delete_book(self, db_manager, sample_book, book_repo):
        result = await delete_book_handler({"isbn": sample_book.isbn})

        assert not result.get("isError")
        assert result["data"]["book"]["isbn"] == sample_book.isbn
        assert not book_repo.exists(sample_book.isbn)

    async def test_delete_lent_book_is_conflict(
        self, db_manager, sample_book, sample_patron, circulation_repo
    ):
        circulation_repo.create_loan(sample_patron.patron_id, sample_book.isbn)

        result = await delete_book_handler({"isbn": sample_book.isbn})

        assert result["isError"] is True
        assert result["data"]["error"] == "conflict"
        assert result["content"][0]["text"].startswith("Conflict:")
