"""Tests for the patron MCP tools."""

from chronos_library.tools.patrons import (
    add_patron_handler,
    delete_patron_handler,
    update_patron_handler,
)


async def test_add_patron(db_manager, sample_patron_data):
    result = await add_patron_handler(sample_patron_data)

    assert not result.get("isError")
    patron = result["data"]["patron"]
    assert patron["name"] == "John Smith"
    assert f"with id {patron['patron_id']}" in result["content"][0]["text"]


async def test_add_patron_bad_email(db_manager):
    result = await add_patron_handler({"name": "Bad", "email": "nope"})

    assert result["isError"] is True
    assert result["data"]["error"] == "validation_error"


async def test_update_patron(db_manager, sample_patron):
    result = await update_patron_handler(
        {"patron_id": sample_patron.patron_id, "address": "2 High Street"}
    )

    assert not result.get("isError")
    assert result["data"]["patron"]["address"] == "2 High Street"


async def test_update_unknown_patron(db_manager):
    result = await update_patron_handler({"patron_id": 99, "name": "Ghost"})

    assert result["data"]["error"] == "not_found"


async def test_delete_patron(db_manager, sample_patron, patron_repo):
    result = await delete_patron_handler({"patron_id": sample_patron.patron_id})

    assert not result.get("isError")
    assert not patron_repo.exists(sample_patron.patron_id)


async def test_delete_borrowing_patron_is_conflict(
    db_manager, sample_patron, sample_book, circulation_repo
):
    circulation_repo.create_loan(sample_patron.patron_id, sample_book.isbn)

    result = await delete_patron_handler({"patron_id": sample_patron.patron_id})

    assert result["data"]["error"] == "conflict"
