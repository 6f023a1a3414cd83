"""Tests for server wiring and tracing."""

from fastmcp import FastMCP

from chronos_library.config import LedgerConfig
from chronos_library.observability import configure_observability, trace_tool
from chronos_library.tools import all_tools


def test_all_ledger_operations_exposed_as_tools():
    assert [tool["name"] for tool in all_tools] == [
        "add_book",
        "update_book",
        "delete_book",
        "add_patron",
        "update_patron",
        "delete_patron",
        "create_loan",
        "return_loan",
    ]
    for tool in all_tools:
        assert tool["description"]
        assert tool["inputSchema"]["type"] == "object"


def test_create_server():
    from chronos_library.server import create_server

    assert isinstance(create_server(), FastMCP)


def test_observability_stays_local_without_token():
    assert configure_observability(LedgerConfig(logfire_enabled=True)) is False
    assert configure_observability(LedgerConfig()) is False


async def test_trace_tool_passes_result_through():
    @trace_tool("sample_tool")
    async def handler(arguments):
        return {"content": [], "data": {"echo": arguments["value"]}}

    result = await handler({"value": 3, "email": "hidden@example.com"})

    assert result["data"] == {"echo": 3}
