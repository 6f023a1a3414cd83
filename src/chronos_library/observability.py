"""Logfire tracing for the Chronos Library MCP server."""

import functools
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

from .config import LedgerConfig, get_config

logger = logging.getLogger(__name__)


def configure_observability(config: LedgerConfig | None = None) -> bool:
    """
    Set Logfire up from the ledger configuration.

    Returns:
        True if traces are sent to Logfire, False if spans stay local
    """
    config = config or get_config()
    send = config.logfire_enabled and bool(config.logfire_token)

    if config.logfire_enabled and not config.logfire_token:
        logger.warning("Logfire enabled but no token configured; traces stay local")

    logfire.configure(
        token=config.logfire_token if send else None,
        service_name=config.server_name,
        service_version=config.server_version,
        send_to_logfire=send,
        console=False,
    )
    logger.debug("Logfire configured (send_to_logfire=%s)", send)
    return send


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                arguments = kwargs.get("arguments", args[0] if args else {})
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute("tool.success", not result.get("isError", False))
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                if result.get("isError"):
                    span.set_attribute("tool.error_kind", result.get("data", {}).get("error", ""))
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if "loan" in tool_name:
        return "circulation"
    if "patron" in tool_name:
        return "patrons"
    if "book" in tool_name:
        return "catalog"
    return "general"


_CONTACT_FIELDS = frozenset({"email", "address", "phone"})


def _add_attributes(span, prefix: str, data: Any):
    """Add scalar inputs to the span, leaving patron contact details out."""
    if not isinstance(data, dict):
        return
    for key, value in data.items():
        if key in _CONTACT_FIELDS:
            continue
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)
