"""Response helpers shared by the Chronos Library tools."""

import logging
from typing import Any

from ..errors import RepositoryException

logger = logging.getLogger(__name__)

_ERROR_LABELS = {
    "validation_error": "Invalid parameters",
    "not_found": "Not found",
    "duplicate_key": "Duplicate",
    "out_of_stock": "Out of stock",
    "conflict": "Conflict",
    "dependency_failure": "Database error",
}


def format_error_response(error_type: str, details: str, kind: str = "error") -> dict[str, Any]:
    """Format error responses consistently across all tools."""
    return {
        "isError": True,
        "content": [{"type": "text", "text": f"{error_type}: {details}"}],
        "data": {"error": kind},
    }


def repository_error_response(error: RepositoryException) -> dict[str, Any]:
    """Turn a ledger error into a tool error response labelled by its kind."""
    label = _ERROR_LABELS.get(error.kind, "Operation failed")
    return format_error_response(label, str(error), error.kind)


def success_response(message: str, **data: Any) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "data": data}


def log_operation(operation: str, **kwargs) -> None:
    """Log operation details for audit trail."""
    logger.info(
        "Operation: %s | Details: %s", operation, " | ".join(f"{k}={v}" for k, v in kwargs.items())
    )
