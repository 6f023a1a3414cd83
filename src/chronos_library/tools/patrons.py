"""Patron Tools - Patron Records

Tools:
- add_patron: Register a patron
- update_patron: Change a patron's contact details
- delete_patron: Remove a patron who has never borrowed
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.patron_repository import (
    PatronCreateSchema,
    PatronRepository,
    PatronUpdateSchema,
)
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


class AddPatronInput(PatronCreateSchema):
    """Input schema for registering a patron."""


class UpdatePatronInput(PatronUpdateSchema):
    """Input schema for updating a patron. Omitted fields are left unchanged."""

    patron_id: int = Field(..., ge=1, description="Id of the patron to update")


class DeletePatronInput(BaseModel):
    """Input schema for deleting a patron."""

    patron_id: int = Field(..., ge=1, description="Id of the patron to delete")


@trace_tool("add_patron")
async def add_patron_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Register a patron.

    Client calls: tool.call("add_patron", {"name": "...", "email": "..."})
    """
    try:
        try:
            params = AddPatronInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid add_patron parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        with get_session() as session:
            try:
                patron = PatronRepository(session).add_patron(params.model_dump())
            except RepositoryException as e:
                log_operation("add_patron_failed", error_type=e.kind)
                return repository_error_response(e)

        log_operation("add_patron_success", patron_id=patron.patron_id)
        return success_response(
            f"Registered patron {patron.name} with id {patron.patron_id}",
            patron=patron.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in add_patron tool")
        return format_error_response("Unexpected error", str(e))


@trace_tool("update_patron")
async def update_patron_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Update a patron's name or contact details.

    Client calls: tool.call("update_patron", {"patron_id": 1, "phone": "..."})
    """
    try:
        try:
            params = UpdatePatronInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid update_patron parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        changes = params.model_dump(exclude_unset=True, exclude={"patron_id"})

        with get_session() as session:
            try:
                patron = PatronRepository(session).update_patron(params.patron_id, changes)
            except RepositoryException as e:
                log_operation(
                    "update_patron_failed", patron_id=params.patron_id, error_type=e.kind
                )
                return repository_error_response(e)

        return success_response(
            f"Updated patron {patron.patron_id} ({patron.name})",
            patron=patron.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in update_patron tool")
        return format_error_response("Unexpected error", str(e))


@trace_tool("delete_patron")
async def delete_patron_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Delete a patron no loan refers to."""
    try:
        try:
            params = DeletePatronInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid delete_patron parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        with get_session() as session:
            try:
                patron = PatronRepository(session).delete_patron(params.patron_id)
            except RepositoryException as e:
                log_operation(
                    "delete_patron_failed", patron_id=params.patron_id, error_type=e.kind
                )
                return repository_error_response(e)

        return success_response(
            f"Deleted patron {patron.patron_id} ({patron.name})",
            patron=patron.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in delete_patron tool")
        return format_error_response("Unexpected error", str(e))


add_patron = {
    "name": "add_patron",
    "description": (
        "Register a library patron. Name and a valid email are required; address and "
        "phone are optional. Returns the new patron id."
    ),
    "inputSchema": AddPatronInput.model_json_schema(),
    "handler": add_patron_handler,
}

update_patron = {
    "name": "update_patron",
    "description": (
        "Update a patron's name, email, address or phone. An empty address or phone "
        "clears it."
    ),
    "inputSchema": UpdatePatronInput.model_json_schema(),
    "handler": update_patron_handler,
}

delete_patron = {
    "name": "delete_patron",
    "description": "Delete a patron. Refused while any loan, open or closed, refers to them.",
    "inputSchema": DeletePatronInput.model_json_schema(),
    "handler": delete_patron_handler,
}
