"""Patron Resources

Resources:
- library://patrons/list - Every patron, in id order
- library://patrons/{patron_id} - One patron by id
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.patron_repository import PatronRepository
from ..database.session import session_scope
from ..errors import NotFoundError, RepositoryException

logger = logging.getLogger(__name__)


async def list_patrons_handler() -> dict[str, Any]:
    """Returns every registered patron."""
    try:
        with session_scope() as session:
            patrons = [p.model_dump(mode="json") for p in PatronRepository(session).list_patrons()]
        return {"patrons": patrons, "total": len(patrons)}

    except RepositoryException as e:
        logger.exception("Error in patrons/list resource")
        raise ResourceError(f"Failed to retrieve patrons: {e!s}") from e


async def get_patron_handler(patron_id: str) -> dict[str, Any]:
    """Returns one patron. The id arrives as URI text."""
    try:
        pid = int(patron_id)
    except ValueError as e:
        raise ResourceError(f"Invalid patron id: {patron_id}") from e

    try:
        with session_scope() as session:
            return PatronRepository(session).get_patron(pid).model_dump(mode="json")

    except NotFoundError as e:
        raise ResourceError(f"Patron not found: {pid}") from e
    except RepositoryException as e:
        logger.exception("Error in patrons/{patron_id} resource")
        raise ResourceError(f"Failed to retrieve patron: {e!s}") from e


patron_resources: list[dict[str, Any]] = [
    {
        "uri": "library://patrons/list",
        "name": "Patron Directory",
        "description": "Every registered patron with contact details",
        "mime_type": "application/json",
        "handler": list_patrons_handler,
    },
    {
        "uri_template": "library://patrons/{patron_id}",
        "name": "Patron Details",
        "description": "One patron by id",
        "mime_type": "application/json",
        "handler": get_patron_handler,
    },
]
