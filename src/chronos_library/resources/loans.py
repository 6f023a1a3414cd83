"""Loan Resources - Lending Ledger Views

Resources:
- library://loans/list - Every loan, open and closed, with book title and patron name
- library://loans/open - Loans not yet returned
- library://loans/consistency - Books whose available count disagrees with their open loans
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.circulation_repository import CirculationRepository
from ..database.session import session_scope
from ..errors import RepositoryException

logger = logging.getLogger(__name__)


def _list_loans(open_only: bool) -> dict[str, Any]:
    with session_scope() as session:
        repo = CirculationRepository(session)
        loans = [loan.model_dump(mode="json") for loan in repo.list_loans(open_only=open_only)]
    return {"loans": loans, "total": len(loans)}


async def list_loans_handler() -> dict[str, Any]:
    """Returns the full loan history.

    A loan whose book or patron is missing is listed with a placeholder name.
    """
    try:
        return _list_loans(open_only=False)
    except RepositoryException as e:
        logger.exception("Error in loans/list resource")
        raise ResourceError(f"Failed to retrieve loans: {e!s}") from e


async def list_open_loans_handler() -> dict[str, Any]:
    try:
        return _list_loans(open_only=True)
    except RepositoryException as e:
        logger.exception("Error in loans/open resource")
        raise ResourceError(f"Failed to retrieve open loans: {e!s}") from e


async def consistency_handler() -> dict[str, Any]:
    """Returns counter drift per book; an empty list means the ledger balances."""
    try:
        with session_scope() as session:
            drifts = CirculationRepository(session).check_consistency()
        return {
            "consistent": not drifts,
            "drifts": [drift.model_dump() for drift in drifts],
        }
    except RepositoryException as e:
        logger.exception("Error in loans/consistency resource")
        raise ResourceError(f"Failed to check ledger consistency: {e!s}") from e


loan_resources: list[dict[str, Any]] = [
    {
        "uri": "library://loans/list",
        "name": "Loan Ledger",
        "description": "Every loan with book title and patron name",
        "mime_type": "application/json",
        "handler": list_loans_handler,
    },
    {
        "uri": "library://loans/open",
        "name": "Open Loans",
        "description": "Loans that have not been returned",
        "mime_type": "application/json",
        "handler": list_open_loans_handler,
    },
    {
        "uri": "library://loans/consistency",
        "name": "Ledger Consistency",
        "description": "Books whose available-copy counter disagrees with their open loans",
        "mime_type": "application/json",
        "handler": consistency_handler,
    },
]
