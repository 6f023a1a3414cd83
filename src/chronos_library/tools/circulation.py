"""Circulation Tools - Lending

Opens and closes loans. Each call moves a book's available-copy counter in
the same transaction as the loan record.

Tools:
- create_loan: Lend one copy of a book to a patron
- return_loan: Close an open loan and restock its copy
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.circulation_repository import CirculationRepository, LoanKeySchema
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


class CreateLoanInput(LoanKeySchema):
    """Input schema for lending a book."""


class ReturnLoanInput(BaseModel):
    """Input schema for returning a loan."""

    loan_id: int = Field(..., ge=1, description="Id of the open loan to close")


@trace_tool("create_loan")
async def create_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Lend a book.

    Client calls: tool.call("create_loan", {"patron_id": 1, "isbn": "..."})
    """
    try:
        try:
            params = CreateLoanInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid create_loan parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        log_operation("create_loan_start", patron_id=params.patron_id, isbn=params.isbn)

        with get_session() as session:
            try:
                loan = CirculationRepository(session).create_loan(params.patron_id, params.isbn)
            except RepositoryException as e:
                log_operation(
                    "create_loan_failed",
                    patron_id=params.patron_id,
                    isbn=params.isbn,
                    error_type=e.kind,
                    error_details=str(e),
                )
                return repository_error_response(e)

        log_operation("create_loan_success", loan_id=loan.loan_id)
        return success_response(
            f"Loan {loan.loan_id} opened: book '{loan.isbn}' lent to patron "
            f"{loan.patron_id} on {loan.loan_date.isoformat()}",
            loan=loan.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in create_loan tool")
        return format_error_response("Unexpected error", str(e))


@trace_tool("return_loan")
async def return_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Return a loan.

    Client calls: tool.call("return_loan", {"loan_id": 42})
    """
    try:
        try:
            params = ReturnLoanInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid return_loan parameters: %s", e)
            return format_error_response("Invalid parameters", str(e), "validation_error")

        with get_session() as session:
            try:
                loan = CirculationRepository(session).return_loan(params.loan_id)
            except RepositoryException as e:
                log_operation(
                    "return_loan_failed",
                    loan_id=params.loan_id,
                    error_type=e.kind,
                    error_details=str(e),
                )
                return repository_error_response(e)

        log_operation("return_loan_success", loan_id=loan.loan_id, isbn=loan.isbn)
        return success_response(
            f"Loan {loan.loan_id} closed: book '{loan.isbn}' returned on "
            f"{loan.return_date.isoformat()}",
            loan=loan.model_dump(mode="json"),
        )

    except Exception as e:
        logger.exception("Unexpected error in return_loan tool")
        return format_error_response("Unexpected error", str(e))


create_loan = {
    "name": "create_loan",
    "description": (
        "Lend one copy of a book to a patron. Fails with 'Out of stock' when no copy "
        "is available. The loan is dated today."
    ),
    "inputSchema": CreateLoanInput.model_json_schema(),
    "handler": create_loan_handler,
}

return_loan = {
    "name": "return_loan",
    "description": (
        "Return an open loan by id. Closes the existing loan record and makes the copy "
        "available again."
    ),
    "inputSchema": ReturnLoanInput.model_json_schema(),
    "handler": return_loan_handler,
}
