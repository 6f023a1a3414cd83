"""
Typed failures raised by the ledger operations.

Every failure carries a ``kind`` so callers (the MCP tools, scripts, tests)
can report it without matching on message text:

- validation_error: missing or malformed input, nothing was written
- not_found: a referenced entity does not exist
- duplicate_key: a unique key is already taken
- out_of_stock: no copy is left to lend
- conflict: the change would break a referential invariant
- dependency_failure: the store could not complete the transaction
"""


class RepositoryException(Exception):
    """Base exception for ledger operations."""

    kind = "error"


class InvalidInputError(RepositoryException):
    """Raised when required input is missing or malformed."""

    kind = "validation_error"


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""

    kind = "not_found"


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""

    kind = "duplicate_key"


class OutOfStockError(RepositoryException):
    """Raised when a loan is requested for a book with no copies available."""

    kind = "out_of_stock"


class ConflictError(RepositoryException):
    """Raised when an operation would orphan loans or undercount copies."""

    kind = "conflict"


class DependencyFailureError(RepositoryException):
    """Raised when the underlying store fails, times out or rejects a write."""

    kind = "dependency_failure"
