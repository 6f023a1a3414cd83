"""
Repository pattern implementation for the Chronos Library ledger.

Repositories are the ledger's operation boundary. Callers (MCP tools,
scripts, tests) hand a session to a repository and call one method per
operation; the method:

1. Validates its input and raises ``InvalidInputError`` before touching the store
2. Runs all of its reads and writes inside one ``transaction_scope``
3. Returns Pydantic models that are already joined with related names
4. Raises a typed ``RepositoryException`` on failure, after a full rollback

The base repository provides lookups and lazy keyset-paginated listings;
specialized repositories add the catalog, patron and lending operations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import Select, case, func, inspect, select
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.schema import Base
from ..database.schema import Loan as LoanDB
from ..database.session import transaction_scope
from ..errors import (
    ConflictError,
    DependencyFailureError,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    OutOfStockError,
    RepositoryException,
)

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
SchemaType = TypeVar("SchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

__all__ = [
    "BaseRepository",
    "ConflictError",
    "count_loans",
    "DependencyFailureError",
    "DuplicateError",
    "InvalidInputError",
    "NotFoundError",
    "OutOfStockError",
    "RepositoryException",
    "validate_input",
]


def count_loans(session: Session, *criteria) -> tuple[int, int]:
    """Return ``(all_loans, open_loans)`` for loans matching ``criteria``."""
    query = select(
        func.count(LoanDB.loan_id),
        func.coalesce(func.sum(case((LoanDB.return_date.is_(None), 1), else_=0)), 0),
    ).where(*criteria)
    total, open_loans = session.execute(query).one()
    return int(total), int(open_loans)


def validate_input(schema: type[SchemaType], data: SchemaType | Mapping[str, Any]) -> SchemaType:
    """
    Coerce ``data`` into ``schema``.

    Pydantic errors are reported as ``InvalidInputError`` with one line per
    offending field, so callers can show them as a status message.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'input'}: {error['msg']}"
            for error in e.errors()
        )
        raise InvalidInputError(f"Invalid {schema.__name__}: {problems}") from e


class BaseRepository(ABC, Generic[ModelType, UpdateSchemaType, ResponseSchemaType]):
    """
    Abstract base repository providing common operations.

    Every public method is one transaction on ``self.session``. Listings are
    generators that fetch one keyset page per transaction, so no lock is held
    while the caller consumes them.
    """

    def __init__(self, session: Session, page_size: int | None = None):
        """Initialize repository with database session."""
        self.session = session
        self.page_size = page_size or get_config().page_size

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    @property
    def primary_key(self):
        return inspect(self.model_class).primary_key[0]

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _require(self, id: Any, *, for_update: bool = False) -> ModelType:
        """Load an entity inside the current transaction or raise NotFoundError."""
        db_obj = self.session.get(self.model_class, id, with_for_update=for_update or None)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return db_obj

    def get_by_id(self, id: Any) -> ResponseSchemaType:
        """
        Get entity by primary key.

        Raises:
            NotFoundError: If no such entity exists
        """
        with transaction_scope(self.session, f"get {self.entity_name}", read_only=True):
            return self._to_response_model(self._require(id))

    def exists(self, id: Any) -> bool:
        with transaction_scope(self.session, f"check {self.entity_name}", read_only=True):
            return self.session.get(self.model_class, id) is not None

    def iter_all(self) -> Iterator[ResponseSchemaType]:
        """Lazily yield every entity in primary key order."""
        query = select(self.model_class).order_by(self.primary_key)
        yield from self._iter_pages(
            query, self.primary_key, lambda row: self._to_response_model(row[0])
        )

    def _iter_pages(
        self,
        query: Select,
        key_column,
        convert: Callable[[Any], Any],
    ) -> Iterator[Any]:
        """
        Keyset-paginate ``query`` and yield converted rows.

        ``query`` must be ordered by ``key_column`` and select the entity that
        owns it first. Each page is read in its own short read-only transaction.
        """
        last_key = None
        operation = f"list {self.entity_name}"
        while True:
            page_query = query if last_key is None else query.where(key_column > last_key)
            page_query = page_query.limit(self.page_size)

            with transaction_scope(self.session, operation, read_only=True):
                rows = self.session.execute(page_query).unique().all()
                items = [convert(row) for row in rows]
                if rows:
                    last_key = getattr(rows[-1][0], key_column.key)

            yield from items

            if len(items) < self.page_size:
                return
