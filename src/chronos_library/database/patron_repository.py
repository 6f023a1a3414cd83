"""
Patron repository implementation for the Chronos Library ledger.

Patron records are plain CRUD: name and a well-formed email are required,
address and phone are optional, and nothing about a patron is unique except
the store-assigned id. A patron referenced by any loan cannot be deleted.
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..database.schema import Loan as LoanDB
from ..database.schema import Patron as PatronDB
from ..database.session import transaction_scope
from ..models.patron import Patron as PatronModel
from .repository import (
    BaseRepository,
    ConflictError,
    InvalidInputError,
    count_loans,
    validate_input,
)

logger = logging.getLogger(__name__)


class PatronCreateSchema(BaseModel):
    """Schema for creating a new patron."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=50)


class PatronUpdateSchema(BaseModel):
    """Schema for updating a patron - all fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=50)


def _blank_to_none(value: str | None) -> str | None:
    return value or None


class PatronRepository(BaseRepository[PatronDB, PatronUpdateSchema, PatronModel]):
    """Repository for patron data access."""

    @property
    def model_class(self):
        return PatronDB

    @property
    def response_schema(self):
        return PatronModel

    def add_patron(self, data: PatronCreateSchema | Mapping[str, Any]) -> PatronModel:
        """
        Register a patron.

        Raises:
            InvalidInputError: If name or email is missing or malformed
        """
        patron_data = validate_input(PatronCreateSchema, data)

        with transaction_scope(self.session, "add patron"):
            patron = PatronDB(
                name=patron_data.name,
                email=str(patron_data.email),
                address=_blank_to_none(patron_data.address),
                phone=_blank_to_none(patron_data.phone),
            )
            self.session.add(patron)
            self.session.flush()
            logger.info("Added patron %d (%s)", patron.patron_id, patron.name)
            return self._to_response_model(patron)

    def get_patron(self, patron_id: int) -> PatronModel:
        return self.get_by_id(patron_id)

    def list_patrons(self) -> Iterator[PatronModel]:
        """Lazily yield every patron in id order."""
        return self.iter_all()

    def update_patron(
        self, patron_id: int, data: PatronUpdateSchema | Mapping[str, Any]
    ) -> PatronModel:
        """
        Update a patron's contact details.

        Only the fields that are present are changed. An empty address or
        phone clears it; name and email cannot be cleared.

        Raises:
            InvalidInputError: If no field is given or a value is malformed
            NotFoundError: If the patron does not exist
        """
        update = validate_input(PatronUpdateSchema, data)
        fields = update.model_dump(exclude_unset=True)
        for required in ("name", "email"):
            if required in fields and fields[required] is None:
                raise InvalidInputError(f"Patron {required} cannot be cleared")
        if not fields:
            raise InvalidInputError("No patron fields to update")

        with transaction_scope(self.session, "update patron"):
            patron = self._require(patron_id)
            for field, value in fields.items():
                if field in ("address", "phone"):
                    value = _blank_to_none(value)
                elif field == "email":
                    value = str(value)
                setattr(patron, field, value)

            self.session.flush()
            logger.info("Updated patron %d: %s", patron_id, ", ".join(sorted(fields)))
            return self._to_response_model(patron)

    def delete_patron(self, patron_id: int) -> PatronModel:
        """
        Delete a patron.

        Raises:
            NotFoundError: If the patron does not exist
            ConflictError: If any loan, open or closed, references the patron
        """
        with transaction_scope(self.session, "delete patron"):
            patron = self._require(patron_id)

            loans, open_loans = count_loans(self.session, LoanDB.patron_id == patron_id)
            if loans:
                raise ConflictError(
                    f"Patron {patron_id} has {loans} loan(s) on record ({open_loans} open) "
                    "and cannot be deleted"
                )

            deleted = self._to_response_model(patron)
            self.session.delete(patron)
            self.session.flush()
            logger.info("Deleted patron %d", patron_id)
            return deleted
