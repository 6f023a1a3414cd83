"""
Author and category repositories for the Chronos Library ledger.

Authors and categories are never created directly. Catalog operations name
them in free text and ``find_or_create`` resolves the name to a row inside
the caller's transaction:

1. Look the trimmed name up
2. If missing, insert it inside a SAVEPOINT
3. If a concurrent writer inserted the same name first, roll back only the
   savepoint and reuse the winner's row (names are unique in the store)
"""

import logging
from collections.abc import Iterator

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..database.schema import Author as AuthorDB
from ..database.schema import Category as CategoryDB
from ..errors import InvalidInputError
from ..models.author import Author as AuthorModel
from ..models.author import Category as CategoryModel
from .repository import BaseRepository

logger = logging.getLogger(__name__)


def normalize_name(name: str | None) -> str:
    """Trim surrounding whitespace and collapse inner runs of spaces."""
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise InvalidInputError("Name cannot be blank")
    return cleaned


class _NamedEntityRepository(BaseRepository):
    """Shared lookup logic for entities identified by a unique name."""

    def get_by_name(self, name: str):
        """Return the entity with this name, or None."""
        query = select(self.model_class).where(self.model_class.name == normalize_name(name))
        return self.session.execute(query).scalar_one_or_none()

    def find_or_create(self, name: str):
        """
        Resolve ``name`` to a row, inserting it if needed.

        Must be called inside an open transaction; the insert commits or rolls
        back with the caller's operation.
        """
        cleaned = normalize_name(name)
        existing = self.get_by_name(cleaned)
        if existing is not None:
            return existing

        db_obj = self.model_class(name=cleaned)
        try:
            with self.session.begin_nested():
                self.session.add(db_obj)
        except IntegrityError:
            logger.info("%s %r was created concurrently, reusing it", self.entity_name, cleaned)
            return self.session.execute(
                select(self.model_class).where(self.model_class.name == cleaned)
            ).scalar_one()

        logger.info("Created %s %r", self.entity_name, cleaned)
        return db_obj

    def iter_by_name(self) -> Iterator[BaseModel]:
        """Lazily yield every entity ordered by name."""
        query = select(self.model_class).order_by(self.model_class.name)
        yield from self._iter_pages(
            query, self.model_class.name, lambda row: self._to_response_model(row[0])
        )


class AuthorRepository(_NamedEntityRepository):
    """Repository for author data access."""

    @property
    def model_class(self):
        return AuthorDB

    @property
    def response_schema(self):
        return AuthorModel

    def list_authors(self) -> Iterator[AuthorModel]:
        return self.iter_by_name()


class CategoryRepository(_NamedEntityRepository):
    """Repository for category data access."""

    @property
    def model_class(self):
        return CategoryDB

    @property
    def response_schema(self):
        return CategoryModel

    def list_categories(self) -> Iterator[CategoryModel]:
        return self.iter_by_name()
