"""
Author and category models for the Chronos Library ledger.

Both are created implicitly, by name, the first time a book mentions them.
"""

from pydantic import BaseModel, ConfigDict, Field


class Author(BaseModel):
    """An author known to the catalog."""

    author_id: int = Field(..., description="Store-assigned identifier", ge=1)

    name: str = Field(
        ...,
        description="Full name of the author",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald", "Harper Lee"],
    )

    model_config = ConfigDict(from_attributes=True)


class Category(BaseModel):
    """A subject category books can be filed under."""

    category_id: int = Field(..., description="Store-assigned identifier", ge=1)

    name: str = Field(
        ...,
        description="Category name",
        min_length=1,
        max_length=100,
        examples=["Fiction", "History"],
    )

    model_config = ConfigDict(from_attributes=True)
