"""
Book model for the Chronos Library ledger.

This is the read model returned by every catalog operation. It is already
joined with the names of the book's authors and categories, in the order the
links were made, so callers never perform their own joins.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    ``copies_available`` is the live count of copies not out on loan;
    ``total_copies`` is the configured number of copies the library owns.
    """

    isbn: str = Field(
        ...,
        description="International Standard Book Number, the book's natural key",
        min_length=1,
        max_length=32,
        examples=["978-0-134-68547-9", "9780134685479"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    year_of_publication: int | None = Field(
        None,
        description="Year the book was published",
        examples=[1925, 1960, 2023],
    )

    copies_available: int = Field(
        ...,
        description="Number of copies currently available for loan",
        ge=0,
        examples=[0, 1, 5],
    )

    total_copies: int = Field(
        ...,
        description="Total number of copies owned by the library",
        ge=1,
        examples=[1, 3, 10],
    )

    authors: list[str] = Field(
        default_factory=list,
        description="Author names in link order",
        examples=[["F. Scott Fitzgerald"]],
    )

    categories: list[str] = Field(
        default_factory=list,
        description="Category names in link order",
        examples=[["Fiction", "Classics"]],
    )

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.copies_available > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        """Check if the book has any available copies."""
        return self.copies_available > 0

    @property
    def copies_on_loan(self) -> int:
        """Number of copies the counter says are out on loan."""
        return self.total_copies - self.copies_available

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "isbn": "9780134685479",
                "title": "The Great Gatsby",
                "year_of_publication": 1925,
                "copies_available": 2,
                "total_copies": 3,
                "authors": ["F. Scott Fitzgerald"],
                "categories": ["Fiction"],
            }
        }
    )
