"""
Patron model for the Chronos Library ledger.

Patrons are the library members loans are recorded against.
"""

from pydantic import BaseModel, ConfigDict, Field


class Patron(BaseModel):
    """
    Represents a library patron who can borrow books.

    Only name and email are required; email is not required to be unique.
    """

    patron_id: int = Field(..., description="Store-assigned identifier", ge=1)

    name: str = Field(
        ...,
        description="Full name of the patron",
        min_length=1,
        max_length=200,
        examples=["John Smith", "Maria Garcia"],
    )

    email: str = Field(
        ...,
        description="Email address of the patron",
        examples=["john.smith@example.com"],
    )

    address: str | None = Field(
        None,
        description="Mailing address for the patron",
        examples=["123 Main St, Anytown, ST 12345"],
    )

    phone: str | None = Field(
        None,
        description="Contact phone number",
        examples=["555-123-4567"],
    )

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "patron_id": 1,
                "name": "John Smith",
                "email": "john.smith@example.com",
                "address": "123 Main St, Anytown, ST 12345",
                "phone": "555-123-4567",
            }
        },
    )
