"""
Circulation models for the Chronos Library ledger.

- Loan: one lending transaction, Open until its return is recorded
- LoanView: a loan joined with the book title and patron name for display
- CounterDrift: a book whose cached ``copies_available`` disagrees with its
  open loans
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Loan(BaseModel):
    """
    Represents a single loan in the ledger.

    ``return_date`` is None while the loan is open. It is set exactly once,
    by the return operation.
    """

    loan_id: int = Field(..., description="Store-assigned identifier", ge=1)

    isbn: str = Field(..., description="ISBN of the loaned book")

    patron_id: int = Field(..., description="Patron holding the book", ge=1)

    loan_date: date = Field(
        ...,
        description="Date the book was lent",
        examples=["2024-01-15"],
    )

    return_date: date | None = Field(
        None,
        description="Date the book came back; None while the loan is open",
        examples=["2024-02-01", None],
    )

    @model_validator(mode="after")
    def validate_dates(self) -> "Loan":
        if self.return_date is not None and self.return_date < self.loan_date:
            raise ValueError("Return date cannot be before loan date")
        return self

    @property
    def is_open(self) -> bool:
        """An open loan counts against the book's available copies."""
        return self.return_date is None

    model_config = ConfigDict(from_attributes=True)


class LoanView(Loan):
    """Loan joined with the human-readable names the loan list displays."""

    book_title: str = Field(..., description="Title of the loaned book, or a placeholder")

    patron_name: str = Field(..., description="Name of the borrower, or a placeholder")


class CounterDrift(BaseModel):
    """A book whose stored counter differs from the one its loans imply."""

    isbn: str
    total_copies: int
    open_loans: int
    copies_available: int = Field(..., description="Counter as stored")
    expected_available: int = Field(..., description="total_copies - open_loans")

    @property
    def delta(self) -> int:
        return self.copies_available - self.expected_available
