"""Tests for the Pydantic read models."""

from datetime import date

import pytest
from pydantic import ValidationError

from chronos_library.database.author_repository import normalize_name
from chronos_library.database.repository import InvalidInputError
from chronos_library.models import Book, CounterDrift, Loan, LoanView


class TestBook:
    def test_availability_properties(self):
        book = Book(isbn="1", title="T", copies_available=1, total_copies=3)

        assert book.is_available
        assert book.copies_on_loan == 2
        assert book.authors == []

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            Book(isbn="1", title="T", copies_available=4, total_copies=3)


class TestLoan:
    def test_open_loan(self):
        loan = Loan(loan_id=1, isbn="1", patron_id=1, loan_date=date(2024, 1, 1))
        assert loan.is_open

    def test_return_before_loan_rejected(self):
        with pytest.raises(ValidationError):
            Loan(
                loan_id=1,
                isbn="1",
                patron_id=1,
                loan_date=date(2024, 1, 2),
                return_date=date(2024, 1, 1),
            )

    def test_view_serializes_dates_as_iso(self):
        view = LoanView(
            loan_id=1,
            isbn="1",
            patron_id=1,
            loan_date=date(2024, 1, 2),
            book_title="T",
            patron_name="P",
        )
        assert view.model_dump(mode="json")["loan_date"] == "2024-01-02"


def test_counter_drift_delta():
    drift = CounterDrift(
        isbn="1", total_copies=3, open_loans=1, copies_available=3, expected_available=2
    )
    assert drift.delta == 1


@pytest.mark.parametrize(
    "raw,expected",
    [("Harper Lee", "Harper Lee"), ("  Harper   Lee ", "Harper Lee"), ("\tX\n", "X")],
)
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_normalize_blank_name(raw):
    with pytest.raises(InvalidInputError):
        normalize_name(raw)
