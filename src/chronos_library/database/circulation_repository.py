"""
Circulation repository implementation for the Chronos Library ledger.

This repository is the lending ledger. It owns the only cross-record
invariant in the system:

    book.copies_available == book.total_copies - open loans on the book

The counter is cached on the book row rather than recomputed, so every
transition updates it in the same transaction as the loan:

1. **Create loan**: conditional decrement of the counter (a compare-and-swap
   that refuses to go below zero), then insert the open loan
2. **Return loan**: close the open loan (again a compare-and-swap on
   ``return_date IS NULL``), then increment the counter, capped at
   ``total_copies``
3. **Consistency check**: recompute the invariant for every book and report
   drift

Returns close an existing open loan. They never insert a new loan row.
"""

import logging
from collections.abc import Callable, Iterator
from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.schema import Patron as PatronDB
from ..database.session import transaction_scope
from ..models.circulation import CounterDrift
from ..models.circulation import Loan as LoanModel
from ..models.circulation import LoanView
from .repository import (
    BaseRepository,
    NotFoundError,
    OutOfStockError,
    validate_input,
)

logger = logging.getLogger(__name__)


class LoanKeySchema(BaseModel):
    """Patron and book naming a loan to open, or an open loan to close."""

    model_config = ConfigDict(str_strip_whitespace=True)

    patron_id: int = Field(..., ge=1)
    isbn: str = Field(..., min_length=1, max_length=32)


class CirculationRepository(BaseRepository[LoanDB, BaseModel, LoanModel]):
    """
    Repository for lending operations.

    Each operation touches the loans table and the book's counter together and
    commits both or neither.
    """

    def __init__(
        self,
        session: Session,
        page_size: int | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            session: Database session
            page_size: Rows per page for lazy listings
            today: Clock used for loan and return dates
        """
        super().__init__(session, page_size)
        config = get_config()
        self.unknown_book_title = config.unknown_book_title
        self.unknown_patron_name = config.unknown_patron_name
        self.today = today

    @property
    def model_class(self):
        return LoanDB

    @property
    def response_schema(self):
        return LoanModel

    def create_loan(self, patron_id: int, isbn: str) -> LoanModel:
        """
        Lend one copy of a book to a patron.

        Returns:
            The new open loan, dated today

        Raises:
            InvalidInputError: If the patron id or ISBN is malformed
            NotFoundError: If the patron or book does not exist
            OutOfStockError: If no copy is available
            DependencyFailureError: If the store cannot complete the transaction
        """
        loan_data = validate_input(LoanKeySchema, {"patron_id": patron_id, "isbn": isbn})

        with transaction_scope(self.session, "create loan"):
            if self.session.get(PatronDB, loan_data.patron_id) is None:
                raise NotFoundError(f"Patron {loan_data.patron_id} not found")

            book = self.session.get(BookDB, loan_data.isbn)
            if book is None:
                raise NotFoundError(f"Book {loan_data.isbn} not found")

            # Decrement only while a copy is left; zero rows means out of stock
            result = self.session.execute(
                update(BookDB)
                .where(BookDB.isbn == loan_data.isbn, BookDB.copies_available > 0)
                .values(copies_available=BookDB.copies_available - 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise OutOfStockError(f"No copies of '{book.title}' are available")

            loan = LoanDB(
                isbn=loan_data.isbn,
                patron_id=loan_data.patron_id,
                loan_date=self.today(),
                return_date=None,
            )
            self.session.add(loan)
            self.session.flush()

            logger.info(
                "Loan %d opened: book %s to patron %d",
                loan.loan_id,
                loan.isbn,
                loan.patron_id,
            )
            return self._to_response_model(loan)

    def return_loan(self, loan_id: int) -> LoanModel:
        """
        Close an open loan and put its copy back on the shelf.

        Raises:
            NotFoundError: If there is no open loan with this id
            DependencyFailureError: If the store cannot complete the transaction
        """
        with transaction_scope(self.session, "return loan"):
            loan = self.session.get(LoanDB, loan_id, with_for_update=True)
            if loan is None or loan.return_date is not None:
                raise NotFoundError(f"No open loan with id {loan_id}")
            return self._close(loan)

    def return_book(self, patron_id: int, isbn: str) -> LoanModel:
        """
        Close the oldest open loan of ``isbn`` held by ``patron_id``.

        Raises:
            InvalidInputError: If the patron id or ISBN is malformed
            NotFoundError: If the patron has no open loan for the book
        """
        return_data = validate_input(LoanKeySchema, {"patron_id": patron_id, "isbn": isbn})

        with transaction_scope(self.session, "return book"):
            loan = self.session.execute(
                select(LoanDB)
                .where(
                    LoanDB.patron_id == return_data.patron_id,
                    LoanDB.isbn == return_data.isbn,
                    LoanDB.return_date.is_(None),
                )
                .order_by(LoanDB.loan_date, LoanDB.loan_id)
                .limit(1)
                .with_for_update()
            ).scalar_one_or_none()

            if loan is None:
                raise NotFoundError(
                    f"Patron {return_data.patron_id} has no open loan for book {return_data.isbn}"
                )
            return self._close(loan)

    def _close(self, loan: LoanDB) -> LoanModel:
        """Close ``loan`` and increment its book's counter, inside the caller's transaction."""
        return_date = self.today()

        closed = self.session.execute(
            update(LoanDB)
            .where(LoanDB.loan_id == loan.loan_id, LoanDB.return_date.is_(None))
            .values(return_date=return_date)
            .execution_options(synchronize_session=False)
        )
        if closed.rowcount == 0:
            raise NotFoundError(f"No open loan with id {loan.loan_id}")

        restocked = self.session.execute(
            update(BookDB)
            .where(BookDB.isbn == loan.isbn, BookDB.copies_available < BookDB.total_copies)
            .values(copies_available=BookDB.copies_available + 1)
            .execution_options(synchronize_session=False)
        )
        if restocked.rowcount == 0:
            logger.warning(
                "Book %s already shows all copies available; counter left unchanged "
                "on return of loan %d",
                loan.isbn,
                loan.loan_id,
            )

        self.session.refresh(loan)
        logger.info("Loan %d closed: book %s returned", loan.loan_id, loan.isbn)
        return self._to_response_model(loan)

    def get_loan(self, loan_id: int) -> LoanModel:
        return self.get_by_id(loan_id)

    def list_loans(self, open_only: bool = False) -> Iterator[LoanView]:
        """
        Lazily yield loans joined with book title and patron name.

        A loan whose book or patron cannot be resolved is still listed, with
        the configured placeholder in place of the missing name.
        """
        query = (
            select(LoanDB, BookDB.title, PatronDB.name)
            .outerjoin(BookDB, BookDB.isbn == LoanDB.isbn)
            .outerjoin(PatronDB, PatronDB.patron_id == LoanDB.patron_id)
            .order_by(LoanDB.loan_id)
        )
        if open_only:
            query = query.where(LoanDB.return_date.is_(None))

        yield from self._iter_pages(query, LoanDB.loan_id, self._to_view)

    def _to_view(self, row) -> LoanView:
        loan, title, patron_name = row
        return LoanView(
            loan_id=loan.loan_id,
            isbn=loan.isbn,
            patron_id=loan.patron_id,
            loan_date=loan.loan_date,
            return_date=loan.return_date,
            book_title=title or self.unknown_book_title,
            patron_name=patron_name or self.unknown_patron_name,
        )

    def check_consistency(self) -> list[CounterDrift]:
        """
        Recompute every book's available count from its open loans.

        Returns:
            One entry per book whose stored counter disagrees; empty when the
            ledger is consistent
        """
        open_loans = (
            select(LoanDB.isbn, func.count(LoanDB.loan_id).label("open_loans"))
            .where(LoanDB.return_date.is_(None))
            .group_by(LoanDB.isbn)
            .subquery()
        )
        query = (
            select(
                BookDB.isbn,
                BookDB.total_copies,
                BookDB.copies_available,
                func.coalesce(open_loans.c.open_loans, 0),
            )
            .outerjoin(open_loans, open_loans.c.isbn == BookDB.isbn)
            .order_by(BookDB.isbn)
        )

        with transaction_scope(self.session, "check consistency", read_only=True):
            rows = self.session.execute(query).all()

        drifts = []
        for isbn, total, available, open_count in rows:
            expected = total - open_count
            if available != expected:
                drift = CounterDrift(
                    isbn=isbn,
                    total_copies=total,
                    open_loans=open_count,
                    copies_available=available,
                    expected_available=expected,
                )
                logger.warning(
                    "Counter drift on book %s: stored %d, expected %d",
                    isbn,
                    available,
                    expected,
                )
                drifts.append(drift)
        return drifts
