"""Tests for the catalog manager (BookRepository)."""

from datetime import date, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from chronos_library.database import book_repository
from chronos_library.database.book_repository import BookRepository
from chronos_library.database.repository import (
    ConflictError,
    DependencyFailureError,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
)
from chronos_library.database.schema import Author as AuthorDB
from chronos_library.database.schema import Book as BookDB
from chronos_library.database.schema import BookAuthor, BookCategory
from chronos_library.database.schema import Category as CategoryDB
from chronos_library.database.session import DatabaseManager


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestAddBook:
    def test_add_book_returns_joined_model(self, book_repo, sample_book_data):
        book = book_repo.add_book(sample_book_data)

        assert book.isbn == "9780134685479"
        assert book.title == "The Great Gatsby"
        assert book.year_of_publication == 1925
        assert book.total_copies == 3
        assert book.copies_available == 3
        assert book.authors == ["F. Scott Fitzgerald"]
        assert book.categories == ["Fiction"]

    def test_add_book_reuses_author_and_category(self, book_repo, sample_book, test_session):
        book_repo.add_book(
            {
                "isbn": "9780684801223",
                "title": "Tender Is the Night",
                "author_name": "  F. Scott   Fitzgerald ",
                "category_name": "Fiction",
                "total_copies": 1,
            }
        )

        assert _count(test_session, AuthorDB) == 1
        assert _count(test_session, CategoryDB) == 1

    def test_duplicate_isbn_rejected(self, book_repo, sample_book, sample_book_data, test_session):
        with pytest.raises(DuplicateError):
            book_repo.add_book(
                {
                    **sample_book_data,
                    "title": "Another Title",
                    "author_name": "Ernest Hemingway",
                    "category_name": "Modernism",
                }
            )

        assert book_repo.get_book(sample_book_data["isbn"]).title == "The Great Gatsby"
        assert _count(test_session, AuthorDB) == 1
        assert _count(test_session, CategoryDB) == 1
        assert _count(test_session, BookAuthor) == 1
        assert _count(test_session, BookCategory) == 1

    def test_other_integrity_failures_are_not_duplicates(
        self, book_repo, sample_book_data, test_session, monkeypatch
    ):
        real_flush = test_session.flush

        def flush_failing_on_book(*args, **kwargs):
            if any(isinstance(obj, BookDB) for obj in test_session.new):
                raise IntegrityError(
                    "INSERT INTO books", {}, Exception("CHECK constraint failed: check_copies")
                )
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(test_session, "flush", flush_failing_on_book)

        with pytest.raises(DependencyFailureError):
            book_repo.add_book(sample_book_data)

        assert _count(test_session, BookDB) == 0
        assert _count(test_session, AuthorDB) == 0

    def test_publication_year_bound_follows_the_clock(
        self, book_repo, sample_book_data, monkeypatch
    ):
        class NewYearsDay(datetime):
            @classmethod
            def now(cls, tz=None):
                return cls(2031, 1, 1)

        monkeypatch.setattr(book_repository, "datetime", NewYearsDay)

        book = book_repo.add_book({**sample_book_data, "year_of_publication": 2032})
        assert book.year_of_publication == 2032

        with pytest.raises(InvalidInputError, match="year_of_publication"):
            book_repo.add_book(
                {**sample_book_data, "isbn": "9780000000001", "year_of_publication": 2033}
            )

    @pytest.mark.parametrize(
        "field,value",
        [
            ("isbn", ""),
            ("title", "   "),
            ("author_name", ""),
            ("category_name", ""),
            ("total_copies", 0),
            ("year_of_publication", date.today().year + 5),
        ],
    )
    def test_invalid_input_writes_nothing(
        self, book_repo, sample_book_data, test_session, field, value
    ):
        with pytest.raises(InvalidInputError):
            book_repo.add_book({**sample_book_data, field: value})

        assert _count(test_session, BookDB) == 0
        assert _count(test_session, AuthorDB) == 0
        assert _count(test_session, CategoryDB) == 0

    def test_missing_field_is_invalid_input(self, book_repo, sample_book_data):
        data = dict(sample_book_data)
        del data["author_name"]

        with pytest.raises(InvalidInputError, match="author_name"):
            book_repo.add_book(data)

    def test_failure_after_author_insert_rolls_back_everything(
        self, book_repo, sample_book_data, test_session, monkeypatch
    ):
        def broken_find_or_create(name):
            raise DependencyFailureError("category store unavailable")

        monkeypatch.setattr(book_repo.categories, "find_or_create", broken_find_or_create)

        with pytest.raises(DependencyFailureError):
            book_repo.add_book(sample_book_data)

        assert _count(test_session, AuthorDB) == 0
        assert _count(test_session, BookDB) == 0
        assert _count(test_session, BookAuthor) == 0
        assert _count(test_session, BookCategory) == 0

    def test_concurrently_created_author_is_reused(
        self, book_repo, sample_book_data, test_session, other_session, monkeypatch
    ):
        other_session.add(AuthorDB(name="F. Scott Fitzgerald"))
        other_session.commit()

        # Lose the race: the lookup misses and the insert collides
        monkeypatch.setattr(book_repo.authors, "get_by_name", lambda name: None)
        book = book_repo.add_book(sample_book_data)

        assert book.authors == ["F. Scott Fitzgerald"]
        assert _count(test_session, AuthorDB) == 1


class TestReadBooks:
    def test_get_book_not_found(self, book_repo):
        with pytest.raises(NotFoundError):
            book_repo.get_book("0000000000")

    def test_list_books_in_isbn_order_across_pages(self, test_session):
        repo = BookRepository(test_session, page_size=2)
        for i in (5, 1, 4, 2, 3):
            repo.add_book(
                {
                    "isbn": f"978000000000{i}",
                    "title": f"Book {i}",
                    "author_name": "Author",
                    "category_name": "Category",
                    "total_copies": 1,
                }
            )

        isbns = [book.isbn for book in repo.list_books()]

        assert isbns == [f"978000000000{i}" for i in range(1, 6)]

    def test_list_books_is_lazy_and_restartable(self, book_repo, sample_book):
        listing = book_repo.list_books()
        assert [b.isbn for b in listing] == [sample_book.isbn]
        assert list(listing) == []
        assert [b.isbn for b in book_repo.list_books()] == [sample_book.isbn]

    def test_list_books_empty(self, book_repo):
        assert list(book_repo.list_books()) == []

    def test_reads_proceed_while_a_writer_holds_the_lock(
        self, test_database_url, sample_book, sample_book_data
    ):
        writer = DatabaseManager(test_database_url, timeout=0.5)
        reader = DatabaseManager(test_database_url, timeout=0.5)
        write_session = writer.create_session()
        read_session = reader.create_session()
        try:
            write_session.get(BookDB, sample_book.isbn).title = "Uncommitted Title"
            write_session.flush()

            repo = BookRepository(read_session)
            titles = [book.title for book in repo.list_books()]
            fetched = repo.get_book(sample_book.isbn)

            # Writers still queue behind the lock holder
            with pytest.raises(DependencyFailureError):
                repo.add_book({**sample_book_data, "isbn": "9780000000002"})
        finally:
            write_session.rollback()
            write_session.close()
            read_session.close()
            writer.close()
            reader.close()

        assert titles == ["The Great Gatsby"]
        assert fetched.title == "The Great Gatsby"

    def test_list_available_only(self, book_repo, sample_book, single_copy_book, test_session):
        test_session.get(BookDB, single_copy_book.isbn).copies_available = 0
        test_session.commit()

        available = [b.isbn for b in book_repo.list_books(available_only=True)]

        assert available == [sample_book.isbn]


class TestUpdateBook:
    def test_update_title(self, book_repo, sample_book):
        book = book_repo.update_book(sample_book.isbn, {"title": "Gatsby"})
        assert book.title == "Gatsby"
        assert book.copies_available == 3

    def test_raising_total_adds_available_copies(self, book_repo, sample_book):
        book = book_repo.update_book(sample_book.isbn, {"total_copies": 5})
        assert (book.total_copies, book.copies_available) == (5, 5)

    def test_total_below_open_loans_is_conflict(
        self, book_repo, circulation_repo, sample_book, sample_patron
    ):
        circulation_repo.create_loan(sample_patron.patron_id, sample_book.isbn)
        circulation_repo.create_loan(sample_patron.patron_id, sample_book.isbn)

        with pytest.raises(ConflictError):
            book_repo.update_book(sample_book.isbn, {"total_copies": 1})

        book = book_repo.update_book(sample_book.isbn, {"total_copies": 2})
        assert (book.total_copies, book.copies_available) == (2, 0)

    def test_copies_available_cannot_exceed_total(self, book_repo, sample_book):
        with pytest.raises(InvalidInputError):
            book_repo.update_book(sample_book.isbn, {"copies_available": 4})

    def test_copies_available_set_directly(self, book_repo, sample_book):
        book = book_repo.update_book(sample_book.isbn, {"copies_available": 1})
        assert book.copies_available == 1

    def test_empty_update_rejected(self, book_repo, sample_book):
        with pytest.raises(InvalidInputError):
            book_repo.update_book(sample_book.isbn, {})

    def test_update_missing_book(self, book_repo):
        with pytest.raises(NotFoundError):
            book_repo.update_book("missing", {"title": "x"})


class TestDeleteBook:
    def test_delete_book_removes_links_but_keeps_authors(
        self, book_repo, sample_book, test_session
    ):
        deleted = book_repo.delete_book(sample_book.isbn)

        assert deleted.isbn == sample_book.isbn
        assert not book_repo.exists(sample_book.isbn)
        assert _count(test_session, BookAuthor) == 0
        assert _count(test_session, AuthorDB) == 1

    def test_delete_missing_book(self, book_repo):
        with pytest.raises(NotFoundError):
            book_repo.delete_book("missing")

    def test_delete_book_with_loan_history_is_conflict(
        self, book_repo, circulation_repo, sample_book, sample_patron
    ):
        loan = circulation_repo.create_loan(sample_patron.patron_id, sample_book.isbn)
        circulation_repo.return_loan(loan.loan_id)

        with pytest.raises(ConflictError):
            book_repo.delete_book(sample_book.isbn)
        assert book_repo.exists(sample_book.isbn)


class TestLinks:
    def test_link_author_appends_in_order(self, book_repo, sample_book):
        book = book_repo.link_author(sample_book.isbn, "Maxwell Perkins")
        assert book.authors == ["F. Scott Fitzgerald", "Maxwell Perkins"]

    def test_relinking_is_a_no_op(self, book_repo, sample_book):
        book = book_repo.link_author(sample_book.isbn, "F. Scott Fitzgerald")
        assert book.authors == ["F. Scott Fitzgerald"]

    def test_link_category(self, book_repo, sample_book):
        book = book_repo.link_category(sample_book.isbn, "Classics")
        assert book.categories == ["Fiction", "Classics"]

    def test_link_to_missing_book(self, book_repo):
        with pytest.raises(NotFoundError):
            book_repo.link_author("missing", "Someone")

    def test_list_authors_and_categories_by_name(self, book_repo, sample_book, single_copy_book):
        assert [a.name for a in book_repo.authors.list_authors()] == [
            "F. Scott Fitzgerald",
            "George Orwell",
        ]
        assert [c.name for c in book_repo.categories.list_categories()] == [
            "Fiction",
            "Science Fiction",
        ]
