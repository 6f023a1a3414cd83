#!/usr/bin/env python3
"""
Initialize the Chronos Library database.

This script:
1. Creates all database tables
2. Optionally seeds a small sample catalog through the ledger operations
3. Checks that the counters balance

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from chronos_library.database import (
    BookRepository,
    CirculationRepository,
    PatronRepository,
    RepositoryException,
    get_db_manager,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {
    "authors",
    "book_authors",
    "book_categories",
    "books",
    "categories",
    "loans",
    "patrons",
}

SAMPLE_BOOKS = [
    {
        "isbn": "9780743273565",
        "title": "The Great Gatsby",
        "author_name": "F. Scott Fitzgerald",
        "category_name": "Fiction",
        "year_of_publication": 1925,
        "total_copies": 3,
    },
    {
        "isbn": "9780061120084",
        "title": "To Kill a Mockingbird",
        "author_name": "Harper Lee",
        "category_name": "Fiction",
        "year_of_publication": 1960,
        "total_copies": 2,
    },
    {
        "isbn": "9780452284234",
        "title": "1984",
        "author_name": "George Orwell",
        "category_name": "Science Fiction",
        "year_of_publication": 1949,
        "total_copies": 1,
    },
]

SAMPLE_PATRONS = [
    {"name": "John Smith", "email": "john.smith@example.com", "phone": "555-0101"},
    {"name": "Jane Doe", "email": "jane.doe@example.com", "address": "12 Elm Street"},
]


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Chronos Library database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Seed a small sample catalog after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )

    args = parser.parse_args()

    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        db_manager.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            sys.exit(1)
        logger.info("Tables: %s", ", ".join(sorted(tables)))

        if args.sample_data:
            load_sample_data(db_manager)

        with db_manager.session_scope() as session:
            drifts = CirculationRepository(session).check_consistency()
        if drifts:
            logger.error("Ledger counters out of balance for %d book(s)", len(drifts))
            sys.exit(1)

        logger.info("Database initialization complete")

    except RepositoryException:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


def load_sample_data(db_manager):
    """
    Seed books, patrons and one open loan.

    Goes through the repositories so the available-copy counters start out
    consistent with the seeded loan.
    """
    with db_manager.session_scope() as session:
        books = BookRepository(session)
        patrons = PatronRepository(session)
        circulation = CirculationRepository(session)

        for book in SAMPLE_BOOKS:
            books.add_book(book)
        patron_ids = [patrons.add_patron(patron).patron_id for patron in SAMPLE_PATRONS]

        circulation.create_loan(patron_ids[0], SAMPLE_BOOKS[2]["isbn"])

    logger.info(
        "Seeded %d books, %d patrons and 1 loan", len(SAMPLE_BOOKS), len(SAMPLE_PATRONS)
    )


if __name__ == "__main__":
    main()
