"""Chronos Library MCP Resources Package

Resources are the read-only side of the server: catalog, patron and loan
listings. Anything that changes the ledger is a tool.
"""

from .books import book_resources
from .loans import loan_resources
from .patrons import patron_resources

all_resources = book_resources + patron_resources + loan_resources

__all__ = [
    "all_resources",
    "book_resources",
    "loan_resources",
    "patron_resources",
]
