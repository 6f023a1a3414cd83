"""
Chronos Library Models.

Pydantic models returned by the ledger operations. They provide:

1. Validated, typed read models for every entity
2. JSON serialization (dates as YYYY-MM-DD) for the MCP surface
3. Denormalized names so callers never join themselves

The models represent:
- Book: catalog items with author and category names
- Author, Category: found-or-created by name
- Patron: library members
- Loan, LoanView, CounterDrift: the lending ledger
"""

from .author import Author, Category
from .book import Book
from .circulation import CounterDrift, Loan, LoanView
from .patron import Patron

__all__ = [
    "Author",
    "Book",
    "Category",
    "CounterDrift",
    "Loan",
    "LoanView",
    "Patron",
]
