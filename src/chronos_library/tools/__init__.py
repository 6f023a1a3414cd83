"""
MCP Tools for the Chronos Library server.

Tools are the operations with side effects. Each one validates its input,
runs exactly one ledger operation in its own transaction, and answers with a
short message plus structured data, or an ``isError`` response naming the
error kind.
"""

from .catalog import add_book, delete_book, update_book
from .circulation import create_loan, return_loan
from .patrons import add_patron, delete_patron, update_patron

all_tools = [
    add_book,
    update_book,
    delete_book,
    add_patron,
    update_patron,
    delete_patron,
    create_loan,
    return_loan,
]

__all__ = [
    "add_book",
    "add_patron",
    "all_tools",
    "create_loan",
    "delete_book",
    "delete_patron",
    "return_loan",
    "update_book",
    "update_patron",
]
