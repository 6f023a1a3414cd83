"""
Chronos Library Package.

A small library catalog and lending ledger exposed as an MCP server.

Key Components:
- models: Pydantic models returned by every operation
- database: SQLAlchemy schema, session management and repositories
- config: Configuration management with Pydantic v2
- resources: MCP resources (read-only listings)
- tools: MCP tools (catalog, patron and lending operations)
"""

__version__ = "0.1.0"

from . import database

__all__ = [
    "__version__",
    "database",
]
