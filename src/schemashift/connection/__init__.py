"""
Database connections for schemashift.

The core only needs something that can run raw SQL and hand back rows as
dicts; ``BaseConnection`` is that contract and ``Connection`` implements
it on top of SQLAlchemy's asyncio extension.
"""

from .base import BaseConnection
from .engine import Connection, dialect_from_url

__all__ = ["BaseConnection", "Connection", "dialect_from_url"]
