"""
Base connection interface.

Defines the minimal async database handle the introspector and the
migration executor work against: raw SQL in, rows as dicts out.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Self

from ..types import Dialect


class BaseConnection(ABC):
    """
    Abstract base class for database handles.

    Bind parameters use the ``:name`` style and are passed as a mapping.
    """

    @property
    @abstractmethod
    def dialect(self) -> Dialect:
        """Engine family this handle talks to."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the handle is open."""
        ...

    @abstractmethod
    async def connect(self) -> Self:
        """Open the handle. Returns self for fluent API."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the handle."""
        ...

    @abstractmethod
    async def fetch_all(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """
        Execute a query and return every row.

        Args:
            query: SQL or PRAGMA text
            params: Named bind parameters

        Returns:
            Rows as dicts keyed by column label
        """
        ...

    @abstractmethod
    async def execute(self, statement: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement that returns no rows."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """
        Run the enclosed statements in one transaction.

        Commits on normal exit and rolls back if the block raises.
        """
        ...

    async def fetch_one(self, query: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """Execute a query and return its first row, or None."""
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None

    # Context manager support

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


__all__ = ["BaseConnection"]
