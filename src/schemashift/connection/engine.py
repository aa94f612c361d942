"""
SQLAlchemy-backed connection.

Wraps a single SQLAlchemy ``AsyncConnection``. The driver is chosen by the
URL: ``sqlite+aiosqlite://``, ``postgresql+asyncpg://`` or
``mysql+aiomysql://``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Self

from sqlalchemy import event, make_url, text
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..exceptions import ConnectionError
from ..types import Dialect
from .base import BaseConnection

logger = logging.getLogger(__name__)


def dialect_from_url(url: str) -> Dialect:
    """
    Derive the dialect tag from a database URL.

    Raises:
        ConnectionError: If the URL cannot be parsed
        UnsupportedDialectError: If the backend is not supported
    """
    try:
        backend = make_url(url).get_backend_name()
    except ArgumentError as e:
        raise ConnectionError(f"Invalid database URL: {e}") from e
    return Dialect.parse(backend)


def enable_sqlite_transactional_ddl(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on SQLite.

    The sqlite3 driver only emits BEGIN before DML, so DDL would commit
    immediately. Disabling its implicit handling and emitting BEGIN from
    the "begin" event puts CREATE, ALTER and DROP inside transactions.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


class Connection(BaseConnection):
    """
    Async database handle over a SQLAlchemy engine.

    Statements outside ``transaction()`` are committed immediately.

    Usage::

        async with Connection("sqlite+aiosqlite:///app.db") as conn:
            rows = await conn.fetch_all("SELECT name FROM sqlite_master")

    Or wrapping a connection the caller already manages::

        conn = Connection.from_sqlalchemy(async_connection)
    """

    def __init__(self, url: str, **engine_options: Any) -> None:
        """
        Initialize connection parameters.

        Args:
            url: SQLAlchemy database URL with an async driver
            **engine_options: Passed through to ``create_async_engine``
        """
        self.url = url
        self._dialect = dialect_from_url(url)
        self._engine_options = engine_options
        self._engine: AsyncEngine | None = None
        self._conn: AsyncConnection | None = None
        self._owns_engine = True
        self._in_transaction = False

    @classmethod
    def from_sqlalchemy(cls, conn: AsyncConnection) -> "Connection":
        """Wrap an already open ``AsyncConnection`` without taking ownership of it."""
        instance = cls(conn.engine.url.render_as_string(hide_password=False))
        instance._engine = conn.engine
        instance._conn = conn
        instance._owns_engine = False
        return instance

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    async def connect(self) -> Self:
        if self.is_connected:
            return self
        self._engine = create_async_engine(self.url, **self._engine_options)
        if self._dialect == Dialect.SQLITE:
            enable_sqlite_transactional_ddl(self._engine)
        try:
            self._conn = await self._engine.connect()
        except Exception as e:
            await self._engine.dispose()
            self._engine = None
            raise ConnectionError(f"Failed to connect to {make_url(self.url).render_as_string()}: {e}") from e
        logger.debug("Connected to %s database.", self._dialect)
        return self

    async def close(self) -> None:
        if not self._owns_engine:
            return
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    def _require(self) -> AsyncConnection:
        if self._conn is None or self._conn.closed:
            raise ConnectionError("Connection is not open. Call connect() first.")
        return self._conn

    async def _autocommit(self, conn: AsyncConnection) -> None:
        if not self._in_transaction and conn.in_transaction():
            await conn.commit()

    async def fetch_all(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        conn = self._require()
        result = await conn.execute(text(query), params or {})
        rows = [dict(row) for row in result.mappings().all()]
        await self._autocommit(conn)
        return rows

    async def execute(self, statement: str, params: dict[str, Any] | None = None) -> None:
        conn = self._require()
        if params:
            await conn.execute(text(statement), params)
        else:
            # Raw DDL: no bind parameter parsing, so colons and percent signs pass through.
            await conn.exec_driver_sql(statement, execution_options={"no_parameters": True})
        await self._autocommit(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        conn = self._require()
        if conn.in_transaction():
            await conn.commit()
        self._in_transaction = True
        try:
            async with conn.begin():
                yield
        finally:
            self._in_transaction = False

    def __repr__(self) -> str:
        return f"Connection(dialect={self._dialect!s}, connected={self.is_connected})"


__all__ = ["Connection", "dialect_from_url", "enable_sqlite_transactional_ddl"]
