"""
Pytest configuration for schemashift tests.

Shared schema builders and a real in-memory SQLite connection (aiosqlite)
used by the introspection, executor and CLI tests. PostgreSQL and MySQL
catalog access is exercised with mocked rows.
"""

import shutil
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio

from schemashift.connection import Connection
from schemashift.migrations.schema import Column, DatabaseSchema, ForeignKey, Index, TableSchema

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def make_users_table(with_email: bool = True) -> TableSchema:
    """``users`` with an auto-increment id, an email column and a unique index on it."""
    columns = [Column(name="id", type="integer", not_null=True, primary_key=True, auto_increment=True)]
    indexes = []
    if with_email:
        columns.append(Column(name="email", type="varchar", not_null=True))
        indexes.append(Index(name="idx_users_email", columns=("email",), unique=True))
    return TableSchema(name="users", columns=tuple(columns), indexes=tuple(indexes))


def make_posts_table(with_fk: bool = True) -> TableSchema:
    """``posts`` with an optional foreign key to ``users``."""
    fks = ()
    if with_fk:
        fks = (
            ForeignKey(
                name="fk_posts_user_id",
                column="user_id",
                referenced_table="users",
                referenced_column="id",
                on_delete="CASCADE",
            ),
        )
    return TableSchema(
        name="posts",
        columns=(
            Column(name="id", type="integer", not_null=True, primary_key=True, auto_increment=True),
            Column(name="user_id", type="integer", not_null=True),
            Column(name="title", type="text"),
        ),
        foreign_keys=fks,
    )


def make_schema(*tables: TableSchema) -> DatabaseSchema:
    return DatabaseSchema.from_tables(tables)


@pytest.fixture
def temp_migrations_dir() -> Generator[Path, None, None]:
    """Create a temporary migrations directory."""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest_asyncio.fixture
async def sqlite_conn() -> AsyncGenerator[Connection, None]:
    """Open connection to a fresh in-memory SQLite database."""
    conn = Connection(SQLITE_MEMORY_URL)
    await conn.connect()
    try:
        yield conn
    finally:
        await conn.close()
