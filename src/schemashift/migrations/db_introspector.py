"""
Database introspector for reverse schema extraction.

Reads the live structure of a database from its catalog (``pg_catalog`` and
``information_schema`` for PostgreSQL, ``information_schema`` for MySQL,
``sqlite_master`` and PRAGMAs for SQLite) into a ``DatabaseSchema`` that
can be compared against the desired state.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, ClassVar

from ..connection.base import BaseConnection
from ..connection_config import DEFAULT_MIGRATIONS_TABLE
from ..exceptions import ConnectionError
from ..types import Dialect
from .schema import Column, DatabaseSchema, ForeignKey, Index, TableSchema

logger = logging.getLogger(__name__)

_LENGTH_SPECIFIER = re.compile(r"\s*\([^)]*\)")


def _no_action_to_none(rule: Any) -> str | None:
    if rule is None:
        return None
    rule = str(rule).upper()
    return None if rule == "NO ACTION" else rule


class CatalogReader(ABC):
    """
    Reads one dialect's catalog into the normalized schema model.

    Subclasses provide the catalog queries and their native type table;
    this base class only fixes the output shape and table order.
    """

    dialect: ClassVar[Dialect]
    type_map: ClassVar[dict[str, str]] = {}

    def __init__(self, connection: BaseConnection, migrations_table: str = DEFAULT_MIGRATIONS_TABLE) -> None:
        self.connection = connection
        self.migrations_table = migrations_table

    def normalize_type(self, native_type: str) -> str:
        """
        Translate a native type spelling to the semantic vocabulary.

        Lookup ignores case and length specifiers; unmapped types pass
        through lowercased.
        """
        lowered = native_type.strip().lower()
        key = _LENGTH_SPECIFIER.sub("", lowered).strip()
        return self.type_map.get(key, lowered)

    async def read(self) -> DatabaseSchema:
        """Read every user table, sorted by name, skipping the migrations table."""
        table_names = sorted(name for name in await self.list_tables() if name != self.migrations_table)
        tables = []
        for table_name in table_names:
            tables.append(await self.read_table(table_name))
        return DatabaseSchema.from_tables(tables)

    async def read_table(self, table_name: str) -> TableSchema:
        columns = await self.read_columns(table_name)
        indexes = await self.read_indexes(table_name)
        foreign_keys = await self.read_foreign_keys(table_name)
        logger.debug(
            "Introspected %s: %d column(s), %d index(es), %d foreign key(s).",
            table_name,
            len(columns),
            len(indexes),
            len(foreign_keys),
        )
        return TableSchema(
            name=table_name,
            columns=tuple(columns),
            indexes=tuple(indexes),
            foreign_keys=tuple(foreign_keys),
            primary_key=tuple(c.name for c in columns if c.primary_key),
        )

    @abstractmethod
    async def list_tables(self) -> list[str]: ...

    @abstractmethod
    async def read_columns(self, table_name: str) -> list[Column]: ...

    @abstractmethod
    async def read_indexes(self, table_name: str) -> list[Index]: ...

    @abstractmethod
    async def read_foreign_keys(self, table_name: str) -> list[ForeignKey]: ...


class PostgresCatalogReader(CatalogReader):
    """Reads tables of one PostgreSQL schema (``public`` by default)."""

    dialect = Dialect.POSTGRESQL
    type_map = {
        "character varying": "varchar",
        "varchar": "varchar",
        "character": "char",
        "text": "text",
        "integer": "integer",
        "bigint": "bigint",
        "smallint": "smallint",
        "boolean": "boolean",
        "timestamp without time zone": "timestamp",
        "timestamp with time zone": "timestamptz",
        "time without time zone": "time",
        "date": "date",
        "json": "json",
        "jsonb": "jsonb",
        "uuid": "uuid",
        "real": "real",
        "double precision": "double",
        "numeric": "decimal",
        "bytea": "blob",
    }

    TABLES_QUERY = """
        SELECT tablename
        FROM pg_tables
        WHERE schemaname = :schema
    """

    COLUMNS_QUERY = """
        SELECT
          c.column_name,
          c.data_type,
          c.udt_name,
          c.is_nullable,
          c.column_default,
          c.is_identity,
          CASE WHEN pk.column_name IS NOT NULL THEN true ELSE false END AS is_primary_key
        FROM information_schema.columns c
        LEFT JOIN (
          SELECT ku.column_name
          FROM information_schema.table_constraints tc
          JOIN information_schema.key_column_usage ku
            ON tc.constraint_name = ku.constraint_name
            AND tc.table_schema = ku.table_schema
            AND tc.table_name = ku.table_name
          WHERE tc.constraint_type = 'PRIMARY KEY'
            AND tc.table_schema = :schema
            AND tc.table_name = :table
        ) pk ON c.column_name = pk.column_name
        WHERE c.table_schema = :schema
          AND c.table_name = :table
        ORDER BY c.ordinal_position
    """

    INDEXES_QUERY = """
        SELECT
          i.indexname,
          i.indexdef,
          ix.indisunique
        FROM pg_indexes i
        JOIN pg_namespace n ON n.nspname = i.schemaname
        JOIN pg_class c ON c.relname = i.indexname AND c.relnamespace = n.oid
        JOIN pg_index ix ON ix.indexrelid = c.oid
        WHERE i.schemaname = :schema
          AND i.tablename = :table
          AND NOT ix.indisprimary
        ORDER BY i.indexname
    """

    FOREIGN_KEYS_QUERY = """
        SELECT
          tc.constraint_name,
          kcu.column_name,
          ccu.table_name AS foreign_table_name,
          ccu.column_name AS foreign_column_name,
          rc.update_rule,
          rc.delete_rule
        FROM information_schema.table_constraints AS tc
        JOIN information_schema.key_column_usage AS kcu
          ON tc.constraint_name = kcu.constraint_name
          AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage AS ccu
          ON ccu.constraint_name = tc.constraint_name
          AND ccu.table_schema = tc.table_schema
        JOIN information_schema.referential_constraints AS rc
          ON rc.constraint_name = tc.constraint_name
          AND rc.constraint_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY'
          AND tc.table_schema = :schema
          AND tc.table_name = :table
        ORDER BY tc.constraint_name, kcu.ordinal_position
    """

    _INDEX_COLUMNS = re.compile(r"\(([^)]+)\)")

    def __init__(
        self,
        connection: BaseConnection,
        migrations_table: str = DEFAULT_MIGRATIONS_TABLE,
        schema: str = "public",
    ) -> None:
        super().__init__(connection, migrations_table)
        self.schema = schema

    def _params(self, table_name: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"schema": self.schema}
        if table_name is not None:
            params["table"] = table_name
        return params

    async def list_tables(self) -> list[str]:
        rows = await self.connection.fetch_all(self.TABLES_QUERY, self._params())
        return [row["tablename"] for row in rows]

    async def read_columns(self, table_name: str) -> list[Column]:
        rows = await self.connection.fetch_all(self.COLUMNS_QUERY, self._params(table_name))
        columns = []
        for row in rows:
            native = row["udt_name"] if row["data_type"] == "USER-DEFINED" else row["data_type"]
            default = row["column_default"]
            is_serial = default is not None and "nextval(" in default
            columns.append(
                Column(
                    name=row["column_name"],
                    type=self.normalize_type(native),
                    not_null=row["is_nullable"] == "NO",
                    # Sequence defaults are implied by auto_increment.
                    default_value=None if is_serial else default,
                    primary_key=bool(row["is_primary_key"]),
                    auto_increment=is_serial or row.get("is_identity") == "YES",
                )
            )
        return columns

    def parse_index_columns(self, indexdef: str) -> list[str]:
        """Extract the key columns from a ``pg_indexes.indexdef`` string."""
        match = self._INDEX_COLUMNS.search(indexdef)
        if not match:
            return []
        return [part.strip().strip('"') for part in match.group(1).split(",")]

    async def read_indexes(self, table_name: str) -> list[Index]:
        rows = await self.connection.fetch_all(self.INDEXES_QUERY, self._params(table_name))
        return [
            Index(
                name=row["indexname"],
                columns=tuple(self.parse_index_columns(row["indexdef"])),
                unique=bool(row["indisunique"]),
            )
            for row in rows
        ]

    async def read_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        rows = await self.connection.fetch_all(self.FOREIGN_KEYS_QUERY, self._params(table_name))
        foreign_keys: dict[str, ForeignKey] = {}
        for row in rows:
            name = row["constraint_name"]
            if name in foreign_keys:
                # Composite foreign keys are reduced to their first column.
                continue
            foreign_keys[name] = ForeignKey(
                name=name,
                column=row["column_name"],
                referenced_table=row["foreign_table_name"],
                referenced_column=row["foreign_column_name"],
                on_delete=_no_action_to_none(row["delete_rule"]),
                on_update=_no_action_to_none(row["update_rule"]),
            )
        return list(foreign_keys.values())


class MySQLCatalogReader(CatalogReader):
    """Reads tables of the connection's current database."""

    dialect = Dialect.MYSQL
    type_map = {
        "int": "integer",
        "integer": "integer",
        "mediumint": "integer",
        "bigint": "bigint",
        "smallint": "smallint",
        "varchar": "varchar",
        "char": "char",
        "text": "text",
        "tinytext": "text",
        "mediumtext": "text",
        "longtext": "text",
        "datetime": "datetime",
        "timestamp": "timestamp",
        "date": "date",
        "time": "time",
        "boolean": "boolean",
        "json": "json",
        "decimal": "decimal",
        "float": "real",
        "double": "double",
        "blob": "blob",
        "longblob": "blob",
    }

    DATABASE_QUERY = "SELECT DATABASE() AS db_name"

    TABLES_QUERY = """
        SELECT TABLE_NAME AS table_name
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = :schema
          AND TABLE_TYPE = 'BASE TABLE'
    """

    COLUMNS_QUERY = """
        SELECT
          COLUMN_NAME AS column_name,
          DATA_TYPE AS data_type,
          COLUMN_TYPE AS column_type,
          IS_NULLABLE AS is_nullable,
          COLUMN_DEFAULT AS column_default,
          COLUMN_KEY AS column_key,
          EXTRA AS extra
        FROM information_schema.COLUMNS
        WHERE TABLE_SCHEMA = :schema
          AND TABLE_NAME = :table
        ORDER BY ORDINAL_POSITION
    """

    INDEXES_QUERY = """
        SELECT
          INDEX_NAME AS index_name,
          COLUMN_NAME AS column_name,
          NON_UNIQUE AS non_unique
        FROM information_schema.STATISTICS
        WHERE TABLE_SCHEMA = :schema
          AND TABLE_NAME = :table
          AND INDEX_NAME != 'PRIMARY'
        ORDER BY INDEX_NAME, SEQ_IN_INDEX
    """

    FOREIGN_KEYS_QUERY = """
        SELECT
          k.CONSTRAINT_NAME AS constraint_name,
          k.COLUMN_NAME AS column_name,
          k.REFERENCED_TABLE_NAME AS referenced_table,
          k.REFERENCED_COLUMN_NAME AS referenced_column,
          r.DELETE_RULE AS delete_rule,
          r.UPDATE_RULE AS update_rule
        FROM information_schema.KEY_COLUMN_USAGE k
        JOIN information_schema.REFERENTIAL_CONSTRAINTS r
          ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA
          AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME
          AND r.TABLE_NAME = k.TABLE_NAME
        WHERE k.TABLE_SCHEMA = :schema
          AND k.TABLE_NAME = :table
          AND k.REFERENCED_TABLE_NAME IS NOT NULL
        ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION
    """

    def __init__(self, connection: BaseConnection, migrations_table: str = DEFAULT_MIGRATIONS_TABLE) -> None:
        super().__init__(connection, migrations_table)
        self._database: str | None = None

    async def database_name(self) -> str:
        """Name of the connection's current database, cached per reader."""
        if self._database is None:
            row = await self.connection.fetch_one(self.DATABASE_QUERY)
            self._database = row["db_name"] if row else None
            if not self._database:
                raise ConnectionError("No database selected on the MySQL connection.")
        return self._database

    async def list_tables(self) -> list[str]:
        rows = await self.connection.fetch_all(self.TABLES_QUERY, {"schema": await self.database_name()})
        return [row["table_name"] for row in rows]

    async def read_table(self, table_name: str) -> TableSchema:
        table = await super().read_table(table_name)
        # InnoDB backs each foreign key with an index of the same name.
        fk_names = {fk.name for fk in table.foreign_keys}
        indexes = tuple(index for index in table.indexes if index.name not in fk_names)
        if len(indexes) == len(table.indexes):
            return table
        return replace(table, indexes=indexes)

    def normalize_column_type(self, data_type: str, column_type: str | None) -> str:
        # BOOLEAN is stored as tinyint(1).
        if column_type and column_type.strip().lower() == "tinyint(1)":
            return "boolean"
        return self.normalize_type(data_type)

    async def read_columns(self, table_name: str) -> list[Column]:
        params = {"schema": await self.database_name(), "table": table_name}
        rows = await self.connection.fetch_all(self.COLUMNS_QUERY, params)
        return [
            Column(
                name=row["column_name"],
                type=self.normalize_column_type(row["data_type"], row.get("column_type")),
                not_null=row["is_nullable"] == "NO",
                default_value=row["column_default"],
                primary_key=row["column_key"] == "PRI",
                auto_increment="auto_increment" in (row["extra"] or "").lower(),
            )
            for row in rows
        ]

    async def read_indexes(self, table_name: str) -> list[Index]:
        params = {"schema": await self.database_name(), "table": table_name}
        rows = await self.connection.fetch_all(self.INDEXES_QUERY, params)

        grouped: dict[str, dict[str, Any]] = {}
        for row in rows:
            entry = grouped.setdefault(
                row["index_name"],
                # NON_UNIQUE is 0 for unique indexes.
                {"columns": [], "unique": int(row["non_unique"]) == 0},
            )
            entry["columns"].append(row["column_name"])

        return [Index(name=name, columns=tuple(data["columns"]), unique=data["unique"]) for name, data in grouped.items()]

    async def read_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        params = {"schema": await self.database_name(), "table": table_name}
        rows = await self.connection.fetch_all(self.FOREIGN_KEYS_QUERY, params)
        foreign_keys: dict[str, ForeignKey] = {}
        for row in rows:
            name = row["constraint_name"]
            if name in foreign_keys:
                continue
            foreign_keys[name] = ForeignKey(
                name=name,
                column=row["column_name"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
                on_delete=_no_action_to_none(row.get("delete_rule")),
                on_update=_no_action_to_none(row.get("update_rule")),
            )
        return list(foreign_keys.values())


class SQLiteCatalogReader(CatalogReader):
    """Reads ``sqlite_master`` and the table PRAGMAs."""

    dialect = Dialect.SQLITE
    type_map = {
        "integer": "integer",
        "int": "integer",
        "bigint": "bigint",
        "smallint": "smallint",
        "text": "text",
        "varchar": "varchar",
        "char": "char",
        "boolean": "boolean",
        "timestamp": "timestamp",
        "datetime": "datetime",
        "date": "date",
        "time": "time",
        "json": "json",
        "real": "real",
        "float": "real",
        "double": "double",
        "decimal": "decimal",
        "numeric": "decimal",
        "blob": "blob",
    }

    TABLES_QUERY = """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name NOT LIKE 'sqlite_%'
    """

    TABLE_SQL_QUERY = "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :table"

    _AUTOINCREMENT = re.compile(r"\bAUTOINCREMENT\b", re.IGNORECASE)

    _NAMED_FOREIGN_KEY = re.compile(
        r"CONSTRAINT\s+[\"`\[]?(\w+)[\"`\]]?\s+FOREIGN\s+KEY\s*\(\s*[\"`\[]?(\w+)[\"`\]]?\s*\)",
        re.IGNORECASE,
    )

    @staticmethod
    def _quote(identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    async def table_sql(self, table_name: str) -> str:
        """The CREATE TABLE statement stored in ``sqlite_master``, or an empty string."""
        row = await self.connection.fetch_one(self.TABLE_SQL_QUERY, {"table": table_name})
        return row["sql"] if row and row["sql"] else ""

    async def constraint_names(self, table_name: str) -> dict[str, str]:
        """Map column name to declared foreign key constraint name, parsed from the table DDL."""
        return {column: name for name, column in self._NAMED_FOREIGN_KEY.findall(await self.table_sql(table_name))}

    async def list_tables(self) -> list[str]:
        rows = await self.connection.fetch_all(self.TABLES_QUERY)
        return [row["name"] for row in rows]

    async def read_columns(self, table_name: str) -> list[Column]:
        rows = await self.connection.fetch_all(f"PRAGMA table_info({self._quote(table_name)})")
        pk_count = sum(1 for row in rows if row["pk"])
        autoincrement = False
        if pk_count == 1:
            autoincrement = bool(self._AUTOINCREMENT.search(await self.table_sql(table_name)))
        columns = []
        for row in rows:
            native = row["type"] or ""
            is_pk = bool(row["pk"])
            # A lone INTEGER PRIMARY KEY aliases the rowid.
            is_rowid = is_pk and pk_count == 1 and native.upper() == "INTEGER"
            columns.append(
                Column(
                    name=row["name"],
                    type=self.normalize_type(native),
                    not_null=row["notnull"] == 1 or is_rowid,
                    default_value=row["dflt_value"],
                    primary_key=is_pk,
                    # Only AUTOINCREMENT stops rowid reuse.
                    auto_increment=is_rowid and autoincrement,
                )
            )
        return columns

    async def read_indexes(self, table_name: str) -> list[Index]:
        rows = await self.connection.fetch_all(f"PRAGMA index_list({self._quote(table_name)})")
        indexes = []
        for row in rows:
            if row.get("origin") == "pk":
                continue
            info = await self.connection.fetch_all(f"PRAGMA index_info({self._quote(row['name'])})")
            ordered = sorted(info, key=lambda r: r["seqno"])
            indexes.append(
                Index(
                    name=row["name"],
                    columns=tuple(r["name"] for r in ordered),
                    unique=row["unique"] == 1,
                )
            )
        return sorted(indexes, key=lambda i: i.name)

    async def read_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        rows = await self.connection.fetch_all(f"PRAGMA foreign_key_list({self._quote(table_name)})")
        if not rows:
            return []
        # PRAGMA foreign_key_list does not report constraint names.
        declared = await self.constraint_names(table_name)
        foreign_keys: dict[str, ForeignKey] = {}
        for row in rows:
            name = declared.get(row["from"]) or f"fk_{table_name}_{row['from']}_{row['table']}"
            if name in foreign_keys:
                continue
            foreign_keys[name] = ForeignKey(
                name=name,
                column=row["from"],
                referenced_table=row["table"],
                referenced_column=row["to"],
                on_delete=_no_action_to_none(row["on_delete"]),
                on_update=_no_action_to_none(row["on_update"]),
            )
        return list(foreign_keys.values())


_READERS: dict[Dialect, type[CatalogReader]] = {
    Dialect.POSTGRESQL: PostgresCatalogReader,
    Dialect.MYSQL: MySQLCatalogReader,
    Dialect.SQLITE: SQLiteCatalogReader,
}


class DatabaseIntrospector:
    """
    Reverse-introspects a live database into a ``DatabaseSchema``.

    The catalog reader for the dialect is chosen once at construction.
    Introspection is all-or-nothing: any catalog query failure propagates
    unchanged and no partial schema is returned.

    Usage::

        async with Connection("postgresql+asyncpg://localhost/app") as conn:
            current = await DatabaseIntrospector(conn).introspect()
    """

    def __init__(
        self,
        connection: BaseConnection,
        dialect: Dialect | str | None = None,
        migrations_table: str = DEFAULT_MIGRATIONS_TABLE,
    ) -> None:
        """
        Initialize the database introspector.

        Args:
            connection: Open database handle. Never opened or closed here.
            dialect: Dialect tag. Defaults to ``connection.dialect``.
            migrations_table: Bookkeeping table to leave out of the result.

        Raises:
            UnsupportedDialectError: If the dialect tag is unknown
        """
        self._connection = connection
        self.dialect = Dialect.parse(dialect if dialect is not None else connection.dialect)
        self.migrations_table = migrations_table
        self.reader = _READERS[self.dialect](connection, migrations_table=migrations_table)

    async def introspect(self) -> DatabaseSchema:
        """
        Introspect every user table.

        Returns:
            DatabaseSchema with tables sorted by name; empty for an
            empty database.
        """
        schema = await self.reader.read()
        logger.info("Introspected %d table(s) from %s database.", len(schema), self.dialect)
        return schema


__all__ = [
    "DatabaseIntrospector",
    "CatalogReader",
    "PostgresCatalogReader",
    "MySQLCatalogReader",
    "SQLiteCatalogReader",
]
