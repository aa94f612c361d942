"""
Dialect variants for SQL rendering.

Each supported engine family is one ``BaseDialect`` subclass. The class
owns everything that differs between engines: identifier quoting, the
semantic-to-native type table, column definition syntax, and the
statements it cannot express (which render as SQL comments instead).
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from ..types import Dialect
from .schema import Column, ForeignKey, Index, TableSchema

logger = logging.getLogger(__name__)


class BaseDialect(ABC):
    """
    Rendering capabilities shared by every dialect.

    Subclasses set ``name``, ``quote_char`` and ``type_map`` and provide
    ``render_modify_column`` plus their auto-increment column syntax.
    """

    name: ClassVar[Dialect]
    quote_char: ClassVar[str] = '"'
    type_map: ClassVar[dict[str, str]] = {}

    # Identifiers and types

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table, column, index or constraint name."""
        q = self.quote_char
        return f"{q}{identifier.replace(q, q + q)}{q}"

    def column_type(self, semantic_type: str) -> str:
        """
        Map a semantic type to this dialect's native spelling.

        Unmapped types fall back to the uppercased semantic name.
        """
        native = self.type_map.get(semantic_type.lower())
        if native is None:
            logger.warning(
                "No %s mapping for type %r, passing it through as %r.",
                self.name,
                semantic_type,
                semantic_type.upper(),
            )
            return semantic_type.upper()
        return native

    def unsupported(self, operation: str, detail: str) -> str:
        """Comment emitted in place of a statement this dialect cannot run."""
        return f"-- {self.display_name} does not support {operation} ({detail}); manual migration required"

    @property
    def display_name(self) -> str:
        return {"postgresql": "PostgreSQL", "mysql": "MySQL", "sqlite": "SQLite"}[self.name]

    # Columns

    @abstractmethod
    def render_auto_increment_column(self, column: Column, inline_primary_key: bool) -> str | None:
        """
        Render an auto-increment column, or return None to use the
        generic column syntax with ``auto_increment_clause``.
        """
        ...

    def auto_increment_clause(self, inline_primary_key: bool) -> str:
        return ""

    def render_column(self, column: Column, inline_primary_key: bool = True) -> str:
        """
        Render a column definition.

        Args:
            column: Column to render
            inline_primary_key: Whether a primary key column may carry an
                inline ``PRIMARY KEY`` clause. False for tables with a
                composite key, which is rendered as a table constraint.
        """
        if column.auto_increment:
            special = self.render_auto_increment_column(column, inline_primary_key)
            if special is not None:
                return special

        parts = [f"{self.quote_identifier(column.name)} {self.column_type(column.type)}"]

        if column.not_null:
            parts.append("NOT NULL")

        if column.primary_key and inline_primary_key and not column.auto_increment:
            parts.append("PRIMARY KEY")

        if column.auto_increment:
            clause = self.auto_increment_clause(inline_primary_key)
            if clause:
                parts.append(clause)

        if column.default_value not in (None, ""):
            parts.append(f"DEFAULT {column.default_value}")

        return " ".join(parts)

    # Tables

    def table_constraints(self, table: TableSchema) -> list[str]:
        """Table-level constraints appended after the column definitions."""
        if table.has_composite_primary_key:
            pk_columns = ", ".join(self.quote_identifier(c) for c in table.primary_key or ())
            return [f"PRIMARY KEY ({pk_columns})"]
        return []

    def render_create_table(self, table: TableSchema) -> str:
        composite = table.has_composite_primary_key
        definitions = [self.render_column(c, inline_primary_key=not composite) for c in table.columns]
        definitions.extend(self.table_constraints(table))

        body = ",\n  ".join(definitions)
        return f"CREATE TABLE {self.quote_identifier(table.name)} (\n  {body}\n);"

    def render_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE IF EXISTS {self.quote_identifier(table_name)};"

    def render_add_column(self, table_name: str, column: Column) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} ADD COLUMN {self.render_column(column)};"

    def render_drop_column(self, table_name: str, column: Column) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} DROP COLUMN {self.quote_identifier(column.name)};"

    @abstractmethod
    def render_modify_column(self, table_name: str, column: Column) -> str:
        """Render a statement that brings an existing column to ``column``'s definition."""
        ...

    # Indexes

    def render_create_index(self, table_name: str, index: Index) -> str:
        unique = "UNIQUE " if index.unique else ""
        columns = ", ".join(self.quote_identifier(c) for c in index.columns)
        return (
            f"CREATE {unique}INDEX {self.quote_identifier(index.name)} "
            f"ON {self.quote_identifier(table_name)} ({columns});"
        )

    def render_drop_index(self, table_name: str, index: Index) -> str:
        return f"DROP INDEX {self.quote_identifier(index.name)};"

    # Foreign keys

    def render_foreign_key_constraint(self, fk: ForeignKey) -> str:
        sql = (
            f"CONSTRAINT {self.quote_identifier(fk.name)} "
            f"FOREIGN KEY ({self.quote_identifier(fk.column)}) "
            f"REFERENCES {self.quote_identifier(fk.referenced_table)}({self.quote_identifier(fk.referenced_column)})"
        )
        if fk.on_delete:
            sql += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            sql += f" ON UPDATE {fk.on_update}"
        return sql

    def render_add_foreign_key(self, table_name: str, fk: ForeignKey) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} ADD {self.render_foreign_key_constraint(fk)};"

    def render_drop_foreign_key(self, table_name: str, fk: ForeignKey) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} DROP CONSTRAINT {self.quote_identifier(fk.name)};"

    # Migration bookkeeping

    @abstractmethod
    def create_migrations_table_sql(self, table_name: str) -> str:
        """DDL for the table that records applied migrations."""
        ...

    def select_applied_migrations_sql(self, table_name: str) -> str:
        return f"SELECT name, applied_at FROM {self.quote_identifier(table_name)} ORDER BY id"

    def insert_migration_sql(self, table_name: str) -> str:
        return f"INSERT INTO {self.quote_identifier(table_name)} (name) VALUES (:name)"

    def delete_migration_sql(self, table_name: str) -> str:
        return f"DELETE FROM {self.quote_identifier(table_name)} WHERE name = :name"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class PostgresDialect(BaseDialect):
    """PostgreSQL: double-quoted identifiers, SERIAL columns, ALTER COLUMN ... TYPE."""

    name = Dialect.POSTGRESQL
    type_map = {
        "integer": "INTEGER",
        "bigint": "BIGINT",
        "smallint": "SMALLINT",
        "varchar": "VARCHAR(255)",
        "char": "CHAR(1)",
        "text": "TEXT",
        "boolean": "BOOLEAN",
        "timestamp": "TIMESTAMP",
        "timestamptz": "TIMESTAMPTZ",
        "datetime": "TIMESTAMP",
        "date": "DATE",
        "time": "TIME",
        "json": "JSON",
        "jsonb": "JSONB",
        "uuid": "UUID",
        "real": "REAL",
        "double": "DOUBLE PRECISION",
        "decimal": "DECIMAL",
        "blob": "BYTEA",
    }

    def render_auto_increment_column(self, column: Column, inline_primary_key: bool) -> str | None:
        serial = "BIGSERIAL" if column.type.lower() == "bigint" else "SERIAL"
        suffix = " PRIMARY KEY" if inline_primary_key else ""
        return f"{self.quote_identifier(column.name)} {serial}{suffix}"

    def render_modify_column(self, table_name: str, column: Column) -> str:
        # One statement, several sub-actions: type, nullability, default.
        name = self.quote_identifier(column.name)
        actions = [f"ALTER COLUMN {name} TYPE {self.column_type(column.type)}"]
        actions.append(f"ALTER COLUMN {name} {'SET' if column.not_null else 'DROP'} NOT NULL")
        if not column.auto_increment:
            if column.default_value not in (None, ""):
                actions.append(f"ALTER COLUMN {name} SET DEFAULT {column.default_value}")
            else:
                actions.append(f"ALTER COLUMN {name} DROP DEFAULT")
        return f"ALTER TABLE {self.quote_identifier(table_name)} {', '.join(actions)};"

    def create_migrations_table_sql(self, table_name: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table_name)} (\n"
            "  id SERIAL PRIMARY KEY,\n"
            "  name VARCHAR(255) NOT NULL UNIQUE,\n"
            "  applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n"
            ")"
        )


class MySQLDialect(BaseDialect):
    """MySQL: backtick identifiers, AUTO_INCREMENT, MODIFY COLUMN, table-scoped index names."""

    name = Dialect.MYSQL
    quote_char = "`"
    type_map = {
        "integer": "INT",
        "bigint": "BIGINT",
        "smallint": "SMALLINT",
        "varchar": "VARCHAR(255)",
        "char": "CHAR(1)",
        "text": "TEXT",
        "boolean": "BOOLEAN",
        "timestamp": "TIMESTAMP",
        "timestamptz": "TIMESTAMP",
        "datetime": "DATETIME",
        "date": "DATE",
        "time": "TIME",
        "json": "JSON",
        "jsonb": "JSON",
        "uuid": "CHAR(36)",
        "real": "FLOAT",
        "double": "DOUBLE",
        "decimal": "DECIMAL",
        "blob": "BLOB",
    }

    def render_auto_increment_column(self, column: Column, inline_primary_key: bool) -> str | None:
        return None

    def auto_increment_clause(self, inline_primary_key: bool) -> str:
        return "AUTO_INCREMENT PRIMARY KEY" if inline_primary_key else "AUTO_INCREMENT"

    def render_modify_column(self, table_name: str, column: Column) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} MODIFY COLUMN {self.render_column(column)};"

    def render_drop_index(self, table_name: str, index: Index) -> str:
        return f"DROP INDEX {self.quote_identifier(index.name)} ON {self.quote_identifier(table_name)};"

    def create_migrations_table_sql(self, table_name: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table_name)} (\n"
            "  id INT AUTO_INCREMENT PRIMARY KEY,\n"
            "  name VARCHAR(255) NOT NULL UNIQUE,\n"
            "  applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n"
            ")"
        )


class SQLiteDialect(BaseDialect):
    """
    SQLite: double-quoted identifiers, INTEGER PRIMARY KEY AUTOINCREMENT.

    Columns cannot be dropped or modified and constraints cannot be added
    or removed after table creation; those changes render as comments.
    Foreign keys of a new table are declared inside its CREATE TABLE.
    """

    name = Dialect.SQLITE
    type_map = {
        "integer": "INTEGER",
        "bigint": "INTEGER",
        "smallint": "INTEGER",
        "varchar": "TEXT",
        "char": "TEXT",
        "text": "TEXT",
        "boolean": "INTEGER",
        "timestamp": "TEXT",
        "timestamptz": "TEXT",
        "datetime": "TEXT",
        "date": "TEXT",
        "time": "TEXT",
        "json": "TEXT",
        "jsonb": "TEXT",
        "uuid": "TEXT",
        "real": "REAL",
        "double": "REAL",
        "decimal": "REAL",
        "blob": "BLOB",
    }

    def render_auto_increment_column(self, column: Column, inline_primary_key: bool) -> str | None:
        if not inline_primary_key:
            # AUTOINCREMENT is only valid on a single-column INTEGER PRIMARY KEY.
            return f"{self.quote_identifier(column.name)} INTEGER NOT NULL"
        return f"{self.quote_identifier(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"

    def table_constraints(self, table: TableSchema) -> list[str]:
        # Foreign keys can only be declared when the table is created.
        constraints = super().table_constraints(table)
        constraints.extend(self.render_foreign_key_constraint(fk) for fk in table.foreign_keys)
        return constraints

    def render_drop_column(self, table_name: str, column: Column) -> str:
        return self.unsupported("DROP COLUMN", f"{table_name}.{column.name}")

    def render_modify_column(self, table_name: str, column: Column) -> str:
        return self.unsupported("MODIFY COLUMN", f"{table_name}.{column.name}")

    def render_add_foreign_key(self, table_name: str, fk: ForeignKey) -> str:
        return self.unsupported("ADD CONSTRAINT", f"{table_name}.{fk.name}; define foreign keys in CREATE TABLE")

    def render_drop_foreign_key(self, table_name: str, fk: ForeignKey) -> str:
        return self.unsupported("DROP CONSTRAINT", f"{table_name}.{fk.name}")

    def create_migrations_table_sql(self, table_name: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table_name)} (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  name TEXT NOT NULL UNIQUE,\n"
            "  applied_at TEXT DEFAULT CURRENT_TIMESTAMP\n"
            ")"
        )


_DIALECTS: dict[Dialect, type[BaseDialect]] = {
    Dialect.POSTGRESQL: PostgresDialect,
    Dialect.MYSQL: MySQLDialect,
    Dialect.SQLITE: SQLiteDialect,
}


def get_dialect(dialect: Dialect | str) -> BaseDialect:
    """
    Get the rendering variant for a dialect tag.

    Raises:
        UnsupportedDialectError: If the tag is unknown
    """
    return _DIALECTS[Dialect.parse(dialect)]()


def is_comment(statement: str) -> bool:
    """Whether a rendered statement is an explanatory comment rather than SQL."""
    return statement.lstrip().startswith("--")


__all__ = [
    "BaseDialect",
    "PostgresDialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "is_comment",
]
