"""
Type definitions for schemashift.

This module contains the enums shared by the introspector, the differ
and the SQL generator.
"""

from enum import StrEnum

from .exceptions import UnsupportedDialectError


class Dialect(StrEnum):
    """
    Supported SQL engine families.

    - POSTGRESQL: Postgres-compatible engines
    - MYSQL: MySQL / MariaDB-compatible engines
    - SQLITE: SQLite-compatible engines
    """

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: "Dialect | str") -> "Dialect":
        """
        Resolve a dialect tag, accepting a few common aliases.

        Raises:
            UnsupportedDialectError: If the tag is not recognised
        """
        if isinstance(value, Dialect):
            return value
        tag = str(value).strip().lower()
        aliases = {"postgres": "postgresql", "pg": "postgresql", "mariadb": "mysql", "sqlite3": "sqlite"}
        tag = aliases.get(tag, tag)
        try:
            return cls(tag)
        except ValueError:
            raise UnsupportedDialectError(str(value)) from None


class ChangeType(StrEnum):
    """
    Tags for table-level schema changes.

    The declaration order is the rank the SQL generator uses to put
    changes into dependency-safe order.
    """

    DROP_FOREIGN_KEY = "drop_foreign_key"
    DROP_INDEX = "drop_index"
    ALTER_TABLE = "alter_table"
    DROP_TABLE = "drop_table"
    CREATE_TABLE = "create_table"
    CREATE_INDEX = "create_index"
    ADD_FOREIGN_KEY = "add_foreign_key"

    @property
    def rank(self) -> int:
        return list(ChangeType).index(self)


class TableChangeType(StrEnum):
    """Tags for column-level changes nested inside ``alter_table``."""

    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    MODIFY_COLUMN = "modify_column"


__all__ = ["Dialect", "ChangeType", "TableChangeType"]
