"""
schemashift exceptions.

Custom exception hierarchy for the package.
"""

import os


class SchemaShiftError(Exception):
    """Base exception for all schemashift errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnsupportedDialectError(SchemaShiftError):
    """Raised when a dialect tag is not one of postgresql, mysql or sqlite."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Unsupported dialect: {dialect!r}. Expected one of: postgresql, mysql, sqlite.")


class ConnectionError(SchemaShiftError):
    """Raised when a database handle cannot be opened or is used while closed."""

    pass


class SchemaLoadError(SchemaShiftError):
    """Raised when a schema declaration file cannot be read or validated."""

    def __init__(self, message: str, path: "str | os.PathLike[str] | None" = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class MigrationError(SchemaShiftError):
    """Raised when applying or reverting a migration fails."""

    def __init__(self, message: str, migration: str | None = None, statement: str | None = None):
        self.migration = migration
        self.statement = statement
        super().__init__(message)


__all__ = [
    "SchemaShiftError",
    "UnsupportedDialectError",
    "ConnectionError",
    "SchemaLoadError",
    "MigrationError",
]
