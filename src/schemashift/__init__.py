from .connection import Connection
from .connection_config import ConnectionConfig
from .exceptions import (
    ConnectionError,
    MigrationError,
    SchemaLoadError,
    SchemaShiftError,
    UnsupportedDialectError,
)
from .migrations import DatabaseIntrospector, DatabaseSchema, SchemaLoader, SqlGenerator, diff_schemas
from .types import Dialect

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionConfig",
    "Dialect",
    "DatabaseIntrospector",
    "DatabaseSchema",
    "SchemaLoader",
    "SqlGenerator",
    "diff_schemas",
    "SchemaShiftError",
    "UnsupportedDialectError",
    "ConnectionError",
    "SchemaLoadError",
    "MigrationError",
]
