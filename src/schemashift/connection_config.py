"""
Configuration dataclass for a schemashift project.

Provides an immutable configuration container shared by the CLI and the
migration executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .connection.engine import dialect_from_url
from .types import Dialect

DEFAULT_MIGRATIONS_TABLE = "_schemashift_migrations"
DEFAULT_MIGRATIONS_DIR = "migrations"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration for one database and its migrations.

    Attributes:
        url: SQLAlchemy database URL with an async driver.
        migrations_table: Bookkeeping table name; excluded from introspection.
        migrations_dir: Directory holding migration files.
        schema_files: Declarative schema files describing the desired state.
    """

    url: str
    migrations_table: str = DEFAULT_MIGRATIONS_TABLE
    migrations_dir: Path = Path(DEFAULT_MIGRATIONS_DIR)
    schema_files: tuple[Path, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "migrations_dir", Path(self.migrations_dir))
        object.__setattr__(self, "schema_files", tuple(Path(p) for p in self.schema_files))

    @property
    def dialect(self) -> Dialect:
        return dialect_from_url(self.url)


__all__ = ["ConnectionConfig", "DEFAULT_MIGRATIONS_TABLE", "DEFAULT_MIGRATIONS_DIR"]
