"""
Schema document loading.

Builds the desired ``DatabaseSchema`` from YAML or JSON schema documents.
A document looks like::

    tables:
      users:
        columns:
          id: {type: serial, primary_key: true, not_null: true}
          email: {type: varchar(255), not_null: true}
          status: {type: varchar, default: "'active'"}
        indexes:
          idx_users_email: {columns: [email], unique: true}
      posts:
        columns:
          id: serial
          user_id: {type: integer, not_null: true}
        foreign_keys:
          fk_posts_user:
            column: user_id
            references: users.id
            on_delete: CASCADE

Column defaults are raw SQL expressions, so string literals keep their
quotes. Auto-increment columns (``serial`` and friends) are the primary
key, and primary key columns are always NOT NULL. This is the same shape
``schemashift inspect`` prints.
"""

import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..exceptions import SchemaLoadError
from .schema import Column, DatabaseSchema, ForeignKey, Index, TableSchema

logger = logging.getLogger(__name__)

# alias -> (semantic type, implies auto increment)
TYPE_ALIASES: dict[str, tuple[str, bool]] = {
    "serial": ("integer", True),
    "serial4": ("integer", True),
    "bigserial": ("bigint", True),
    "serial8": ("bigint", True),
    "smallserial": ("smallint", True),
    "int": ("integer", False),
    "int4": ("integer", False),
    "int8": ("bigint", False),
    "int2": ("smallint", False),
    "bool": ("boolean", False),
    "character varying": ("varchar", False),
    "double precision": ("double", False),
    "numeric": ("decimal", False),
}

_LENGTH_SPECIFIER = re.compile(r"\s*\([^)]*\)")

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


def normalize_type(declared: str) -> tuple[str, bool]:
    """
    Normalize a declared column type.

    Returns:
        Tuple of (semantic type, whether the alias implies auto increment)

    Example:
        >>> normalize_type("VARCHAR(255)")
        ('varchar', False)
        >>> normalize_type("serial")
        ('integer', True)
    """
    base = _LENGTH_SPECIFIER.sub("", declared.strip().lower()).strip()
    return TYPE_ALIASES.get(base, (base, False))


class ColumnDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1)
    not_null: bool = False
    default: str | None = None
    primary_key: bool = False
    auto_increment: bool = False

    @field_validator("default", mode="before")
    @classmethod
    def stringify_default(cls, value: Any) -> Any:
        """Render scalar YAML defaults as SQL literals."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value


class IndexDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: list[str] = Field(min_length=1)
    unique: bool = False


class ForeignKeyDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column: str
    references: str
    on_delete: str | None = None
    on_update: str | None = None

    @field_validator("references")
    @classmethod
    def check_references(cls, value: str) -> str:
        table, sep, column = value.partition(".")
        if not sep or not table or not column:
            raise ValueError(f"references must be 'table.column', got {value!r}")
        return value

    @field_validator("on_delete", "on_update")
    @classmethod
    def normalize_action(cls, value: str | None) -> str | None:
        if value is None:
            return None
        action = " ".join(value.upper().split())
        return None if action == "NO ACTION" else action


class TableDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: dict[str, ColumnDocument] = Field(min_length=1)
    indexes: dict[str, IndexDocument] = Field(default_factory=dict)
    foreign_keys: dict[str, ForeignKeyDocument] = Field(default_factory=dict)
    primary_key: list[str] | None = None

    @field_validator("columns", mode="before")
    @classmethod
    def expand_shorthand(cls, value: Any) -> Any:
        """Allow ``name: type`` as shorthand for ``name: {type: type}``."""
        if isinstance(value, dict):
            return {name: {"type": spec} if isinstance(spec, str) else spec for name, spec in value.items()}
        return value

    @model_validator(mode="after")
    def check_column_references(self) -> "TableDocument":
        known = set(self.columns)
        for name in self.primary_key or []:
            if name not in known:
                raise ValueError(f"primary_key references unknown column {name!r}")
        for index_name, index in self.indexes.items():
            for name in index.columns:
                if name not in known:
                    raise ValueError(f"index {index_name!r} references unknown column {name!r}")
        for fk_name, fk in self.foreign_keys.items():
            if fk.column not in known:
                raise ValueError(f"foreign key {fk_name!r} references unknown column {fk.column!r}")
        if self.primary_key:
            for name, spec in self.columns.items():
                if name not in self.primary_key and (spec.auto_increment or normalize_type(spec.type)[1]):
                    raise ValueError(f"auto-increment column {name!r} must be part of the primary key")
        return self


class SchemaDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tables: dict[str, TableDocument] = Field(default_factory=dict)


def _build_table(name: str, document: TableDocument) -> TableSchema:
    explicit_pk = set(document.primary_key or [])
    columns = []
    for column_name, spec in document.columns.items():
        semantic_type, implied_auto = normalize_type(spec.type)
        auto = spec.auto_increment or implied_auto
        # Every dialect renders an auto-increment column as the primary key.
        is_pk = spec.primary_key or column_name in explicit_pk or auto
        columns.append(
            Column(
                name=column_name,
                type=semantic_type,
                not_null=spec.not_null or is_pk,
                default_value=spec.default,
                primary_key=is_pk,
                auto_increment=auto,
            )
        )

    indexes = [Index(name=n, columns=tuple(i.columns), unique=i.unique) for n, i in document.indexes.items()]

    foreign_keys = []
    for fk_name, fk in document.foreign_keys.items():
        referenced_table, _, referenced_column = fk.references.partition(".")
        foreign_keys.append(
            ForeignKey(
                name=fk_name,
                column=fk.column,
                referenced_table=referenced_table,
                referenced_column=referenced_column,
                on_delete=fk.on_delete,
                on_update=fk.on_update,
            )
        )

    return TableSchema(
        name=name,
        columns=tuple(columns),
        indexes=tuple(indexes),
        foreign_keys=tuple(foreign_keys),
        primary_key=tuple(document.primary_key) if document.primary_key else None,
    )


class SchemaLoader:
    """
    Loads the desired schema from one or more documents.

    Later files override earlier ones table by table.

    Usage::

        desired = SchemaLoader(["schema/users.yaml", "schema/posts.yaml"]).load()
    """

    def __init__(self, files: Iterable[str | Path]):
        self.files = [Path(f) for f in files]

    def load(self) -> DatabaseSchema:
        """
        Read, validate and merge every file.

        Raises:
            SchemaLoadError: If a file is missing, unreadable or invalid
        """
        tables: dict[str, TableSchema] = {}
        for path in self.files:
            schema = self.parse(self.read_document(path), path=path)
            for table in schema:
                if table.name in tables:
                    logger.debug("Table %s redefined in %s", table.name, path)
                tables[table.name] = table

        logger.debug("Loaded %d table(s) from %d file(s).", len(tables), len(self.files))
        return DatabaseSchema(tables=tables)

    @staticmethod
    def read_document(path: Path) -> Any:
        """Read one YAML or JSON file into plain data."""
        if not path.is_file():
            raise SchemaLoadError("Schema file not found", path=path)

        suffix = path.suffix.lower()
        try:
            text = path.read_text(encoding="utf-8")
            if suffix in YAML_SUFFIXES:
                return yaml.safe_load(text)
            if suffix in JSON_SUFFIXES:
                return json.loads(text)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"Cannot read schema file: {e}", path=path) from e

        raise SchemaLoadError(f"Unsupported schema file type {suffix!r}", path=path)

    @staticmethod
    def parse(data: Any, path: Path | None = None) -> DatabaseSchema:
        """
        Validate plain data and convert it to a ``DatabaseSchema``.

        An empty document yields an empty schema.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise SchemaLoadError("Schema document must be a mapping", path=path)

        try:
            document = SchemaDocument.model_validate(data)
        except ValidationError as e:
            raise SchemaLoadError(f"Invalid schema document: {e}", path=path) from e

        return DatabaseSchema.from_tables(_build_table(name, table) for name, table in document.tables.items())


def load_schema(*files: str | Path) -> DatabaseSchema:
    """Shortcut for ``SchemaLoader(files).load()``."""
    return SchemaLoader(files).load()


__all__ = ["SchemaLoader", "load_schema", "normalize_type", "TYPE_ALIASES"]
