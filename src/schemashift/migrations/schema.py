"""
Normalized schema model shared by the introspector, the loader and the differ.

Every class here is an immutable snapshot of one fact about a database's
structure. Types are stored in the dialect-agnostic semantic vocabulary
(``integer``, ``varchar``, ``timestamp``...); dialect spellings are
translated at the introspector and SQL generator boundaries.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .changes import SchemaChange


@dataclass(frozen=True)
class Column:
    """
    Represents a single column of a table.

    Attributes:
        name: Column name, unique within its table
        type: Normalized semantic type (integer, varchar, text...)
        not_null: Whether the column rejects NULL
        default_value: Raw default expression in dialect-native syntax
        primary_key: Whether the column participates in the primary key
        auto_increment: Whether the engine generates values on insert
    """

    name: str
    type: str
    not_null: bool = False
    default_value: str | None = None
    primary_key: bool = False
    auto_increment: bool = False


@dataclass(frozen=True)
class Index:
    """
    Represents a secondary index on a table.

    Attributes:
        name: Index name, unique within its table
        columns: Indexed column names in key order
        unique: Whether the index enforces uniqueness
    """

    name: str
    columns: tuple[str, ...]
    unique: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))


@dataclass(frozen=True)
class ForeignKey:
    """
    Represents a single-column foreign key constraint.

    ``on_delete`` / ``on_update`` are None when the engine default
    (NO ACTION) applies.
    """

    name: str
    column: str
    referenced_table: str
    referenced_column: str
    on_delete: str | None = None
    on_update: str | None = None


@dataclass(frozen=True)
class TableSchema:
    """
    Represents the complete structure of one table.

    Attributes:
        name: Table name
        columns: Columns in declaration order
        indexes: Secondary indexes
        foreign_keys: Foreign key constraints
        primary_key: Primary key column names in key order. Derived from
            the columns' ``primary_key`` flags when omitted.
    """

    name: str
    columns: tuple[Column, ...] = ()
    indexes: tuple[Index, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()
    primary_key: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "indexes", tuple(self.indexes))
        object.__setattr__(self, "foreign_keys", tuple(self.foreign_keys))
        if self.primary_key is None:
            derived = tuple(c.name for c in self.columns if c.primary_key)
            object.__setattr__(self, "primary_key", derived)
        else:
            object.__setattr__(self, "primary_key", tuple(self.primary_key))

    @property
    def column_map(self) -> dict[str, Column]:
        return {c.name: c for c in self.columns}

    @property
    def index_map(self) -> dict[str, Index]:
        return {i.name: i for i in self.indexes}

    @property
    def foreign_key_map(self) -> dict[str, ForeignKey]:
        return {fk.name: fk for fk in self.foreign_keys}

    def get_column(self, name: str) -> Column | None:
        """Get a column by name."""
        return self.column_map.get(name)

    @property
    def has_composite_primary_key(self) -> bool:
        return len(self.primary_key or ()) > 1


@dataclass(frozen=True)
class DatabaseSchema:
    """
    Represents the complete structure of a database.

    This is the unit of comparison: the differ takes two of these
    ("current" and "desired") and computes the changes between them.

    Attributes:
        tables: Mapping of table name to TableSchema, in insertion order
    """

    tables: Mapping[str, TableSchema] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", dict(self.tables))

    @classmethod
    def from_tables(cls, tables: Iterable[TableSchema]) -> "DatabaseSchema":
        """Build a schema from table definitions, keyed by table name."""
        return cls(tables={t.name: t for t in tables})

    def get_table(self, name: str) -> TableSchema | None:
        """Get a table by name."""
        return self.tables.get(name)

    @property
    def table_names(self) -> list[str]:
        return list(self.tables)

    def diff(self, target: "DatabaseSchema") -> list["SchemaChange"]:
        """
        Compute the changes needed to turn this schema into ``target``.

        Args:
            target: The desired schema

        Returns:
            Ordered list of schema changes (see ``diff_schemas``)
        """
        from .differ import diff_schemas

        return diff_schemas(self, target)

    def __contains__(self, name: object) -> bool:
        return name in self.tables

    def __iter__(self) -> Iterator[TableSchema]:
        return iter(self.tables.values())

    def __len__(self) -> int:
        return len(self.tables)

    def __hash__(self) -> int:
        return hash(tuple(self.tables.items()))

    def to_dict(self) -> dict[str, Any]:
        """Plain-data rendering used by ``schemashift inspect``."""
        tables: dict[str, Any] = {}
        for table in self:
            tables[table.name] = {
                "columns": {
                    c.name: {
                        k: v
                        for k, v in (
                            ("type", c.type),
                            ("not_null", c.not_null),
                            ("default", c.default_value),
                            ("primary_key", c.primary_key),
                            ("auto_increment", c.auto_increment),
                        )
                        if v not in (None, False)
                    }
                    for c in table.columns
                },
                "indexes": {i.name: {"columns": list(i.columns), "unique": i.unique} for i in table.indexes},
                "foreign_keys": {
                    fk.name: {
                        k: v
                        for k, v in (
                            ("column", fk.column),
                            ("references", f"{fk.referenced_table}.{fk.referenced_column}"),
                            ("on_delete", fk.on_delete),
                            ("on_update", fk.on_update),
                        )
                        if v is not None
                    }
                    for fk in table.foreign_keys
                },
            }
            if table.has_composite_primary_key:
                tables[table.name]["primary_key"] = list(table.primary_key or ())
        return {"tables": tables}

    def __repr__(self) -> str:
        return f"DatabaseSchema(tables={self.table_names})"


__all__ = ["Column", "Index", "ForeignKey", "TableSchema", "DatabaseSchema"]
