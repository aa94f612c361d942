"""
Schema changes produced by the differ.

Each change is a pure value describing one structural modification. Changes
that remove or alter structure keep the original definition so that the SQL
generator can synthesize an exact inverse without looking at the database.
"""

from dataclasses import dataclass
from typing import ClassVar

from ..types import ChangeType, TableChangeType
from .schema import Column, ForeignKey, Index, TableSchema


@dataclass(frozen=True)
class TableChange:
    """
    Base class for column-level changes nested inside ``AlterTable``.
    """

    change_type: ClassVar[TableChangeType]

    @property
    def column_name(self) -> str:
        raise NotImplementedError

    def describe(self) -> str:
        """Human-readable description of the change."""
        return f"{self.change_type} {self.column_name}"


@dataclass(frozen=True)
class AddColumn(TableChange):
    """
    Add a column that exists only in the desired schema.

    Example:
        AddColumn(column=Column(name="email", type="varchar", not_null=True))
    """

    change_type: ClassVar[TableChangeType] = TableChangeType.ADD_COLUMN

    column: Column

    @property
    def column_name(self) -> str:
        return self.column.name

    def describe(self) -> str:
        return f"Add column {self.column.name} ({self.column.type})"


@dataclass(frozen=True)
class DropColumn(TableChange):
    """
    Drop a column that exists only in the current schema.

    The removed definition is retained so the down migration can re-add it.
    """

    change_type: ClassVar[TableChangeType] = TableChangeType.DROP_COLUMN

    column: Column

    @property
    def column_name(self) -> str:
        return self.column.name

    def describe(self) -> str:
        return f"Drop column {self.column.name}"


@dataclass(frozen=True)
class ModifyColumn(TableChange):
    """
    Change the definition of a column present in both schemas.

    Attributes:
        current: Definition before the change (used by the down migration)
        desired: Definition after the change
    """

    change_type: ClassVar[TableChangeType] = TableChangeType.MODIFY_COLUMN

    current: Column
    desired: Column

    @property
    def column_name(self) -> str:
        return self.desired.name

    def describe(self) -> str:
        parts = []
        if self.current.type != self.desired.type:
            parts.append(f"type {self.current.type} -> {self.desired.type}")
        if self.current.not_null != self.desired.not_null:
            parts.append("NOT NULL" if self.desired.not_null else "NULL")
        if self.current.default_value != self.desired.default_value:
            parts.append(f"default {self.current.default_value!r} -> {self.desired.default_value!r}")
        if self.current.primary_key != self.desired.primary_key:
            parts.append("primary key" if self.desired.primary_key else "no primary key")
        detail = f" ({', '.join(parts)})" if parts else ""
        return f"Modify column {self.desired.name}{detail}"


@dataclass(frozen=True)
class SchemaChange:
    """
    Base class for all table-level schema changes.

    Every change carries the owning ``table`` name and a payload specific
    to its ``change_type``.
    """

    change_type: ClassVar[ChangeType]

    table: str

    def describe(self) -> str:
        """Human-readable description of the change."""
        return f"{self.change_type} on {self.table}"


@dataclass(frozen=True)
class CreateTable(SchemaChange):
    """
    Create a table that exists only in the desired schema.

    Indexes and foreign keys of the new table are emitted as separate
    ``CreateIndex`` / ``AddForeignKey`` changes.
    """

    change_type: ClassVar[ChangeType] = ChangeType.CREATE_TABLE

    schema: TableSchema

    def describe(self) -> str:
        return f"Create table {self.table} ({len(self.schema.columns)} columns)"


@dataclass(frozen=True)
class DropTable(SchemaChange):
    """
    Drop a table that exists only in the current schema.

    The full current definition is retained so the down migration can
    recreate it.
    """

    change_type: ClassVar[ChangeType] = ChangeType.DROP_TABLE

    schema: TableSchema

    def describe(self) -> str:
        return f"Drop table {self.table}"


@dataclass(frozen=True)
class AlterTable(SchemaChange):
    """
    Column-level changes for a table present in both schemas.
    """

    change_type: ClassVar[ChangeType] = ChangeType.ALTER_TABLE

    changes: tuple[TableChange, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", tuple(self.changes))

    def describe(self) -> str:
        inner = "; ".join(change.describe() for change in self.changes)
        return f"Alter table {self.table}: {inner}"


@dataclass(frozen=True)
class CreateIndex(SchemaChange):
    """Create an index."""

    change_type: ClassVar[ChangeType] = ChangeType.CREATE_INDEX

    index: Index

    def describe(self) -> str:
        kind = "unique index" if self.index.unique else "index"
        return f"Create {kind} {self.index.name} on {self.table} ({', '.join(self.index.columns)})"


@dataclass(frozen=True)
class DropIndex(SchemaChange):
    """Drop an index, retaining its definition for the inverse."""

    change_type: ClassVar[ChangeType] = ChangeType.DROP_INDEX

    index: Index

    def describe(self) -> str:
        return f"Drop index {self.index.name} on {self.table}"


@dataclass(frozen=True)
class AddForeignKey(SchemaChange):
    """Add a foreign key constraint."""

    change_type: ClassVar[ChangeType] = ChangeType.ADD_FOREIGN_KEY

    foreign_key: ForeignKey

    def describe(self) -> str:
        fk = self.foreign_key
        return f"Add foreign key {fk.name} on {self.table}.{fk.column} -> {fk.referenced_table}.{fk.referenced_column}"


@dataclass(frozen=True)
class DropForeignKey(SchemaChange):
    """Drop a foreign key constraint, retaining its definition for the inverse."""

    change_type: ClassVar[ChangeType] = ChangeType.DROP_FOREIGN_KEY

    foreign_key: ForeignKey

    def describe(self) -> str:
        return f"Drop foreign key {self.foreign_key.name} on {self.table}"


__all__ = [
    "TableChange",
    "AddColumn",
    "DropColumn",
    "ModifyColumn",
    "SchemaChange",
    "CreateTable",
    "DropTable",
    "AlterTable",
    "CreateIndex",
    "DropIndex",
    "AddForeignKey",
    "DropForeignKey",
]
