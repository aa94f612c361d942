"""
Schema diffing.

Compares two ``DatabaseSchema`` snapshots and computes the ordered list of
changes that turns the current one into the desired one. This is a pure
function: no I/O, and the output order depends only on the inputs'
insertion order.
"""

from .changes import (
    AddColumn,
    AddForeignKey,
    AlterTable,
    CreateIndex,
    CreateTable,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropTable,
    ModifyColumn,
    SchemaChange,
    TableChange,
)
from .schema import Column, DatabaseSchema, ForeignKey, Index, TableSchema


def _normalize_type(value: str) -> str:
    return "".join(value.lower().split())


def _normalize_default(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        # Strip one leading and one trailing quote, independently.
        if text[:1] in ("'", '"'):
            text = text[1:]
        if text[-1:] in ("'", '"'):
            text = text[:-1]
        return text.strip()
    return str(value)


def columns_differ(current: Column, desired: Column) -> bool:
    """
    Check whether two definitions of the same column differ.

    Types are compared case- and whitespace-insensitively; defaults are
    compared as opaque text after stripping surrounding quotes and
    whitespace. ``auto_increment`` is not compared.
    """
    return (
        _normalize_type(current.type) != _normalize_type(desired.type)
        or current.not_null != desired.not_null
        or current.primary_key != desired.primary_key
        or _normalize_default(current.default_value) != _normalize_default(desired.default_value)
    )


def indexes_differ(current: Index, desired: Index) -> bool:
    """Check whether two definitions of the same index differ."""
    return (
        current.unique != desired.unique
        or len(current.columns) != len(desired.columns)
        or any(a != b for a, b in zip(current.columns, desired.columns))
    )


def foreign_keys_differ(current: ForeignKey, desired: ForeignKey) -> bool:
    """Check whether two definitions of the same foreign key differ."""
    return (
        current.column != desired.column
        or current.referenced_table != desired.referenced_table
        or current.referenced_column != desired.referenced_column
        or current.on_delete != desired.on_delete
        or current.on_update != desired.on_update
    )


def diff_columns(current: TableSchema, desired: TableSchema) -> list[TableChange]:
    """
    Compute column-level changes between two versions of one table.

    Additions and modifications follow the desired column order; drops
    follow the current column order and come last.
    """
    current_columns = current.column_map
    desired_columns = desired.column_map
    changes: list[TableChange] = []

    for name, desired_column in desired_columns.items():
        current_column = current_columns.get(name)
        if current_column is None:
            changes.append(AddColumn(column=desired_column))
        elif columns_differ(current_column, desired_column):
            changes.append(ModifyColumn(current=current_column, desired=desired_column))

    for name, current_column in current_columns.items():
        if name not in desired_columns:
            changes.append(DropColumn(column=current_column))

    return changes


def diff_indexes(current: TableSchema, desired: TableSchema) -> list[SchemaChange]:
    """
    Compute index changes between two versions of one table.

    Indexes are matched by name. A changed index is dropped and then
    recreated; there is no in-place alter.
    """
    current_indexes = current.index_map
    desired_indexes = desired.index_map
    changes: list[SchemaChange] = []

    for name, index in current_indexes.items():
        if name not in desired_indexes:
            changes.append(DropIndex(table=desired.name, index=index))

    for name, index in desired_indexes.items():
        existing = current_indexes.get(name)
        if existing is None:
            changes.append(CreateIndex(table=desired.name, index=index))
        elif indexes_differ(existing, index):
            changes.append(DropIndex(table=desired.name, index=existing))
            changes.append(CreateIndex(table=desired.name, index=index))

    return changes


def diff_foreign_keys(current: TableSchema, desired: TableSchema) -> list[SchemaChange]:
    """
    Compute foreign key changes between two versions of one table.

    Same matching rules as ``diff_indexes``.
    """
    current_fks = current.foreign_key_map
    desired_fks = desired.foreign_key_map
    changes: list[SchemaChange] = []

    for name, fk in current_fks.items():
        if name not in desired_fks:
            changes.append(DropForeignKey(table=desired.name, foreign_key=fk))

    for name, fk in desired_fks.items():
        existing = current_fks.get(name)
        if existing is None:
            changes.append(AddForeignKey(table=desired.name, foreign_key=fk))
        elif foreign_keys_differ(existing, fk):
            changes.append(DropForeignKey(table=desired.name, foreign_key=existing))
            changes.append(AddForeignKey(table=desired.name, foreign_key=fk))

    return changes


def diff_schemas(current: DatabaseSchema, desired: DatabaseSchema) -> list[SchemaChange]:
    """
    Compute the changes needed to transform ``current`` into ``desired``.

    Output order: dropped tables (current order), created tables with their
    indexes and foreign keys (desired order), then for every table present
    in both (desired order) its ``AlterTable``, index and foreign key
    changes. The result is not necessarily execution-safe; the SQL
    generator reorders it.

    Args:
        current: Schema as it exists now
        desired: Schema as it should be

    Returns:
        List of schema changes; empty when both schemas are equivalent
    """
    changes: list[SchemaChange] = []

    # Tables to drop (in current but not in desired)
    for table_name, table in current.tables.items():
        if table_name not in desired.tables:
            changes.append(DropTable(table=table_name, schema=table))

    # Tables to create (in desired but not in current)
    for table_name, table in desired.tables.items():
        if table_name not in current.tables:
            changes.append(CreateTable(table=table_name, schema=table))
            for index in table.indexes:
                changes.append(CreateIndex(table=table_name, index=index))
            for fk in table.foreign_keys:
                changes.append(AddForeignKey(table=table_name, foreign_key=fk))

    # Tables to modify (in both)
    for table_name, desired_table in desired.tables.items():
        current_table = current.tables.get(table_name)
        if current_table is None:
            continue

        column_changes = diff_columns(current_table, desired_table)
        if column_changes:
            changes.append(AlterTable(table=table_name, changes=tuple(column_changes)))

        changes.extend(diff_indexes(current_table, desired_table))
        changes.extend(diff_foreign_keys(current_table, desired_table))

    return changes


__all__ = [
    "diff_schemas",
    "diff_columns",
    "diff_indexes",
    "diff_foreign_keys",
    "columns_differ",
    "indexes_differ",
    "foreign_keys_differ",
]
