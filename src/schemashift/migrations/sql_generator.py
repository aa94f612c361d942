"""
SQL generation for schema changes.

Renders the differ's output as dialect-specific DDL in two directions:
``up`` applies the desired state, ``down`` restores the previous one.
"""

import logging
from dataclasses import dataclass, field

from ..types import Dialect
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
from .dialects import BaseDialect, get_dialect, is_comment

logger = logging.getLogger(__name__)


@dataclass
class GeneratedSql:
    """
    Paired statement sequences produced by ``SqlGenerator.generate``.

    ``down_statements`` is always the exact reverse of ``up_statements``
    in terms of which change each entry undoes, so both lists have the
    same length.
    """

    up_statements: list[str] = field(default_factory=list)
    down_statements: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.up_statements

    @property
    def manual_steps(self) -> list[str]:
        """Comments standing in for statements the dialect cannot run."""
        return [s for s in self.up_statements + self.down_statements if is_comment(s)]


def order_changes(changes: list[SchemaChange]) -> list[SchemaChange]:
    """
    Stable-sort changes into dependency-safe order.

    Foreign keys and indexes are dropped first, then tables are altered,
    dropped and created, and finally new indexes and foreign keys are
    added once the tables they depend on exist.
    """
    return sorted(changes, key=lambda change: change.change_type.rank)


class SqlGenerator:
    """
    Renders schema changes as SQL for one dialect.

    Usage::

        changes = diff_schemas(current, desired)
        sql = SqlGenerator("postgresql").generate(changes)
        for statement in sql.up_statements:
            ...
    """

    def __init__(self, dialect: Dialect | str | BaseDialect):
        """
        Initialize the generator.

        Args:
            dialect: Dialect tag or an already constructed dialect variant

        Raises:
            UnsupportedDialectError: If the tag is unknown
        """
        self.dialect = dialect if isinstance(dialect, BaseDialect) else get_dialect(dialect)

    def generate(self, changes: list[SchemaChange]) -> GeneratedSql:
        """
        Render every change in both directions.

        Args:
            changes: Changes as produced by the differ, in any order

        Returns:
            GeneratedSql with matching up and down statement lists
        """
        result = GeneratedSql()

        for change in order_changes(changes):
            for up, down in self.render_change(change):
                result.up_statements.append(up)
                result.down_statements.insert(0, down)

        logger.debug(
            "Generated %d statement(s) for %d change(s) (%s).",
            len(result.up_statements),
            len(changes),
            self.dialect.name,
        )
        return result

    def render_change(self, change: SchemaChange) -> list[tuple[str, str]]:
        """
        Render one change as ``(up, down)`` statement pairs.

        Every change yields exactly one pair except ``AlterTable``, which
        yields one pair per nested column change.
        """
        d = self.dialect
        table = change.table

        if isinstance(change, CreateTable):
            return [(d.render_create_table(change.schema), d.render_drop_table(table))]

        if isinstance(change, DropTable):
            return [(d.render_drop_table(table), d.render_create_table(change.schema))]

        if isinstance(change, AlterTable):
            return [self.render_table_change(table, inner) for inner in change.changes]

        if isinstance(change, CreateIndex):
            return [(d.render_create_index(table, change.index), d.render_drop_index(table, change.index))]

        if isinstance(change, DropIndex):
            return [(d.render_drop_index(table, change.index), d.render_create_index(table, change.index))]

        if isinstance(change, AddForeignKey):
            fk = change.foreign_key
            return [(d.render_add_foreign_key(table, fk), d.render_drop_foreign_key(table, fk))]

        if isinstance(change, DropForeignKey):
            fk = change.foreign_key
            return [(d.render_drop_foreign_key(table, fk), d.render_add_foreign_key(table, fk))]

        raise TypeError(f"Unknown schema change: {change!r}")

    def render_table_change(self, table: str, change: TableChange) -> tuple[str, str]:
        """Render one column-level change as an ``(up, down)`` pair."""
        d = self.dialect

        if isinstance(change, AddColumn):
            return d.render_add_column(table, change.column), d.render_drop_column(table, change.column)

        if isinstance(change, DropColumn):
            return d.render_drop_column(table, change.column), d.render_add_column(table, change.column)

        if isinstance(change, ModifyColumn):
            return d.render_modify_column(table, change.desired), d.render_modify_column(table, change.current)

        raise TypeError(f"Unknown table change: {change!r}")


def generate_sql(changes: list[SchemaChange], dialect: Dialect | str) -> GeneratedSql:
    """Shortcut for ``SqlGenerator(dialect).generate(changes)``."""
    return SqlGenerator(dialect).generate(changes)


__all__ = ["GeneratedSql", "SqlGenerator", "generate_sql", "order_changes"]
