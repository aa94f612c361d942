"""
schemashift migration system.

This package provides schema diffing and SQL migrations for PostgreSQL,
MySQL and SQLite, including:
- Reverse introspection of a live database
- Loading the desired schema from YAML or JSON documents
- Structural diffing and up/down SQL generation per dialect
- Migration files, an executor with a bookkeeping table, and validation

Usage:
    current = await DatabaseIntrospector(conn).introspect()
    desired = SchemaLoader(["schema.yaml"]).load()
    sql = SqlGenerator(conn.dialect).generate(current.diff(desired))
    MigrationGenerator("migrations").generate("add_users", sql)

    await MigrationExecutor(conn, "migrations").migrate()
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
from .db_introspector import DatabaseIntrospector
from .dialects import BaseDialect, get_dialect
from .differ import diff_schemas
from .executor import MigrationExecutor, MigrationStatus
from .generator import MigrationGenerator, generate_empty_migration
from .loader import SchemaLoader, load_schema
from .migration import Migration
from .schema import Column, DatabaseSchema, ForeignKey, Index, TableSchema
from .sql_generator import GeneratedSql, SqlGenerator, generate_sql
from .validator import CheckResult, MigrationValidator, ValidationResult

__all__ = [
    # Schema model
    "Column",
    "Index",
    "ForeignKey",
    "TableSchema",
    "DatabaseSchema",
    # Introspection and loading
    "DatabaseIntrospector",
    "SchemaLoader",
    "load_schema",
    # Diffing
    "diff_schemas",
    "SchemaChange",
    "TableChange",
    "CreateTable",
    "DropTable",
    "AlterTable",
    "CreateIndex",
    "DropIndex",
    "AddForeignKey",
    "DropForeignKey",
    "AddColumn",
    "DropColumn",
    "ModifyColumn",
    # SQL generation
    "BaseDialect",
    "get_dialect",
    "SqlGenerator",
    "GeneratedSql",
    "generate_sql",
    # Migrations
    "Migration",
    "MigrationGenerator",
    "generate_empty_migration",
    "MigrationExecutor",
    "MigrationStatus",
    "MigrationValidator",
    "ValidationResult",
    "CheckResult",
]
