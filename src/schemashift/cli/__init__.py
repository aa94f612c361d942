"""
schemashift Command Line Interface.

Provides migration commands:
- makemigrations: Generate a migration file from schema changes
- diff: Show the SQL for pending schema changes without writing a file
- migrate: Apply migrations to the database
- rollback: Revert migrations to a specific point or by count
- status: Show migration status
- sqlmigrate: Show SQL for a migration without executing
- check: Validate migrations for CI
- inspect: Dump the live database schema
"""

from .commands import cli, main

__all__ = ["cli", "main"]
