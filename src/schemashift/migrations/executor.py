"""
Migration executor for applying migrations to the database.

This module handles:
- Tracking applied migrations in a bookkeeping table
- Applying pending migrations
- Rolling back migrations
- Showing the SQL of a migration without running it
"""

import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..connection.base import BaseConnection
from ..connection_config import DEFAULT_MIGRATIONS_TABLE
from ..exceptions import MigrationError
from .dialects import get_dialect, is_comment
from .migration import Migration, parse_migration_name

logger = logging.getLogger(__name__)


def load_migration(migrations_dir: Path | str, name: str) -> Migration:
    """
    Load a migration from ``<migrations_dir>/<name>.py``.

    Args:
        migrations_dir: Path to the migrations directory
        name: Migration name (e.g., "0001_initial")

    Returns:
        Migration object

    Raises:
        MigrationError: If the file is missing or does not define a
            ``migration`` object
    """
    filepath = Path(migrations_dir) / f"{name}.py"

    if not filepath.exists():
        raise MigrationError(f"Migration file not found: {filepath}", migration=name)

    spec = importlib.util.spec_from_file_location(f"_schemashift_migration_{name}", filepath)
    if not spec or not spec.loader:
        raise MigrationError(f"Could not load migration: {name}", migration=name)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise MigrationError(f"Could not load migration {name}: {e}", migration=name) from e

    migration = getattr(module, "migration", None)
    # Compare by class name so files importing through another path still load.
    if migration is None or type(migration).__name__ != "Migration":
        raise MigrationError(f"Migration file must define 'migration' variable: {name}", migration=name)

    return migration  # type: ignore[no-any-return]


@dataclass
class AppliedMigration:
    """One row of the bookkeeping table."""

    name: str
    applied_at: Any = None


@dataclass
class MigrationStatus:
    """
    Applied and pending migrations.

    Attributes:
        applied: Applied migrations in application order
        pending: Names of migration files not applied yet, sorted
    """

    applied: list[AppliedMigration] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def applied_names(self) -> list[str]:
        return [m.name for m in self.applied]


class MigrationExecutor:
    """
    Executes migrations against the database.

    Each migration runs in its own transaction together with the
    bookkeeping insert or delete, so a failed migration leaves no record.
    Comment statements are not executed; they are logged as manual steps.

    Usage::

        async with Connection(url) as conn:
            executor = MigrationExecutor(conn, "migrations")
            applied = await executor.migrate()
    """

    def __init__(
        self,
        connection: BaseConnection,
        migrations_dir: Path | str,
        migrations_table: str = DEFAULT_MIGRATIONS_TABLE,
    ):
        """
        Initialize the executor.

        Args:
            connection: Open database handle
            migrations_dir: Path to the migrations directory
            migrations_table: Name of the bookkeeping table
        """
        self.connection = connection
        self.migrations_dir = Path(migrations_dir)
        self.migrations_table = migrations_table
        self.dialect = get_dialect(connection.dialect)

    async def ensure_migrations_table(self) -> None:
        """Create the migrations tracking table if it doesn't exist."""
        await self.connection.execute(self.dialect.create_migrations_table_sql(self.migrations_table))

    async def get_applied_migrations(self) -> list[AppliedMigration]:
        """
        Get the applied migrations in application order.

        Returns:
            List of AppliedMigration records
        """
        await self.ensure_migrations_table()
        rows = await self.connection.fetch_all(self.dialect.select_applied_migrations_sql(self.migrations_table))
        return [AppliedMigration(name=row["name"], applied_at=row.get("applied_at")) for row in rows]

    def get_available_migrations(self) -> list[str]:
        """
        Get list of all migration files in the migrations directory.

        Returns:
            List of migration names sorted by number
        """
        if not self.migrations_dir.exists():
            return []

        migrations = []
        for filepath in self.migrations_dir.glob("*.py"):
            name = filepath.stem
            if name.startswith("_"):
                continue
            try:
                number, _ = parse_migration_name(name)
            except ValueError:
                continue
            migrations.append((number, name))

        return [name for _, name in sorted(migrations)]

    def get_pending_migrations(self, applied: list[str]) -> list[str]:
        """
        Get list of migrations that haven't been applied yet.

        Args:
            applied: List of already applied migration names

        Returns:
            List of pending migration names
        """
        applied_set = set(applied)
        return [m for m in self.get_available_migrations() if m not in applied_set]

    def load_migration(self, name: str) -> Migration:
        """
        Load a migration from the migrations directory.

        Raises:
            MigrationError: If the file is missing or invalid
        """
        return load_migration(self.migrations_dir, name)

    def _sort_by_dependencies(self, migrations: list[Migration], applied: set[str]) -> list[Migration]:
        """
        Topologically sort migrations by dependencies.

        Dependencies already applied count as satisfied.

        Raises:
            MigrationError: If dependencies are circular or missing
        """
        sorted_migrations: list[Migration] = []
        remaining = migrations.copy()
        seen: set[str] = set(applied)

        while remaining:
            for m in remaining:
                if all(dep in seen for dep in m.dependencies):
                    sorted_migrations.append(m)
                    seen.add(m.name)
                    remaining.remove(m)
                    break
            else:
                names = [m.name for m in remaining]
                raise MigrationError(f"Circular or missing dependency in migrations: {names}")

        return sorted_migrations

    async def _run(self, migration: Migration, direction: str) -> None:
        """Run one direction of a migration and update the bookkeeping table in one transaction."""
        statements = migration.statements(direction)

        async with self.connection.transaction():
            for statement in statements:
                if is_comment(statement):
                    logger.warning("Manual step in %s (%s): %s", migration.name, direction, statement)
                    continue
                logger.debug("Executing: %s", statement[:200])
                try:
                    await self.connection.execute(statement)
                except Exception as e:
                    logger.error("Migration %s failed (%s) at: %s", migration.name, direction, statement[:200])
                    raise MigrationError(
                        f"Migration {migration.name} failed ({direction}): {e}",
                        migration=migration.name,
                        statement=statement,
                    ) from e

            if direction == "up":
                await self.connection.execute(
                    self.dialect.insert_migration_sql(self.migrations_table), {"name": migration.name}
                )
            else:
                await self.connection.execute(
                    self.dialect.delete_migration_sql(self.migrations_table), {"name": migration.name}
                )

    async def migrate(self, target: str | None = None, fake: bool = False) -> list[str]:
        """
        Apply pending migrations.

        Args:
            target: Optional target migration name. If None, apply all pending.
            fake: If True, mark as applied without executing.

        Returns:
            List of applied migration names

        Raises:
            MigrationError: If the target is unknown or a migration fails.
                Migrations applied before the failure stay applied.
        """
        applied = [m.name for m in await self.get_applied_migrations()]
        pending_names = self.get_pending_migrations(applied)

        if target:
            available = self.get_available_migrations()
            if target not in available:
                raise MigrationError(f"Unknown migration: {target}", migration=target)
            limit = parse_migration_name(target)[0]
            pending_names = [n for n in pending_names if parse_migration_name(n)[0] <= limit]

        if not pending_names:
            logger.info("No migrations to apply.")
            return []

        pending_migrations = [self.load_migration(name) for name in pending_names]
        sorted_migrations = self._sort_by_dependencies(pending_migrations, set(applied))

        applied_names: list[str] = []
        for migration in sorted_migrations:
            if fake:
                logger.info("Faking migration: %s", migration.name)
                await self.connection.execute(
                    self.dialect.insert_migration_sql(self.migrations_table), {"name": migration.name}
                )
            else:
                logger.info("Applying migration: %s", migration.name)
                await self._run(migration, "up")

            applied_names.append(migration.name)
            logger.info("Applied: %s", migration.name)

        return applied_names

    async def _rollback_names(self, names: list[str]) -> list[str]:
        rolled_back: list[str] = []

        for name in names:
            migration = self.load_migration(name)

            if not migration.is_reversible:
                raise MigrationError(f"Migration {name} is not reversible", migration=name)

            logger.info("Rolling back: %s", name)
            await self._run(migration, "down")

            rolled_back.append(name)
            logger.info("Rolled back: %s", name)

        return rolled_back

    async def rollback(self, target: str) -> list[str]:
        """
        Rollback migrations to target.

        Args:
            target: Target migration name to rollback to. Migrations
                applied after it are rolled back, newest first.

        Returns:
            List of rolled back migration names

        Raises:
            MigrationError: If the target is not applied or a rollback fails
        """
        applied = [m.name for m in await self.get_applied_migrations()]

        if target not in applied:
            raise MigrationError(f"Migration {target} not found in applied migrations", migration=target)

        to_rollback = list(reversed(applied[applied.index(target) + 1 :]))

        if not to_rollback:
            logger.info("No migrations to rollback.")
            return []

        return await self._rollback_names(to_rollback)

    async def rollback_count(self, count: int = 1) -> list[str]:
        """
        Rollback the most recently applied migrations.

        Args:
            count: Number of migrations to roll back

        Returns:
            List of rolled back migration names, newest first
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        applied = [m.name for m in await self.get_applied_migrations()]
        to_rollback = list(reversed(applied[-count:]))

        if not to_rollback:
            logger.info("No migrations to rollback.")
            return []

        return await self._rollback_names(to_rollback)

    async def get_status(self) -> MigrationStatus:
        """
        Get applied and pending migrations.

        Returns:
            MigrationStatus
        """
        applied = await self.get_applied_migrations()
        pending = self.get_pending_migrations([m.name for m in applied])
        return MigrationStatus(applied=applied, pending=pending)

    def show_sql(self, name: str, direction: str = "up") -> str:
        """
        Show the SQL that would be executed for a migration.

        Args:
            name: Migration name
            direction: "up" or "down"

        Returns:
            SQL statements as a string
        """
        migration = self.load_migration(name)
        return "\n\n".join(migration.statements(direction))


__all__ = ["MigrationExecutor", "MigrationStatus", "AppliedMigration", "load_migration"]
