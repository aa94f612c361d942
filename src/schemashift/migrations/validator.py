"""
Static checks on a migrations directory.

Used by ``schemashift check`` in CI to catch broken or conflicting
migration files before they reach a database.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import MigrationError
from .executor import MigrationStatus, load_migration
from .migration import is_valid_migration_name

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class CheckResult:
    """
    Outcome of a full CI check.

    Attributes:
        valid: False on validation errors, and on pending migrations when
            ``fail_on_pending`` was requested
        has_pending_migrations: Whether unapplied files exist
        has_validation_errors: Whether validation reported errors
        applied: Number of applied migrations
        pending: Number of pending migrations
    """

    valid: bool
    has_pending_migrations: bool
    has_validation_errors: bool
    applied: int = 0
    pending: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class MigrationValidator:
    """
    Validates migration files without touching the database.

    Usage::

        result = MigrationValidator("migrations").validate()
        if not result.valid:
            ...
    """

    def __init__(self, migrations_dir: Path | str):
        self.migrations_dir = Path(migrations_dir)

    def _migration_files(self) -> list[Path]:
        return sorted(p for p in self.migrations_dir.glob("*.py") if not p.stem.startswith("_"))

    def validate(self) -> ValidationResult:
        """
        Validate every migration file.

        Checks folder existence, duplicate numbers, naming, that each file
        loads and defines a ``migration`` object, and that up and down
        statement counts match.
        """
        result = ValidationResult()

        if not self.migrations_dir.exists():
            result.warnings.append("Migrations folder does not exist yet. Run makemigrations to create one.")
            return result

        files = self._migration_files()
        if not files:
            result.warnings.append("No migration files found.")
            return result

        by_number: dict[str, list[str]] = defaultdict(list)
        for path in files:
            by_number[path.stem.split("_", 1)[0]].append(path.name)

        for number, names in by_number.items():
            if len(names) > 1:
                result.errors.append(f"Duplicate migration number {number} found in files: {', '.join(names)}")

        for path in files:
            stem = path.stem
            number = stem.split("_", 1)[0]
            if not number.isdigit():
                result.errors.append(f"{path.name}: Invalid migration number. Should be numeric.")
                continue
            if not is_valid_migration_name(stem):
                result.warnings.append(f"{path.name}: Migration name should follow format NNNN_description")

            try:
                migration = load_migration(self.migrations_dir, stem)
            except MigrationError as e:
                result.errors.append(f"{path.name}: {e.message}")
                continue

            if migration.name != stem:
                result.warnings.append(f"{path.name}: migration name {migration.name!r} does not match file name")
            if not migration.up:
                result.warnings.append(f"{path.name}: Migration has no up statements")
            elif not migration.down:
                result.warnings.append(f"{path.name}: Migration has no down statements and cannot be rolled back")
            elif len(migration.up) != len(migration.down):
                result.errors.append(
                    f"{path.name}: up has {len(migration.up)} statement(s) but down has {len(migration.down)}"
                )
            for step in migration.manual_steps:
                result.warnings.append(f"{path.name}: manual step required: {step}")

        return result

    def check_for_conflicts(self, applied: list[str]) -> ValidationResult:
        """
        Detect unapplied migrations numbered before applied ones.

        Such files were usually merged from another branch and will run
        out of order in other environments.
        """
        result = ValidationResult()
        if not self.migrations_dir.exists():
            return result

        names = [p.stem for p in self._migration_files()]
        applied_set = set(applied)

        last_applied = -1
        for i, name in enumerate(names):
            if name in applied_set:
                last_applied = i

        for name in names[:last_applied]:
            if name not in applied_set:
                result.warnings.append(
                    f"Migration {name} is numbered before applied migrations. "
                    "This may cause issues in other environments."
                )

        for name in applied:
            if name not in names:
                result.warnings.append(f"Applied migration {name} has no file in {self.migrations_dir}")

        return result

    async def check(
        self,
        get_status: Callable[[], Awaitable[MigrationStatus]],
        fail_on_pending: bool = True,
    ) -> CheckResult:
        """
        Run the full CI check.

        Args:
            get_status: Coroutine function returning the database status,
                usually ``MigrationExecutor.get_status``
            fail_on_pending: Whether pending migrations make the check fail

        Returns:
            CheckResult; database errors are reported in ``errors``
        """
        validation = self.validate()

        try:
            status = await get_status()
        except Exception as e:
            logger.error("Could not read migration status: %s", e)
            return CheckResult(
                valid=False,
                has_pending_migrations=False,
                has_validation_errors=not validation.valid,
                errors=[*validation.errors, f"Failed to read migration status: {e}"],
                warnings=validation.warnings,
            )

        conflicts = self.check_for_conflicts(status.applied_names)
        errors = [*validation.errors, *conflicts.errors]
        warnings = [*validation.warnings, *conflicts.warnings]
        has_pending = bool(status.pending)

        return CheckResult(
            valid=not errors and (not fail_on_pending or not has_pending),
            has_pending_migrations=has_pending,
            has_validation_errors=bool(errors),
            applied=len(status.applied),
            pending=len(status.pending),
            errors=errors,
            warnings=warnings,
        )


__all__ = ["MigrationValidator", "ValidationResult", "CheckResult"]
