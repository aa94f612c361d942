"""
Migration class and naming utilities.

A Migration is a pair of SQL statement lists: ``up`` applies a schema
change, ``down`` reverts it. Migration files are plain Python modules that
define a module-level ``migration`` object, so they can be reviewed and
edited before being applied.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .dialects import is_comment

MIGRATION_NAME_PATTERN = re.compile(r"^(\d+)_([a-z0-9_]+)$")


@dataclass
class Migration:
    """
    Represents a single migration.

    Attributes:
        name: Unique identifier for the migration (e.g., "0001_initial")
        dependencies: Names of migrations that must be applied first
        up: SQL statements that apply the migration, in order
        down: SQL statements that revert it, in order
        created_at: Timestamp when the migration was created

    Example:
        migration = Migration(
            name="0002_add_email",
            dependencies=["0001_initial"],
            up=['ALTER TABLE "users" ADD COLUMN "email" VARCHAR(255);'],
            down=['ALTER TABLE "users" DROP COLUMN "email";'],
        )
    """

    name: str
    dependencies: list[str] = field(default_factory=list)
    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def number(self) -> int:
        return parse_migration_name(self.name)[0]

    @property
    def is_reversible(self) -> bool:
        """
        Check whether the migration can be rolled back.

        A migration with ``up`` statements and no ``down`` statements is not
        reversible. Comment placeholders in ``down`` do not block a
        rollback; they are reported as manual steps.
        """
        return bool(self.down) or not self.up

    @property
    def manual_steps(self) -> list[str]:
        """Comment statements standing in for operations the dialect cannot run."""
        return [s for s in self.up + self.down if is_comment(s)]

    def statements(self, direction: str = "up") -> list[str]:
        """
        Get the statements for one direction.

        Raises:
            ValueError: If direction is not "up" or "down"
        """
        if direction == "up":
            return list(self.up)
        if direction == "down":
            return list(self.down)
        raise ValueError(f"Invalid direction: {direction!r}")

    def describe(self) -> str:
        """
        Get a human-readable description of this migration.

        Returns:
            Multi-line string listing the up statements
        """
        lines = [f"Migration: {self.name}"]
        if self.dependencies:
            lines.append(f"Dependencies: {', '.join(self.dependencies)}")
        lines.append(f"Statements ({len(self.up)} up, {len(self.down)} down):")
        for i, statement in enumerate(self.up, 1):
            first_line = statement.splitlines()[0] if statement else ""
            lines.append(f"  {i}. {first_line}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Migration(name={self.name!r}, up={len(self.up)}, down={len(self.down)})"


def parse_migration_name(filename: str) -> tuple[int, str]:
    """
    Parse a migration filename into number and name.

    Args:
        filename: Migration filename (e.g., "0001_initial.py")

    Returns:
        Tuple of (migration_number, migration_name)

    Raises:
        ValueError: If filename doesn't match expected format
    """
    if filename.endswith(".py"):
        filename = filename[:-3]

    parts = filename.split("_", 1)
    if len(parts) != 2 or not parts[1]:
        raise ValueError(f"Invalid migration filename: {filename}")

    try:
        number = int(parts[0])
    except ValueError:
        raise ValueError(f"Invalid migration number in: {filename}") from None

    return number, parts[1]


def is_valid_migration_name(name: str) -> bool:
    """Check a migration stem against the ``NNNN_snake_case`` convention."""
    return MIGRATION_NAME_PATTERN.match(name) is not None


def generate_migration_name(number: int, name: str) -> str:
    """
    Generate a migration name from number and description.

    Args:
        number: Migration sequence number
        name: Descriptive name for the migration

    Returns:
        Formatted name (e.g., "0001_initial")
    """
    safe_name = name.lower().replace(" ", "_").replace("-", "_")
    safe_name = "".join(c for c in safe_name if c.isalnum() or c == "_")
    return f"{number:04d}_{safe_name or 'migration'}"


__all__ = [
    "Migration",
    "parse_migration_name",
    "generate_migration_name",
    "is_valid_migration_name",
]
