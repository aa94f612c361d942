"""
Migration file generator.

This module writes Python migration files from generated SQL. The files
define a module-level ``migration`` object and can be edited before being
applied.
"""

from datetime import datetime, timezone
from pathlib import Path

from .migration import generate_migration_name, parse_migration_name
from .sql_generator import GeneratedSql


class MigrationGenerator:
    """
    Generates Python migration files from up/down SQL.

    Usage::

        sql = SqlGenerator("postgresql").generate(changes)
        path = MigrationGenerator("migrations").generate("add_users", sql)
    """

    def __init__(self, migrations_dir: Path | str):
        """
        Initialize the generator with a migrations directory.

        Args:
            migrations_dir: Path to the migrations directory
        """
        self.migrations_dir = Path(migrations_dir)

    def ensure_directory(self) -> None:
        """Create the migrations directory if it doesn't exist."""
        self.migrations_dir.mkdir(parents=True, exist_ok=True)

        init_file = self.migrations_dir / "__init__.py"
        if not init_file.exists():
            init_file.write_text('"""Auto-generated migrations package."""\n')

    def existing_migrations(self) -> list[tuple[int, str]]:
        """
        List migration files already in the directory.

        Returns:
            Sorted list of (number, stem) tuples
        """
        if not self.migrations_dir.exists():
            return []

        found = []
        for filepath in self.migrations_dir.glob("*.py"):
            stem = filepath.stem
            if stem.startswith("_"):
                continue
            try:
                number, _ = parse_migration_name(stem)
            except ValueError:
                continue
            found.append((number, stem))
        return sorted(found)

    def get_next_number(self) -> int:
        """
        Get the next migration number.

        Returns:
            Next available migration number
        """
        existing = self.existing_migrations()
        return existing[-1][0] + 1 if existing else 1

    def latest_migration(self) -> str | None:
        """Name of the highest-numbered migration, if any."""
        existing = self.existing_migrations()
        return existing[-1][1] if existing else None

    def generate(
        self,
        name: str,
        generated: GeneratedSql,
        dependencies: list[str] | None = None,
        dialect: str | None = None,
    ) -> Path:
        """
        Generate a migration file.

        Args:
            name: Short descriptive name for the migration
            generated: Up and down statements from the SQL generator
            dependencies: List of migration names this depends on
            dialect: Dialect the SQL was rendered for, noted in the header

        Returns:
            Path to the generated migration file
        """
        self.ensure_directory()

        number = self.get_next_number()
        full_name = generate_migration_name(number, name)
        filepath = self.migrations_dir / f"{full_name}.py"

        content = self._render_migration(
            name=full_name,
            generated=generated,
            dependencies=dependencies or [],
            dialect=dialect,
        )

        filepath.write_text(content)
        return filepath

    def _render_migration(
        self,
        name: str,
        generated: GeneratedSql,
        dependencies: list[str],
        dialect: str | None,
    ) -> str:
        """
        Render migration file content.

        Returns:
            Python file content as string
        """
        lines = [
            '"""',
            f"Migration: {name}",
            f"Generated: {datetime.now(timezone.utc).isoformat()}",
        ]
        if dialect:
            lines.append(f"Dialect: {dialect}")
        lines.extend(
            [
                "",
                "Auto-generated migration file. Review before applying.",
            ]
        )
        if generated.manual_steps:
            lines.append("Contains manual steps the dialect cannot express; see the SQL comments.")
        lines.extend(
            [
                '"""',
                "",
                "from schemashift.migrations import Migration",
                "",
                "",
                "migration = Migration(",
                f"    name={name!r},",
                f"    dependencies={dependencies!r},",
            ]
        )
        lines.extend(self._render_statements("up", generated.up_statements))
        lines.extend(self._render_statements("down", generated.down_statements))
        lines.append(")")
        lines.append("")

        return "\n".join(lines)

    def _render_statements(self, field_name: str, statements: list[str]) -> list[str]:
        """Render one statement list as a keyword argument."""
        if not statements:
            return [f"    {field_name}=[],"]

        lines = [f"    {field_name}=["]
        for statement in statements:
            lines.extend(f"        {line}" for line in self._format_statement(statement))
        lines.append("    ],")
        return lines

    def _format_statement(self, statement: str) -> list[str]:
        """
        Format a statement as a Python string literal.

        Multi-line statements become a parenthesized concatenation with
        one literal per source line.
        """
        parts = statement.split("\n")
        if len(parts) == 1:
            return [f"{statement!r},"]

        lines = ["("]
        for i, part in enumerate(parts):
            text = part if i == len(parts) - 1 else part + "\n"
            lines.append(f"    {text!r}")
        lines.append("),")
        return lines


def generate_empty_migration(
    migrations_dir: Path | str,
    name: str,
    dependencies: list[str] | None = None,
) -> Path:
    """
    Generate an empty migration file for manual editing.

    Args:
        migrations_dir: Path to migrations directory
        name: Migration name
        dependencies: List of dependencies

    Returns:
        Path to generated file
    """
    generator = MigrationGenerator(migrations_dir)
    return generator.generate(name=name, generated=GeneratedSql(), dependencies=dependencies)


__all__ = ["MigrationGenerator", "generate_empty_migration"]
