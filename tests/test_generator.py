"""
Unit tests for migration file generation.
"""

from pathlib import Path

from schemashift.migrations.executor import load_migration
from schemashift.migrations.generator import MigrationGenerator, generate_empty_migration
from schemashift.migrations.sql_generator import GeneratedSql

CREATE_USERS = 'CREATE TABLE "users" (\n  "id" SERIAL PRIMARY KEY,\n  "email" VARCHAR(255) NOT NULL\n);'


class TestMigrationGenerator:
    """Tests for MigrationGenerator."""

    def test_numbering(self, temp_migrations_dir: Path) -> None:
        generator = MigrationGenerator(temp_migrations_dir)
        assert generator.get_next_number() == 1
        assert generator.latest_migration() is None

        (temp_migrations_dir / "0001_initial.py").write_text("")
        (temp_migrations_dir / "0003_posts.py").write_text("")
        (temp_migrations_dir / "notes.py").write_text("")

        assert generator.get_next_number() == 4
        assert generator.latest_migration() == "0003_posts"

    def test_missing_directory(self, tmp_path: Path) -> None:
        generator = MigrationGenerator(tmp_path / "missing")
        assert generator.existing_migrations() == []
        assert generator.get_next_number() == 1

    def test_generate_writes_loadable_file(self, temp_migrations_dir: Path) -> None:
        generated = GeneratedSql(
            up_statements=[CREATE_USERS, 'CREATE UNIQUE INDEX "idx_users_email" ON "users" ("email");'],
            down_statements=['DROP INDEX "idx_users_email";', 'DROP TABLE IF EXISTS "users";'],
        )
        generator = MigrationGenerator(temp_migrations_dir)

        path = generator.generate("Create Users", generated, dialect="postgresql")

        assert path == temp_migrations_dir / "0001_create_users.py"
        assert (temp_migrations_dir / "__init__.py").exists()
        content = path.read_text()
        assert "Dialect: postgresql" in content
        assert "from schemashift.migrations import Migration" in content

        migration = load_migration(temp_migrations_dir, "0001_create_users")
        assert migration.name == "0001_create_users"
        assert migration.dependencies == []
        assert migration.up == generated.up_statements
        assert migration.down == generated.down_statements

    def test_generate_with_dependencies_and_manual_steps(self, temp_migrations_dir: Path) -> None:
        comment = "-- SQLite does not support DROP COLUMN (users.email); manual migration required"
        generated = GeneratedSql(
            up_statements=[comment],
            down_statements=['ALTER TABLE "users" ADD COLUMN "email" TEXT;'],
        )
        generator = MigrationGenerator(temp_migrations_dir)
        generator.generate("initial", GeneratedSql())

        path = generator.generate("drop_email", generated, dependencies=["0001_initial"])

        assert path.name == "0002_drop_email.py"
        assert "manual steps" in path.read_text()
        migration = load_migration(temp_migrations_dir, "0002_drop_email")
        assert migration.dependencies == ["0001_initial"]
        assert migration.manual_steps == [comment]

    def test_statement_quotes_survive(self, temp_migrations_dir: Path) -> None:
        statement = "ALTER TABLE \"users\" ADD COLUMN \"status\" VARCHAR(255) DEFAULT 'it''s';"
        generated = GeneratedSql(up_statements=[statement], down_statements=['ALTER TABLE "users" DROP COLUMN "status";'])

        MigrationGenerator(temp_migrations_dir).generate("status", generated)

        assert load_migration(temp_migrations_dir, "0001_status").up == [statement]

    def test_generate_empty_migration(self, temp_migrations_dir: Path) -> None:
        path = generate_empty_migration(temp_migrations_dir, "custom", dependencies=["0001_initial"])

        migration = load_migration(temp_migrations_dir, path.stem)
        assert migration.up == []
        assert migration.down == []
        assert migration.dependencies == ["0001_initial"]
