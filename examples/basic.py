# schemashift examples

# Run from the repository root: python examples/basic.py
# Set SCHEMASHIFT_URL to point at another database (defaults to a local SQLite file).

import asyncio
import os
from pathlib import Path

from schemashift import Connection, DatabaseIntrospector, SchemaLoader, SqlGenerator
from schemashift.migrations import MigrationExecutor, MigrationGenerator

HERE = Path(__file__).parent
DATABASE_URL = os.getenv("SCHEMASHIFT_URL", f"sqlite+aiosqlite:///{HERE / 'example.db'}")
MIGRATIONS_DIR = HERE / "migrations"


# Show the SQL needed to bring the database to schema.yaml


async def show_diff(conn: Connection) -> None:
    current = await DatabaseIntrospector(conn).introspect()
    desired = SchemaLoader([HERE / "schema.yaml"]).load()

    changes = current.diff(desired)
    for change in changes:
        print(change.describe())

    sql = SqlGenerator(conn.dialect).generate(changes)
    print("\n".join(sql.up_statements))


# Write a migration file and apply it


async def make_and_apply(conn: Connection) -> None:
    current = await DatabaseIntrospector(conn).introspect()
    desired = SchemaLoader([HERE / "schema.yaml"]).load()
    sql = SqlGenerator(conn.dialect).generate(current.diff(desired))

    if sql.is_empty:
        print("Database is up to date")
        return

    generator = MigrationGenerator(MIGRATIONS_DIR)
    latest = generator.latest_migration()
    path = generator.generate("sync_schema", sql, dependencies=[latest] if latest else [], dialect=conn.dialect)
    print(f"Wrote {path}")

    applied = await MigrationExecutor(conn, MIGRATIONS_DIR).migrate()
    print(f"Applied: {applied}")


async def main():
    async with Connection(DATABASE_URL) as conn:
        await show_diff(conn)
        await make_and_apply(conn)


if __name__ == "__main__":
    asyncio.run(main())
