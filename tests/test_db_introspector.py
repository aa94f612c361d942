"""
Unit tests for catalog readers using mocked catalog rows.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from schemashift.exceptions import ConnectionError, UnsupportedDialectError
from schemashift.migrations.db_introspector import (
    DatabaseIntrospector,
    MySQLCatalogReader,
    PostgresCatalogReader,
    SQLiteCatalogReader,
)
from schemashift.types import Dialect


def make_connection(dialect: Dialect, responses: dict[str, Any], database: str | None = "app") -> MagicMock:
    """Mock connection answering each catalog query from ``responses``.

    ``responses`` maps a query string to either a list of rows or a dict of
    table name to rows.
    """

    async def fetch_all(query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        result = responses.get(query, [])
        if isinstance(result, dict):
            return result.get((params or {}).get("table"), [])
        return result

    conn = MagicMock()
    conn.dialect = dialect
    conn.fetch_all = AsyncMock(side_effect=fetch_all)
    conn.fetch_one = AsyncMock(return_value={"db_name": database})
    return conn


def pg_column(name: str, data_type: str, **overrides: Any) -> dict[str, Any]:
    row = {
        "column_name": name,
        "data_type": data_type,
        "udt_name": data_type,
        "is_nullable": "YES",
        "column_default": None,
        "is_identity": "NO",
        "is_primary_key": False,
    }
    row.update(overrides)
    return row


class TestPostgresCatalogReader:
    """Tests for reading PostgreSQL catalogs."""

    @pytest.fixture
    def responses(self) -> dict[str, Any]:
        return {
            PostgresCatalogReader.TABLES_QUERY: [
                {"tablename": "users"},
                {"tablename": "_schemashift_migrations"},
                {"tablename": "posts"},
            ],
            PostgresCatalogReader.COLUMNS_QUERY: {
                "users": [
                    pg_column(
                        "id",
                        "integer",
                        is_nullable="NO",
                        column_default="nextval('users_id_seq'::regclass)",
                        is_primary_key=True,
                    ),
                    pg_column("email", "character varying", udt_name="varchar", is_nullable="NO"),
                    pg_column("status", "text", column_default="'active'::text"),
                    pg_column("mood", "USER-DEFINED", udt_name="mood_enum"),
                ],
                "posts": [
                    pg_column("id", "bigint", is_nullable="NO", is_identity="YES", is_primary_key=True),
                    pg_column("user_id", "integer", is_nullable="NO"),
                    pg_column("created_at", "timestamp without time zone"),
                ],
            },
            PostgresCatalogReader.INDEXES_QUERY: {
                "users": [
                    {
                        "indexname": "idx_users_email",
                        "indexdef": "CREATE UNIQUE INDEX idx_users_email ON public.users USING btree (email)",
                        "indisunique": True,
                    },
                ],
                "posts": [
                    {
                        "indexname": "idx_posts_user_created",
                        "indexdef": (
                            "CREATE INDEX idx_posts_user_created ON public.posts "
                            'USING btree (user_id, "created_at")'
                        ),
                        "indisunique": False,
                    },
                ],
            },
            PostgresCatalogReader.FOREIGN_KEYS_QUERY: {
                "posts": [
                    {
                        "constraint_name": "fk_posts_user_id",
                        "column_name": "user_id",
                        "foreign_table_name": "users",
                        "foreign_column_name": "id",
                        "update_rule": "NO ACTION",
                        "delete_rule": "CASCADE",
                    },
                    {
                        "constraint_name": "fk_posts_user_id",
                        "column_name": "user_id",
                        "foreign_table_name": "users",
                        "foreign_column_name": "id",
                        "update_rule": "NO ACTION",
                        "delete_rule": "CASCADE",
                    },
                ],
            },
        }

    @pytest.mark.asyncio
    async def test_tables_sorted_and_migrations_table_skipped(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, responses)).introspect()
        assert schema.table_names == ["posts", "users"]

    @pytest.mark.asyncio
    async def test_columns(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, responses)).introspect()
        users = schema.tables["users"]

        user_id = users.get_column("id")
        assert user_id is not None
        assert user_id.type == "integer"
        assert user_id.not_null
        assert user_id.primary_key
        assert user_id.auto_increment
        # The sequence default is implied by auto_increment.
        assert user_id.default_value is None

        email = users.get_column("email")
        assert email is not None
        assert email.type == "varchar"
        assert email.not_null

        status = users.get_column("status")
        assert status is not None
        assert status.default_value == "'active'::text"
        assert not status.not_null

        mood = users.get_column("mood")
        assert mood is not None
        assert mood.type == "mood_enum"

        assert users.primary_key == ("id",)

    @pytest.mark.asyncio
    async def test_identity_column_is_auto_increment(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, responses)).introspect()
        post_id = schema.tables["posts"].get_column("id")
        assert post_id is not None
        assert post_id.type == "bigint"
        assert post_id.auto_increment
        assert schema.tables["posts"].get_column("created_at").type == "timestamp"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_indexes(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, responses)).introspect()
        (email_index,) = schema.tables["users"].indexes
        assert email_index.name == "idx_users_email"
        assert email_index.columns == ("email",)
        assert email_index.unique

        (posts_index,) = schema.tables["posts"].indexes
        assert posts_index.columns == ("user_id", "created_at")
        assert not posts_index.unique

    @pytest.mark.asyncio
    async def test_foreign_keys_deduplicated_and_no_action_is_none(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, responses)).introspect()
        (fk,) = schema.tables["posts"].foreign_keys
        assert fk.name == "fk_posts_user_id"
        assert fk.column == "user_id"
        assert fk.referenced_table == "users"
        assert fk.referenced_column == "id"
        assert fk.on_delete == "CASCADE"
        assert fk.on_update is None

    @pytest.mark.asyncio
    async def test_schema_parameter_is_bound(self, responses: dict[str, Any]) -> None:
        conn = make_connection(Dialect.POSTGRESQL, responses)
        reader = PostgresCatalogReader(conn, schema="tenant")
        await reader.list_tables()
        conn.fetch_all.assert_awaited_with(PostgresCatalogReader.TABLES_QUERY, {"schema": "tenant"})

    @pytest.mark.asyncio
    async def test_custom_migrations_table_skipped(self, responses: dict[str, Any]) -> None:
        responses[PostgresCatalogReader.TABLES_QUERY] = [{"tablename": "users"}, {"tablename": "schema_log"}]
        conn = make_connection(Dialect.POSTGRESQL, responses)
        schema = await DatabaseIntrospector(conn, migrations_table="schema_log").introspect()
        assert schema.table_names == ["users"]

    def test_parse_index_columns(self) -> None:
        reader = PostgresCatalogReader(MagicMock())
        assert reader.parse_index_columns('CREATE INDEX i ON t USING btree ("a", b)') == ["a", "b"]
        assert reader.parse_index_columns("no columns here") == []


class TestMySQLCatalogReader:
    """Tests for reading MySQL catalogs."""

    @pytest.fixture
    def responses(self) -> dict[str, Any]:
        return {
            MySQLCatalogReader.TABLES_QUERY: [{"table_name": "users"}],
            MySQLCatalogReader.COLUMNS_QUERY: {
                "users": [
                    {
                        "column_name": "id",
                        "data_type": "int",
                        "column_type": "int",
                        "is_nullable": "NO",
                        "column_default": None,
                        "column_key": "PRI",
                        "extra": "auto_increment",
                    },
                    {
                        "column_name": "active",
                        "data_type": "tinyint",
                        "column_type": "tinyint(1)",
                        "is_nullable": "NO",
                        "column_default": "1",
                        "column_key": "",
                        "extra": "",
                    },
                    {
                        "column_name": "first_name",
                        "data_type": "varchar",
                        "column_type": "varchar(100)",
                        "is_nullable": "YES",
                        "column_default": None,
                        "column_key": "MUL",
                        "extra": None,
                    },
                    {
                        "column_name": "last_name",
                        "data_type": "varchar",
                        "column_type": "varchar(100)",
                        "is_nullable": "YES",
                        "column_default": None,
                        "column_key": "",
                        "extra": "",
                    },
                ],
            },
            MySQLCatalogReader.INDEXES_QUERY: {
                "users": [
                    {"index_name": "idx_users_name", "column_name": "first_name", "non_unique": 0},
                    {"index_name": "idx_users_name", "column_name": "last_name", "non_unique": 0},
                    {"index_name": "idx_users_last", "column_name": "last_name", "non_unique": 1},
                ],
            },
            MySQLCatalogReader.FOREIGN_KEYS_QUERY: {"users": []},
        }

    @pytest.mark.asyncio
    async def test_columns(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.MYSQL, responses)).introspect()
        users = schema.tables["users"]

        assert [c.name for c in users.columns] == ["id", "active", "first_name", "last_name"]
        user_id = users.get_column("id")
        assert user_id is not None
        assert user_id.type == "integer"
        assert user_id.primary_key
        assert user_id.auto_increment

        active = users.get_column("active")
        assert active is not None
        assert active.type == "boolean"
        assert active.default_value == "1"

        first_name = users.get_column("first_name")
        assert first_name is not None
        assert first_name.type == "varchar"
        assert not first_name.not_null
        assert not first_name.primary_key

    @pytest.mark.asyncio
    async def test_indexes_grouped_in_key_order(self, responses: dict[str, Any]) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.MYSQL, responses)).introspect()
        indexes = schema.tables["users"].index_map
        assert indexes["idx_users_name"].columns == ("first_name", "last_name")
        assert indexes["idx_users_name"].unique
        assert indexes["idx_users_last"].columns == ("last_name",)
        assert not indexes["idx_users_last"].unique

    @pytest.mark.asyncio
    async def test_foreign_keys(self) -> None:
        responses = {
            MySQLCatalogReader.FOREIGN_KEYS_QUERY: {
                "posts": [
                    {
                        "constraint_name": "fk_posts_user_id",
                        "column_name": "user_id",
                        "referenced_table": "users",
                        "referenced_column": "id",
                        "delete_rule": "SET NULL",
                        "update_rule": "NO ACTION",
                    },
                ],
            },
        }
        reader = MySQLCatalogReader(make_connection(Dialect.MYSQL, responses))
        (fk,) = await reader.read_foreign_keys("posts")
        assert fk.referenced_table == "users"
        assert fk.on_delete == "SET NULL"
        assert fk.on_update is None

    @pytest.mark.asyncio
    async def test_implicit_foreign_key_index_is_skipped(self) -> None:
        responses = {
            MySQLCatalogReader.INDEXES_QUERY: {
                "posts": [
                    {"index_name": "fk_posts_user_id", "column_name": "user_id", "non_unique": 1},
                    {"index_name": "idx_posts_title", "column_name": "title", "non_unique": 1},
                ],
            },
            MySQLCatalogReader.FOREIGN_KEYS_QUERY: {
                "posts": [
                    {
                        "constraint_name": "fk_posts_user_id",
                        "column_name": "user_id",
                        "referenced_table": "users",
                        "referenced_column": "id",
                        "delete_rule": "CASCADE",
                        "update_rule": "NO ACTION",
                    },
                ],
            },
        }
        reader = MySQLCatalogReader(make_connection(Dialect.MYSQL, responses))

        posts = await reader.read_table("posts")

        assert [i.name for i in posts.indexes] == ["idx_posts_title"]
        assert [fk.name for fk in posts.foreign_keys] == ["fk_posts_user_id"]

    @pytest.mark.asyncio
    async def test_database_name_is_cached(self, responses: dict[str, Any]) -> None:
        conn = make_connection(Dialect.MYSQL, responses)
        await DatabaseIntrospector(conn).introspect()
        conn.fetch_one.assert_awaited_once_with(MySQLCatalogReader.DATABASE_QUERY)

    @pytest.mark.asyncio
    async def test_no_database_selected(self, responses: dict[str, Any]) -> None:
        conn = make_connection(Dialect.MYSQL, responses, database=None)
        with pytest.raises(ConnectionError, match="No database selected"):
            await DatabaseIntrospector(conn).introspect()


class TestDatabaseIntrospector:
    """Tests for reader selection and error behavior."""

    def test_reader_follows_connection_dialect(self) -> None:
        assert isinstance(DatabaseIntrospector(make_connection(Dialect.SQLITE, {})).reader, SQLiteCatalogReader)
        assert isinstance(DatabaseIntrospector(make_connection(Dialect.MYSQL, {})).reader, MySQLCatalogReader)

    def test_explicit_dialect_overrides_connection(self) -> None:
        introspector = DatabaseIntrospector(make_connection(Dialect.SQLITE, {}), dialect="postgres")
        assert introspector.dialect == Dialect.POSTGRESQL
        assert isinstance(introspector.reader, PostgresCatalogReader)

    def test_unsupported_dialect(self) -> None:
        with pytest.raises(UnsupportedDialectError):
            DatabaseIntrospector(make_connection(Dialect.SQLITE, {}), dialect="oracle")

    @pytest.mark.asyncio
    async def test_empty_database(self) -> None:
        schema = await DatabaseIntrospector(make_connection(Dialect.POSTGRESQL, {})).introspect()
        assert len(schema) == 0

    @pytest.mark.asyncio
    async def test_catalog_errors_propagate(self) -> None:
        conn = make_connection(Dialect.POSTGRESQL, {})
        conn.fetch_all = AsyncMock(side_effect=PermissionError("permission denied for pg_tables"))
        with pytest.raises(PermissionError, match="permission denied"):
            await DatabaseIntrospector(conn).introspect()

    def test_normalize_type_passthrough_is_lowercased(self) -> None:
        reader = PostgresCatalogReader(MagicMock())
        assert reader.normalize_type("CHARACTER VARYING") == "varchar"
        assert reader.normalize_type("numeric(10,2)") == "decimal"
        assert reader.normalize_type("TSVECTOR") == "tsvector"
