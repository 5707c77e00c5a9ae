"""
Tests for creating and dropping databases, table valued functions and
ordering tables by their foreign keys.
"""
from unittest.mock import MagicMock

import pytest

from dialectforge.dialects import DialectFactory, TableType
from dialectforge.discovery import (
    DiscoveredServer,
    DiscoveredTableValuedFunction,
    RelationshipTopologicalSort,
)
from dialectforge.exceptions import CircularDependencyError, DatabaseStateError, NotSupportedError
from dialectforge.translation import TypeKind


def run_sql(server, *statements):
    conn = server.get_connection()
    for sql in statements:
        conn.execute(sql)
    conn.commit()
    conn.close()


def executed(conn):
    return [c.args[0] for c in conn.cursor.return_value.execute.call_args_list]


@pytest.fixture
def fresh_server(tmp_path):
    """A server whose database file does not exist yet."""
    return DiscoveredServer("sqlite", {"database": str(tmp_path / "fresh.db")})


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def sqlserver(conn):
    server = DiscoveredServer("sqlserver", {"server": "localhost", "database": "db"})
    server.get_connection = MagicMock(return_value=conn)
    return server


class TestCreateDatabase:
    """Test creating and dropping SQLite database files."""

    def test_create(self, fresh_server, tmp_path):
        database = fresh_server.create_database("fresh")
        assert database.get_runtime_name() == "fresh"
        assert database.exists()
        assert (tmp_path / "fresh.db").exists()

    def test_create_from_database(self, fresh_server):
        database = fresh_server.expect_database("fresh")
        assert not database.exists()
        assert database.create() == database
        assert database.exists()

    def test_other_file_not_supported(self, fresh_server):
        with pytest.raises(NotSupportedError):
            fresh_server.create_database("other")

    def test_drop_empty(self, fresh_server, tmp_path):
        database = fresh_server.create_database("fresh")
        database.drop()
        assert not database.exists()
        assert not (tmp_path / "fresh.db").exists()

    def test_drop_missing(self, fresh_server):
        with pytest.raises(DatabaseStateError):
            fresh_server.expect_database("fresh").drop()

    def test_drop_not_empty(self, sqlite_server, database):
        run_sql(sqlite_server, 'CREATE TABLE "keep"("a" int)')
        with pytest.raises(DatabaseStateError, match="keep"):
            database.drop()
        assert database.exists()

    def test_force_drop_not_empty(self, sqlite_server, database):
        run_sql(sqlite_server, 'CREATE TABLE "gone"("a" int)')
        database.force_drop()
        assert not database.exists()

    def test_force_drop_missing_does_nothing(self, fresh_server):
        fresh_server.expect_database("fresh").force_drop()

    def test_create_drop_first(self, sqlite_server, database):
        run_sql(sqlite_server, 'CREATE TABLE "old"("a" int)')
        database.create(drop_first=True)
        assert database.exists()
        assert database.discover_tables() == []


class TestDatabaseSql:
    """Test the per dialect CREATE/DROP DATABASE statements."""

    def test_create(self):
        assert DialectFactory.create("postgresql").get_create_database_sql("db") == ['CREATE DATABASE "db"']

    def test_sqlserver_drop_kicks_other_sessions(self):
        assert DialectFactory.create("sqlserver").get_drop_database_sql("db") == [
            "ALTER DATABASE [db] SET SINGLE_USER WITH ROLLBACK IMMEDIATE",
            "DROP DATABASE [db]",
        ]

    def test_oracle_database_is_a_user(self):
        statements = DialectFactory.create("oracle").get_create_database_sql("db")
        assert statements[0].startswith('CREATE USER "DB" IDENTIFIED BY pwd')
        assert len(statements[0].split("IDENTIFIED BY ")[1]) == 30
        assert DialectFactory.create("oracle").get_drop_database_sql("db") == ['DROP USER "DB" CASCADE']

    def test_sqlite_not_supported(self):
        with pytest.raises(NotSupportedError):
            DialectFactory.create("sqlite").get_create_database_sql("db")

    def test_sqlserver_drop_runs_on_master(self, sqlserver, conn):
        sqlserver.adapter.connect = MagicMock(return_value=conn)
        sqlserver.adapter.drop_database(sqlserver.build_connection_kwargs(), "db")

        kwargs = sqlserver.adapter.connect.call_args.args[0]
        assert kwargs["database"] == "master"
        assert conn.autocommit is True
        assert executed(conn)[-1] == "DROP DATABASE [db]"
        conn.close.assert_called_once()

    def test_sqlserver_master_in_connection_string(self, sqlserver):
        kwargs = sqlserver.adapter.server_connection_kwargs(
            {"connection_string": "DRIVER={x};SERVER=s;Initial Catalog=db"}
        )
        assert kwargs["connection_string"] == "DRIVER={x};SERVER=s;DATABASE=master"

    def test_create_checks_database_appeared(self, sqlserver):
        sqlserver.adapter.create_database = MagicMock()
        sqlserver.adapter.database_exists = MagicMock(return_value=False)
        with pytest.raises(DatabaseStateError):
            sqlserver.create_database("newdb")
        sqlserver.adapter.create_database.assert_called_once()


class TestTableValuedFunctions:
    """Test discovering SQL Server table valued functions (mocked connection)."""

    def test_discover(self, sqlserver, conn):
        conn.cursor.return_value.fetchall.return_value = [("fn", "dbo"), ("other", "sales")]
        functions = sqlserver.get_current_database().discover_table_valued_functions()

        assert [f.get_runtime_name() for f in functions] == ["fn", "other"]
        assert [f.schema for f in functions] == [None, "sales"]
        assert all(f.table_type == TableType.TABLE_VALUED_FUNCTION for f in functions)
        assert "[db].sys.objects" in executed(conn)[0]

    def test_parameters(self, sqlserver, conn):
        conn.cursor.return_value.fetchall.return_value = [
            ("@start", "datetime", 8, 23, 3),
            ("@name", "nvarchar", 20, 0, 0),
        ]
        function = sqlserver.get_current_database().expect_table_valued_function("fn")
        parameters = function.discover_parameters()

        assert [p.name for p in parameters] == ["@start", "@name"]
        assert [p.sql_type for p in parameters] == ["datetime", "nvarchar(10)"]
        assert parameters[0].get_type_request().kind == TypeKind.DATETIME
        assert parameters[1].get_type_request().width == 10

    def test_fully_qualified_name_is_a_call(self, sqlserver, conn):
        conn.cursor.return_value.fetchall.return_value = [
            ("@start", "datetime", 8, 23, 3),
            ("@name", "varchar", 10, 0, 0),
        ]
        function = sqlserver.get_current_database().expect_table("fn", table_type=TableType.TABLE_VALUED_FUNCTION)

        assert isinstance(function, DiscoveredTableValuedFunction)
        assert function.get_fully_qualified_name() == "[db]..[fn](@start,@name)"

    def test_drop(self, sqlserver, conn):
        sqlserver.get_current_database().expect_table_valued_function("fn").drop()
        assert executed(conn) == ["DROP FUNCTION [db]..[fn]"]

    def test_none_on_sqlite(self, database):
        assert database.discover_table_valued_functions() == []


class TestTopologicalSort:
    """Test ordering tables so referenced tables come first."""

    def test_parents_first(self, sqlite_server, database):
        run_sql(
            sqlite_server,
            'CREATE TABLE "parent"("id" INTEGER PRIMARY KEY)',
            'CREATE TABLE "child"("id" INTEGER PRIMARY KEY, "parent_id" int REFERENCES "parent"("id"))',
            'CREATE TABLE "grandchild"("id" INTEGER PRIMARY KEY, "child_id" int REFERENCES "child"("id"))',
            'CREATE TABLE "isolated"("id" INTEGER PRIMARY KEY)',
        )
        parent, child, grandchild, isolated = (
            database.expect_table(n) for n in ("parent", "child", "grandchild", "isolated")
        )

        order = RelationshipTopologicalSort([grandchild, child, isolated, parent]).order
        assert order == [isolated, parent, child, grandchild]

    def test_tables_outside_the_set_are_ignored(self, sqlite_server, database):
        run_sql(
            sqlite_server,
            'CREATE TABLE "parent"("id" INTEGER PRIMARY KEY)',
            'CREATE TABLE "child"("id" INTEGER PRIMARY KEY, "parent_id" int REFERENCES "parent"("id"))',
        )
        child = database.expect_table("child")
        assert RelationshipTopologicalSort([child]).order == [child]

    def test_self_reference(self, sqlite_server, database):
        run_sql(
            sqlite_server,
            'CREATE TABLE "node"("id" INTEGER PRIMARY KEY, "parent_id" int REFERENCES "node"("id"))',
        )
        node = database.expect_table("node")
        assert RelationshipTopologicalSort([node, node]).order == [node]

    def test_cycle(self, sqlite_server, database):
        run_sql(
            sqlite_server,
            'CREATE TABLE "a"("id" INTEGER PRIMARY KEY, "b_id" int REFERENCES "b"("id"))',
            'CREATE TABLE "b"("id" INTEGER PRIMARY KEY, "a_id" int REFERENCES "a"("id"))',
        )
        with pytest.raises(CircularDependencyError):
            RelationshipTopologicalSort([database.expect_table("a"), database.expect_table("b")])
