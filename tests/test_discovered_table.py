"""
Tests for DiscoveredServer, DiscoveredDatabase and DiscoveredTable operations (SQLite backend).
"""
import pandas as pd
import pytest

from dialectforge.creation import ColumnRequest
from dialectforge.dataset import set_primary_key
from dialectforge.dialects import TableType
from dialectforge.discovery import DiscoveredServer
from dialectforge.exceptions import ColumnMappingError, NotSupportedError
from dialectforge.translation import TypeKind, TypeRequest


@pytest.fixture
def people(database):
    df = pd.DataFrame({"name": ["Frank", "Dave"], "age": [42, 7]})
    return database.create_table("people", data=df)


class TestServer:
    """Test server level discovery."""

    def test_exists(self, sqlite_server):
        assert sqlite_server.exists()

    def test_unreachable_server(self, tmp_path):
        server = DiscoveredServer("sqlite", {"database": str(tmp_path / "missing" / "x.db")})
        assert not server.exists()

    def test_discover_databases(self, sqlite_server, database):
        assert sqlite_server.discover_databases() == [database]

    def test_current_database(self, database):
        assert database.get_runtime_name() == "test"
        assert database.exists()

    def test_expect_database_that_is_not_there(self, sqlite_server):
        assert not sqlite_server.expect_database("other").exists()

    def test_equality(self, sqlite_server, sqlite_path):
        assert sqlite_server == DiscoveredServer("sqlite", {"database": str(sqlite_path)})
        assert sqlite_server != DiscoveredServer("sqlite", {"database": "other.db"})


class TestTableDiscovery:
    """Test finding tables and views."""

    def test_expect_table_does_no_io(self, database):
        table = database.expect_table("nothing_here")
        assert not table.exists()

    def test_discover_tables(self, database, people):
        assert database.discover_tables() == [people]

    def test_views(self, sqlite_server, database, people):
        conn = sqlite_server.get_connection()
        conn.execute('CREATE VIEW "adults" AS SELECT * FROM "people" WHERE age > 18')
        conn.commit()
        conn.close()

        tables = database.discover_tables()
        assert [t.table_type for t in tables] == [TableType.VIEW, TableType.TABLE]
        assert database.discover_tables(include_views=False) == [people]

        view = database.expect_table("adults", table_type=TableType.VIEW)
        assert view.exists()
        assert view.get_row_count() == 1
        with pytest.raises(NotSupportedError):
            view.rename("grownups")

    def test_top_x_sql(self, people):
        assert people.get_top_x_sql(1) == 'SELECT * FROM "people" LIMIT 1'

    def test_type_names_are_lower_cased(self, sqlite_server, database):
        conn = sqlite_server.get_connection()
        conn.execute('CREATE TABLE "shouty"("a" INTEGER NULL, "b" VARCHAR(10) NULL)')
        conn.commit()
        conn.close()

        columns = database.expect_table("shouty").discover_columns()
        assert [c.data_type.sql_type for c in columns] == ["integer", "varchar(10)"]
        assert columns[1].data_type.get_length_if_string() == 10

    def test_discover_column_case_insensitive(self, people):
        assert people.discover_column("NAME").get_runtime_name() == "name"

    def test_missing_column(self, people):
        with pytest.raises(ColumnMappingError):
            people.discover_column("height")


class TestTableOperations:
    """Test schema changing operations."""

    def test_add_and_drop_column(self, people):
        people.add_column("nickname", TypeRequest(TypeKind.STRING, 10))
        column = people.discover_column("nickname")
        assert column.data_type.sql_type == "varchar(10)"
        assert column.allow_nulls

        people.drop_column(column)
        assert [c.get_runtime_name() for c in people.discover_columns()] == ["name", "age"]

    def test_add_column_with_proprietary_type(self, people):
        people.add_column("born", "datetime", allow_nulls=True)
        assert people.discover_column("born").data_type.get_type_request().kind == TypeKind.DATETIME

    def test_rename(self, database, people):
        people.rename("folk")
        assert people.get_runtime_name() == "folk"
        assert people.exists()
        assert not database.expect_table("people").exists()
        assert people.get_row_count() == 2

    def test_truncate(self, people):
        people.truncate()
        assert people.is_empty()

    def test_drop(self, people):
        people.drop()
        assert not people.exists()

    def test_make_distinct(self, database):
        df = pd.DataFrame({
            "name": ["a", "a", "b", "b", "b", "c", "c"],
            "age": [1, 1, 2, 2, 2, 3, 3],
        })
        table = database.create_table("dupes", data=df)
        assert table.get_row_count() == 7

        table.make_distinct()
        assert table.get_row_count() == 3
        assert not database.expect_table("dupes_DistinctingTemp").exists()

    def test_make_distinct_with_primary_key_does_nothing(self, database):
        table = database.create_table("keyed", explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", is_primary_key=True),
        ])
        table.insert({"id": 1})
        table.make_distinct()
        assert table.get_row_count() == 1

    def test_create_primary_key_not_supported(self, people):
        with pytest.raises(NotSupportedError):
            people.create_primary_key([people.discover_column("name")])

    def test_add_foreign_key_not_supported(self, database, people):
        parent = database.create_table("parent", explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", is_primary_key=True),
        ])
        people.add_column("parent_id", "integer")
        with pytest.raises(NotSupportedError):
            people.add_foreign_key({people.discover_column("parent_id"): parent.discover_column("id")})

    def test_add_foreign_key_across_tables(self, database, people):
        other = database.create_table("other", explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", is_primary_key=True),
        ])
        with pytest.raises(ValueError):
            people.add_foreign_key({other.discover_column("id"): people.discover_column("age")})


class TestInsert:
    """Test single row inserts."""

    def test_insert_without_identity(self, people):
        assert people.insert({"Name": "Zoe", "AGE": 30}) == 0
        assert people.get_row_count() == 3

    def test_unknown_column(self, people):
        with pytest.raises(ColumnMappingError):
            people.insert({"height": 180})

    def test_parameter_names_do_not_collide(self, database):
        table = database.create_table("odd", explicit_columns=[
            ColumnRequest("my col", TypeRequest(TypeKind.STRING, 5)),
            ColumnRequest("p0", TypeRequest(TypeKind.STRING, 5)),
        ])
        table.insert({"my col": "a", "p0": "b"})
        assert table.get_data_table().values.tolist() == [["a", "b"]]

    def test_dayfirst_dates(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
        ])
        table.insert({"happened": "02/01/2007"}, dayfirst=True)
        assert list(table.get_data_table()["happened"]) == ["2007-01-02 00:00:00"]

    def test_month_first_by_default(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
        ])
        table.insert({"happened": "02/01/2007"})
        assert list(table.get_data_table()["happened"]) == ["2007-02-01 00:00:00"]

    def test_rolled_back_transaction(self, sqlite_server, people):
        transaction = sqlite_server.begin_new_transaction()
        people.insert({"name": "Zoe", "age": 30}, transaction=transaction)
        assert people.get_row_count(transaction) == 3
        transaction.abandon_and_close()
        assert people.get_row_count() == 2

    def test_committed_transaction(self, sqlite_server, people):
        with sqlite_server.begin_new_transaction() as transaction:
            people.insert({"name": "Zoe", "age": 30}, transaction=transaction)
        assert people.get_row_count() == 3


class TestScripting:
    """Test scripting a table's creation."""

    def test_same_database_type(self, people):
        sql = people.script_table_creation()
        assert sql == 'CREATE TABLE "people"(\n"name" varchar(5) NULL,\n"age" integer NULL)\n'

    def test_drop_nullability(self, database):
        df = pd.DataFrame({"id": [1]})
        set_primary_key(df, ["id"])
        table = database.create_table("keyed", data=df)

        sql = table.script_table_creation(drop_primary_keys=True, drop_nullability=True)
        assert sql == 'CREATE TABLE "keyed"(\n"id" integer NULL)\n'

    def test_to_another_database_type(self, people):
        other = DiscoveredServer("sqlserver", {"server": "localhost"}).expect_database("other")
        sql = people.script_table_creation(to_create_table=other.expect_table("people"))
        assert "CREATE TABLE [other]..[people](" in sql
        assert "[name] varchar(5) NULL" in sql
        assert "[age] int NULL" in sql
