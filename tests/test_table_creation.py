"""
Tests for creating tables from DataFrames and column requests (SQLite backend).
"""
import sqlite3

import pandas as pd
import pytest

from dialectforge.creation import ColumnRequest, CreateTableArgs, get_create_table_sql
from dialectforge.dataset import set_allow_nulls, set_do_not_retype, set_primary_key
from dialectforge.dialects import DialectFactory
from dialectforge.discovery import CascadeRule
from dialectforge.exceptions import NamingError, UnsupportedValueError
from dialectforge.translation import DecimalSize, TypeKind, TypeRequest


@pytest.fixture
def people():
    return pd.DataFrame({
        "name": ["Frank", "Dave"],
        "age": [42, 7],
        "score": [1.5, 2.25],
    })


class TestCreateTableSql:
    """Test the generated CREATE TABLE text."""

    def test_primary_key_constraint(self):
        dialect = DialectFactory.create("sqlserver")
        sql = get_create_table_sql(dialect, "db", "people", [
            ColumnRequest("id", TypeRequest(TypeKind.INT32), is_primary_key=True),
            ColumnRequest("name", TypeRequest(TypeKind.STRING, 10)),
        ])
        assert sql == (
            "CREATE TABLE [db]..[people](\n"
            "[id] int NOT NULL,\n"
            "[name] varchar(10) NULL,\n"
            " CONSTRAINT PK_people PRIMARY KEY ([id]))\n"
        )

    def test_auto_increment_primary_key_is_implied_on_sqlite(self):
        dialect = DialectFactory.create("sqlite")
        sql = get_create_table_sql(dialect, "db", "t", [
            ColumnRequest("id", explicit_db_type="integer", is_primary_key=True, is_auto_increment=True),
        ])
        assert sql == 'CREATE TABLE "t"(\n"id" integer NOT NULL PRIMARY KEY AUTOINCREMENT)\n'

    def test_invalid_column_name(self):
        dialect = DialectFactory.create("sqlserver")
        with pytest.raises(NamingError):
            get_create_table_sql(dialect, "db", "t", [ColumnRequest("bad.name", explicit_db_type="int")])

    def test_column_request_needs_a_type(self):
        with pytest.raises(ValueError):
            ColumnRequest("x")


class TestCreateTableFromData:
    """Test the create pipeline against a SQLite file."""

    def test_guessed_types_and_upload(self, database, people):
        result = database.create_table_with_args(CreateTableArgs(database, "people", data=people))
        table = result.table

        assert result.column_types["name"].kind == TypeKind.STRING
        assert result.column_types["name"].width == 5
        assert result.column_types["age"] == TypeRequest(TypeKind.INT32)
        assert result.column_types["score"].decimal_size == DecimalSize(1, 2)
        assert list(result.batch_timings) == [1]

        assert table.exists()
        assert table.get_row_count() == 2
        columns = table.discover_columns()
        assert [c.get_runtime_name() for c in columns] == ["name", "age", "score"]
        assert columns[0].data_type.sql_type == "varchar(5)"

    def test_read_back(self, database, people):
        table = database.create_table("people", data=people)
        data = table.get_data_table()
        assert list(data["name"]) == ["Frank", "Dave"]
        assert list(data["age"]) == [42, 7]
        assert len(table.get_data_table(top_x=1)) == 1

    def test_create_empty(self, database, people):
        result = database.create_table_with_args(CreateTableArgs(database, "people", data=people, create_empty=True))
        assert result.table.is_empty()
        assert result.column_types["age"].kind == TypeKind.INT32

    def test_primary_key_is_not_null(self, database):
        df = pd.DataFrame({"id": [1, 2], "name": ["a", "b"]})
        set_primary_key(df, ["id"])
        set_allow_nulls(df, "id", True)
        table = database.create_table("keyed", data=df)

        column = table.discover_column("id")
        assert column.is_primary_key
        assert not column.allow_nulls
        assert table.discover_column("name").allow_nulls

    def test_not_null_column(self, database):
        df = pd.DataFrame({"name": ["a"]})
        set_allow_nulls(df, "name", False)
        table = database.create_table("strict", data=df)
        assert not table.discover_column("name").allow_nulls

    def test_do_not_retype_keeps_text(self, database):
        df = pd.DataFrame({"code": ["001", "002"], "number": ["001", "002"]})
        set_do_not_retype(df, "code")
        result = database.create_table_with_args(CreateTableArgs(database, "codes", data=df))
        assert result.column_types["code"] == TypeRequest(TypeKind.STRING, 3)
        assert result.column_types["number"].kind == TypeKind.INT32
        assert list(result.table.get_data_table()["code"]) == ["001", "002"]

    def test_explicit_column_overrides_guess(self, database, people):
        result = database.create_table_with_args(CreateTableArgs(
            database, "people", data=people,
            explicit_columns=[ColumnRequest("NAME", explicit_db_type="varchar(50)")],
        ))
        assert result.column_types["name"].width == 50
        assert result.table.discover_column("name").data_type.get_length_if_string() == 50

    def test_explicit_columns_without_data_are_appended(self, database, people):
        table = database.create_table("people", data=people, explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", allow_nulls=False,
                          is_primary_key=True, is_auto_increment=True),
        ])
        columns = table.discover_columns()
        assert columns[-1].get_runtime_name() == "id"
        assert columns[-1].is_auto_increment
        assert table.insert({"name": "Zed", "age": 1, "score": 0.5}) == 3

    def test_adjuster_edits_columns(self, database, people):
        def widen_names(columns):
            for column in columns:
                if column.name == "name":
                    column.explicit_db_type = "varchar(100)"

        table = database.create_table("people", data=people, adjuster=widen_names)
        assert table.discover_column("name").data_type.sql_type == "varchar(100)"

    def test_opaque_values_are_rejected(self, database):
        df = pd.DataFrame({"thing": [object()]})
        with pytest.raises(UnsupportedValueError):
            database.create_table("things", data=df)
        assert not database.expect_table("things").exists()

    def test_dates_in_string_dtype_column(self, database):
        df = pd.DataFrame({"d": pd.Series(["13/01/2007", "02/01/2007"], dtype="string")})
        result = database.create_table_with_args(CreateTableArgs(database, "events", data=df))

        assert result.column_types["d"].kind == TypeKind.DATETIME
        assert list(result.table.get_data_table()["d"]) == ["2007-01-13 00:00:00", "2007-01-02 00:00:00"]

    def test_explicit_columns_only(self, database):
        table = database.create_table("empty", explicit_columns=[
            ColumnRequest("a", TypeRequest(TypeKind.INT32)),
            ColumnRequest("b", TypeRequest(TypeKind.DATETIME)),
        ])
        assert [c.data_type.sql_type for c in table.discover_columns()] == ["integer", "datetime"]
        assert table.is_empty()


class TestForeignKeys:
    """Test foreign keys declared at creation time."""

    @pytest.fixture
    def parent(self, database):
        table = database.create_table("parent", explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", allow_nulls=False, is_primary_key=True),
        ])
        table.insert({"id": 1})
        return table

    def make_child(self, database, parent, cascade_delete):
        child = database.create_table(
            "child",
            explicit_columns=[
                ColumnRequest("parent_id", explicit_db_type="integer", allow_nulls=False),
                ColumnRequest("name", TypeRequest(TypeKind.STRING, 10)),
            ],
            foreign_keys={"parent_id": parent.discover_column("id")},
            cascade_delete=cascade_delete,
        )
        child.insert({"parent_id": 1, "name": "kid"})
        return child

    def test_cascade_delete_removes_children(self, database, parent):
        child = self.make_child(database, parent, cascade_delete=True)
        parent.truncate()
        assert child.get_row_count() == 0

    def test_without_cascade_delete_fails(self, database, parent):
        child = self.make_child(database, parent, cascade_delete=False)
        with pytest.raises(sqlite3.IntegrityError):
            parent.truncate()
        assert child.get_row_count() == 1

    def test_relationship_is_discovered(self, database, parent):
        child = self.make_child(database, parent, cascade_delete=True)
        relationships = parent.discover_relationships()

        assert len(relationships) == 1
        relationship = relationships[0]
        assert relationship.name == "FK_child"
        assert relationship.foreign_key_table == child
        assert relationship.cascade_delete == CascadeRule.DELETE
        pk_column, fk_column = relationship.keys[0]
        assert pk_column.get_runtime_name() == "id"
        assert fk_column.get_runtime_name() == "parent_id"

    def test_foreign_keys_must_share_a_table(self, database, parent):
        other = database.create_table("other", explicit_columns=[
            ColumnRequest("id", explicit_db_type="integer", is_primary_key=True),
        ])
        with pytest.raises(ValueError):
            database.create_table(
                "child",
                explicit_columns=[
                    ColumnRequest("a", explicit_db_type="integer"),
                    ColumnRequest("b", explicit_db_type="integer"),
                ],
                foreign_keys={"a": parent.discover_column("id"), "b": other.discover_column("id")},
            )
