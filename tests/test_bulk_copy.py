"""
Tests for BulkCopy uploads, column mapping and failure diagnosis (SQLite backend).
"""
import pandas as pd
import pytest

from dialectforge.creation import ColumnRequest
from dialectforge.exceptions import BulkInsertError, ColumnMappingError, UnsupportedValueError
from dialectforge.translation import TypeKind, TypeRequest


@pytest.fixture
def people(database):
    return database.create_table("people", explicit_columns=[
        ColumnRequest("id", explicit_db_type="integer", allow_nulls=False,
                      is_primary_key=True, is_auto_increment=True),
        ColumnRequest("name", TypeRequest(TypeKind.STRING, 10), allow_nulls=False),
        ColumnRequest("bob", TypeRequest(TypeKind.INT32)),
    ])


class TestMapping:
    """Test matching DataFrame columns to table columns."""

    def test_case_insensitive(self, people):
        with people.begin_bulk_insert() as bulk:
            mapping, unmatched = bulk.map(["NAME", "BoB"])
        assert mapping["BoB"].get_runtime_name() == "bob"
        assert mapping["NAME"].get_runtime_name() == "name"
        assert [c.get_runtime_name() for c in unmatched] == ["id"]

    def test_unmatched_input_column(self, people):
        with people.begin_bulk_insert() as bulk:
            with pytest.raises(ColumnMappingError) as error:
                bulk.map(["name", "height"])
        assert error.value.column == "height"

    def test_allow_unmatched_input_columns(self, people):
        df = pd.DataFrame({"name": ["Frank"], "height": [180]})
        with people.begin_bulk_insert() as bulk:
            bulk.allow_unmatched_input_columns = True
            assert bulk.upload(df) == 1
        assert list(people.get_data_table()["name"]) == ["Frank"]


class TestUpload:
    """Test uploading rows."""

    def test_upload(self, people):
        df = pd.DataFrame({"Name": ["Frank", "Dave"], "BoB": [1, 2]})
        with people.begin_bulk_insert() as bulk:
            assert bulk.upload(df) == 2

        data = people.get_data_table()
        assert list(data["id"]) == [1, 2]
        assert list(data["bob"]) == [1, 2]

    def test_nulls(self, people):
        df = pd.DataFrame({"name": ["Frank", "Dave"], "bob": [1, None]})
        with people.begin_bulk_insert() as bulk:
            bulk.upload(df)
        assert people.get_data_table()["bob"].isna().tolist() == [False, True]

    def test_opaque_values(self, people):
        df = pd.DataFrame({"name": [object()]})
        with people.begin_bulk_insert() as bulk:
            with pytest.raises(UnsupportedValueError):
                bulk.upload(df)

    def test_closed(self, people):
        bulk = people.begin_bulk_insert()
        bulk.close()
        bulk.close()
        with pytest.raises(ValueError):
            bulk.upload(pd.DataFrame({"name": ["Frank"]}))

    def test_date_text_is_reparsed(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
            ColumnRequest("label", TypeRequest(TypeKind.STRING, 20)),
        ])
        df = pd.DataFrame({
            "happened": ["01/01/2007 00:00:00", "2007-01-01 00:00:00"],
            "label": ["slashes", "iso"],
        })
        with table.begin_bulk_insert() as bulk:
            bulk.upload(df)

        data = table.get_data_table()
        assert list(data["happened"]) == ["2007-01-01 00:00:00", "2007-01-01 00:00:00"]
        assert list(data["label"]) == ["slashes", "iso"]
        # the caller's frame is not modified
        assert df["happened"][0] == "01/01/2007 00:00:00"

    def test_explicit_dayfirst(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
        ])
        with table.begin_bulk_insert(dayfirst=True) as bulk:
            bulk.upload(pd.DataFrame({"happened": ["02/01/2007"]}))
        assert list(table.get_data_table()["happened"]) == ["2007-01-02 00:00:00"]

    def test_dayfirst_guessed_from_values(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
        ])
        with table.begin_bulk_insert() as bulk:
            bulk.upload(pd.DataFrame({"happened": ["25/12/2007", "02/01/2007"]}))
        assert list(table.get_data_table()["happened"]) == ["2007-12-25 00:00:00", "2007-01-02 00:00:00"]

    def test_string_dtype_is_reparsed(self, database):
        table = database.create_table("events", explicit_columns=[
            ColumnRequest("happened", TypeRequest(TypeKind.DATETIME)),
        ])
        df = pd.DataFrame({"happened": pd.Series(["01/01/2007 00:00:00", "2007-01-01 00:00:00", None], dtype="string")})
        with table.begin_bulk_insert() as bulk:
            bulk.upload(df)
        assert list(table.get_data_table()["happened"]) == ["2007-01-01 00:00:00", "2007-01-01 00:00:00", None]


class TestFailures:
    """Test failed uploads are rolled back and diagnosed."""

    def test_null_in_not_null_column(self, people):
        df = pd.DataFrame({"name": ["Frank", None, "Dave"], "bob": [1, 2, 3]})
        with people.begin_bulk_insert() as bulk:
            with pytest.raises(BulkInsertError) as error:
                bulk.upload(df)

        assert error.value.row_index == 1
        assert error.value.column == "name"
        assert error.value.value is None
        assert people.get_row_count() == 0

    def test_exception_in_block_rolls_back(self, people):
        with pytest.raises(RuntimeError):
            with people.begin_bulk_insert() as bulk:
                bulk.upload(pd.DataFrame({"name": ["Frank"]}))
                raise RuntimeError("abandon")
        # the upload itself committed before the error
        assert people.get_row_count() == 1


class TestExternalTransaction:
    """Test uploads inside a caller's transaction."""

    def test_committed_by_the_caller(self, sqlite_server, people):
        transaction = sqlite_server.begin_new_transaction()
        with people.begin_bulk_insert(transaction=transaction) as bulk:
            bulk.upload(pd.DataFrame({"name": ["Frank", "Dave"]}))

        assert not transaction.is_closed
        assert people.get_row_count(transaction) == 2
        assert people.get_row_count() == 0

        transaction.commit_and_close()
        assert people.get_row_count() == 2

    def test_abandoned_by_the_caller(self, sqlite_server, people):
        transaction = sqlite_server.begin_new_transaction()
        with people.begin_bulk_insert(transaction=transaction) as bulk:
            bulk.upload(pd.DataFrame({"name": ["Frank"]}))
        transaction.abandon_and_close()
        assert people.get_row_count() == 0

    def test_sees_table_created_in_the_transaction(self, sqlite_server, database):
        transaction = sqlite_server.begin_new_transaction()
        table = database.expect_table("fresh")
        # sqlite3 autocommits DDL unless a transaction is already open
        transaction.connection.execute("BEGIN")
        transaction.connection.execute('CREATE TABLE "fresh"("a" integer NULL)')
        assert not table.exists()

        with table.begin_bulk_insert(transaction=transaction) as bulk:
            assert [c.get_runtime_name() for c in bulk.target_columns] == ["a"]
            bulk.upload(pd.DataFrame({"a": [1, 2, 3]}))

        assert table.get_row_count(transaction) == 3
        transaction.commit_and_close()
        assert table.get_row_count() == 3
