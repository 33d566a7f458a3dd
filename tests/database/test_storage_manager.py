"""Tests for DuckDBStorageManager transactions, cursors and sequences."""

import threading

import duckdb
import ibis
import pytest

from duelboard.database.duckdb_manager import DuckDBStorageManager, quote_identifier, temp_storage
from duelboard.exceptions import StorageFailureError


@pytest.fixture
def memory_storage():
    manager = temp_storage()
    manager.execute_sql("CREATE TABLE items (id INTEGER, name VARCHAR)")
    yield manager
    manager.close()


def _count(manager: DuckDBStorageManager) -> int:
    return manager.execute_query_single("SELECT count(*) FROM items")[0]


class TestQuoteIdentifier:
    def test_plain_name(self):
        assert quote_identifier("vote_id_seq") == '"vote_id_seq"'

    @pytest.mark.parametrize("name", ["", "1abc", "a;b", 'x"y', "drop table"])
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(ValueError, match="Invalid identifier"):
            quote_identifier(name)


class TestTransactions:
    def test_commit(self, memory_storage):
        with memory_storage.transaction():
            memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
            assert memory_storage.in_transaction
        assert not memory_storage.in_transaction
        assert _count(memory_storage) == 1

    def test_python_error_rolls_back_and_propagates(self, memory_storage):
        with pytest.raises(KeyError), memory_storage.transaction():
            memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
            raise KeyError("boom")
        assert _count(memory_storage) == 0
        assert not memory_storage.in_transaction

    def test_duckdb_error_becomes_storage_failure(self, memory_storage):
        with pytest.raises(StorageFailureError) as excinfo, memory_storage.transaction():
            memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
            memory_storage.execute_sql("INSERT INTO missing_table VALUES (1)")
        assert isinstance(excinfo.value.__cause__, duckdb.Error)
        assert _count(memory_storage) == 0

    def test_nested_transaction_joins_outer(self, memory_storage):
        with pytest.raises(RuntimeError), memory_storage.transaction():
            memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
            with memory_storage.transaction():
                memory_storage.execute_sql("INSERT INTO items VALUES (2, 'b')")
            assert memory_storage.in_transaction
            raise RuntimeError("outer failure")
        assert _count(memory_storage) == 0

    def test_usable_after_rollback(self, memory_storage):
        with pytest.raises(ValueError, match="first"), memory_storage.transaction():
            raise ValueError("first")
        with memory_storage.transaction():
            memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
        assert _count(memory_storage) == 1


class TestThreadCursors:
    def test_threads_share_in_memory_database(self, memory_storage):
        memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a')")
        seen: list[int] = []

        def worker():
            seen.append(_count(memory_storage))

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        assert seen == [1]

    def test_concurrent_writers_serialize(self, memory_storage):
        def writer(offset: int):
            for i in range(10):
                with memory_storage.transaction():
                    memory_storage.execute_sql("INSERT INTO items VALUES (?, 'x')", [offset + i])

        threads = [threading.Thread(target=writer, args=(n * 100,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert _count(memory_storage) == 40


class TestTablesAndSequences:
    def test_ensure_table(self, memory_storage):
        schema = ibis.schema({"key": "string", "value": "float64"})
        assert memory_storage.ensure_table("pairs", schema) is True
        assert memory_storage.ensure_table("pairs", schema) is False
        assert memory_storage.table_exists("pairs")

    def test_read_table(self, memory_storage):
        memory_storage.execute_sql("INSERT INTO items VALUES (1, 'a'), (2, 'b')")
        table = memory_storage.read_table("items")
        assert table.count().execute() == 2

    def test_read_missing_table(self, memory_storage):
        with pytest.raises(ValueError, match="not found"):
            memory_storage.read_table("nope")

    def test_sequence(self, memory_storage):
        memory_storage.ensure_sequence("counter")
        memory_storage.ensure_sequence("counter")
        assert memory_storage.next_sequence_value("counter") == 1
        assert memory_storage.next_sequence_value("counter") == 2

    def test_sequence_name_validated(self, memory_storage):
        with pytest.raises(ValueError, match="Invalid identifier"):
            memory_storage.next_sequence_value("x'); DROP TABLE items; --")

    def test_context_manager_closes(self, temp_db):
        with DuckDBStorageManager(db_path=temp_db) as manager:
            manager.execute_sql("CREATE TABLE t (x INTEGER)")
        with DuckDBStorageManager(db_path=temp_db) as reopened:
            assert reopened.table_exists("t")
