"""Tests for the SQLite memory store."""

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from remembrall.db import MemoryStore, open_database
from remembrall.errors import StoreError


def _rows(store: MemoryStore) -> list[tuple]:
    return [tuple(r) for r in store._conn.execute("SELECT * FROM memories ORDER BY id")]


class TestSchema:
    def test_schema_is_created_and_idempotent(self, tmp_path: Path) -> None:
        path = tmp_path / "memory.db"
        MemoryStore.connect(path).close()
        store = MemoryStore.connect(path)
        try:
            columns = [r["name"] for r in store._conn.execute("PRAGMA table_info(memories)")]
            assert columns == ["id", "task", "project", "created_at"]
        finally:
            store.close()

    def test_connect_failure_is_store_error(self, tmp_path: Path) -> None:
        with pytest.raises(StoreError) as excinfo:
            MemoryStore.connect(tmp_path / "missing" / "dir" / "memory.db")
        assert excinfo.value.message

    def test_open_database_creates_directory_and_closes(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "rmbrl.db"
        with open_database(str(path)) as store:
            store.insert("hello")
        assert path.exists()
        with pytest.raises(sqlite3.ProgrammingError):
            store._conn.execute("SELECT 1")

    def test_open_database_closes_on_error(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with open_database(str(tmp_path / "rmbrl.db")) as store:
                raise RuntimeError("boom")
        with pytest.raises(sqlite3.ProgrammingError):
            store._conn.execute("SELECT 1")


class TestInsertAndSelect:
    def test_insert_returns_increasing_ids(self, store: MemoryStore) -> None:
        first = store.insert("one")
        second = store.insert("two", "work")
        assert second > first

    def test_missing_project_is_empty_string(self, store: MemoryStore) -> None:
        store.insert("untagged")
        latest = store.select_latest()
        assert latest is not None
        assert latest.project == ""
        assert isinstance(latest.created_at, datetime)

    def test_content_is_bound_not_interpolated(self, store: MemoryStore) -> None:
        task = "'); DROP TABLE memories; --"
        store.insert(task, "x' OR '1'='1")
        assert store.select_latest().task == task
        assert store.select_latest("other") is None
        assert store.count() == 1

    def test_select_latest_uses_created_at(self, store: MemoryStore, add_row) -> None:
        add_row("newest", created_at="2024-05-01 10:00:00")
        add_row("oldest", created_at="2024-01-01 10:00:00")
        assert store.select_latest().task == "newest"

    def test_select_latest_ties_break_on_id(self, store: MemoryStore, add_row) -> None:
        add_row("first")
        add_row("second")
        assert store.select_latest().task == "second"

    def test_select_latest_filters_by_project(self, store: MemoryStore, add_row) -> None:
        add_row("work task", "work", "2024-01-01 00:00:00")
        add_row("home task", "home", "2024-02-01 00:00:00")
        assert store.select_latest("work").task == "work task"
        assert store.select_latest("nowhere") is None

    def test_empty_project_filter_matches_untagged_only(self, store: MemoryStore, add_row) -> None:
        add_row("untagged", "")
        add_row("tagged", "work")
        assert store.select_latest("").task == "untagged"

    def test_select_all_is_newest_first(self, store: MemoryStore, add_row) -> None:
        add_row("b", created_at="2024-02-01 00:00:00")
        add_row("c", created_at="2024-03-01 00:00:00")
        add_row("a", created_at="2024-01-01 00:00:00")
        assert [m.task for m in store.select_all()] == ["c", "b", "a"]

    def test_select_all_can_stop_early(self, store: MemoryStore) -> None:
        for i in range(5):
            store.insert(f"task {i}")
        memories = store.select_all()
        first = next(memories)
        memories.close()
        assert first.task == "task 4"
        # connection is still usable after abandoning the stream
        assert store.count() == 5

    def test_select_all_empty(self, store: MemoryStore) -> None:
        assert list(store.select_all("nothing")) == []


class TestDelete:
    def test_delete_by_id_returns_deleted_row(self, store: MemoryStore) -> None:
        keep = store.insert("keep")
        gone = store.insert("gone", "p")
        deleted = store.delete_by_id(gone)
        assert deleted is not None
        assert (deleted.id, deleted.task, deleted.project) == (gone, "gone", "p")
        assert [m.id for m in store.select_all()] == [keep]

    def test_delete_by_id_missing(self, store: MemoryStore) -> None:
        assert store.delete_by_id(999) is None

    def test_delete_all_by_project(self, store: MemoryStore, add_row) -> None:
        add_row("x1", "x", "2024-01-01 00:00:00")
        add_row("y1", "y", "2024-01-02 00:00:00")
        add_row("x2", "x", "2024-01-03 00:00:00")
        deleted = store.delete_all("x")
        assert [m.task for m in deleted] == ["x2", "x1"]
        assert [m.task for m in store.select_all()] == ["y1"]

    def test_delete_all_without_project(self, store: MemoryStore) -> None:
        store.insert("a")
        store.insert("b", "p")
        assert len(store.delete_all()) == 2
        assert store.count() == 0

    def test_delete_all_empty(self, store: MemoryStore) -> None:
        assert store.delete_all("nothing") == []

    def test_ids_are_never_reused(self, store: MemoryStore) -> None:
        first = store.insert("a")
        store.delete_by_id(first)
        assert store.insert("b") > first


class TestTransactions:
    def test_dry_run_returns_body_value_and_rolls_back(self, store: MemoryStore) -> None:
        store.insert("existing")
        before = _rows(store)
        memory_id = store.with_dry_run(lambda: store.insert("temporary"))
        assert memory_id > 0
        assert _rows(store) == before
        assert not store.in_transaction

    def test_dry_run_rolls_back_deletes(self, store: MemoryStore) -> None:
        store.insert("a")
        store.insert("b", "p")
        before = _rows(store)
        deleted = store.with_dry_run(store.delete_all)
        assert len(deleted) == 2
        assert _rows(store) == before

    def test_dry_run_rolls_back_when_body_fails(self, store: MemoryStore) -> None:
        def body() -> None:
            store.insert("half done")
            raise ValueError("nope")

        with pytest.raises(ValueError):
            store.with_dry_run(body)
        assert store.count() == 0

    def test_dry_run_body_not_run_when_begin_fails(self, store: MemoryStore) -> None:
        calls = []
        store._conn.execute("BEGIN")
        try:
            with pytest.raises(StoreError):
                store.with_dry_run(lambda: calls.append("ran"))
        finally:
            store._conn.execute("ROLLBACK")
        assert calls == []

    def test_dry_run_reports_failed_rollback(self, store: MemoryStore) -> None:
        def body() -> int:
            memory_id = store.insert("escaped")
            store._conn.execute("COMMIT")
            return memory_id

        with pytest.raises(StoreError) as excinfo:
            store.with_dry_run(body)
        assert excinfo.value.operation == "rollback transaction"
        assert store.count() == 1
        assert not store.in_transaction

    def test_failed_rollback_keeps_body_error_as_cause(self, store: MemoryStore) -> None:
        def body() -> None:
            store.insert("escaped")
            store._conn.execute("COMMIT")
            raise ValueError("body failed")

        with pytest.raises(StoreError) as excinfo:
            store.with_dry_run(body)
        assert excinfo.value.operation == "rollback transaction"
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert str(excinfo.value.__cause__) == "body failed"

    def test_transaction_failed_rollback_keeps_body_error_as_cause(self, store: MemoryStore) -> None:
        with pytest.raises(StoreError) as excinfo:
            with store.transaction():
                store.insert("escaped")
                store._conn.execute("COMMIT")
                raise RuntimeError("abort")
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert store.count() == 1

    def test_transaction_commits(self, store: MemoryStore) -> None:
        with store.transaction():
            store.insert("kept")
        assert store.count() == 1
        assert not store.in_transaction

    def test_transaction_rolls_back_on_error(self, store: MemoryStore) -> None:
        store.insert("kept")
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.delete_all()
                raise RuntimeError("abort")
        assert store.count() == 1

    def test_transaction_nests_inside_dry_run(self, store: MemoryStore) -> None:
        store.insert("a")

        def body() -> int:
            with store.transaction():
                store.delete_all()
            return store.count()

        assert store.with_dry_run(body) == 0
        assert store.count() == 1

    def test_engine_errors_are_store_errors(self, store: MemoryStore) -> None:
        store._conn.execute("DROP TABLE memories")
        with pytest.raises(StoreError) as excinfo:
            store.insert("x")
        assert "no such table" in excinfo.value.message
