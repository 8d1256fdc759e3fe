"""Test fixtures for remembrall."""

from pathlib import Path

import pytest

from remembrall.db import MemoryStore


@pytest.fixture
def temp_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary database file."""
    db_path = tmp_path / "rmbrl" / "test_memory.db"
    monkeypatch.setenv("REMEMBRALL_DB", str(db_path))
    return db_path


@pytest.fixture
def store(tmp_path: Path):
    """An open MemoryStore on a fresh database file."""
    memory_store = MemoryStore.connect(tmp_path / "store.db")
    yield memory_store
    memory_store.close()


@pytest.fixture
def add_row(store: MemoryStore):
    """Insert a row with an explicit created_at timestamp."""

    def _add(task: str, project: str = "", created_at: str = "2024-01-01 00:00:00") -> int:
        cursor = store._conn.execute(
            "INSERT INTO memories (task, project, created_at) VALUES (?, ?, ?)",
            (task, project, created_at),
        )
        return cursor.lastrowid

    return _add
