"""SQLite storage for remembrall memories.

SQLite is not built with SQLITE_ENABLE_UPDATE_DELETE_LIMIT by default, so
``DELETE ... ORDER BY ... LIMIT`` is unavailable. Forgetting the most
recent memory is therefore a select followed by a delete by id, run in one
transaction.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from .config import ensure_db_dir, get_db_path
from .errors import StoreError
from .models import Memory


logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS memories(
    id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    task TEXT NOT NULL,
    project TEXT DEFAULT '' NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL
)
"""

COLUMNS = "id, task, project, created_at"
NEWEST_FIRST = "ORDER BY created_at DESC, id DESC"


def _project_filter(project: Optional[str]) -> tuple[str, tuple]:
    if project is None:
        return "", ()
    return " WHERE project = ?", (project,)


class MemoryStore:
    """Insert, select and delete memories over one SQLite connection.

    The connection runs in autocommit mode; every transaction is opened
    explicitly by ``transaction()`` or ``with_dry_run()``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._conn.set_trace_callback(logger.debug)

    @classmethod
    def connect(cls, path: Path | str) -> "MemoryStore":
        """Open the database file and make sure the schema exists."""
        try:
            conn = sqlite3.connect(str(path), isolation_level=None)
        except sqlite3.Error as exc:
            raise StoreError("connect to database", str(exc)) from exc

        store = cls(conn)
        try:
            store.init_schema()
        except StoreError:
            store.close()
            raise
        return store

    def init_schema(self) -> None:
        self._execute(SCHEMA, (), "create table")

    def close(self) -> None:
        self._conn.close()

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    def _execute(self, sql: str, params: tuple = (), operation: str = "run query") -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc

    def _fetch(self, sql: str, params: tuple, operation: str) -> list[Memory]:
        cursor = self._execute(sql, params, operation)
        try:
            return [Memory.from_row(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc
        finally:
            cursor.close()

    # Writes

    def insert(self, task: str, project: Optional[str] = None) -> int:
        """Store a memory and return its id."""
        cursor = self._execute(
            "INSERT INTO memories (task, project) VALUES (?, ?)",
            (task, project or ""),
            "remember",
        )
        return cursor.lastrowid

    def delete_by_id(self, memory_id: int) -> Optional[Memory]:
        """Delete one memory. Returns the deleted row, or None if absent."""
        with self.transaction():
            rows = self._fetch(
                f"SELECT {COLUMNS} FROM memories WHERE id = ?",
                (memory_id,),
                "find memory to forget",
            )
            if not rows:
                return None
            self._execute("DELETE FROM memories WHERE id = ?", (memory_id,), "forget memory")
        return rows[0]

    def delete_all(self, project: Optional[str] = None) -> list[Memory]:
        """Delete every memory, or every memory in ``project``.

        Returns the deleted rows, most recent first.
        """
        where, params = _project_filter(project)
        with self.transaction():
            rows = self._fetch(
                f"SELECT {COLUMNS} FROM memories{where} {NEWEST_FIRST}",
                params,
                "find memories to forget",
            )
            self._execute(f"DELETE FROM memories{where}", params, "forget memories")
        return rows

    # Reads

    def select_latest(self, project: Optional[str] = None) -> Optional[Memory]:
        where, params = _project_filter(project)
        rows = self._fetch(
            f"SELECT {COLUMNS} FROM memories{where} {NEWEST_FIRST} LIMIT 1",
            params,
            "find most recent memory",
        )
        return rows[0] if rows else None

    def select_all(self, project: Optional[str] = None) -> Iterator[Memory]:
        """Stream matching memories, most recent first.

        The query runs immediately; rows are read lazily. Stopping early
        is fine, the cursor is closed when the iterator is discarded.
        """
        where, params = _project_filter(project)
        cursor = self._execute(
            f"SELECT {COLUMNS} FROM memories{where} {NEWEST_FIRST}",
            params,
            "list memories",
        )
        return self._iter_rows(cursor)

    def _iter_rows(self, cursor: sqlite3.Cursor) -> Iterator[Memory]:
        try:
            for row in cursor:
                yield Memory.from_row(row)
        except sqlite3.Error as exc:
            raise StoreError("list memories", str(exc)) from exc
        finally:
            cursor.close()

    def count(self, project: Optional[str] = None) -> int:
        where, params = _project_filter(project)
        row = self._execute(f"SELECT COUNT(*) FROM memories{where}", params, "count memories").fetchone()
        return row[0]

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block atomically. Nests inside ``with_dry_run``."""
        self._execute("SAVEPOINT remembrall", (), "begin transaction")
        try:
            yield
        except BaseException as exc:
            self._rollback_after(exc, "ROLLBACK TO remembrall", "RELEASE remembrall")
            raise
        self._execute("RELEASE remembrall", (), "commit transaction")

    def with_dry_run(self, body: Callable[[], T]) -> T:
        """Run ``body`` in a transaction that is always rolled back.

        If the transaction cannot be opened, ``body`` never runs.
        """
        self._execute("BEGIN", (), "begin transaction")
        logger.debug("Begin transaction...")
        try:
            result = body()
        except BaseException as exc:
            self._rollback_after(exc, "ROLLBACK")
            raise
        self._execute("ROLLBACK", (), "rollback transaction")
        logger.debug("Rollback transaction...")
        return result

    def _rollback_after(self, error: BaseException, *statements: str) -> None:
        """Roll back after ``error``; a failed rollback is chained to it."""
        try:
            for sql in statements:
                self._execute(sql, (), "rollback transaction")
        except StoreError as rollback_error:
            logger.debug("Rollback failed while handling %r", error)
            raise rollback_error from error
        logger.debug("Rollback transaction...")


@contextmanager
def open_database(db_path: str | None = None) -> Iterator[MemoryStore]:
    """Open the memory store and close it on every exit path.

    Args:
        db_path: Optional override for database path

    Yields:
        Connected MemoryStore with the schema in place
    """
    path = get_db_path(db_path)
    ensure_db_dir(path)
    logger.debug("DB Path: %s", path)

    store = MemoryStore.connect(path)
    try:
        yield store
    finally:
        store.close()
