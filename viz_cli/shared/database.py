"""Read-only SQLite source handles."""

from __future__ import annotations

import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from .config import AppConfig
from .exceptions import DatabaseError, ExecutionError, SourceNotFoundError

# Number of SQLite VM instructions between deadline checks.
_PROGRESS_INTERVAL = 1000


@dataclass(frozen=True, slots=True)
class RowSet:
    """Rows returned by a single statement, in cursor column order."""

    columns: tuple[str, ...]
    rows: Sequence[tuple[Any, ...]]
    truncated: bool = False

    def records(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True, slots=True)
class TableCatalog:
    """Raw catalog rows for one table as reported by SQLite PRAGMAs."""

    name: str
    columns: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    foreign_keys: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    # index_list rows, each with its index_info rows under "columns".
    indices: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    sql: str | None = None


def quote_identifier(name: str) -> str:
    """Quote an identifier for interpolation into SQL text."""
    return '"' + name.replace('"', '""') + '"'


def _open_connection(path: Path, *, read_only: bool = True) -> sqlite3.Connection:
    if read_only:
        uri = f"file:{path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
    else:
        conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


class SourceHandle:
    """A single live read-only connection to one data source.

    Statements on one handle are serialised through a lock. Separate handles are
    independent and may be used from different threads concurrently.
    """

    def __init__(self, path: Path, *, source_id: str | None = None) -> None:
        self.path = path
        self.source_id = source_id or str(path)
        self._lock = threading.Lock()
        self._connection: sqlite3.Connection | None = _open_connection(path)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise DatabaseError(f"Source '{self.source_id}' is closed.")
        return self._connection

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def list_tables(self) -> list[str]:
        """Return user table names, excluding SQLite internals."""
        sql = (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        with self._lock:
            rows = self.connection.execute(sql).fetchall()
        return [row[0] for row in rows]

    def describe_table(self, name: str) -> TableCatalog:
        """Return PRAGMA column, foreign key and index rows plus the CREATE statement."""
        quoted = quote_identifier(name)
        with self._lock:
            connection = self.connection
            columns = connection.execute(f"PRAGMA table_info({quoted})").fetchall()
            foreign_keys = connection.execute(f"PRAGMA foreign_key_list({quoted})").fetchall()
            indices = []
            for index in connection.execute(f"PRAGMA index_list({quoted})").fetchall():
                index_columns = connection.execute(
                    f"PRAGMA index_info({quote_identifier(index['name'])})"
                ).fetchall()
                indices.append({**dict(index), "columns": tuple(dict(row) for row in index_columns)})
            create_row = connection.execute(
                "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
            ).fetchone()
        return TableCatalog(
            name=name,
            columns=tuple(dict(row) for row in columns),
            foreign_keys=tuple(dict(row) for row in foreign_keys),
            indices=tuple(indices),
            sql=create_row[0] if create_row else None,
        )

    def query(
        self,
        sql: str,
        params: Sequence[Any] = (),
        *,
        timeout: float | None = None,
        max_rows: int | None = None,
    ) -> RowSet:
        """Run one statement and fetch at most ``max_rows`` rows.

        Raises ``ExecutionError`` with kind ``TIMEOUT`` when the deadline passes;
        other ``sqlite3.Error`` failures propagate unchanged.
        """
        with self._lock:
            connection = self.connection
            interrupted = self._install_deadline(connection, timeout)
            try:
                cursor = connection.execute(sql, tuple(params))
                rows, truncated = _fetch_rows(cursor, max_rows)
                description = cursor.description or ()
            except sqlite3.OperationalError as exc:
                if interrupted["fired"]:
                    raise ExecutionError(
                        ExecutionError.Kind.TIMEOUT,
                        f"Statement exceeded {timeout:g}s timeout.",
                        timeout,
                    ) from exc
                raise
            finally:
                connection.set_progress_handler(None, 0)
        columns = tuple(col[0] for col in description)
        return RowSet(columns=columns, rows=[tuple(row) for row in rows], truncated=truncated)

    def _install_deadline(self, connection: sqlite3.Connection, timeout: float | None) -> dict[str, bool]:
        state = {"fired": False}
        if not timeout or timeout <= 0:
            return state
        deadline = time.monotonic() + timeout

        def _check() -> int:
            if time.monotonic() > deadline:
                state["fired"] = True
                return 1
            return 0

        connection.set_progress_handler(_check, _PROGRESS_INTERVAL)
        return state

    def __enter__(self) -> SourceHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _fetch_rows(cursor: sqlite3.Cursor, limit: int | None) -> tuple[Sequence[sqlite3.Row], bool]:
    if limit is None:
        return cursor.fetchall(), False

    rows = cursor.fetchmany(limit + 1)
    truncated = len(rows) > limit
    return rows[:limit], truncated


def validate_database(path: str | Path) -> bool:
    """Return True when ``path`` is a non-empty file SQLite can open and query."""
    db_path = Path(path)
    if not db_path.is_file() or db_path.stat().st_size == 0:
        return False
    try:
        connection = _open_connection(db_path)
    except sqlite3.Error:
        return False
    try:
        connection.execute("SELECT COUNT(*) FROM sqlite_master").fetchone()
    except sqlite3.Error:
        return False
    finally:
        connection.close()
    return True


def open_handle(path: str | Path, *, source_id: str | None = None) -> SourceHandle:
    """Open a read-only handle for an explicit database path."""
    db_path = Path(path).expanduser()
    if not db_path.is_file():
        raise SourceNotFoundError(f"Database path not found: {db_path}")
    try:
        return SourceHandle(db_path, source_id=source_id)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Unable to open database {db_path}: {exc}") from exc


@contextmanager
def open_source(config: AppConfig, source_id: str | None = None) -> Iterator[SourceHandle]:
    """Yield a read-only handle for a configured data source."""
    path = config.resolve_source(source_id)
    handle = open_handle(path, source_id=source_id or config.default_source)
    try:
        yield handle
    finally:
        handle.close()
