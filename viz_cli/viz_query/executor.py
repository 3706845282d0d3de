"""Read-only execution of built statements against a source handle."""

from __future__ import annotations

import re
import sqlite3
from typing import Any, Sequence

from viz_cli.shared.database import RowSet, SourceHandle
from viz_cli.shared.exceptions import ExecutionError

from .builder import QueryBuilder
from .types import AggregateSpec, FilterClause, QuerySpec, TableSchema

READ_KEYWORDS = frozenset({"SELECT", "PRAGMA"})

_SQL_COMMENT_RE = re.compile(r"(--[^\n]*|/\*.*?\*/)", flags=re.DOTALL)
_PRAGMA_ASSIGNMENT_RE = re.compile(r"^\s*PRAGMA\s+[\w.\"]+\s*=", flags=re.IGNORECASE)


def leading_keyword(sql: str) -> str:
    """Return the upper-cased first keyword of ``sql`` with comments removed."""
    stripped = _SQL_COMMENT_RE.sub(" ", sql).strip()
    if not stripped:
        return ""
    return re.split(r"[\s(]", stripped, maxsplit=1)[0].upper()


def ensure_read_only(sql: str) -> None:
    """Reject anything that is not a SELECT or a PRAGMA read."""
    if not isinstance(sql, str):
        raise ExecutionError(ExecutionError.Kind.WRITE_NOT_ALLOWED, "Statement must be SQL text.")
    keyword = leading_keyword(sql)
    if keyword not in READ_KEYWORDS:
        raise ExecutionError(
            ExecutionError.Kind.WRITE_NOT_ALLOWED,
            "Only SELECT statements and catalog reads are allowed.",
            keyword or None,
        )
    if keyword == "PRAGMA" and _PRAGMA_ASSIGNMENT_RE.match(_SQL_COMMENT_RE.sub(" ", sql)):
        raise ExecutionError(
            ExecutionError.Kind.WRITE_NOT_ALLOWED,
            "PRAGMA assignments are not allowed.",
            keyword,
        )


def execute(
    handle: SourceHandle,
    sql: str,
    params: Sequence[Any] = (),
    *,
    timeout: float | None = None,
    max_rows: int | None = None,
) -> RowSet:
    """Run one read-only statement; store failures are not retried."""
    ensure_read_only(sql)
    try:
        return handle.query(sql, params, timeout=timeout, max_rows=max_rows)
    except ExecutionError:
        raise
    except sqlite3.Error as exc:
        raise ExecutionError(
            ExecutionError.Kind.STORE_FAILURE,
            f"SQLite error: {exc}",
            type(exc).__name__,
        ) from exc


def count(
    handle: SourceHandle,
    schema: TableSchema,
    filters: Sequence[FilterClause] = (),
    *,
    group_by: str | None = None,
    aggregate: AggregateSpec | None = None,
    timeout: float | None = None,
) -> int:
    """Return the number of rows (or groups) matching ``filters``.

    Uses the same WHERE construction as the main query so totals always agree.
    An ungrouped ``aggregate`` counts as the single row it produces.
    """
    spec = QuerySpec(
        table=schema.table_name,
        filters=tuple(filters),
        group_by=group_by,
        aggregate=aggregate,
    )
    built = QueryBuilder(schema).build_count(spec)
    result = execute(handle, built.sql, built.params, timeout=timeout)
    if not result.rows:
        return 0
    return int(result.rows[0][0])
