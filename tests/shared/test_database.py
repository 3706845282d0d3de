from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

from viz_cli.shared.config import load_config
from viz_cli.shared import paths
from viz_cli.shared.database import (
    SourceHandle,
    open_handle,
    open_source,
    quote_identifier,
    validate_database,
)
from viz_cli.shared.exceptions import DatabaseError, ExecutionError, SourceNotFoundError


def test_list_tables_excludes_internal_tables(handle: SourceHandle) -> None:
    assert handle.list_tables() == ["customers", "items", "orders"]


def test_describe_table_keeps_catalog_order(handle: SourceHandle) -> None:
    catalog = handle.describe_table("orders")
    assert [row["name"] for row in catalog.columns] == [
        "id",
        "customer_id",
        "region",
        "amount",
        "note",
        "created_at",
    ]
    assert catalog.foreign_keys[0]["table"] == "customers"


def test_query_caps_rows_and_flags_truncation(handle: SourceHandle) -> None:
    result = handle.query("SELECT * FROM orders ORDER BY id", max_rows=2)
    assert len(result) == 2
    assert result.truncated is True
    assert result.columns[0] == "id"
    assert result.records()[0]["region"] == "East"


def test_handle_is_read_only(handle: SourceHandle) -> None:
    with pytest.raises(sqlite3.OperationalError):
        handle.query("DELETE FROM items")


def test_timeout_interrupts_long_statement(handle: SourceHandle) -> None:
    slow = (
        "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n) "
        "SELECT COUNT(*) FROM n"
    )
    with pytest.raises(ExecutionError) as excinfo:
        handle.query(slow, timeout=0.05)
    assert excinfo.value.kind is ExecutionError.Kind.TIMEOUT


def test_closed_handle_raises(sample_db: Path) -> None:
    source = SourceHandle(sample_db)
    source.close()
    with pytest.raises(DatabaseError):
        source.list_tables()


def test_handles_can_be_used_from_threads(sample_db: Path) -> None:
    results: list[int] = []

    def worker() -> None:
        with SourceHandle(sample_db) as source:
            results.append(len(source.query("SELECT * FROM items")))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results == [3, 3, 3, 3]


def test_quote_identifier_escapes_quotes() -> None:
    assert quote_identifier('we"ird') == '"we""ird"'


def test_validate_database(tmp_path: Path, sample_db: Path) -> None:
    assert validate_database(sample_db) is True
    junk = tmp_path / "junk.db"
    junk.write_text("not a database", encoding="utf-8")
    assert validate_database(junk) is False
    assert validate_database(tmp_path / "missing.db") is False


def test_open_handle_missing_path(tmp_path: Path) -> None:
    with pytest.raises(SourceNotFoundError):
        open_handle(tmp_path / "missing.db")


def test_open_source_resolves_configured_id(tmp_path: Path, sample_db: Path) -> None:
    config = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path / "cfg")}).with_source("sample", sample_db)
    with open_source(config, "sample") as source:
        assert source.source_id == "sample"
        assert "items" in source.list_tables()
    with pytest.raises(DatabaseError):
        source.list_tables()
