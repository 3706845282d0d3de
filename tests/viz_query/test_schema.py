from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from viz_cli.shared.database import SourceHandle
from viz_cli.shared.exceptions import SchemaError
from viz_cli.viz_query import schema
from viz_cli.viz_query.types import ForeignKeyRef, SemanticType


def test_inspect_returns_catalog_order(handle: SourceHandle) -> None:
    table_schema = schema.inspect(handle, "orders")

    assert table_schema.table_name == "orders"
    assert table_schema.column_names == ("id", "customer_id", "region", "amount", "note", "created_at")
    assert [column.semantic_type for column in table_schema] == [
        SemanticType.NUMERIC,
        SemanticType.NUMERIC,
        SemanticType.TEXT,
        SemanticType.NUMERIC,
        SemanticType.TEXT,
        SemanticType.DATE,
    ]


def test_inspect_reports_keys_and_nullability(handle: SourceHandle) -> None:
    table_schema = schema.inspect(handle, "orders")

    assert table_schema.primary_key == ("id",)
    region = table_schema.column("region")
    assert region is not None and region.nullable is False
    customer = table_schema.column("customer_id")
    assert customer is not None
    assert customer.foreign_key == ForeignKeyRef(table="customers", column="id")
    assert customer.nullable is True


def test_inspect_unknown_table(handle: SourceHandle) -> None:
    with pytest.raises(SchemaError) as excinfo:
        schema.inspect(handle, "nope")
    assert excinfo.value.kind is SchemaError.Kind.TABLE_NOT_FOUND
    assert excinfo.value.value == "nope"


def test_inspect_is_not_cached(sample_db: Path) -> None:
    with SourceHandle(sample_db) as reader:
        before = schema.inspect(reader, "items")
        writer = sqlite3.connect(sample_db)
        writer.execute("ALTER TABLE items ADD COLUMN launched DATE")
        writer.commit()
        writer.close()
        after = schema.inspect(reader, "items")

    assert "launched" not in before
    assert after.column_names[-1] == "launched"


def test_list_tables_with_counts(handle: SourceHandle) -> None:
    summaries = schema.list_tables(handle)
    assert [(summary.name, summary.row_count) for summary in summaries] == [
        ("customers", 2),
        ("items", 3),
        ("orders", 4),
    ]
    assert all(summary.row_count is None for summary in schema.list_tables(handle, with_counts=False))


def test_schema_to_dict(handle: SourceHandle) -> None:
    payload = schema.inspect(handle, "items").to_dict()
    assert payload["name"] == "items"
    assert payload["primary_key"] == ["id"]
    assert payload["columns"][2] == {
        "name": "revenue",
        "type": "REAL",
        "semantic_type": "numeric",
        "nullable": True,
        "default_value": None,
        "primary_key": False,
        "auto_increment": False,
        "foreign_key": None,
    }
    assert payload["columns"][0]["auto_increment"] is True
    assert payload["indices"] == []
    assert payload["sql"].startswith("CREATE TABLE items")


def test_inspect_reports_indices_and_create_sql(handle: SourceHandle) -> None:
    table_schema = schema.inspect(handle, "orders")

    assert [index.name for index in table_schema.indices] == ["idx_orders_region_date"]
    index = table_schema.indices[0]
    assert index.columns == ("region", "created_at")
    assert index.unique is False
    assert table_schema.sql is not None and "REFERENCES customers(id)" in table_schema.sql


def test_defaults_and_rowid_alias(tmp_path: Path) -> None:
    path = tmp_path / "defaults.db"
    connection = sqlite3.connect(path)
    connection.executescript(
        """
        CREATE TABLE tickets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            status TEXT NOT NULL DEFAULT 'open',
            priority INT DEFAULT 3,
            code TEXT UNIQUE
        );
        CREATE TABLE pairs (
            left_id INTEGER,
            right_id INTEGER,
            PRIMARY KEY (left_id, right_id)
        );
        """
    )
    connection.close()

    with SourceHandle(path) as reader:
        tickets = schema.inspect(reader, "tickets")
        pairs = schema.inspect(reader, "pairs")

    status = tickets.column("status")
    priority = tickets.column("priority")
    ticket_id = tickets.column("id")
    assert status is not None and status.default_value == "'open'"
    assert priority is not None and priority.default_value == "3"
    assert priority.auto_increment is False
    assert ticket_id is not None and ticket_id.auto_increment is True
    assert [index.unique for index in tickets.indices] == [True]
    assert tickets.indices[0].columns == ("code",)
    assert not any(column.auto_increment for column in pairs)
