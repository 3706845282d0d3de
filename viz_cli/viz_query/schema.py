"""Live catalog introspection for a single table."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from viz_cli.shared.database import SourceHandle, TableCatalog, quote_identifier
from viz_cli.shared.exceptions import SchemaError

from .classify import classify
from .types import ColumnDescriptor, ForeignKeyRef, IndexDescriptor, TableSchema, TableSummary


def inspect(handle: SourceHandle, table_name: str) -> TableSchema:
    """Fetch a fresh schema for ``table_name``.

    The table must appear in the live table list. Nothing is cached; every call
    re-reads the catalog.
    """
    ensure_table_exists(handle, table_name)
    catalog = handle.describe_table(table_name)
    schema = build_schema(catalog)
    if not schema.columns:
        raise SchemaError(
            SchemaError.Kind.EMPTY_SCHEMA,
            f"Table '{table_name}' has no columns.",
            table_name,
        )
    return schema


def ensure_table_exists(handle: SourceHandle, table_name: str) -> None:
    """Allow-list a table name against the live catalog."""
    if table_name not in handle.list_tables():
        raise SchemaError(
            SchemaError.Kind.TABLE_NOT_FOUND,
            f"Table '{table_name}' does not exist in this database.",
            table_name,
        )


def build_schema(catalog: TableCatalog) -> TableSchema:
    foreign_keys = _index_foreign_keys(catalog.foreign_keys)
    # Only a lone INTEGER primary key aliases the rowid.
    rowid_alias = sum(1 for row in catalog.columns if row.get("pk")) == 1
    columns = tuple(_describe_column(row, foreign_keys, rowid_alias) for row in catalog.columns)
    return TableSchema(
        table_name=catalog.name,
        columns=columns,
        indices=tuple(_describe_index(row) for row in catalog.indices),
        sql=catalog.sql,
    )


def list_tables(handle: SourceHandle, *, with_counts: bool = True) -> list[TableSummary]:
    """Return every user table, optionally with its current row count."""
    summaries: list[TableSummary] = []
    for name in handle.list_tables():
        row_count = None
        if with_counts:
            result = handle.query(f"SELECT COUNT(*) AS count FROM {quote_identifier(name)}")
            row_count = int(result.rows[0][0]) if result.rows else 0
        summaries.append(TableSummary(name=name, row_count=row_count))
    return summaries


def _describe_column(
    row: Mapping[str, Any],
    foreign_keys: Mapping[str, ForeignKeyRef],
    rowid_alias: bool = False,
) -> ColumnDescriptor:
    name = str(row["name"])
    declared_type = str(row.get("type") or "")
    is_primary_key = bool(row.get("pk"))
    default = row.get("dflt_value")
    return ColumnDescriptor(
        name=name,
        declared_type=declared_type,
        semantic_type=classify(declared_type),
        nullable=not bool(row.get("notnull")),
        is_primary_key=is_primary_key,
        foreign_key=foreign_keys.get(name),
        default_value=None if default is None else str(default),
        auto_increment=rowid_alias and is_primary_key and declared_type.strip().upper() == "INTEGER",
    )


def _describe_index(row: Mapping[str, Any]) -> IndexDescriptor:
    ordered = sorted(row.get("columns", ()), key=lambda info: info.get("seqno", 0))
    return IndexDescriptor(
        name=str(row["name"]),
        # Expression indexes report a NULL column name.
        columns=tuple(str(info.get("name") or "") for info in ordered),
        unique=bool(row.get("unique")),
        origin=str(row.get("origin") or "c"),
    )


def _index_foreign_keys(rows: Sequence[Mapping[str, Any]]) -> dict[str, ForeignKeyRef]:
    indexed: dict[str, ForeignKeyRef] = {}
    for row in rows:
        source_column = str(row["from"])
        # Composite keys report one row per column; the first reference wins.
        indexed.setdefault(
            source_column,
            ForeignKeyRef(table=str(row["table"]), column=str(row["to"] or "")),
        )
    return indexed
