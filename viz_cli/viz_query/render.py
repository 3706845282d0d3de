"""Output rendering helpers for viz-query."""

from __future__ import annotations

import csv
import json
import sys
from typing import IO, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from viz_cli.shared.logging import Logger

from .types import DatabaseStats, QueryResult, TableSchema, TableSummary


def render_query_result(
    result: QueryResult,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render a query result set to the desired format."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "table":
        _render_table(result, logger=logger, stream=output_stream)
    elif fmt == "csv":
        _render_delimited(result, stream=output_stream, delimiter=",")
    elif fmt == "tsv":
        _render_delimited(result, stream=output_stream, delimiter="\t")
    elif fmt == "json":
        _render_json(result, stream=output_stream)
    else:  # pragma: no cover - Click validation should prevent this
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if fmt == "table" and result.total > len(result.rows):
        logger.info(
            f"Page {result.page} of {result.total_pages} ({len(result.rows)} of {result.total} rows)."
        )


def render_table_list(
    tables: Sequence[TableSummary],
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render the table catalog with optional row counts."""
    output_stream = stream or sys.stdout
    if (output_format or "table").lower() == "json":
        payload = [{"name": table.name, "row_count": table.row_count} for table in tables]
        json.dump(payload, output_stream, indent=2)
        output_stream.write("\n")
        return

    if not tables:
        logger.info("No tables found in this data source.")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Table", style="bold")
    table.add_column("Rows", justify="right")
    for summary in tables:
        table.add_row(summary.name, "" if summary.row_count is None else str(summary.row_count))
    console.print(table)


def render_table_schema(
    schema: TableSchema,
    *,
    output_format: str,
    stream=None,
) -> None:
    """Render column descriptors for one table."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "json":
        json.dump(schema.to_dict(), output_stream, indent=2)
        output_stream.write("\n")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    console.print(f"[bold]{schema.table_name}[/bold]")
    column_table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    column_table.add_column("Column")
    column_table.add_column("Type")
    column_table.add_column("Semantic")
    column_table.add_column("Not Null")
    column_table.add_column("PK")
    column_table.add_column("Default")
    column_table.add_column("References")
    for column in schema.columns:
        reference = (
            f"{column.foreign_key.table}.{column.foreign_key.column}" if column.foreign_key else ""
        )
        column_table.add_row(
            column.name,
            column.declared_type,
            column.semantic_type.value,
            "yes" if not column.nullable else "",
            ("auto" if column.auto_increment else "yes") if column.is_primary_key else "",
            "" if column.default_value is None else column.default_value,
            reference,
        )
    console.print(column_table)

    if schema.indices:
        index_table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
        index_table.add_column("Index")
        index_table.add_column("Columns")
        index_table.add_column("Unique")
        for index in schema.indices:
            index_table.add_row(index.name, ", ".join(index.columns), "yes" if index.unique else "")
        console.print(index_table)


def _render_table(result: QueryResult, *, logger: Logger, stream: IO[str]) -> None:
    console = Console(file=stream, highlight=False, force_terminal=False)
    if result.description:
        console.print(f"[bold]{result.description}[/bold]")

    table = Table(box=box.SIMPLE_HEAVY, show_header=bool(result.columns), header_style="bold")
    for column in result.columns:
        table.add_column(column or "")

    if result.rows:
        for row in result.rows:
            table.add_row(*[_stringify(cell) for cell in row])
    else:
        logger.info("Query returned zero rows.")

    console.print(table)


def _render_delimited(result: QueryResult, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter)
    if result.columns:
        writer.writerow(result.columns)
    for row in result.rows:
        writer.writerow(_stringify(cell) for cell in row)


def _render_json(result: QueryResult, *, stream: IO[str]) -> None:
    records = [
        {column: _convert_json_value(value) for column, value in zip(result.columns, row)}
        for row in result.rows
    ]
    payload = {
        "columns": list(result.columns),
        "rows": records,
        "total": result.total,
        "limit": result.limit,
        "offset": result.offset,
        "truncated": result.truncated,
    }
    json.dump(payload, stream, indent=2)
    stream.write("\n")


def _stringify(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def _convert_json_value(value: object) -> object:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def render_stats(
    stats: DatabaseStats,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render source-wide totals followed by the per-table row counts."""
    output_stream = stream or sys.stdout
    if (output_format or "table").lower() == "json":
        json.dump(stats.to_dict(), output_stream, indent=2)
        output_stream.write("\n")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    console.print(f"Tables: {stats.table_count}")
    console.print(f"Total rows: {stats.total_rows}")
    console.print(f"Size: {stats.size_bytes} bytes")
    if stats.tables:
        render_table_list(stats.tables, output_format="table", logger=logger, stream=output_stream)
