"""viz-query CLI entrypoint."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import click

from viz_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from viz_cli.shared.database import open_source

from . import render, service
from .types import (
    AggregateFunction,
    AggregateSpec,
    FilterClause,
    FilterOperator,
    QuerySpec,
    SortDirection,
    SortSpec,
)

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")
SCHEMA_FORMAT_CHOICES = ("table", "json")

_NULL_LITERALS = frozenset({"null", "none"})


@click.group(help="Inspect and query tables in a configured data source.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for viz-query commands."""
    cli_ctx.logger.debug("viz-query group initialised in read-only mode.")


@cli.command("tables")
@click.option("--no-counts", is_flag=True, help="Skip per-table row counts.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def list_tables(cli_ctx: CLIContext, no_counts: bool, output_format: str) -> None:
    """List user tables in the data source."""
    _log_subcommand_entry(cli_ctx, "tables")
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        tables = service.list_tables(handle, with_counts=not no_counts)
    render.render_table_list(tables, output_format=output_format, logger=cli_ctx.logger)


@cli.command("schema")
@click.argument("table", type=str)
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def show_schema(cli_ctx: CLIContext, table: str, output_format: str) -> None:
    """Display classified column metadata for TABLE."""
    _log_subcommand_entry(cli_ctx, "schema")
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        table_schema = service.get_schema(handle, table)
    render.render_table_schema(table_schema, output_format=output_format)


@cli.command("data")
@click.argument("table", type=str)
@click.option("-c", "--column", "columns", multiple=True, help="Column to select (repeatable).")
@click.option(
    "-f",
    "--filter",
    "filters",
    multiple=True,
    metavar="COL:OP:VALUE",
    help="Filter rows; OP is one of eq, neq, gt, gte, lt, lte, contains.",
)
@click.option("--sort", "sort", metavar="COL[:asc|desc]", help="Sort column and direction.")
@click.option("--group-by", "group_by", type=str, help="Group rows by this column.")
@click.option("--aggregate", "aggregate", metavar="FUNC:COL", help="Aggregate a column (sum, avg, min, max, count).")
@click.option("--limit", type=int, help="Rows per page (defaults to query.default_limit).")
@click.option("--offset", type=int, default=None, help="Rows to skip.")
@click.option("--page", type=int, default=None, help="1-based page number; overrides --offset.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(OUTPUT_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def run_data(
    cli_ctx: CLIContext,
    table: str,
    columns: Iterable[str],
    filters: Iterable[str],
    sort: str | None,
    group_by: str | None,
    aggregate: str | None,
    limit: int | None,
    offset: int | None,
    page: int | None,
    output_format: str,
) -> None:
    """Run a paginated, filtered read against TABLE."""
    _log_subcommand_entry(cli_ctx, "data")
    try:
        filter_clauses = tuple(_parse_filter(raw) for raw in filters)
        sort_spec = _parse_sort(sort) if sort else None
        aggregate_spec = _parse_aggregate(aggregate) if aggregate else None
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    effective_offset = offset or 0
    if page is not None:
        effective_offset = service.page_to_offset(page, limit or cli_ctx.config.query.default_limit)

    spec = QuerySpec(
        table=table,
        select_columns=tuple(columns),
        filters=filter_clauses,
        sort=sort_spec,
        group_by=group_by,
        aggregate=aggregate_spec,
        limit=limit,
        offset=effective_offset,
    )
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        result = service.run_query(handle, spec, settings=cli_ctx.config.query, logger=cli_ctx.logger)
    render.render_query_result(result, output_format=output_format, logger=cli_ctx.logger)


@cli.command("count")
@click.argument("table", type=str)
@click.option("-f", "--filter", "filters", multiple=True, metavar="COL:OP:VALUE", help="Filter rows.")
@click.option("--group-by", "group_by", type=str, help="Count distinct groups instead of rows.")
@pass_cli_context
@handle_cli_errors
def run_count(cli_ctx: CLIContext, table: str, filters: Iterable[str], group_by: str | None) -> None:
    """Print the number of rows in TABLE matching the filters."""
    _log_subcommand_entry(cli_ctx, "count")
    try:
        filter_clauses = tuple(_parse_filter(raw) for raw in filters)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    spec = QuerySpec(table=table, filters=filter_clauses, group_by=group_by)
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        total = service.count_rows(handle, spec, settings=cli_ctx.config.query)
    click.echo(total)


@cli.command("sample")
@click.argument("table", type=str)
@click.option("-n", "--rows", "size", type=int, default=service.DEFAULT_SAMPLE_SIZE, show_default=True)
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(OUTPUT_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def run_sample(cli_ctx: CLIContext, table: str, size: int, output_format: str) -> None:
    """Show the first rows of TABLE."""
    _log_subcommand_entry(cli_ctx, "sample")
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        result = service.sample(handle, table, size, settings=cli_ctx.config.query, logger=cli_ctx.logger)
    render.render_query_result(result, output_format=output_format, logger=cli_ctx.logger)


@cli.command("stats")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def show_stats(cli_ctx: CLIContext, output_format: str) -> None:
    """Summarise table count, total rows and file size of the data source."""
    _log_subcommand_entry(cli_ctx, "stats")
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        stats = service.database_stats(handle)
    render.render_stats(stats, output_format=output_format, logger=cli_ctx.logger)


def _log_subcommand_entry(cli_ctx: CLIContext, command: str) -> None:
    message = f"viz-query {command} invoked"
    if cli_ctx.source_id:
        message += f" (source: {cli_ctx.source_id})"
    cli_ctx.logger.debug(message)


def _parse_filter(raw: str) -> FilterClause:
    """Convert ``COL:OP:VALUE`` into a FilterClause."""
    parts = raw.split(":", 2)
    if len(parts) != 3 or not parts[0]:
        raise ValueError(f"Filter '{raw}' must be in COL:OP:VALUE format.")
    column, operator, value = parts
    try:
        parsed_operator = FilterOperator(operator.strip().lower())
    except ValueError as exc:
        choices = ", ".join(op.value for op in FilterOperator)
        raise ValueError(f"Unknown filter operator '{operator}'. Expected one of: {choices}.") from exc
    return FilterClause(column=column, operator=parsed_operator, value=_coerce_value(value))


def _parse_sort(raw: str) -> SortSpec:
    column, _, direction = raw.rpartition(":")
    if column and direction.lower() in {d.value for d in SortDirection}:
        return SortSpec(column=column, direction=SortDirection(direction.lower()))
    return SortSpec(column=raw)


def _parse_aggregate(raw: str) -> AggregateSpec:
    function, sep, column = raw.partition(":")
    if not sep or not column:
        raise ValueError(f"Aggregate '{raw}' must be in FUNC:COL format.")
    try:
        parsed = AggregateFunction(function.strip().lower())
    except ValueError as exc:
        choices = ", ".join(fn.value for fn in AggregateFunction)
        raise ValueError(f"Unknown aggregate '{function}'. Expected one of: {choices}.") from exc
    return AggregateSpec(column=column, function=parsed)


def _coerce_value(raw: str) -> Any:
    if raw.lower() in _NULL_LITERALS:
        return None
    for caster in (int, float):
        try:
            return caster(raw)
        except ValueError:
            continue
    return raw


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
