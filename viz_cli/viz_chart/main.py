"""viz-chart CLI entrypoint."""

from __future__ import annotations

from collections.abc import Iterable

import click

from viz_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from viz_cli.shared.database import open_source
from viz_cli.viz_query import service

from . import advisor, render, roles, shaper
from .types import ChartKind, ChartSpec

KIND_CHOICES = tuple(kind.value for kind in ChartKind)
SUGGEST_FORMAT_CHOICES = ("table", "json")


@click.group(help="Shape table data into chart payloads and suggest field mappings.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for viz-chart commands."""
    cli_ctx.logger.debug("viz-chart group initialised.")


@cli.command("render")
@click.argument("table", type=str)
@click.option("--kind", "kind", required=True, type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.option(
    "-m",
    "--map",
    "mappings",
    multiple=True,
    metavar="ROLE=COLUMN[|AGG]",
    help="Map a chart role to a column, optionally with an aggregate (e.g. y=revenue|sum).",
)
@click.option("--title", type=str, help="Optional chart title.")
@click.option("--limit", type=int, help="Maximum rows (or groups) to chart.")
@pass_cli_context
@handle_cli_errors
def render_chart(
    cli_ctx: CLIContext,
    table: str,
    kind: str,
    mappings: Iterable[str],
    title: str | None,
    limit: int | None,
) -> None:
    """Query TABLE and print chart data as JSON."""
    try:
        raw_mappings = _parse_role_mappings(mappings)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    chart_spec = ChartSpec.from_raw(kind, raw_mappings, title=title)
    shaper.ensure_required_mappings(chart_spec)
    settings = cli_ctx.config.query
    query_spec, chart_spec = roles.chart_query_spec(table, chart_spec, limit, max_limit=settings.max_limit)
    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        result = service.run_query(handle, query_spec, settings=settings, logger=cli_ctx.logger)
    if roles.needs_client_grouping(chart_spec) and len(result.rows) < result.total:
        cli_ctx.logger.warning(
            f"Aggregates cover {len(result.rows)} of {result.total} matching rows; "
            "raise --limit or query.max_limit for complete totals."
        )
    cli_ctx.logger.debug(f"Shaping {len(result.rows)} rows as {chart_spec.kind.value} chart.")
    chart = shaper.shape_result(result, chart_spec)
    render.render_chart_data(chart, logger=cli_ctx.logger)


@cli.command("suggest")
@click.argument("table", type=str)
@click.option("--role", type=str, help="Rank columns for a single role.")
@click.option("--kind", type=click.Choice(KIND_CHOICES, case_sensitive=False), help="Rank columns for every role of a chart kind.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SUGGEST_FORMAT_CHOICES),
)
@pass_cli_context
@handle_cli_errors
def suggest(
    cli_ctx: CLIContext,
    table: str,
    role: str | None,
    kind: str | None,
    output_format: str,
) -> None:
    """Suggest columns of TABLE for chart roles."""
    if bool(role) == bool(kind):
        raise click.UsageError("Provide exactly one of --role or --kind.")

    with open_source(cli_ctx.config, cli_ctx.source_id) as handle:
        table_schema = service.get_schema(handle, table)

    target_roles = [role] if role else [definition.role for definition in roles.roles_for(kind)]
    rankings = {
        target: [entry for entry in advisor.rank_columns(table_schema, target) if entry.suitable]
        for target in target_roles
    }
    render.render_suggestions(rankings, output_format=output_format)


@cli.command("roles")
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@handle_cli_errors
def list_roles(kind: str) -> None:
    """List the mapping roles a chart KIND accepts."""
    render.render_roles(roles.roles_for(kind))


def _parse_role_mappings(pairs: Iterable[str]) -> dict[str, str]:
    """Convert ROLE=COLUMN options into a dictionary."""
    parsed: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Mapping '{pair}' must be in ROLE=COLUMN format.")
        role, column = pair.split("=", 1)
        role = role.strip().lower()
        if not role:
            raise ValueError("Mapping roles cannot be empty.")
        parsed[role] = column.strip()
    return parsed


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
