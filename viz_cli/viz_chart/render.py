"""Output rendering helpers for viz-chart."""

from __future__ import annotations

import json
import sys
from typing import Mapping, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from viz_cli.shared.logging import Logger

from .advisor import ColumnScore
from .roles import RoleDefinition
from .types import ChartData


def render_chart_data(chart: ChartData, *, logger: Logger, stream=None) -> None:
    """Write the chart payload as JSON; empty charts are reported, not failed."""
    output_stream = stream or sys.stdout
    json.dump(chart.to_dict(), output_stream, indent=2)
    output_stream.write("\n")
    if chart.is_empty:
        logger.info("Query returned zero rows; chart is empty.")


def render_suggestions(
    rankings: Mapping[str, Sequence[ColumnScore]],
    *,
    output_format: str,
    stream=None,
) -> None:
    """Render ranked column suggestions per role."""
    output_stream = stream or sys.stdout
    if output_format == "json":
        payload = {
            role: [
                {
                    "column": entry.column.name,
                    "semantic_type": entry.column.semantic_type.value,
                    "score": entry.score,
                    "reasons": list(entry.reasons),
                }
                for entry in entries
            ]
            for role, entries in rankings.items()
        }
        json.dump(payload, output_stream, indent=2)
        output_stream.write("\n")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    for role, entries in rankings.items():
        table = Table(box=box.SIMPLE, show_header=True, header_style="bold", title=f"Role: {role}")
        table.add_column("Column", style="bold")
        table.add_column("Type")
        table.add_column("Score", justify="right")
        table.add_column("Why")
        for entry in entries:
            table.add_row(
                entry.column.name,
                entry.column.semantic_type.value,
                str(entry.score),
                ", ".join(entry.reasons),
            )
        console.print(table)


def render_roles(definitions: Sequence[RoleDefinition], *, stream=None) -> None:
    output_stream = stream or sys.stdout
    console = Console(file=output_stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("Role", style="bold")
    table.add_column("Label")
    table.add_column("Required")
    table.add_column("Aggregates")
    table.add_column("Description")
    for definition in definitions:
        table.add_row(
            definition.role,
            definition.label,
            "yes" if definition.required else "",
            "yes" if definition.supports_aggregation else "",
            definition.description,
        )
    console.print(table)
