"""Public exports for the viz-chart package."""

from .advisor import ColumnScore, rank_columns, suggest, suggest_for_chart
from .roles import (
    ROLE_TABLE,
    RoleDefinition,
    chart_query_spec,
    needs_client_grouping,
    parse_mapping,
    required_roles,
)
from .shaper import shape, shape_result
from .types import ChartData, ChartKind, ChartSpec, Dataset, ScatterPoint

__all__ = [
    "ROLE_TABLE",
    "ChartData",
    "ChartKind",
    "ChartSpec",
    "ColumnScore",
    "Dataset",
    "RoleDefinition",
    "ScatterPoint",
    "chart_query_spec",
    "needs_client_grouping",
    "parse_mapping",
    "rank_columns",
    "required_roles",
    "shape",
    "shape_result",
    "suggest",
    "suggest_for_chart",
]
