"""Per-kind mapping roles and the query that feeds a chart."""

from __future__ import annotations

from dataclasses import dataclass, replace

from viz_cli.shared.config import MAX_LIMIT
from viz_cli.shared.exceptions import BuilderError
from viz_cli.viz_query.builder import aggregate_alias
from viz_cli.viz_query.types import AggregateFunction, AggregateSpec, QuerySpec

from .types import ChartKind, ChartSpec

NO_AGGREGATION = "none"
MAPPING_SEPARATOR = "|"


@dataclass(frozen=True, slots=True)
class RoleDefinition:
    role: str
    label: str
    description: str
    required: bool = False
    supports_aggregation: bool = False


_CATEGORY_X = RoleDefinition(
    "x", "X-Axis (Categories)", "Categories for the horizontal axis. Usually text or dates.", required=True
)
_VALUE_Y = RoleDefinition(
    "y", "Y-Axis (Values)", "Numeric values for the vertical axis.", required=True, supports_aggregation=True
)
_SEGMENT_LABELS = RoleDefinition("labels", "Segments", "Categories shown as segments.", required=True)
_SEGMENT_VALUES = RoleDefinition(
    "values", "Values", "Numeric values determining segment size.", required=True, supports_aggregation=True
)

ROLE_TABLE: dict[ChartKind, tuple[RoleDefinition, ...]] = {
    ChartKind.BAR: (
        _CATEGORY_X,
        _VALUE_Y,
        RoleDefinition("color", "Color (Optional)", "Splits bars into one dataset per value."),
    ),
    ChartKind.LINE: (
        RoleDefinition("x", "X-Axis (Timeline)", "Time or sequence field. Dates work best.", required=True),
        _VALUE_Y,
        RoleDefinition("color", "Series (Optional)", "Splits the data into multiple lines."),
    ),
    ChartKind.PIE: (_SEGMENT_LABELS, _SEGMENT_VALUES),
    ChartKind.DOUGHNUT: (_SEGMENT_LABELS, _SEGMENT_VALUES),
    ChartKind.SCATTER: (
        RoleDefinition("x", "X-Axis (Horizontal)", "Numeric values for the horizontal axis.", required=True),
        RoleDefinition("y", "Y-Axis (Vertical)", "Numeric values for the vertical axis.", required=True),
        RoleDefinition("size", "Point Size (Optional)", "Numeric field scaling the point radius."),
        RoleDefinition("color", "Color (Optional)", "Groups points into one dataset per value."),
    ),
    ChartKind.RADAR: (
        RoleDefinition("labels", "Categories", "Categories around the radar.", required=True),
        RoleDefinition(
            "values", "Values", "Numeric values shaping the radar.", required=True, supports_aggregation=True
        ),
        RoleDefinition("series", "Series (Optional)", "Creates one radar shape per value."),
    ),
}

# (category role, value role, split role) per kind; scatter has no category axis.
_AXES: dict[ChartKind, tuple[str | None, str, str | None]] = {
    ChartKind.BAR: ("x", "y", "color"),
    ChartKind.LINE: ("x", "y", "color"),
    ChartKind.PIE: ("labels", "values", None),
    ChartKind.DOUGHNUT: ("labels", "values", None),
    ChartKind.SCATTER: (None, "y", "color"),
    ChartKind.RADAR: ("labels", "values", "series"),
}


def roles_for(kind: ChartKind | str) -> tuple[RoleDefinition, ...]:
    return ROLE_TABLE[ChartKind.parse(kind)]


def required_roles(kind: ChartKind | str) -> tuple[str, ...]:
    return tuple(definition.role for definition in roles_for(kind) if definition.required)


def axes_for(kind: ChartKind | str) -> tuple[str | None, str, str | None]:
    """Return the category, value and split roles for ``kind``."""
    return _AXES[ChartKind.parse(kind)]


def parse_mapping(raw: str) -> tuple[str, AggregateFunction | None]:
    """Split ``column|agg`` notation into a column and optional aggregate."""
    column, sep, function = raw.partition(MAPPING_SEPARATOR)
    column = column.strip()
    if not column:
        raise BuilderError(BuilderError.Kind.MISSING_REQUIRED_FIELD, f"Mapping '{raw}' names no column.", raw)
    if not sep:
        return column, None
    function = function.strip().lower()
    if not function or function == NO_AGGREGATION:
        return column, None
    try:
        return column, AggregateFunction(function)
    except ValueError as exc:
        raise BuilderError(BuilderError.Kind.INVALID_VALUE, f"Unsupported aggregate '{function}'.", function) from exc


def needs_client_grouping(spec: ChartSpec) -> bool:
    """True when the value aggregate must be applied by the shaper.

    SQL groups by a single column, so a mapped split role leaves the grouping
    of (category, split) pairs to the shaper.
    """
    category_role, value_role, split_role = axes_for(spec.kind)
    if category_role is None or spec.aggregation_for(value_role) is None:
        return False
    return split_role is not None and split_role in spec.mappings


def chart_query_spec(
    table: str,
    spec: ChartSpec,
    limit: int | None = None,
    *,
    max_limit: int = MAX_LIMIT,
) -> tuple[QuerySpec, ChartSpec]:
    """Derive the QuerySpec that feeds ``spec`` and the spec to shape its rows with.

    When the value role carries an aggregate and nothing splits the series, the
    grouping is pushed into SQL and the returned chart spec is marked as grouped
    upstream. When the shaper has to aggregate, every row up to ``max_limit``
    is fetched unless ``limit`` asks for fewer.
    """
    ordered_roles = [definition.role for definition in ROLE_TABLE[spec.kind]]
    columns = [spec.mappings[role] for role in ordered_roles if role in spec.mappings]
    select_columns = tuple(dict.fromkeys(columns))

    if needs_client_grouping(spec):
        fetch_limit = max_limit if limit is None else limit
        return QuerySpec(table=table, select_columns=select_columns, limit=fetch_limit), spec

    category_role, value_role, _ = axes_for(spec.kind)
    category_column = spec.column_for(category_role) if category_role else None
    value_column = spec.column_for(value_role)
    function = spec.aggregation_for(value_role)
    if function is None or category_column is None or value_column is None:
        return QuerySpec(table=table, select_columns=select_columns, limit=limit), spec

    query = QuerySpec(
        table=table,
        select_columns=(category_column, value_column),
        group_by=category_column,
        aggregate=AggregateSpec(column=value_column, function=function),
        limit=limit,
    )
    alias = aggregate_alias(query)
    row_keys = {value_role: alias} if alias and alias != value_column else {}
    return query, replace(spec, grouped_upstream=True, row_keys=row_keys)
