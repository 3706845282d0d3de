"""Reshape flat row sets into chart-kind specific payloads.

Each chart kind has one pure shaping function selected from ``_SHAPERS``. Rows
are mappings of column name to value (``QueryResult.as_records()``).
"""

from __future__ import annotations

import functools
from dataclasses import replace
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from viz_cli.shared.exceptions import ShapeError
from viz_cli.viz_query.types import AggregateFunction, QueryResult

from . import palette
from .aggregation import Number, aggregate, parse_number
from .roles import required_roles
from .types import ChartData, ChartKind, ChartSpec, Dataset, ScatterPoint

Row = Mapping[str, Any]

DEFAULT_POINT_RADIUS = 5
POINT_RADIUS_DIVISOR = 10
MIN_POINT_RADIUS = 2
MISSING_SERIES_VALUE = 0


def shape(rows: Sequence[Row], spec: ChartSpec) -> ChartData:
    """Return the chart payload for ``rows``; an empty row set is not an error."""
    kind = ChartKind.parse(spec.kind)
    if not rows:
        return ChartData(kind=kind, title=spec.title)
    ensure_required_mappings(spec)
    _check_columns_present(rows[0], spec)
    chart = _SHAPERS[kind](rows, spec, kind)
    return replace(chart, title=spec.title)


def shape_result(result: QueryResult, spec: ChartSpec) -> ChartData:
    return shape(result.as_records(), spec)


def ensure_required_mappings(spec: ChartSpec) -> None:
    """Raise MISSING_MAPPING naming the first required role without a column."""
    kind = ChartKind.parse(spec.kind)
    for role in required_roles(kind):
        if not spec.column_for(role):
            raise ShapeError(
                ShapeError.Kind.MISSING_MAPPING,
                f"Chart kind '{kind.value}' requires a column for role '{role}'.",
                role,
            )


def _check_columns_present(sample: Row, spec: ChartSpec) -> None:
    for role in spec.mappings:
        column = spec.row_key(role)
        if column not in sample:
            raise ShapeError(
                ShapeError.Kind.MISSING_MAPPING,
                f"Column '{column}' mapped to role '{role}' is not present in the rows.",
                role,
            )


def _label(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _dataset_label(spec: ChartSpec, role: str) -> str:
    column = spec.column_for(role) or role
    function = spec.aggregation_for(role)
    return f"{function.value}({column})" if function else column


# ----------------------------------------------------------------------------
# Grouping helpers


def _group_values(
    rows: Sequence[Row],
    label_column: str,
    value_column: str,
    split_column: str | None,
) -> tuple[list[str], list[str], dict[tuple[str, str], list[Any]]]:
    """Collect values per (series, label) preserving first-seen order of both."""
    labels: dict[str, None] = {}
    series: dict[str, None] = {}
    cells: dict[tuple[str, str], list[Any]] = {}
    for row in rows:
        label = _label(row.get(label_column))
        series_key = _label(row.get(split_column)) if split_column else ""
        labels.setdefault(label, None)
        series.setdefault(series_key, None)
        cells.setdefault((series_key, label), []).append(row.get(value_column))
    return list(labels), list(series), cells


def _reduce_cell(values: Sequence[Any], function: AggregateFunction | None) -> Number | None:
    if function is not None:
        return aggregate(values, function)
    return parse_number(values[0])


def _series_matrix(
    rows: Sequence[Row],
    label_column: str,
    value_column: str,
    split_column: str | None,
    function: AggregateFunction | None,
) -> tuple[list[str], list[tuple[str, list[Number | None]]]]:
    labels, series, cells = _group_values(rows, label_column, value_column, split_column)
    matrix: list[tuple[str, list[Number | None]]] = []
    for series_key in series:
        values = [
            _reduce_cell(cells[(series_key, label)], function)
            if (series_key, label) in cells
            else MISSING_SERIES_VALUE
            for label in labels
        ]
        matrix.append((series_key, values))
    return labels, matrix


def _compare_axis(left: Any, right: Any) -> int:
    left_number = parse_number(left)
    right_number = parse_number(right)
    if left_number is not None and right_number is not None:
        return (left_number > right_number) - (left_number < right_number)
    left_text, right_text = _label(left), _label(right)
    return (left_text > right_text) - (left_text < right_text)


# ----------------------------------------------------------------------------
# Per-kind shapers


def _shape_categorical(rows: Sequence[Row], spec: ChartSpec, kind: ChartKind) -> ChartData:
    x_column = spec.row_key("x")
    y_column = spec.row_key("y")
    color_column = spec.row_key("color")
    function = None if spec.grouped_upstream else spec.aggregation_for("y")

    if kind is ChartKind.LINE:
        rows = sorted(rows, key=functools.cmp_to_key(lambda a, b: _compare_axis(a.get(x_column), b.get(x_column))))

    if function is None and color_column is None:
        labels = [_label(row.get(x_column)) for row in rows]
        series = [(_dataset_label(spec, "y"), [parse_number(row.get(y_column)) for row in rows])]
    else:
        labels, matrix = _series_matrix(rows, x_column, y_column, color_column, function)
        if color_column is None:
            series = [(_dataset_label(spec, "y"), matrix[0][1])]
        else:
            series = matrix

    datasets = []
    for index, (name, values) in enumerate(series):
        if kind is ChartKind.LINE:
            color = palette.color_at(index)
            style = {"borderColor": color, "backgroundColor": palette.translucent(color), "fill": True}
        elif len(series) == 1:
            style = {"backgroundColor": palette.colors(len(values))}
        else:
            style = {"backgroundColor": palette.color_at(index)}
        datasets.append(Dataset(label=name, data=tuple(values), style=style))
    return ChartData(kind=kind, labels=tuple(labels), datasets=tuple(datasets))


def _shape_proportional(rows: Sequence[Row], spec: ChartSpec, kind: ChartKind) -> ChartData:
    label_column = spec.row_key("labels")
    value_column = spec.row_key("values")
    function = None if spec.grouped_upstream else spec.aggregation_for("values")

    if function is None:
        labels = [_label(row.get(label_column)) for row in rows]
        values = [parse_number(row.get(value_column)) for row in rows]
    else:
        labels, matrix = _series_matrix(rows, label_column, value_column, None, function)
        values = matrix[0][1]

    dataset = Dataset(
        label=_dataset_label(spec, "values"),
        data=tuple(values),
        style={
            "backgroundColor": palette.colors(len(values)),
            "borderColor": palette.SEGMENT_BORDER_COLOR,
            "borderWidth": palette.SEGMENT_BORDER_WIDTH,
        },
    )
    return ChartData(kind=kind, labels=tuple(labels), datasets=(dataset,))


def _point_radius(value: Any) -> Number:
    size = parse_number(value)
    if size is None:
        return MIN_POINT_RADIUS
    return max(size / POINT_RADIUS_DIVISOR, MIN_POINT_RADIUS)


def _shape_scatter(rows: Sequence[Row], spec: ChartSpec, kind: ChartKind) -> ChartData:
    x_column = spec.row_key("x")
    y_column = spec.row_key("y")
    size_column = spec.row_key("size")
    color_column = spec.row_key("color")

    groups: dict[str, list[ScatterPoint]] = {}
    for row in rows:
        x_value = parse_number(row.get(x_column))
        y_value = parse_number(row.get(y_column))
        if x_value is None or y_value is None:
            continue
        radius = _point_radius(row.get(size_column)) if size_column else DEFAULT_POINT_RADIUS
        key = _label(row.get(color_column)) if color_column else f"{y_column} vs {x_column}"
        groups.setdefault(key, []).append(ScatterPoint(x=x_value, y=y_value, r=radius))

    datasets = tuple(
        Dataset(
            label=name,
            data=tuple(points),
            style={"backgroundColor": palette.color_at(index), "borderColor": palette.color_at(index)},
        )
        for index, (name, points) in enumerate(groups.items())
    )
    return ChartData(kind=kind, labels=(), datasets=datasets)


def _shape_radar(rows: Sequence[Row], spec: ChartSpec, kind: ChartKind) -> ChartData:
    label_column = spec.row_key("labels")
    value_column = spec.row_key("values")
    series_column = spec.row_key("series")
    function = None if spec.grouped_upstream else spec.aggregation_for("values")

    labels, matrix = _series_matrix(rows, label_column, value_column, series_column, function)
    datasets = []
    for index, (name, values) in enumerate(matrix):
        color = palette.color_at(index)
        datasets.append(
            Dataset(
                label=name if series_column else _dataset_label(spec, "values"),
                data=tuple(values),
                style={
                    "borderColor": color,
                    "backgroundColor": palette.translucent(color),
                    "pointBackgroundColor": color,
                },
            )
        )
    return ChartData(kind=kind, labels=tuple(labels), datasets=tuple(datasets))


_SHAPERS: dict[ChartKind, Callable[[Sequence[Row], ChartSpec, ChartKind], ChartData]] = {
    ChartKind.BAR: _shape_categorical,
    ChartKind.LINE: _shape_categorical,
    ChartKind.PIE: _shape_proportional,
    ChartKind.DOUGHNUT: _shape_proportional,
    ChartKind.SCATTER: _shape_scatter,
    ChartKind.RADAR: _shape_radar,
}
