"""Translate a QuerySpec into parameterized SQL.

Identifiers are interpolated only after they are confirmed against the schema
and are always quoted. Every value, including LIMIT and OFFSET, is bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, TypeVar

from viz_cli.shared.config import DEFAULT_LIMIT, MAX_LIMIT
from viz_cli.shared.database import quote_identifier
from viz_cli.shared.exceptions import BuilderError

from .types import (
    AggregateFunction,
    AggregateSpec,
    BuiltQuery,
    FilterClause,
    FilterOperator,
    QuerySpec,
    SortDirection,
    TableSchema,
)

_COMPARISON_SQL: dict[FilterOperator, str] = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}

_AGGREGATE_SQL: dict[AggregateFunction, str] = {
    AggregateFunction.SUM: "SUM",
    AggregateFunction.AVG: "AVG",
    AggregateFunction.MIN: "MIN",
    AggregateFunction.MAX: "MAX",
    AggregateFunction.COUNT: "COUNT",
}

_E = TypeVar("_E", bound=Enum)

_SCALAR_TYPES = (str, int, float, bytes)
_LIKE_ESCAPE = "\\"


@dataclass(slots=True)
class QueryBuilder:
    """Builds SELECT and COUNT statements for one table schema."""

    schema: TableSchema
    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT

    def build(self, spec: QuerySpec) -> BuiltQuery:
        self._check_identifiers(spec)
        limit = self._resolve_limit(spec.limit)
        if spec.offset < 0:
            raise BuilderError(BuilderError.Kind.INVALID_VALUE, "Offset must not be negative.", spec.offset)

        select_sql = ", ".join(self._select_list(spec))
        where_sql, params = self.where_clause(spec.filters)
        sql = f"SELECT {select_sql} FROM {quote_identifier(spec.table)}{where_sql}"
        if spec.group_by is not None:
            sql += f" GROUP BY {quote_identifier(spec.group_by)}"
        sql += self._order_clause(spec)
        sql += " LIMIT ? OFFSET ?"
        return BuiltQuery(sql=sql, params=tuple(params) + (limit, spec.offset))

    def build_count(self, spec: QuerySpec) -> BuiltQuery:
        """Count the rows the spec's SELECT yields, ignoring paging and sort."""
        self._check_identifiers(spec)
        table_sql = quote_identifier(spec.table)
        where_sql, params = self.where_clause(spec.filters)
        if spec.group_by is not None:
            group_sql = quote_identifier(spec.group_by)
            sql = f"SELECT COUNT(*) AS count FROM (SELECT 1 FROM {table_sql}{where_sql} GROUP BY {group_sql})"
        elif spec.aggregate is not None:
            # An ungrouped aggregate always yields exactly one row.
            sql = f"SELECT COUNT(*) AS count FROM (SELECT COUNT(*) FROM {table_sql}{where_sql})"
        else:
            sql = f"SELECT COUNT(*) AS count FROM {table_sql}{where_sql}"
        return BuiltQuery(sql=sql, params=tuple(params))

    def where_clause(self, filters: Sequence[FilterClause]) -> tuple[str, list[Any]]:
        """Return ``" WHERE ..."`` (or empty) and its bound values."""
        conditions: list[str] = []
        params: list[Any] = []
        for clause in filters:
            condition, values = self._condition(clause)
            conditions.append(condition)
            params.extend(values)
        if not conditions:
            return "", params
        return " WHERE " + " AND ".join(conditions), params

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_identifiers(self, spec: QuerySpec) -> None:
        if not spec.table:
            raise BuilderError(BuilderError.Kind.MISSING_REQUIRED_FIELD, "A table name is required.", "table")
        if spec.table != self.schema.table_name:
            raise BuilderError(
                BuilderError.Kind.INVALID_IDENTIFIER,
                f"Table '{spec.table}' does not match the inspected schema.",
                spec.table,
            )
        known = set(self.schema.column_names)
        for name in spec.referenced_columns():
            if name not in known:
                raise BuilderError(
                    BuilderError.Kind.INVALID_IDENTIFIER,
                    f"Column '{name}' is not a known column of '{spec.table}'.",
                    name,
                )

    def _resolve_limit(self, requested: int | None) -> int:
        if requested is None:
            return self.default_limit
        if isinstance(requested, bool) or not isinstance(requested, int) or requested <= 0:
            raise BuilderError(BuilderError.Kind.INVALID_VALUE, "Limit must be a positive integer.", requested)
        if requested > self.max_limit:
            raise BuilderError(
                BuilderError.Kind.LIMIT_EXCEEDED,
                f"Limit {requested} exceeds the maximum of {self.max_limit}.",
                requested,
            )
        return requested

    def _select_list(self, spec: QuerySpec) -> list[str]:
        if spec.group_by is None and spec.aggregate is None:
            if not spec.select_columns:
                return ["*"]
            return [quote_identifier(name) for name in spec.select_columns]

        columns = list(dict.fromkeys(spec.select_columns))
        if spec.group_by is not None and spec.group_by not in columns:
            columns.insert(0, spec.group_by)

        aggregate = spec.aggregate
        expressions: list[str] = []
        aggregate_emitted = aggregate is None
        for name in columns:
            if aggregate is not None and name == aggregate.column and name != spec.group_by:
                expressions.append(self._aggregate_expression(spec, aggregate))
                aggregate_emitted = True
            else:
                # Group key, or a bare column reduced to one value per group.
                expressions.append(quote_identifier(name))
        if not aggregate_emitted:
            expressions.append(self._aggregate_expression(spec, aggregate))
        return expressions

    def _aggregate_expression(self, spec: QuerySpec, aggregate: AggregateSpec) -> str:
        function = _AGGREGATE_SQL[_coerce_enum(AggregateFunction, aggregate.function, "aggregate function")]
        return f"{function}({quote_identifier(aggregate.column)}) AS {quote_identifier(aggregate_alias(spec))}"

    def _order_clause(self, spec: QuerySpec) -> str:
        if spec.sort is not None:
            direction = _coerce_enum(SortDirection, spec.sort.direction, "sort direction")
            return f" ORDER BY {quote_identifier(spec.sort.column)} {direction.value.upper()}"
        default_column = self._default_sort_column(spec)
        return f" ORDER BY {quote_identifier(default_column)} ASC"

    def _default_sort_column(self, spec: QuerySpec) -> str:
        if spec.select_columns:
            return spec.select_columns[0]
        if spec.group_by is not None:
            return spec.group_by
        if spec.aggregate is not None:
            return spec.aggregate.column
        return self.schema.columns[0].name

    def _condition(self, clause: FilterClause) -> tuple[str, list[Any]]:
        operator = _coerce_enum(FilterOperator, clause.operator, "filter operator")
        column_sql = quote_identifier(clause.column)
        value = clause.value

        if value is None:
            if operator is FilterOperator.EQ:
                return f"{column_sql} IS NULL", []
            if operator is FilterOperator.NEQ:
                return f"{column_sql} IS NOT NULL", []
            raise BuilderError(
                BuilderError.Kind.MISSING_REQUIRED_FIELD,
                f"Filter on '{clause.column}' with operator '{operator.value}' requires a value.",
                clause.column,
            )
        if isinstance(value, bool):
            value = int(value)
        if not isinstance(value, _SCALAR_TYPES):
            raise BuilderError(
                BuilderError.Kind.INVALID_VALUE,
                f"Filter value for '{clause.column}' must be a scalar.",
                clause.column,
            )

        if operator is FilterOperator.CONTAINS:
            pattern = f"%{_escape_like(str(value))}%"
            return f"{column_sql} LIKE ? ESCAPE '{_LIKE_ESCAPE}'", [pattern]
        return f"{column_sql} {_COMPARISON_SQL[operator]} ?", [value]


def _escape_like(value: str) -> str:
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def build(
    spec: QuerySpec,
    schema: TableSchema,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> BuiltQuery:
    """Convenience wrapper around ``QueryBuilder(schema).build(spec)``."""
    return QueryBuilder(schema, default_limit=default_limit, max_limit=max_limit).build(spec)


def aggregate_alias(spec: QuerySpec) -> str | None:
    """Return the result column that carries the aggregated value.

    The aggregate keeps its column's name unless that name is already the
    group key, in which case it becomes ``<function>_<column>``.
    """
    if spec.aggregate is None:
        return None
    column = spec.aggregate.column
    if column != spec.group_by:
        return column
    function = _coerce_enum(AggregateFunction, spec.aggregate.function, "aggregate function")
    return f"{function.value}_{column}"


def _coerce_enum(enum_type: type[_E], raw: Any, label: str) -> _E:
    try:
        return enum_type(raw)
    except ValueError as exc:
        raise BuilderError(BuilderError.Kind.INVALID_VALUE, f"Unsupported {label} '{raw}'.", raw) from exc
