"""Data structures shared across viz-query modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Sequence


class SemanticType(str, Enum):
    """Coarse column category derived from the declared storage type."""

    NUMERIC = "numeric"
    TEXT = "text"
    DATE = "date"
    UNKNOWN = "unknown"


class FilterOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AggregateFunction(str, Enum):
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


@dataclass(frozen=True, slots=True)
class ForeignKeyRef:
    table: str
    column: str


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Normalized metadata for one column, recomputed on every schema fetch."""

    name: str
    declared_type: str
    semantic_type: SemanticType
    nullable: bool = True
    is_primary_key: bool = False
    foreign_key: ForeignKeyRef | None = None
    # SQL literal text of the DEFAULT clause, as the catalog reports it.
    default_value: str | None = None
    auto_increment: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.declared_type,
            "semantic_type": self.semantic_type.value,
            "nullable": self.nullable,
            "default_value": self.default_value,
            "primary_key": self.is_primary_key,
            "auto_increment": self.auto_increment,
            "foreign_key": (
                {"table": self.foreign_key.table, "column": self.foreign_key.column}
                if self.foreign_key
                else None
            ),
        }


@dataclass(frozen=True, slots=True)
class IndexDescriptor:
    name: str
    columns: tuple[str, ...]
    unique: bool = False
    origin: str = "c"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "unique": self.unique,
            "origin": self.origin,
        }


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Ordered column descriptors for one table, in catalog order."""

    table_name: str
    columns: tuple[ColumnDescriptor, ...]
    indices: tuple[IndexDescriptor, ...] = ()
    sql: str | None = None

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def primary_key(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns if column.is_primary_key)

    def column(self, name: str) -> ColumnDescriptor | None:
        for candidate in self.columns:
            if candidate.name == name:
                return candidate
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.column_names

    def __iter__(self) -> Iterator[ColumnDescriptor]:
        return iter(self.columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.table_name,
            "columns": [column.to_dict() for column in self.columns],
            "primary_key": list(self.primary_key),
            "indices": [index.to_dict() for index in self.indices],
            "sql": self.sql,
        }


@dataclass(frozen=True, slots=True)
class FilterClause:
    column: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True, slots=True)
class SortSpec:
    column: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class AggregateSpec:
    column: str
    function: AggregateFunction


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """Structured description of one read against a single table.

    An empty ``select_columns`` selects every column. ``limit`` of None means the
    configured default limit.
    """

    table: str
    select_columns: tuple[str, ...] = ()
    filters: tuple[FilterClause, ...] = ()
    sort: SortSpec | None = None
    group_by: str | None = None
    aggregate: AggregateSpec | None = None
    limit: int | None = None
    offset: int = 0

    def referenced_columns(self) -> tuple[str, ...]:
        """Every column name mentioned anywhere in the spec, first-seen order."""
        names: list[str] = list(self.select_columns)
        names.extend(clause.column for clause in self.filters)
        if self.sort is not None:
            names.append(self.sort.column)
        if self.group_by is not None:
            names.append(self.group_by)
        if self.aggregate is not None:
            names.append(self.aggregate.column)
        return tuple(dict.fromkeys(names))


@dataclass(frozen=True, slots=True)
class BuiltQuery:
    """SQL text plus the values bound to its placeholders, in order."""

    sql: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class TableSummary:
    name: str
    row_count: int | None = None


@dataclass(frozen=True, slots=True)
class DatabaseStats:
    """Size and row totals for one data source."""

    tables: tuple[TableSummary, ...]
    size_bytes: int = 0

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def total_rows(self) -> int:
        return sum(table.row_count or 0 for table in self.tables)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_count": self.table_count,
            "total_rows": self.total_rows,
            "size_bytes": self.size_bytes,
            "tables": [{"name": table.name, "rows": table.row_count or 0} for table in self.tables],
        }


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Structured result set returned by the query service."""

    columns: tuple[str, ...]
    rows: Sequence[tuple[Any, ...]]
    total: int
    limit: int
    offset: int = 0
    truncated: bool = False
    description: str | None = None

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1 if self.limit else 1

    @property
    def total_pages(self) -> int:
        if not self.limit:
            return 1
        return -(-self.total // self.limit)

    def as_records(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]
