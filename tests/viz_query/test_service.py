from __future__ import annotations

from pathlib import Path

import pytest

from viz_cli.shared import paths
from viz_cli.shared.config import QuerySettings, load_config
from viz_cli.shared.database import SourceHandle
from viz_cli.shared.exceptions import BuilderError, SchemaError, ValidationError
from viz_cli.viz_query import executor, service
from viz_cli.viz_query.types import (
    AggregateFunction,
    AggregateSpec,
    FilterClause,
    FilterOperator,
    QuerySpec,
    SortDirection,
    SortSpec,
)


def test_run_query_scenario(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(
        table="items",
        select_columns=("name", "revenue"),
        sort=SortSpec("revenue", SortDirection.DESC),
        limit=2,
    )
    result = service.run_query(handle, spec, settings=settings)

    assert result.columns == ("name", "revenue")
    assert list(result.rows) == [("B", 30.0), ("C", 20.0)]
    assert result.total == 3
    assert result.limit == 2


def test_total_is_independent_of_paging(handle: SourceHandle, settings: QuerySettings) -> None:
    first = service.run_query(handle, QuerySpec(table="orders", limit=1), settings=settings)
    later = service.run_query(handle, QuerySpec(table="orders", limit=3, offset=2), settings=settings)

    assert len(first.rows) == 1
    assert len(later.rows) == 2
    assert first.total == later.total == 4
    assert later.page == 1
    assert first.total_pages == 4


def test_grouped_aggregate(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(
        table="orders",
        group_by="region",
        aggregate=AggregateSpec("amount", AggregateFunction.SUM),
    )
    result = service.run_query(handle, spec, settings=settings)

    assert result.as_records() == [
        {"region": "East", "amount": 12},
        {"region": "North", "amount": 3},
        {"region": "West", "amount": 15},
    ]
    assert result.total == 3


def test_ungrouped_aggregate_totals_its_single_row(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(table="orders", aggregate=AggregateSpec("amount", AggregateFunction.SUM))
    result = service.run_query(handle, spec, settings=settings)

    assert result.as_records() == [{"amount": 30}]
    assert result.total == 1
    assert result.total_pages == 1

    none_match = QuerySpec(
        table="orders",
        filters=(FilterClause("region", FilterOperator.EQ, "South"),),
        aggregate=AggregateSpec("amount", AggregateFunction.SUM),
    )
    empty = service.run_query(handle, none_match, settings=settings)
    assert empty.total == len(empty.rows) == 1


def test_count_of_group_key_keeps_labels(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(
        table="orders",
        select_columns=("region", "region"),
        group_by="region",
        aggregate=AggregateSpec("region", AggregateFunction.COUNT),
    )
    result = service.run_query(handle, spec, settings=settings)

    assert result.as_records() == [
        {"region": "East", "count_region": 2},
        {"region": "North", "count_region": 1},
        {"region": "West", "count_region": 1},
    ]


def test_unknown_table_never_reaches_executor(
    handle: SourceHandle, settings: QuerySettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    monkeypatch.setattr(executor, "execute", lambda *args, **kwargs: calls.append("execute"))
    monkeypatch.setattr(executor, "count", lambda *args, **kwargs: calls.append("count"))

    with pytest.raises(SchemaError) as excinfo:
        service.run_query(handle, QuerySpec(table="ghosts"), settings=settings)

    assert excinfo.value.kind is SchemaError.Kind.TABLE_NOT_FOUND
    assert calls == []


def test_unknown_column_is_validation_error(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(table="items", filters=(FilterClause("price", FilterOperator.GT, 1),))
    with pytest.raises(ValidationError) as excinfo:
        service.run_query(handle, spec, settings=settings)
    assert excinfo.value.value == "price"


def test_row_cap_truncates_and_warns(handle: SourceHandle, capfd) -> None:
    capped = QuerySettings(default_limit=10, max_limit=10, timeout_seconds=0, max_rows=2)
    result = service.run_query(handle, QuerySpec(table="orders"), settings=capped)

    assert len(result.rows) == 2
    assert result.truncated is True
    assert "truncated" in capfd.readouterr().err


def test_debug_log_shows_sql_not_values(handle: SourceHandle, settings: QuerySettings, capfd) -> None:
    from viz_cli.shared.logging import get_logger

    spec = QuerySpec(table="items", filters=(FilterClause("name", FilterOperator.EQ, "secret-value"),))
    service.run_query(handle, spec, settings=settings, logger=get_logger(verbose=True))

    err = capfd.readouterr().err
    assert 'FROM "items"' in err
    assert "secret-value" not in err


def test_sample_clamps_size(handle: SourceHandle, settings: QuerySettings) -> None:
    assert len(service.sample(handle, "orders", 0, settings=settings).rows) == 1
    result = service.sample(handle, "orders", 5000, settings=settings)
    assert result.limit == 1000
    assert result.description == "Sample of orders"


def test_count_rows(handle: SourceHandle, settings: QuerySettings) -> None:
    spec = QuerySpec(table="orders", filters=(FilterClause("amount", FilterOperator.LTE, 5),))
    assert service.count_rows(handle, spec, settings=settings) == 2


def test_page_to_offset() -> None:
    assert service.page_to_offset(3, 25) == 50
    with pytest.raises(BuilderError):
        service.page_to_offset(0, 25)


def test_config_level_entry_points(tmp_path: Path, sample_db: Path) -> None:
    config = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path / "cfg")}).with_source("sample", sample_db)

    table_schema = service.fetch_schema(config, "sample", "items")
    result = service.query_source(config, "sample", QuerySpec(table="items", limit=1))

    assert table_schema.column_names == ("id", "name", "revenue")
    assert result.total == 3
    assert list(result.rows) == [(1, "A", 10.0)]


def test_database_stats(handle: SourceHandle, sample_db: Path) -> None:
    stats = service.database_stats(handle)

    assert stats.table_count == 3
    assert stats.total_rows == 9
    assert stats.size_bytes == sample_db.stat().st_size > 0
    assert [table.name for table in stats.tables] == ["customers", "items", "orders"]
