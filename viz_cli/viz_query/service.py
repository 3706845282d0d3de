"""Request-level operations: schema lookup and paginated query runs."""

from __future__ import annotations

from dataclasses import replace

from viz_cli.shared.config import AppConfig, QuerySettings
from viz_cli.shared.database import SourceHandle, open_source
from viz_cli.shared.exceptions import BuilderError
from viz_cli.shared.logging import Logger, get_logger

from . import executor, schema as schema_inspector
from .builder import QueryBuilder
from .types import DatabaseStats, QueryResult, QuerySpec, TableSchema, TableSummary
from .validator import validate_spec

SAMPLE_MIN = 1
SAMPLE_MAX = 1000
DEFAULT_SAMPLE_SIZE = 10


def get_schema(handle: SourceHandle, table: str) -> TableSchema:
    """Return a freshly inspected schema for ``table``."""
    return schema_inspector.inspect(handle, table)


def run_query(
    handle: SourceHandle,
    spec: QuerySpec,
    *,
    settings: QuerySettings,
    logger: Logger | None = None,
) -> QueryResult:
    """Validate, build and execute ``spec`` and return the page plus its total.

    The table is allow-listed and the schema re-read before anything is built,
    so unknown tables never reach the executor.
    """
    log = logger or get_logger()
    table_schema = schema_inspector.inspect(handle, spec.table)
    validate_spec(table_schema, spec)

    builder = QueryBuilder(
        table_schema,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
    )
    built = builder.build(spec)
    log.sql(built.sql, len(built.params))

    timeout = settings.timeout_seconds or None
    total = executor.count(
        handle,
        table_schema,
        spec.filters,
        group_by=spec.group_by,
        aggregate=spec.aggregate,
        timeout=timeout,
    )
    with log.timed(f"Query on '{spec.table}'"):
        rows = executor.execute(
            handle,
            built.sql,
            built.params,
            timeout=timeout,
            max_rows=settings.max_rows,
        )
    if rows.truncated:
        log.warning(f"Result truncated to {settings.max_rows} rows by query.max_rows.")

    limit = built.params[-2]
    return QueryResult(
        columns=rows.columns,
        rows=list(rows.rows),
        total=total,
        limit=limit,
        offset=spec.offset,
        truncated=rows.truncated,
    )


def count_rows(
    handle: SourceHandle,
    spec: QuerySpec,
    *,
    settings: QuerySettings,
) -> int:
    """Return the filtered total for ``spec`` ignoring paging."""
    table_schema = schema_inspector.inspect(handle, spec.table)
    validate_spec(table_schema, spec)
    return executor.count(
        handle,
        table_schema,
        spec.filters,
        group_by=spec.group_by,
        aggregate=spec.aggregate,
        timeout=settings.timeout_seconds or None,
    )


def sample(
    handle: SourceHandle,
    table: str,
    size: int = DEFAULT_SAMPLE_SIZE,
    *,
    settings: QuerySettings,
    logger: Logger | None = None,
) -> QueryResult:
    """Return the first ``size`` rows of ``table`` (clamped to 1..1000)."""
    clamped = max(SAMPLE_MIN, min(int(size), SAMPLE_MAX, settings.max_limit))
    result = run_query(handle, QuerySpec(table=table, limit=clamped), settings=settings, logger=logger)
    return replace(result, description=f"Sample of {table}")


def list_tables(handle: SourceHandle, *, with_counts: bool = True) -> list[TableSummary]:
    return schema_inspector.list_tables(handle, with_counts=with_counts)


def database_stats(handle: SourceHandle) -> DatabaseStats:
    """Return table count, row totals and on-disk size for the source."""
    tables = schema_inspector.list_tables(handle, with_counts=True)
    return DatabaseStats(tables=tuple(tables), size_bytes=handle.path.stat().st_size)


def page_to_offset(page: int, limit: int) -> int:
    """Translate a 1-based page number into an offset."""
    if page < 1:
        raise BuilderError(BuilderError.Kind.INVALID_VALUE, "Page numbers start at 1.", page)
    return (page - 1) * limit


# ----------------------------------------------------------------------------
# Config-level entry points


def fetch_schema(config: AppConfig, source_id: str | None, table: str) -> TableSchema:
    """Open ``source_id`` and return the live schema for ``table``."""
    with open_source(config, source_id) as handle:
        return get_schema(handle, table)


def query_source(
    config: AppConfig,
    source_id: str | None,
    spec: QuerySpec,
    *,
    logger: Logger | None = None,
) -> QueryResult:
    """Open ``source_id`` and run ``spec`` against it."""
    with open_source(config, source_id) as handle:
        return run_query(handle, spec, settings=config.query, logger=logger)
