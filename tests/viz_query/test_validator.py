from __future__ import annotations

import pytest

from viz_cli.shared.exceptions import ValidationError
from viz_cli.viz_query.types import (
    AggregateFunction,
    AggregateSpec,
    ColumnDescriptor,
    FilterClause,
    FilterOperator,
    QuerySpec,
    SemanticType,
    SortSpec,
    TableSchema,
)
from viz_cli.viz_query.validator import validate, validate_spec

SCHEMA = TableSchema(
    table_name="items",
    columns=(
        ColumnDescriptor("id", "INTEGER", SemanticType.NUMERIC, is_primary_key=True),
        ColumnDescriptor("name", "TEXT", SemanticType.TEXT),
        ColumnDescriptor("revenue", "REAL", SemanticType.NUMERIC),
    ),
)


def test_known_identifiers_pass() -> None:
    validate(SCHEMA, ["id", "name", "revenue"])


def test_match_is_case_sensitive() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate(SCHEMA, ["Name"])
    assert excinfo.value.kind is ValidationError.Kind.UNKNOWN_COLUMN
    assert excinfo.value.value == "Name"


def test_injection_attempt_reports_only_identifier() -> None:
    hostile = 'name"; DROP TABLE items; --'
    with pytest.raises(ValidationError) as excinfo:
        validate(SCHEMA, [hostile])
    assert excinfo.value.value == hostile
    assert excinfo.value.to_dict()["kind"] == "unknown_column"


@pytest.mark.parametrize(
    "spec",
    [
        QuerySpec(table="items", select_columns=("missing",)),
        QuerySpec(table="items", filters=(FilterClause("missing", FilterOperator.EQ, 1),)),
        QuerySpec(table="items", sort=SortSpec("missing")),
        QuerySpec(table="items", group_by="missing"),
        QuerySpec(table="items", aggregate=AggregateSpec("missing", AggregateFunction.SUM)),
    ],
)
def test_validate_spec_checks_every_reference(spec: QuerySpec) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_spec(SCHEMA, spec)
    assert excinfo.value.value == "missing"
