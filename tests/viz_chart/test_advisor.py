from __future__ import annotations

from viz_cli.viz_chart.advisor import rank_columns, score_column, suggest, suggest_for_chart
from viz_cli.viz_query.types import ColumnDescriptor, SemanticType, TableSchema


def _schema(*columns: tuple[str, SemanticType]) -> TableSchema:
    return TableSchema(
        table_name="t",
        columns=tuple(ColumnDescriptor(name, semantic.value, semantic) for name, semantic in columns),
    )


SALES = _schema(
    ("id", SemanticType.NUMERIC),
    ("total_revenue", SemanticType.NUMERIC),
    ("category", SemanticType.TEXT),
)


def test_value_role_prefers_numeric_metric_columns() -> None:
    assert [column.name for column in suggest(SALES, "y")] == ["total_revenue", "id"]

    scores = {entry.column.name: entry.score for entry in rank_columns(SALES, "y")}
    # "y" occurs in "category": +50 name match, -50 not numeric.
    assert scores == {"total_revenue": 70, "id": 40, "category": 0}
    excluded = {entry.column.name for entry in rank_columns(SALES, "y") if entry.excluded}
    assert excluded == {"category"}


def test_category_role_prefers_text_and_penalises_ids() -> None:
    schema = _schema(
        ("customer_id", SemanticType.NUMERIC),
        ("amount", SemanticType.NUMERIC),
        ("region", SemanticType.TEXT),
        ("created_at", SemanticType.DATE),
    )

    ranked = rank_columns(schema, "x")

    assert [entry.column.name for entry in ranked] == ["region", "created_at", "amount", "customer_id"]
    assert [entry.score for entry in ranked] == [50, 25, 0, -20]
    assert [column.name for column in suggest(schema, "x")] == ["region", "created_at", "amount"]


def test_exact_and_partial_name_matches() -> None:
    schema = _schema(("values_total", SemanticType.NUMERIC), ("values", SemanticType.NUMERIC))

    assert score_column(schema.columns[1], "values").score == 100 + 40
    assert score_column(schema.columns[0], "values").reasons[0] == "partial name match"


def test_single_letter_role_matches_as_substring() -> None:
    schema = _schema(("tax_rate", SemanticType.NUMERIC), ("y", SemanticType.TEXT), ("v", SemanticType.NUMERIC))

    tax_rate = score_column(schema.columns[0], "x")
    assert tax_rate.score == 50
    assert tax_rate.reasons == ("partial name match",)
    assert score_column(schema.columns[1], "y").score == 100 - 50
    assert score_column(schema.columns[2], "values").score == 50 + 40


def test_non_numeric_value_column_is_never_suggested() -> None:
    schema = _schema(("yield", SemanticType.TEXT), ("units", SemanticType.NUMERIC))

    entry = score_column(schema.columns[0], "y")
    assert entry.score == 0
    assert entry.suitable is False
    assert [column.name for column in suggest(schema, "y")] == ["units"]


def test_ties_keep_catalog_order() -> None:
    schema = _schema(("d", SemanticType.NUMERIC), ("b", SemanticType.NUMERIC), ("c", SemanticType.NUMERIC))

    assert [column.name for column in suggest(schema, "values")] == ["d", "b", "c"]


def test_date_roles() -> None:
    schema = _schema(("label", SemanticType.TEXT), ("shipped", SemanticType.DATE))

    assert suggest(schema, "date")[0].name == "shipped"


def test_empty_schema_returns_nothing() -> None:
    assert suggest(TableSchema(table_name="t", columns=()), "x") == []


def test_suggest_for_chart_covers_every_role() -> None:
    suggestions = suggest_for_chart(SALES, "pie")

    assert list(suggestions) == ["labels", "values"]
    assert suggestions["labels"][0].name == "category"
    assert suggestions["values"][0].name == "total_revenue"
