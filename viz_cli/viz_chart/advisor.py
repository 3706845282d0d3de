"""Suggest columns for chart roles from name and semantic-type signals.

Scoring is table driven: each role family owns a list of rules, and a column's
score is the sum of the weights of the rules it satisfies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from viz_cli.viz_query.types import ColumnDescriptor, SemanticType, TableSchema

from .roles import roles_for
from .types import ChartKind

EXACT_MATCH_WEIGHT = 100
SUBSTRING_MATCH_WEIGHT = 50

CATEGORY_ROLES = frozenset({"x", "labels", "categories", "dimension", "group"})
VALUE_ROLES = frozenset({"y", "values", "metrics", "measure", "value"})
DATE_ROLES = frozenset({"date", "time", "timestamp", "datetime"})

CATEGORY_NAME_HINTS = ("name", "category", "type", "department", "group", "class", "region")
METRIC_NAME_HINTS = ("count", "total", "sum", "amount", "price", "cost", "revenue", "profit", "sales")

Predicate = Callable[[ColumnDescriptor], bool]


def _name_contains(hints: tuple[str, ...]) -> Predicate:
    return lambda column: any(hint in column.name.lower() for hint in hints)


def _semantic_is(semantic_type: SemanticType) -> Predicate:
    return lambda column: column.semantic_type is semantic_type


def _is_id_column(column: ColumnDescriptor) -> bool:
    name = column.name.lower()
    return name == "id" or name.endswith("_id")


@dataclass(frozen=True, slots=True)
class ScoringRule:
    reason: str
    weight: int
    applies: Predicate
    # A matching rule marks the column unusable for the role whatever its score.
    excludes: bool = False


CATEGORY_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("category-like name", 30, _name_contains(CATEGORY_NAME_HINTS)),
    ScoringRule("date column", 25, _semantic_is(SemanticType.DATE)),
    ScoringRule("text column", 20, _semantic_is(SemanticType.TEXT)),
    ScoringRule("identifier column", -20, _is_id_column),
)

VALUE_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("metric-like name", 30, _name_contains(METRIC_NAME_HINTS)),
    ScoringRule("numeric column", 40, _semantic_is(SemanticType.NUMERIC)),
    ScoringRule(
        "not numeric",
        -50,
        lambda column: column.semantic_type is not SemanticType.NUMERIC,
        excludes=True,
    ),
)

DATE_RULES: tuple[ScoringRule, ...] = (ScoringRule("date column", 40, _semantic_is(SemanticType.DATE)),)

ROLE_FAMILIES: tuple[tuple[frozenset[str], tuple[ScoringRule, ...]], ...] = (
    (CATEGORY_ROLES, CATEGORY_RULES),
    (VALUE_ROLES, VALUE_RULES),
    (DATE_ROLES, DATE_RULES),
)


@dataclass(frozen=True, slots=True)
class ColumnScore:
    column: ColumnDescriptor
    score: int
    reasons: tuple[str, ...] = ()
    excluded: bool = False

    @property
    def suitable(self) -> bool:
        return not self.excluded and self.score >= 0


def _name_score(column_name: str, role: str) -> tuple[int, str | None]:
    name = column_name.lower()
    if name == role:
        return EXACT_MATCH_WEIGHT, "exact name match"
    if role in name or name in role:
        return SUBSTRING_MATCH_WEIGHT, "partial name match"
    return 0, None


def score_column(column: ColumnDescriptor, role: str) -> ColumnScore:
    normalized = role.strip().lower()
    score, reason = _name_score(column.name, normalized)
    reasons = [reason] if reason else []
    excluded = False
    for roles, rules in ROLE_FAMILIES:
        if normalized not in roles:
            continue
        for rule in rules:
            if rule.applies(column):
                score += rule.weight
                reasons.append(rule.reason)
                excluded = excluded or rule.excludes
    return ColumnScore(column=column, score=score, reasons=tuple(reasons), excluded=excluded)


def rank_columns(schema: TableSchema, role: str) -> list[ColumnScore]:
    """Score every column for ``role``, highest first, catalog order on ties."""
    scored = [score_column(column, role) for column in schema.columns]
    return sorted(scored, key=lambda entry: -entry.score)


def suggest(schema: TableSchema, role: str) -> list[ColumnDescriptor]:
    """Return suitable columns for ``role``, best first.

    Columns with a negative score, or hit by an excluding rule, are left out.
    """
    return [entry.column for entry in rank_columns(schema, role) if entry.suitable]


def suggest_for_chart(schema: TableSchema, kind: ChartKind | str) -> dict[str, list[ColumnDescriptor]]:
    """Return suggestions for every role of ``kind`` in role order."""
    return {definition.role: suggest(schema, definition.role) for definition in roles_for(kind)}
