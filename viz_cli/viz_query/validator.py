"""Identifier allow-listing against a freshly fetched schema."""

from __future__ import annotations

from collections.abc import Iterable

from viz_cli.shared.exceptions import ValidationError

from .types import QuerySpec, TableSchema


def validate(schema: TableSchema, identifiers: Iterable[str]) -> None:
    """Raise ``ValidationError`` for the first identifier not in ``schema``.

    Matching is exact and case-sensitive. Only the offending name is reported.
    """
    known = set(schema.column_names)
    for identifier in identifiers:
        if not isinstance(identifier, str) or identifier not in known:
            raise ValidationError(
                ValidationError.Kind.UNKNOWN_COLUMN,
                f"Column '{identifier}' does not exist in table '{schema.table_name}'.",
                identifier,
            )


def validate_spec(schema: TableSchema, spec: QuerySpec) -> None:
    """Validate every column a QuerySpec references."""
    validate(schema, spec.referenced_columns())
