"""Map declared column type strings to semantic categories."""

from __future__ import annotations

import re

from .types import SemanticType

# Checked in order; the first rule set that matches wins.
TYPE_RULES: tuple[tuple[SemanticType, re.Pattern[str]], ...] = (
    (SemanticType.NUMERIC, re.compile(r"int|float|double|decimal|numeric|number|real", re.IGNORECASE)),
    (SemanticType.TEXT, re.compile(r"text|char|string|var", re.IGNORECASE)),
    (SemanticType.DATE, re.compile(r"date|time", re.IGNORECASE)),
)


def classify(declared_type: str | None) -> SemanticType:
    """Return the semantic type for a declared column type. Never raises."""
    if not declared_type:
        return SemanticType.UNKNOWN
    for semantic_type, pattern in TYPE_RULES:
        if pattern.search(declared_type):
            return semantic_type
    return SemanticType.UNKNOWN


def is_numeric(declared_type: str | None) -> bool:
    return classify(declared_type) is SemanticType.NUMERIC
