"""Project-wide custom exceptions."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class VizCliError(Exception):
    """Base exception for the visualization CLI suite."""


class ConfigurationError(VizCliError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(VizCliError):
    """Raised for database-related issues."""


class SourceNotFoundError(DatabaseError):
    """Raised when a data source id cannot be resolved to a readable database."""


class StructuredError(VizCliError):
    """Failure carrying a machine-readable kind and the offending value.

    Callers branch on ``kind`` instead of matching message text. ``value`` is the
    identifier, role or limit that triggered the failure and never contains SQL.
    """

    category: ClassVar[str] = "error"

    def __init__(self, kind: Enum, message: str, value: Any = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.category,
            "kind": self.kind.value,
            "message": self.message,
            "value": self.value,
        }


class SchemaErrorKind(str, Enum):
    TABLE_NOT_FOUND = "table_not_found"
    EMPTY_SCHEMA = "empty_schema"


class ValidationErrorKind(str, Enum):
    UNKNOWN_COLUMN = "unknown_column"


class BuilderErrorKind(str, Enum):
    INVALID_IDENTIFIER = "invalid_identifier"
    LIMIT_EXCEEDED = "limit_exceeded"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_VALUE = "invalid_value"


class ExecutionErrorKind(str, Enum):
    WRITE_NOT_ALLOWED = "write_not_allowed"
    STORE_FAILURE = "store_failure"
    TIMEOUT = "timeout"


class ShapeErrorKind(str, Enum):
    MISSING_MAPPING = "missing_mapping"
    INVALID_CHART_KIND = "invalid_chart_kind"


class SchemaError(StructuredError):
    """Raised when a table cannot be resolved from the live catalog."""

    category = "schema"
    Kind = SchemaErrorKind


class ValidationError(StructuredError):
    """Raised when an identifier is absent from the live schema."""

    category = "validation"
    Kind = ValidationErrorKind


class BuilderError(StructuredError):
    """Raised when a query specification cannot be turned into SQL."""

    category = "builder"
    Kind = BuilderErrorKind


class ExecutionError(DatabaseError, StructuredError):
    """Raised when a built statement is refused or fails in the store."""

    category = "execution"
    Kind = ExecutionErrorKind


class ShapeError(StructuredError):
    """Raised when rows cannot be shaped for the requested chart."""

    category = "shape"
    Kind = ShapeErrorKind
