"""Chart specifications and shaped chart payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from viz_cli.shared.exceptions import ShapeError
from viz_cli.viz_query.types import AggregateFunction


class ChartKind(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    SCATTER = "scatter"
    RADAR = "radar"

    @classmethod
    def parse(cls, raw: Any) -> ChartKind:
        """Accept a ChartKind or a case-insensitive kind name."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError as exc:
            choices = ", ".join(kind.value for kind in cls)
            raise ShapeError(
                ShapeError.Kind.INVALID_CHART_KIND,
                f"Unsupported chart kind '{raw}'. Expected one of: {choices}.",
                raw,
            ) from exc


@dataclass(frozen=True, slots=True)
class ChartSpec:
    """Chart kind plus role -> column mappings and per-role aggregates.

    ``grouped_upstream`` is set when the rows were already grouped by SQL, so
    the shaper must not group them again. ``row_keys`` names the row column
    for a role when SQL returned it under an alias.
    """

    kind: ChartKind
    mappings: Mapping[str, str]
    aggregations: Mapping[str, AggregateFunction] = field(default_factory=dict)
    title: str | None = None
    grouped_upstream: bool = False
    row_keys: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls,
        kind: Any,
        mappings: Mapping[str, str],
        *,
        title: str | None = None,
        grouped_upstream: bool = False,
    ) -> ChartSpec:
        """Build a spec from ``{"y": "revenue|sum"}`` style mapping notation."""
        from .roles import parse_mapping

        columns: dict[str, str] = {}
        aggregations: dict[str, AggregateFunction] = {}
        for role, raw in mappings.items():
            if raw is None or not str(raw).strip():
                continue
            column, function = parse_mapping(str(raw))
            columns[role] = column
            if function is not None:
                aggregations[role] = function
        return cls(
            kind=ChartKind.parse(kind),
            mappings=columns,
            aggregations=aggregations,
            title=title,
            grouped_upstream=grouped_upstream,
        )

    def column_for(self, role: str) -> str | None:
        return self.mappings.get(role)

    def aggregation_for(self, role: str) -> AggregateFunction | None:
        return self.aggregations.get(role)

    def row_key(self, role: str) -> str | None:
        """Return the row column holding ``role``'s values."""
        return self.row_keys.get(role) or self.mappings.get(role)


@dataclass(frozen=True, slots=True)
class ScatterPoint:
    x: float
    y: float
    r: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "r": self.r}


@dataclass(frozen=True, slots=True)
class Dataset:
    """One labelled series; ``data`` holds numbers or scatter points."""

    label: str
    data: tuple[Any, ...]
    style: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "label": self.label,
            "data": [item.to_dict() if isinstance(item, ScatterPoint) else item for item in self.data],
        }
        payload.update(self.style)
        return payload


@dataclass(frozen=True, slots=True)
class ChartData:
    kind: ChartKind
    labels: tuple[str, ...] = ()
    datasets: tuple[Dataset, ...] = ()
    title: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.labels and not self.datasets

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind.value,
            "labels": list(self.labels),
            "datasets": [dataset.to_dict() for dataset in self.datasets],
        }
        if self.title:
            payload["title"] = self.title
        return payload
