"""Client-side numeric parsing and aggregation for chart shaping."""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Sequence

from viz_cli.viz_query.types import AggregateFunction

Number = int | float


def parse_number(value: Any) -> Number | None:
    """Return ``value`` as a finite number, or None when it does not parse.

    Integers stay integers. Booleans, blanks and NaN are not numbers here.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        parsed = float(text)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def _average(values: Sequence[Number]) -> Number | None:
    return sum(values) / len(values) if values else None


_REDUCERS: dict[AggregateFunction, Callable[[Sequence[Number]], Number | None]] = {
    AggregateFunction.SUM: lambda values: sum(values),
    AggregateFunction.AVG: _average,
    AggregateFunction.MIN: lambda values: min(values) if values else None,
    AggregateFunction.MAX: lambda values: max(values) if values else None,
    AggregateFunction.COUNT: len,
}


def aggregate(values: Iterable[Any], function: AggregateFunction | str) -> Number | None:
    """Reduce ``values`` with ``function``; unparsable values are excluded."""
    numbers = [number for number in (parse_number(value) for value in values) if number is not None]
    return _REDUCERS[AggregateFunction(function)](numbers)
