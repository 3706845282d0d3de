"""Fixed colour palette and style hints for shaped datasets."""

from __future__ import annotations

PALETTE: tuple[str, ...] = (
    "#2563EB",
    "#D946EF",
    "#F59E0B",
    "#10B981",
    "#6366F1",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#06B6D4",
    "#84CC16",
)

SEGMENT_BORDER_COLOR = "#FFFFFF"
SEGMENT_BORDER_WIDTH = 1
FILL_ALPHA = "33"


def color_at(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def colors(count: int, *, start: int = 0) -> list[str]:
    """Return ``count`` palette colours, cycling once the palette is exhausted."""
    return [color_at(start + offset) for offset in range(max(count, 0))]


def translucent(color: str) -> str:
    """Append an alpha channel to a ``#RRGGBB`` colour."""
    return f"{color}{FILL_ALPHA}"
