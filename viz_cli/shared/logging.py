"""Rich-based diagnostics for the viz CLIs.

Command payloads (rows, chart JSON) go to stdout from the renderers; every
message here goes to stderr so payloads stay parseable.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
        "sql": "magenta",
    }
)

# Highlighting off and soft wrapping keep identifiers intact in log lines.
_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(slots=True)
class Logger:
    """Leveled messages on stderr; ``debug`` and ``sql`` need ``verbose``."""

    verbose: bool = False

    def info(self, message: str) -> None:
        self._emit(message, "info")

    def success(self, message: str) -> None:
        self._emit(message, "success")

    def warning(self, message: str) -> None:
        self._emit(message, "warning")

    def error(self, message: str) -> None:
        self._emit(message, "error")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(message, "debug")

    def sql(self, statement: str, param_count: int) -> None:
        """Show a built statement; bound values are counted, never printed."""
        if self.verbose:
            self._emit(f"SQL ({param_count} bound): {statement}", "sql")

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Report how long the enclosed block took at debug level."""
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.debug(f"{label} took {elapsed_ms:.1f} ms")

    def _emit(self, message: str, style: str) -> None:
        _console.print(message, style=style, markup=False, soft_wrap=True)


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose)
