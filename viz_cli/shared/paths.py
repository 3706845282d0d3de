"""Where the config file lives and how data source paths are resolved."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

CONFIG_DIR_ENV = "VIZCLI_CONFIG_DIR"
CONFIG_FILE_ENV = "VIZCLI_CONFIG_PATH"

DEFAULT_CONFIG_DIR = "~/.vizcli"
DEFAULT_CONFIG_FILE = "config.yaml"


def expand(raw: str | Path) -> Path:
    """Expand ``~`` and ``$VARS`` in ``raw``."""
    return Path(os.path.expandvars(str(raw))).expanduser()


def config_file(env: Mapping[str, str] | None = None, *, create_parents: bool = False) -> Path:
    """Locate config.yaml: ``VIZCLI_CONFIG_PATH``, else ``VIZCLI_CONFIG_DIR/config.yaml``."""
    env = os.environ if env is None else env
    override = env.get(CONFIG_FILE_ENV)
    if override:
        path = expand(override)
    else:
        path = expand(env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)) / DEFAULT_CONFIG_FILE
    if create_parents:
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


def source_path(raw: str | Path, *, relative_to: Path | None = None) -> Path:
    """Resolve a data source entry to a database path.

    Relative entries read from a config file are anchored at that file's
    directory; everything else is taken relative to the working directory.
    """
    path = expand(raw)
    if relative_to is not None and not path.is_absolute():
        return relative_to / path
    return path
