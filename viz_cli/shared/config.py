"""Configuration loading utilities for the visualization CLI suite."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError, SourceNotFoundError


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Bounds applied to every built and executed query."""

    default_limit: int
    max_limit: int
    timeout_seconds: float
    max_rows: int


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    sources: Mapping[str, Path]
    default_source: str | None
    query: QuerySettings

    def with_source(self, source_id: str, path: str | Path) -> AppConfig:
        """Return a copy with an additional (or replaced) data source."""
        updated = dict(self.sources)
        updated[source_id] = paths.source_path(path)
        return replace(self, sources=updated)

    def resolve_source(self, source_id: str | None) -> Path:
        """Map a source id (or a direct file path) to a database path."""
        effective = source_id or self.default_source
        if not effective:
            raise SourceNotFoundError("No data source given and no default_source configured.")
        if effective in self.sources:
            return self.sources[effective]
        candidate = paths.source_path(effective)
        if candidate.is_file():
            return candidate
        known = ", ".join(sorted(self.sources)) or "none"
        raise SourceNotFoundError(f"Unknown data source '{effective}'. Configured sources: {known}.")


DEFAULT_LIMIT = 100
MAX_LIMIT = 100_000
DEFAULT_TIMEOUT_SECONDS = 30.0


def _default_config() -> dict[str, Any]:
    return {
        "sources": {},
        "default_source": None,
        "query": {
            "default_limit": DEFAULT_LIMIT,
            "max_limit": MAX_LIMIT,
            "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
            "max_rows": None,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "default_source": ("VIZCLI_DEFAULT_SOURCE", str),
    "query.default_limit": ("VIZCLI_QUERY_DEFAULT_LIMIT", int),
    "query.max_limit": ("VIZCLI_QUERY_MAX_LIMIT", int),
    "query.timeout_seconds": ("VIZCLI_QUERY_TIMEOUT", float),
    "query.max_rows": ("VIZCLI_QUERY_MAX_ROWS", int),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config()
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.expand(config_path)
    return paths.config_file(env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        raw_sources = data["sources"] or {}
        if not isinstance(raw_sources, Mapping):
            raise TypeError("'sources' must be a mapping of source id to database path")
        base_dir = source_path.parent
        sources = {
            str(key): paths.source_path(value, relative_to=base_dir) for key, value in raw_sources.items()
        }
        default_source = data.get("default_source")
        query_cfg = data["query"]
        max_limit = int(query_cfg["max_limit"])
        raw_max_rows = query_cfg.get("max_rows")
        query = QuerySettings(
            default_limit=int(query_cfg["default_limit"]),
            max_limit=max_limit,
            timeout_seconds=float(query_cfg["timeout_seconds"]),
            max_rows=int(raw_max_rows) if raw_max_rows is not None else max_limit,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if query.default_limit <= 0 or query.max_limit <= 0:
        raise ConfigurationError("Query limits must be positive integers.")
    if query.default_limit > query.max_limit:
        raise ConfigurationError(
            f"query.default_limit ({query.default_limit}) exceeds query.max_limit ({query.max_limit})."
        )
    if query.timeout_seconds < 0:
        raise ConfigurationError("query.timeout_seconds must be zero (disabled) or positive.")

    return AppConfig(
        source_path=source_path,
        sources=sources,
        default_source=str(default_source) if default_source else None,
        query=query,
    )
