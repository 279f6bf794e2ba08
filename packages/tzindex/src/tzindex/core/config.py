"""Engine configuration loaded from YAML files and environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from tzindex.core.errors import ConfigurationError
from tzindex.core.logging import parse_level

DATA_FORMATS = ("auto", "geojson", "zip", "parquet")
DEFAULT_NODE_CAPACITY = 16

_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "data_path": {"type": "string", "minLength": 1},
        "data_format": {"enum": list(DATA_FORMATS)},
        "node_capacity": {"type": "integer", "minimum": 2},
        "build_workers": {"type": "integer", "minimum": 1},
        "log_level": {"type": "string", "minLength": 1},
    },
}
_CONFIG_VALIDATOR = Draft202012Validator(_CONFIG_SCHEMA)

_ENV_PREFIX = "TZINDEX_"


@dataclass(frozen=True)
class EngineConfig:
    data_path: Optional[Path] = None
    data_format: str = "auto"
    node_capacity: int = DEFAULT_NODE_CAPACITY
    build_workers: int = 1
    log_level: int = logging.INFO

    @classmethod
    def default(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Defaults overlaid with any ``TZINDEX_*`` environment variables."""
        env = os.environ if environ is None else environ
        return cls().with_overrides(_from_environment(env))

    def with_overrides(self, overrides: Mapping[str, Any]) -> "EngineConfig":
        if not overrides:
            return self
        return replace(self, **_coerce(dict(overrides), source="overrides"))


def load_config(path: Path, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Load a YAML config file; environment variables take precedence over the file."""
    if not path.exists():
        raise FileNotFoundError(f"config file not found: {path}")
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"config file '{path}' must contain a mapping")
    errors = sorted(_CONFIG_VALIDATOR.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(error.message for error in errors)
        raise ConfigurationError(f"config file '{path}' violates schema: {details}")
    data_path = payload.get("data_path")
    if data_path is not None:
        candidate = Path(data_path).expanduser()
        if not candidate.is_absolute():
            candidate = path.parent / candidate
        payload["data_path"] = candidate
    env = os.environ if environ is None else environ
    return EngineConfig().with_overrides(payload).with_overrides(_from_environment(env))


def _from_environment(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field_name in ("data_path", "data_format", "node_capacity", "build_workers", "log_level"):
        raw = env.get(_ENV_PREFIX + field_name.upper())
        if raw is None or not raw.strip():
            continue
        overrides[field_name] = raw.strip()
    return _coerce(overrides, source="environment")


def _coerce(values: dict[str, Any], *, source: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in values.items():
        if key == "data_path":
            result[key] = Path(value).expanduser()
        elif key == "data_format":
            if value not in DATA_FORMATS:
                raise ConfigurationError(
                    f"{source}: data_format must be one of {', '.join(DATA_FORMATS)} (saw '{value}')"
                )
            result[key] = value
        elif key in ("node_capacity", "build_workers"):
            try:
                number = int(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{source}: {key} must be an integer (saw '{value}')") from exc
            minimum = 2 if key == "node_capacity" else 1
            if number < minimum:
                raise ConfigurationError(f"{source}: {key} must be >= {minimum} (saw {number})")
            result[key] = number
        elif key == "log_level":
            try:
                result[key] = parse_level(value)
            except ValueError as exc:
                raise ConfigurationError(f"{source}: {exc}") from exc
        else:
            raise ConfigurationError(f"{source}: unknown setting '{key}'")
    return result


__all__ = ["DATA_FORMATS", "DEFAULT_NODE_CAPACITY", "EngineConfig", "load_config"]
