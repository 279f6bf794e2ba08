from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from tzindex.core.config import EngineConfig, load_config
from tzindex.core.errors import ConfigurationError
from tzindex.core.logging import parse_level


def test_defaults_without_environment() -> None:
    config = EngineConfig.default(environ={})
    assert config == EngineConfig()
    assert config.data_path is None
    assert config.node_capacity == 16
    assert config.build_workers == 1
    assert config.log_level == logging.INFO


def test_environment_overrides() -> None:
    config = EngineConfig.default(
        environ={
            "TZINDEX_DATA_PATH": "/data/tz_world.parquet",
            "TZINDEX_DATA_FORMAT": "parquet",
            "TZINDEX_NODE_CAPACITY": "8",
            "TZINDEX_BUILD_WORKERS": "4",
            "TZINDEX_LOG_LEVEL": "debug",
        }
    )
    assert config.data_path == Path("/data/tz_world.parquet")
    assert config.data_format == "parquet"
    assert config.node_capacity == 8
    assert config.build_workers == 4
    assert config.log_level == logging.DEBUG


@pytest.mark.parametrize(
    "name, value",
    [
        ("TZINDEX_NODE_CAPACITY", "one"),
        ("TZINDEX_NODE_CAPACITY", "1"),
        ("TZINDEX_BUILD_WORKERS", "0"),
        ("TZINDEX_DATA_FORMAT", "shapefile"),
        ("TZINDEX_LOG_LEVEL", "chatty"),
    ],
)
def test_invalid_environment_values(name: str, value: str) -> None:
    with pytest.raises(ConfigurationError):
        EngineConfig.default(environ={name: value})


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "tzindex.yaml"
    path.write_text(
        yaml.safe_dump({"data_path": "reference/tz_world.parquet", "node_capacity": 32, "build_workers": 2}),
        encoding="utf-8",
    )
    config = load_config(path, environ={})
    assert config.data_path == tmp_path / "reference/tz_world.parquet"
    assert config.node_capacity == 32
    assert config.build_workers == 2
    assert config.data_format == "auto"


def test_environment_beats_yaml(tmp_path: Path) -> None:
    path = tmp_path / "tzindex.yaml"
    path.write_text("build_workers: 2\n", encoding="utf-8")
    config = load_config(path, environ={"TZINDEX_BUILD_WORKERS": "6"})
    assert config.build_workers == 6


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "tzindex.yaml"
    path.write_text("node_capacity: 8\nunexpected: true\n", encoding="utf-8")
    with pytest.raises(ConfigurationError) as exc:
        load_config(path, environ={})
    assert "unexpected" in str(exc.value)


def test_schema_types_are_enforced(tmp_path: Path) -> None:
    path = tmp_path / "tzindex.yaml"
    path.write_text("node_capacity: many\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})


def test_invalid_yaml_syntax(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("node_capacity: [8\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})


def test_non_mapping_yaml(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_parse_level() -> None:
    assert parse_level("warning") == logging.WARNING
    assert parse_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError):
        parse_level("loud")
