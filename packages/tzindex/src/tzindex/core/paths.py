"""Locations of the boundary dataset.

Without an explicit path the engine looks, in order, for a dataset shipped as
package data, one installed in the user data directory, and one built into a
source checkout by ``scripts/build_tz_world.py``.
"""

from __future__ import annotations

import os
from importlib import resources
from pathlib import Path
from typing import Mapping, Optional

from tzindex.core.errors import DataAcquisitionFailure

DEFAULT_DATASET_VERSION = "2025a"
DATASET_FILENAME = "tz_world.parquet"


def _versioned(base: Path, version: str) -> Path:
    return base / "tz_world" / version / DATASET_FILENAME


def package_data_root() -> Path:
    """Directory holding datasets shipped inside the installed package."""
    return Path(str(resources.files("tzindex"))) / "data"


def user_data_root(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base).expanduser() / "tzindex"


def find_repo_root(start: Optional[Path] = None) -> Path:
    anchor = start or Path(__file__).resolve()
    for parent in [anchor] + list(anchor.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    raise DataAcquisitionFailure("Unable to locate repo root (missing pyproject.toml).")


def repo_dataset_path(version: str = DEFAULT_DATASET_VERSION, repo_root: Optional[Path] = None) -> Path:
    """Location written by ``scripts/build_tz_world.py`` in a source checkout."""
    root = repo_root or find_repo_root()
    return _versioned(root / "reference" / "spatial", version)


def dataset_candidates(version: str = DEFAULT_DATASET_VERSION) -> list[Path]:
    candidates = [
        _versioned(package_data_root(), version),
        _versioned(user_data_root(), version),
    ]
    try:
        candidates.append(repo_dataset_path(version))
    except DataAcquisitionFailure:
        pass  # installed from a wheel; there is no checkout to search
    return candidates


def default_dataset_path(version: str = DEFAULT_DATASET_VERSION) -> Path:
    """First existing dataset among :func:`dataset_candidates`."""
    candidates = dataset_candidates(version)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    searched = ", ".join(str(c) for c in candidates)
    raise DataAcquisitionFailure(
        f"no tz_world {version} dataset found (searched {searched}); "
        "set TZINDEX_DATA_PATH or build one with scripts/build_tz_world.py"
    )
