"""Build the tz_world GeoParquet dataset read by ``TimeZoneEngine.initialize``.

Input is a timezone-boundary-builder release archive. Prefer
``timezones.geojson.zip``; the with-oceans variant assigns ``Etc/GMT`` zones
at sea, so open-ocean points would no longer resolve to nothing.
"""
from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import geopandas as gpd
import shapely

from tzindex.core.errors import DataAcquisitionFailure, TzIndexError
from tzindex.core.hashing import FileDigest, sha256_file
from tzindex.core.logging import configure_logging
from tzindex.core.paths import (
    DATASET_FILENAME,
    DEFAULT_DATASET_VERSION,
    find_repo_root,
    package_data_root,
    repo_dataset_path,
    user_data_root,
)
from tzindex.engine import TimeZoneEngine

logger = logging.getLogger("tzindex.scripts.build_tz_world")

# Well-inside points used as a smoke check of the written dataset.
SMOKE_POINTS = {
    "Europe/Berlin": (52.52, 13.405),
    "Asia/Tokyo": (35.6762, 139.6503),
    "America/New_York": (40.7128, -74.006),
}


def extract_geojson(zip_path: Path, target_dir: Path) -> Path:
    """Copy the single GeoJSON member of ``zip_path`` into ``target_dir``."""
    try:
        with zipfile.ZipFile(zip_path) as archive:
            members = [n for n in archive.namelist() if n.lower().endswith((".geojson", ".json"))]
            if len(members) != 1:
                raise DataAcquisitionFailure(
                    f"expected exactly one GeoJSON member in {zip_path.name}, found {len(members)}"
                )
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / Path(members[0]).name
            with archive.open(members[0]) as source, target.open("wb") as out:
                shutil.copyfileobj(source, out)
    except (OSError, zipfile.BadZipFile) as exc:
        raise DataAcquisitionFailure(f"unable to read archive {zip_path}: {exc}") from exc
    logger.info("Extracted %s (%s bytes)", target.name, target.stat().st_size)
    return target


def load_zones(geojson_path: Path) -> gpd.GeoDataFrame:
    """Read, repair and dissolve boundaries to one (Multi)Polygon row per tzid."""
    frame = gpd.read_file(geojson_path)
    if frame.crs is not None and frame.crs.to_epsg() != 4326:
        frame = frame.to_crs("EPSG:4326")
    tz_column = next((c for c in frame.columns if c.lower() == "tzid"), None)
    if tz_column is None:
        raise DataAcquisitionFailure(f"{geojson_path.name} has no tzid property")
    frame = frame.rename(columns={tz_column: "tzid"})[["tzid", "geometry"]]
    frame = frame[frame.geometry.notna() & ~frame.geometry.is_empty]
    frame["tzid"] = frame["tzid"].astype(str)

    invalid = int((~frame.geometry.is_valid).sum())
    if invalid:
        logger.info("Repairing %s invalid geometries", invalid)
    frame["geometry"] = frame.geometry.apply(shapely.make_valid)
    # make_valid can turn slivers into collections; only areal parts are kept.
    frame = frame.explode(index_parts=False)
    frame = frame[frame.geom_type.isin(["Polygon", "MultiPolygon"])]
    return frame.dissolve(by="tzid", as_index=False).sort_values("tzid").reset_index(drop=True)


def smoke_check(parquet_path: Path) -> Dict[str, Optional[str]]:
    """Build an engine from the written dataset and resolve a few known cities."""
    engine = TimeZoneEngine.initialize(source=parquet_path)
    results = {expected: engine.query(*point) for expected, point in SMOKE_POINTS.items()}
    mismatched = {k: v for k, v in results.items() if v != k}
    if mismatched:
        raise DataAcquisitionFailure(f"smoke check failed for {sorted(mismatched)}: got {mismatched}")
    logger.info("Smoke check passed (%s zones indexed)", len(engine.known_zone_ids()))
    return results


def destination_path(destination: str, version: str, root: Path) -> Path:
    if destination == "package":
        return package_data_root() / "tz_world" / version / DATASET_FILENAME
    if destination == "user":
        return user_data_root() / "tz_world" / version / DATASET_FILENAME
    return repo_dataset_path(version, repo_root=root)


def _display(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix() if path.is_relative_to(root) else str(path)


def write_dataset(zones: gpd.GeoDataFrame, source: FileDigest, version: str, parquet_path: Path, root: Path) -> Path:
    output_dir = parquet_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)
    zones.to_parquet(parquet_path, index=False)

    qa_path = output_dir / "tz_world.qa.json"
    qa = {
        "tz_count": int(zones["tzid"].nunique()),
        "polygon_count": int(len(zones.explode(index_parts=False))),
        "smoke_check": smoke_check(parquet_path),
    }
    qa_path.write_text(json.dumps(qa, indent=2) + "\n", encoding="utf-8")

    output = sha256_file(parquet_path)
    qa_digest = sha256_file(qa_path)
    manifest = {
        "dataset_id": "tz_world",
        "version": version,
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "generator_script": "scripts/build_tz_world.py",
        "source_geojson_sha256": source.sha256_hex,
        "output_parquet": _display(parquet_path, root),
        "output_parquet_sha256": output.sha256_hex,
        "output_bytes": output.size_bytes,
        "tz_count": qa["tz_count"],
    }
    (output_dir / "tz_world.manifest.json").write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    sums = [digest.sums_line(relative_to=root) for digest in (source, output, qa_digest)]
    (output_dir / "SHA256SUMS").write_text("\n".join(sums) + "\n", encoding="utf-8")
    return parquet_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build the tz_world GeoParquet dataset")
    parser.add_argument("--zip", required=True, type=Path, help="timezone-boundary-builder release archive")
    parser.add_argument("--version", default=DEFAULT_DATASET_VERSION, help="Dataset version directory")
    parser.add_argument("--work-dir", type=Path, default=None, help="Scratch directory for the extracted GeoJSON")
    parser.add_argument(
        "--destination",
        choices=("repo", "package", "user"),
        default="repo",
        help="Write under reference/spatial, inside the package data directory, or the user data directory",
    )
    args = parser.parse_args(argv)
    configure_logging(logging.INFO)

    try:
        root = find_repo_root()
        work_dir = args.work_dir or root / "artefacts" / "spatial" / "tz_world" / args.version
        geojson_path = extract_geojson(args.zip.resolve(), work_dir)
        zones = load_zones(geojson_path)
        logger.info("Dissolved %s zones", len(zones))
        target = destination_path(args.destination, args.version, root)
        parquet_path = write_dataset(zones, sha256_file(geojson_path), args.version, target, root)
    except TzIndexError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(f"tz_world written to: {parquet_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
