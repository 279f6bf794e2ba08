"""Readers that turn boundary datasets into ``GeometryRecord`` streams.

Three layouts are understood:

* a GeoJSON FeatureCollection as published by timezone-boundary-builder,
* a zip archive of GeoJSON entries (each a Feature or a FeatureCollection),
* a GeoParquet table with ``tzid`` and ``geometry`` columns, as written by
  ``scripts/build_tz_world.py``.

Geometry is decoded with shapely; Polygon and MultiPolygon are accepted and a
MultiPolygon yields one record per member polygon.
"""

from __future__ import annotations

import json
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

import shapely
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon, shape

from tzindex.core.errors import DataAcquisitionFailure, MalformedGeometry
from tzindex.core.hashing import sha256_file

from .records import GeometryRecord

logger = logging.getLogger(__name__)

_ZONE_PROPERTIES = ("tzid", "TZID")
_GEOJSON_SUFFIXES = (".geojson", ".json")


@dataclass(frozen=True)
class RecordSource:
    """A single-pass record stream plus what is known about its origin."""

    path: Path
    data_format: str
    records: Iterator[GeometryRecord]
    expected_count: Optional[int]
    sha256_hex: str


def detect_format(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in _GEOJSON_SUFFIXES:
        return "geojson"
    if suffix == ".zip":
        return "zip"
    if suffix in (".parquet", ".geoparquet"):
        return "parquet"
    raise DataAcquisitionFailure(f"cannot infer dataset format from '{path.name}'")


def open_source(path: Path, data_format: str = "auto") -> RecordSource:
    """Open a boundary dataset and return its lazily decoded record stream."""

    path = Path(path).expanduser()
    if not path.is_file():
        raise DataAcquisitionFailure(f"boundary dataset not found: {path}")
    resolved_format = detect_format(path) if data_format == "auto" else data_format
    digest = sha256_file(path)
    logger.info(
        "Opening boundary dataset %s (format=%s, bytes=%s, sha256=%s)",
        path,
        resolved_format,
        digest.size_bytes,
        digest.sha256_hex,
    )
    if resolved_format == "geojson":
        records, expected = _open_geojson(path)
    elif resolved_format == "zip":
        records, expected = _open_zip(path)
    elif resolved_format == "parquet":
        records, expected = _open_parquet(path)
    else:
        raise DataAcquisitionFailure(f"unsupported dataset format '{resolved_format}'")
    return RecordSource(
        path=path,
        data_format=resolved_format,
        records=records,
        expected_count=expected,
        sha256_hex=digest.sha256_hex,
    )


def _open_geojson(path: Path) -> tuple[Iterator[GeometryRecord], int]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DataAcquisitionFailure(f"unable to read GeoJSON '{path}': {exc}") from exc
    features = _features_of(payload, origin=str(path))
    return _iter_features(features, origin=str(path)), len(features)


def _open_zip(path: Path) -> tuple[Iterator[GeometryRecord], int]:
    try:
        with zipfile.ZipFile(path, "r") as archive:
            names = [
                info.filename
                for info in archive.infolist()
                if not info.is_dir() and info.filename.lower().endswith(_GEOJSON_SUFFIXES)
            ]
    except (OSError, zipfile.BadZipFile) as exc:
        raise DataAcquisitionFailure(f"unable to open archive '{path}': {exc}") from exc
    if not names:
        raise DataAcquisitionFailure(f"archive '{path}' does not contain a GeoJSON entry")
    return _iter_zip_entries(path, names), len(names)


def _iter_zip_entries(path: Path, names: list[str]) -> Iterator[GeometryRecord]:
    try:
        archive = zipfile.ZipFile(path, "r")
    except (OSError, zipfile.BadZipFile) as exc:
        raise DataAcquisitionFailure(f"unable to open archive '{path}': {exc}") from exc
    with archive:
        for name in names:
            logger.debug("Processing archive entry %s", name)
            origin = f"{path}!{name}"
            try:
                payload = json.loads(archive.read(name).decode("utf-8"))
            except (OSError, KeyError, zipfile.BadZipFile, UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise DataAcquisitionFailure(f"unable to read archive entry '{origin}': {exc}") from exc
            yield from _iter_features(_features_of(payload, origin=origin), origin=origin)


def _open_parquet(path: Path) -> tuple[Iterator[GeometryRecord], int]:
    import geopandas as gpd

    try:
        frame = gpd.read_parquet(path)
    except Exception as exc:
        raise DataAcquisitionFailure(f"unable to read GeoParquet '{path}': {exc}") from exc
    if "tzid" not in frame.columns:
        raise DataAcquisitionFailure(f"GeoParquet '{path}' is missing the 'tzid' column")
    if frame.crs is not None and frame.crs.to_epsg() != 4326:
        logger.info("Reprojecting %s from %s to EPSG:4326", path.name, frame.crs)
        frame = frame.to_crs("EPSG:4326")
    zone_ids = frame["tzid"].astype(str).to_list()
    geometries = frame.geometry.to_list()
    return _iter_geometries(zip(zone_ids, geometries), origin=str(path)), len(zone_ids)


def _features_of(payload: Any, *, origin: str) -> list[Mapping[str, Any]]:
    if not isinstance(payload, Mapping):
        raise DataAcquisitionFailure(f"'{origin}' is not a GeoJSON object")
    kind = payload.get("type")
    if kind == "FeatureCollection":
        features = payload.get("features")
        if not isinstance(features, list):
            raise DataAcquisitionFailure(f"'{origin}' FeatureCollection has no feature list")
        return features
    if kind == "Feature":
        return [payload]
    raise DataAcquisitionFailure(f"'{origin}' has unsupported GeoJSON type '{kind}'")


def _iter_features(features: list[Mapping[str, Any]], *, origin: str) -> Iterator[GeometryRecord]:
    for position, feature in enumerate(features):
        zone_id = _zone_id_of(feature, origin=origin, position=position)
        raw = feature.get("geometry")
        if not isinstance(raw, Mapping):
            raise MalformedGeometry(zone_id, f"feature {position} in '{origin}' has no geometry")
        try:
            geometry = shape(raw)
        except (GEOSException, ValueError, TypeError, KeyError, AttributeError, IndexError) as exc:
            raise MalformedGeometry(zone_id, f"feature {position} in '{origin}' cannot be decoded: {exc}") from exc
        yield from _records_of(zone_id, geometry)


def _iter_geometries(pairs, *, origin: str) -> Iterator[GeometryRecord]:
    for position, (zone_id, geometry) in enumerate(pairs):
        if geometry is None:
            raise MalformedGeometry(zone_id, f"row {position} in '{origin}' has a null geometry")
        yield from _records_of(zone_id, geometry)


def _zone_id_of(feature: Mapping[str, Any], *, origin: str, position: int) -> str:
    properties = feature.get("properties") or {}
    for key in _ZONE_PROPERTIES:
        value = properties.get(key)
        if isinstance(value, str) and value:
            return value
    raise DataAcquisitionFailure(f"feature {position} in '{origin}' has no tzid property")


def _records_of(zone_id: str, geometry: shapely.Geometry) -> Iterator[GeometryRecord]:
    if geometry.is_empty:
        raise MalformedGeometry(zone_id, "geometry is empty")
    if isinstance(geometry, Polygon):
        yield _record_of_polygon(zone_id, geometry)
    elif isinstance(geometry, MultiPolygon):
        for member in geometry.geoms:
            yield _record_of_polygon(zone_id, member)
    else:
        raise MalformedGeometry(zone_id, f"unsupported geometry type '{geometry.geom_type}'")


def _record_of_polygon(zone_id: str, polygon: Polygon) -> GeometryRecord:
    return GeometryRecord(
        zone_id=zone_id,
        exterior=tuple(polygon.exterior.coords),
        holes=tuple(tuple(ring.coords) for ring in polygon.interiors),
    )


__all__ = ["RecordSource", "detect_format", "open_source"]
