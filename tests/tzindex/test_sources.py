from __future__ import annotations

import hashlib
import json
import zipfile
from pathlib import Path

import pytest

from conftest import WORLD_FEATURES, feature_collection
from tzindex.core.errors import DataAcquisitionFailure, MalformedGeometry
from tzindex.lookup import detect_format, open_source


def test_geojson_source_splits_multipolygons(world_geojson: Path) -> None:
    source = open_source(world_geojson)
    assert source.data_format == "geojson"
    assert source.expected_count == len(WORLD_FEATURES)
    assert source.sha256_hex == hashlib.sha256(world_geojson.read_bytes()).hexdigest()
    records = list(source.records)
    zone_ids = [record.zone_id for record in records]
    assert zone_ids.count("Pacific/Honolulu") == 2
    rome = next(record for record in records if record.zone_id == "Europe/Rome")
    assert len(rome.holes) == 1


def test_uppercase_tzid_property_is_accepted(tmp_path: Path) -> None:
    payload = feature_collection(WORLD_FEATURES[:1])
    payload["features"][0]["properties"] = {"TZID": "Europe/Berlin"}
    path = tmp_path / "tz_world.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    records = list(open_source(path).records)
    assert [record.zone_id for record in records] == ["Europe/Berlin"]


def test_zip_source_reads_every_entry(tmp_path: Path) -> None:
    path = tmp_path / "timezones.zip"
    collection = feature_collection(WORLD_FEATURES[:3])
    single = feature_collection(WORLD_FEATURES[3:4])["features"][0]
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("combined.json", json.dumps(collection))
        archive.writestr("nested/vatican.geojson", json.dumps(single))
        archive.writestr("README.txt", "not geometry")
    source = open_source(path)
    assert source.data_format == "zip"
    assert source.expected_count == 2
    assert [record.zone_id for record in source.records] == [
        "Europe/Berlin",
        "Europe/Paris",
        "Europe/Rome",
        "Europe/Vatican",
    ]


def test_zip_without_geojson_fails(tmp_path: Path) -> None:
    path = tmp_path / "empty.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("README.txt", "nothing here")
    with pytest.raises(DataAcquisitionFailure):
        open_source(path)


def test_corrupt_zip_fails(tmp_path: Path) -> None:
    path = tmp_path / "corrupt.zip"
    path.write_bytes(b"definitely not a zip archive")
    with pytest.raises(DataAcquisitionFailure):
        open_source(path)


def test_missing_tzid_fails(tmp_path: Path) -> None:
    payload = feature_collection(WORLD_FEATURES[:1])
    payload["features"][0]["properties"] = {"name": "Berlin"}
    path = tmp_path / "no_tzid.geojson"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(DataAcquisitionFailure):
        list(open_source(path).records)


def test_non_polygon_geometry_is_malformed(tmp_path: Path) -> None:
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"tzid": "Europe/Berlin"},
                "geometry": {"type": "Point", "coordinates": [13.4, 52.5]},
            }
        ],
    }
    path = tmp_path / "points.geojson"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(MalformedGeometry) as exc:
        list(open_source(path).records)
    assert exc.value.zone_id == "Europe/Berlin"


def test_unexpected_geojson_type_fails(tmp_path: Path) -> None:
    path = tmp_path / "geometry.geojson"
    path.write_text(json.dumps({"type": "Polygon", "coordinates": []}), encoding="utf-8")
    with pytest.raises(DataAcquisitionFailure):
        open_source(path)


def test_geoparquet_without_tzid_fails(tmp_path: Path) -> None:
    gpd = pytest.importorskip("geopandas")
    frame = gpd.GeoDataFrame({"name": ["x"]}, geometry=[WORLD_FEATURES[0][1]], crs="EPSG:4326")
    path = tmp_path / "no_tzid.parquet"
    frame.to_parquet(path)
    with pytest.raises(DataAcquisitionFailure):
        open_source(path)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a.geojson", "geojson"),
        ("a.JSON", "geojson"),
        ("a.zip", "zip"),
        ("a.parquet", "parquet"),
    ],
)
def test_detect_format(name: str, expected: str) -> None:
    assert detect_format(Path(name)) == expected


def test_detect_format_rejects_unknown_suffix() -> None:
    with pytest.raises(DataAcquisitionFailure):
        detect_format(Path("tz_world.shp"))
