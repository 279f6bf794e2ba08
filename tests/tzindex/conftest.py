from __future__ import annotations

import json
from pathlib import Path

import pytest
from shapely.geometry import MultiPolygon, Polygon, mapping

from tzindex import GeometryRecord, TimeZoneEngine

# Coarse stand-ins for real zone outlines, (lon, lat) order. Berlin and Paris
# share the lon=5.9 edge between lat 47.3 and 51.0; Rome has a hole that
# Vatican fills; Honolulu is two islands.
BERLIN = Polygon([(5.9, 47.3), (15.0, 47.3), (15.0, 55.0), (5.9, 55.0)])
PARIS = Polygon([(-5.0, 42.3), (5.9, 42.3), (5.9, 51.0), (-5.0, 51.0)])
VATICAN_OUTLINE = [(12.44, 41.90), (12.46, 41.90), (12.46, 41.91), (12.44, 41.91)]
ROME = Polygon(
    [(6.6, 36.6), (18.5, 36.6), (18.5, 47.0), (6.6, 47.0)],
    holes=[VATICAN_OUTLINE],
)
VATICAN = Polygon(VATICAN_OUTLINE)
HONOLULU = MultiPolygon(
    [
        Polygon([(-158.3, 21.2), (-157.6, 21.2), (-157.6, 21.8), (-158.3, 21.8)]),
        Polygon([(-156.1, 18.9), (-154.8, 18.9), (-154.8, 20.3), (-156.1, 20.3)]),
    ]
)
TOKYO = Polygon([(129.0, 30.0), (146.0, 30.0), (146.0, 46.0), (140.0, 46.0), (129.0, 34.0)])

WORLD_FEATURES = [
    ("Europe/Berlin", BERLIN),
    ("Europe/Paris", PARIS),
    ("Europe/Rome", ROME),
    ("Europe/Vatican", VATICAN),
    ("Pacific/Honolulu", HONOLULU),
    ("Asia/Tokyo", TOKYO),
]

ZONE_IDS = [zone_id for zone_id, _ in WORLD_FEATURES]

BERLIN_POINT = (52.52, 13.405)
MID_PACIFIC_POINT = (0.0, -160.0)
TOKYO_POINT = (35.6762, 139.6503)
VATICAN_POINT = (41.905, 12.45)
ROME_POINT = (41.9, 12.5)
HONOLULU_POINT = (21.3, -157.85)
HILO_POINT = (19.7, -155.1)


def feature_collection(features=WORLD_FEATURES) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"tzid": zone_id}, "geometry": mapping(geometry)}
            for zone_id, geometry in features
        ],
    }


def records_of(features=WORLD_FEATURES) -> list[GeometryRecord]:
    records = []
    for zone_id, geometry in features:
        parts = geometry.geoms if isinstance(geometry, MultiPolygon) else [geometry]
        for part in parts:
            records.append(
                GeometryRecord(
                    zone_id=zone_id,
                    exterior=tuple(part.exterior.coords),
                    holes=tuple(tuple(ring.coords) for ring in part.interiors),
                )
            )
    return records


@pytest.fixture()
def world_geojson(tmp_path: Path) -> Path:
    path = tmp_path / "timezones.geojson"
    path.write_text(json.dumps(feature_collection()), encoding="utf-8")
    return path


@pytest.fixture()
def world_records() -> list[GeometryRecord]:
    return records_of()


@pytest.fixture()
def engine(world_geojson: Path) -> TimeZoneEngine:
    return TimeZoneEngine.initialize(source=world_geojson)


@pytest.fixture(autouse=True)
def _clear_tzindex_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "TZINDEX_DATA_PATH",
        "TZINDEX_DATA_FORMAT",
        "TZINDEX_NODE_CAPACITY",
        "TZINDEX_BUILD_WORKERS",
        "TZINDEX_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's installed dataset out of default-path lookups.
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
