from __future__ import annotations

import math

import pytest

from conftest import (
    BERLIN_POINT,
    HILO_POINT,
    HONOLULU_POINT,
    MID_PACIFIC_POINT,
    ROME_POINT,
    TOKYO_POINT,
    VATICAN_POINT,
    ZONE_IDS,
    records_of,
)
from tzindex.core.errors import InvalidBoundingRegion, InvalidCoordinate, MalformedGeometry
from tzindex.lookup import BoundingBox, GeometryRecord, build, validate_region


def test_query_resolves_each_zone(world_records) -> None:
    index = build(world_records, len(world_records))
    assert index.query(*BERLIN_POINT) == "Europe/Berlin"
    assert index.query(*TOKYO_POINT) == "Asia/Tokyo"
    assert index.query(*ROME_POINT) == "Europe/Rome"
    assert index.query(*HONOLULU_POINT) == "Pacific/Honolulu"
    assert index.query(*HILO_POINT) == "Pacific/Honolulu"


def test_open_ocean_is_absent(world_records) -> None:
    index = build(world_records)
    assert index.query(*MID_PACIFIC_POINT) is None
    assert index.query(-89.0, 0.0) is None


def test_hole_defers_to_the_zone_inside_it(world_records) -> None:
    index = build(world_records)
    assert index.query(*VATICAN_POINT) == "Europe/Vatican"
    assert index.query_all(*VATICAN_POINT) == ["Europe/Vatican"]


def test_shared_border_goes_to_first_polygon_in_build_order(world_records) -> None:
    index = build(world_records)
    on_border = (49.0, 5.9)
    assert index.query(*on_border) == "Europe/Berlin"
    assert index.query_all(*on_border) == ["Europe/Berlin", "Europe/Paris"]

    reversed_index = build(list(reversed(world_records)))
    assert reversed_index.query(*on_border) == "Europe/Paris"


def test_known_zone_ids_are_distinct_and_ordered(world_records) -> None:
    index = build(world_records)
    known = index.known_zone_ids()
    assert known == ZONE_IDS
    assert len(known) == len(set(known))
    assert len(index) == len(world_records) == len(ZONE_IDS) + 1


def test_regions_group_polygons_by_zone(world_records) -> None:
    index = build(world_records)
    regions = {region.zone_id: region for region in index.regions()}
    assert len(regions["Pacific/Honolulu"].polygons) == 2
    assert regions["Pacific/Honolulu"].contains(*HILO_POINT)


def test_region_restriction_discards_records(world_records) -> None:
    asia = validate_region(20.0, 120.0, 50.0, 150.0)
    index = build(world_records, region=asia)
    assert index.known_zone_ids() == ["Asia/Tokyo"]
    assert index.query(*TOKYO_POINT) == "Asia/Tokyo"
    assert index.query(*BERLIN_POINT) is None
    assert index.stats.polygons_retained == 1
    assert index.stats.polygons_discarded == len(world_records) - 1


def test_retained_polygons_are_not_clipped(world_records) -> None:
    # The region clips Tokyo's box, but the polygon is kept whole.
    region = validate_region(30.0, 129.0, 35.0, 135.0)
    index = build(world_records, region=region)
    assert index.query(*TOKYO_POINT) == "Asia/Tokyo"


def test_stats_describe_the_build(world_records) -> None:
    index = build(world_records, node_capacity=2)
    stats = index.stats
    assert stats.records_seen == len(world_records)
    assert stats.zones == len(ZONE_IDS)
    assert stats.vertices == sum(len(r.exterior) + sum(len(h) for h in r.holes) for r in world_records)
    assert stats.depth >= 2
    assert stats.build_seconds >= 0.0


def test_records_are_consumed_once(world_records) -> None:
    stream = iter(world_records)
    index = build(stream)
    assert index.query(*BERLIN_POINT) == "Europe/Berlin"
    with pytest.raises(StopIteration):
        next(stream)


def test_threaded_decoding_preserves_build_order() -> None:
    records = records_of() * 300
    sequential = build(records, workers=1)
    threaded = build(iter(records), workers=4)
    assert threaded.known_zone_ids() == sequential.known_zone_ids()
    assert threaded.query_all(49.0, 5.9) == sequential.query_all(49.0, 5.9)
    assert threaded.stats.polygons_retained == sequential.stats.polygons_retained


def test_malformed_record_aborts_the_build(world_records) -> None:
    broken = world_records + [GeometryRecord(zone_id="Broken/Zone", exterior=((0.0, 0.0), (1.0, 1.0)))]
    with pytest.raises(MalformedGeometry) as exc:
        build(broken)
    assert exc.value.zone_id == "Broken/Zone"


def test_missing_zone_id_aborts_the_build() -> None:
    record = GeometryRecord(zone_id="", exterior=((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)))
    with pytest.raises(MalformedGeometry):
        build([record])


def test_empty_input_builds_an_empty_index() -> None:
    index = build([])
    assert index.known_zone_ids() == []
    assert index.query(*BERLIN_POINT) is None


@pytest.mark.parametrize(
    "lat, lon",
    [(90.0, 0.0), (-90.0, 0.0), (0.0, 180.0), (0.0, -180.0), (90.0, -180.0)],
)
def test_range_limits_are_inclusive(world_records, lat: float, lon: float) -> None:
    index = build(world_records)
    assert index.query(lat, lon) is None


@pytest.mark.parametrize(
    "lat, lon",
    [(90.0001, 0.0), (-91.0, 0.0), (0.0, 180.5), (0.0, -181.0), (math.nan, 0.0), (0.0, math.inf)],
)
def test_out_of_range_queries_are_rejected(world_records, lat: float, lon: float) -> None:
    index = build(world_records)
    with pytest.raises(InvalidCoordinate):
        index.query(lat, lon)
    with pytest.raises(InvalidCoordinate):
        index.query_all(lat, lon)
    # The index is unaffected by the rejected call.
    assert index.query(*BERLIN_POINT) == "Europe/Berlin"


def test_region_validation_reports_every_violation() -> None:
    with pytest.raises(InvalidBoundingRegion) as exc:
        validate_region(50.0, -200.0, 10.0, 0.0)
    violations = exc.value.violations
    assert "minimum longitude -200.000000 is out of range: must be -180 <= longitude <= 180;" in violations
    assert "maximum latitude 10.000000 is less than minimum latitude 50.000000;" in violations
    assert len(violations) == 2
    assert isinstance(exc.value, ValueError)


def test_region_validation_accepts_world() -> None:
    assert validate_region(-90.0, -180.0, 90.0, 180.0) == BoundingBox(-90.0, -180.0, 90.0, 180.0)
