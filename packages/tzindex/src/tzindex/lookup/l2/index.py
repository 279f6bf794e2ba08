"""Spatial index over time-zone polygons."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import numpy as np

from tzindex.core.errors import InvalidBoundingRegion, InvalidCoordinate, MalformedGeometry

from ..l0.records import GeometryRecord
from ..l1.geometry import BoundingBox, Polygon, Region, contains
from ..l1.hierarchy import DEFAULT_NODE_CAPACITY, BoundingVolumeHierarchy

logger = logging.getLogger(__name__)

MIN_LAT = -90.0
MAX_LAT = 90.0
MIN_LON = -180.0
MAX_LON = 180.0

WORLD = BoundingBox(min_lat=MIN_LAT, min_lon=MIN_LON, max_lat=MAX_LAT, max_lon=MAX_LON)

_DECODE_CHUNK = 256


def validate_region(min_lat: float, min_lon: float, max_lat: float, max_lon: float) -> BoundingBox:
    """Check every bound at once and raise a single error listing all violations."""

    errors: list[str] = []
    if not _in_range(min_lat, MIN_LAT, MAX_LAT):
        errors.append(f"minimum latitude {min_lat:f} is out of range: must be -90 <= latitude <= 90;")
    if not _in_range(max_lat, MIN_LAT, MAX_LAT):
        errors.append(f"maximum latitude {max_lat:f} is out of range: must be -90 <= latitude <= 90;")
    if not _in_range(min_lon, MIN_LON, MAX_LON):
        errors.append(f"minimum longitude {min_lon:f} is out of range: must be -180 <= longitude <= 180;")
    if not _in_range(max_lon, MIN_LON, MAX_LON):
        errors.append(f"maximum longitude {max_lon:f} is out of range: must be -180 <= longitude <= 180;")
    if min_lat > max_lat:
        errors.append(f"maximum latitude {max_lat:f} is less than minimum latitude {min_lat:f};")
    if min_lon > max_lon:
        errors.append(f"maximum longitude {max_lon:f} is less than minimum longitude {min_lon:f};")
    if errors:
        raise InvalidBoundingRegion(errors)
    return BoundingBox(min_lat=min_lat, min_lon=min_lon, max_lat=max_lat, max_lon=max_lon)


def validate_coordinate(lat: float, lon: float) -> None:
    problems = []
    if not _in_range(lat, MIN_LAT, MAX_LAT):
        problems.append(f"latitude {lat} is out of range: must be -90 <= latitude <= 90")
    if not _in_range(lon, MIN_LON, MAX_LON):
        problems.append(f"longitude {lon} is out of range: must be -180 <= longitude <= 180")
    if problems:
        raise InvalidCoordinate(lat, lon, "; ".join(problems))


def _in_range(value: float, low: float, high: float) -> bool:
    # NaN fails both comparisons.
    return low <= value <= high


@dataclass(frozen=True)
class IndexStats:
    records_seen: int
    polygons_retained: int
    polygons_discarded: int
    zones: int
    vertices: int
    depth: int
    nodes: int
    build_seconds: float


class _StepTimer:
    def __init__(self, logger) -> None:
        self._logger = logger
        self._start = time.monotonic()
        self._last = self._start

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._start

    def info(self, message: str) -> None:
        now = time.monotonic()
        elapsed = now - self._start
        delta = now - self._last
        self._last = now
        self._logger.info("%s (elapsed=%.2fs, delta=%.2fs)", message, elapsed, delta)


class _ProgressTracker:
    def __init__(self, total: Optional[int], logger, label: str) -> None:
        self._total = int(total) if total is not None else None
        self._logger = logger
        self._label = label
        self._start = time.monotonic()
        self._last_log = self._start
        self._processed = 0

    def update(self, count: int) -> None:
        self._processed += int(count)
        now = time.monotonic()
        if now - self._last_log < 0.5 and not (
            self._total is not None and self._processed >= self._total
        ):
            return
        self._last_log = now
        elapsed = now - self._start
        rate = self._processed / elapsed if elapsed > 0 else 0.0
        if self._total and self._total > 0:
            remaining = max(self._total - self._processed, 0)
            eta = remaining / rate if rate > 0 else 0.0
            self._logger.info(
                "%s %s/%s (elapsed=%.2fs, rate=%.2f/s, eta=%.2fs)",
                self._label,
                self._processed,
                self._total,
                elapsed,
                rate,
                eta,
            )
        else:
            self._logger.info(
                "%s processed=%s (elapsed=%.2fs, rate=%.2f/s)",
                self._label,
                self._processed,
                elapsed,
                rate,
            )


class SpatialIndex:
    """Read-only point-to-zone lookup structure.

    Instances are produced by :func:`build` and never change afterwards, so
    any number of threads may query one without locking.
    """

    def __init__(
        self,
        zone_ids: list[str],
        entry_zones: np.ndarray,
        polygons: list[Polygon],
        hierarchy: BoundingVolumeHierarchy,
        stats: IndexStats,
    ) -> None:
        entry_zones.setflags(write=False)
        self._zone_ids = tuple(zone_ids)
        self._entry_zones = entry_zones
        self._polygons = tuple(polygons)
        self._hierarchy = hierarchy
        self._stats = stats

    @property
    def stats(self) -> IndexStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._polygons)

    def query(self, lat: float, lon: float) -> Optional[str]:
        """Zone id of the first polygon in build order containing the point, else None."""

        validate_coordinate(lat, lon)
        for entry in self._hierarchy.query_point(lat, lon):
            if contains(self._polygons[entry], lat, lon):
                return self._zone_ids[self._entry_zones[entry]]
        return None

    def query_all(self, lat: float, lon: float) -> list[str]:
        """Every distinct zone whose polygons contain the point, in build order."""

        validate_coordinate(lat, lon)
        found: list[str] = []
        for entry in self._hierarchy.query_point(lat, lon):
            zone_id = self._zone_ids[self._entry_zones[entry]]
            if zone_id in found:
                continue
            if contains(self._polygons[entry], lat, lon):
                found.append(zone_id)
        return found

    def known_zone_ids(self) -> list[str]:
        return list(self._zone_ids)

    def regions(self) -> list[Region]:
        grouped: list[list[Polygon]] = [[] for _ in self._zone_ids]
        for polygon, zone_idx in zip(self._polygons, self._entry_zones.tolist()):
            grouped[zone_idx].append(polygon)
        return [
            Region(zone_id=zone_id, polygons=tuple(polygons))
            for zone_id, polygons in zip(self._zone_ids, grouped)
        ]


def _decode(record: GeometryRecord) -> tuple[str, Polygon]:
    zone_id = record.zone_id
    if not isinstance(zone_id, str) or not zone_id:
        raise MalformedGeometry(None, f"record has an invalid zone identifier {zone_id!r}")
    return zone_id, Polygon.from_coordinates(record.exterior, record.holes, zone_id=zone_id)


def _chunks(records: Iterable[GeometryRecord], size: int) -> Iterator[list[GeometryRecord]]:
    chunk: list[GeometryRecord] = []
    for record in records:
        chunk.append(record)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def _decoded(records: Iterable[GeometryRecord], workers: int) -> Iterator[tuple[str, Polygon]]:
    if workers <= 1:
        for record in records:
            yield _decode(record)
        return
    logger.info("Decoding geometry with %d worker threads", workers)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        for chunk in _chunks(records, _DECODE_CHUNK * workers):
            # map() yields in submission order, which keeps build order stable.
            yield from executor.map(_decode, chunk)


def build(
    records: Iterable[GeometryRecord],
    expected_count: Optional[int] = None,
    region: BoundingBox = WORLD,
    *,
    node_capacity: int = DEFAULT_NODE_CAPACITY,
    workers: int = 1,
) -> SpatialIndex:
    """Build a :class:`SpatialIndex` from a single pass over ``records``.

    Records whose bounding box misses ``region`` are discarded. Retained
    polygons are kept whole. A malformed record aborts the build.
    """

    timer = _StepTimer(logger)
    progress = _ProgressTracker(expected_count, logger, "Index build: records")
    zone_positions: dict[str, int] = {}
    polygons: list[Polygon] = []
    entry_zones: list[int] = []
    boxes: list[np.ndarray] = []
    records_seen = 0
    discarded = 0
    vertices = 0

    for zone_id, polygon in _decoded(records, workers):
        records_seen += 1
        progress.update(1)
        if not region.intersects(polygon.bbox):
            discarded += 1
            logger.debug("Discarding polygon for %s outside build region", zone_id)
            continue
        zone_idx = zone_positions.setdefault(zone_id, len(zone_positions))
        polygons.append(polygon)
        entry_zones.append(zone_idx)
        boxes.append(polygon.bbox.as_array())
        vertices += polygon.vertex_count
    timer.info(
        f"Index build: decoded {records_seen} records "
        f"(retained={len(polygons)}, discarded={discarded}, zones={len(zone_positions)})"
    )

    box_array = np.vstack(boxes) if boxes else np.zeros((0, 4), dtype=np.float64)
    hierarchy = BoundingVolumeHierarchy(box_array, node_capacity=node_capacity)
    timer.info(f"Index build: hierarchy packed (depth={hierarchy.depth}, nodes={hierarchy.node_count})")

    stats = IndexStats(
        records_seen=records_seen,
        polygons_retained=len(polygons),
        polygons_discarded=discarded,
        zones=len(zone_positions),
        vertices=vertices,
        depth=hierarchy.depth,
        nodes=hierarchy.node_count,
        build_seconds=timer.elapsed,
    )
    return SpatialIndex(
        zone_ids=list(zone_positions),
        entry_zones=np.asarray(entry_zones, dtype=np.int64),
        polygons=polygons,
        hierarchy=hierarchy,
        stats=stats,
    )


__all__ = [
    "IndexStats",
    "MAX_LAT",
    "MAX_LON",
    "MIN_LAT",
    "MIN_LON",
    "SpatialIndex",
    "WORLD",
    "build",
    "validate_coordinate",
    "validate_region",
]
