"""Time-zone lookup engine: build once, then query latitude/longitude pairs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzindex.core.config import EngineConfig
from tzindex.core.paths import default_dataset_path
from tzindex.lookup.l0.records import GeometryRecord
from tzindex.lookup.l0.sources import open_source
from tzindex.lookup.l1.geometry import BoundingBox
from tzindex.lookup.l2.index import (
    MAX_LAT,
    MAX_LON,
    MIN_LAT,
    MIN_LON,
    WORLD,
    IndexStats,
    SpatialIndex,
    build,
    validate_region,
)

logger = logging.getLogger(__name__)


class TimeZoneEngine:
    """Looks up the time-zone identifier for a latitude/longitude pair.

    Create one with :meth:`initialize` (reads a boundary dataset) or
    :meth:`from_records` (any record iterable). The engine is immutable and
    may be shared between threads.
    """

    def __init__(self, index: SpatialIndex, region: BoundingBox = WORLD, source_sha256: Optional[str] = None) -> None:
        self._index = index
        self._region = region
        self._source_sha256 = source_sha256

    @classmethod
    def initialize(
        cls,
        min_lat: float = MIN_LAT,
        min_lon: float = MIN_LON,
        max_lat: float = MAX_LAT,
        max_lon: float = MAX_LON,
        *,
        config: Optional[EngineConfig] = None,
        source: Optional[Path] = None,
    ) -> "TimeZoneEngine":
        """Read the boundary dataset and build the index.

        This is a blocking, potentially long running call. Polygons whose
        bounding box lies entirely outside the given bounds are not indexed.

        Raises:
            InvalidBoundingRegion: listing every violated bound.
            DataAcquisitionFailure: the dataset could not be read.
            MalformedGeometry: a record has a degenerate ring.
        """
        logger.info(
            "Initializing with bounding box: %s, %s, %s, %s",
            min_lat,
            min_lon,
            max_lat,
            max_lon,
        )
        region = validate_region(min_lat, min_lon, max_lat, max_lon)
        config = config or EngineConfig.default()
        path = _resolve_dataset(source, config)
        record_source = open_source(path, config.data_format)
        index = build(
            record_source.records,
            record_source.expected_count,
            region,
            node_capacity=config.node_capacity,
            workers=config.build_workers,
        )
        _log_stats(index.stats)
        return cls(index, region, record_source.sha256_hex)

    @classmethod
    def from_records(
        cls,
        records: Iterable[GeometryRecord],
        *,
        region: BoundingBox = WORLD,
        expected_count: Optional[int] = None,
        config: Optional[EngineConfig] = None,
    ) -> "TimeZoneEngine":
        region = validate_region(region.min_lat, region.min_lon, region.max_lat, region.max_lon)
        config = config or EngineConfig()
        index = build(
            records,
            expected_count,
            region,
            node_capacity=config.node_capacity,
            workers=config.build_workers,
        )
        _log_stats(index.stats)
        return cls(index, region)

    @property
    def region(self) -> BoundingBox:
        return self._region

    @property
    def stats(self) -> IndexStats:
        return self._index.stats

    @property
    def source_sha256(self) -> Optional[str]:
        return self._source_sha256

    def query(self, latitude: float, longitude: float) -> Optional[str]:
        """Return the zone id containing the point, or None when nothing does."""
        return self._index.query(latitude, longitude)

    def query_all(self, latitude: float, longitude: float) -> list[str]:
        return self._index.query_all(latitude, longitude)

    def query_zone_info(self, latitude: float, longitude: float) -> Optional[ZoneInfo]:
        """Like :meth:`query` but resolved through the system tz database."""
        zone_id = self.query(latitude, longitude)
        if zone_id is None:
            return None
        try:
            return ZoneInfo(zone_id)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Zone id %s is not present in the tz database", zone_id)
            return None

    def known_zone_ids(self) -> list[str]:
        """All zone ids that can be returned by :meth:`query`."""
        return self._index.known_zone_ids()


def _resolve_dataset(source: Optional[Path], config: EngineConfig) -> Path:
    if source is not None:
        return Path(source)
    if config.data_path is not None:
        return config.data_path
    return default_dataset_path()


def _log_stats(stats: IndexStats) -> None:
    logger.info(
        "Index ready (records=%s, polygons=%s, discarded=%s, zones=%s, vertices=%s, depth=%s, nodes=%s, build=%.2fs)",
        stats.records_seen,
        stats.polygons_retained,
        stats.polygons_discarded,
        stats.zones,
        stats.vertices,
        stats.depth,
        stats.nodes,
        stats.build_seconds,
    )


__all__ = ["TimeZoneEngine"]
