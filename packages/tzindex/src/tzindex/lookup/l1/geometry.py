"""Geometry model for time-zone boundaries.

Rings are stored as read-only ``float64`` arrays of ``(lon, lat)`` vertices,
the axis order used by GeoJSON and shapely. Public methods take ``lat, lon``
to match the query API.

Boundary rule: a point lying on any ring edge or vertex, within
``EDGE_EPSILON`` degrees of the segment, is contained by the polygon. That
holds for hole edges as well, since a hole's edge is part of the polygon's
boundary. The epsilon is only used for that on-edge check; the crossing-number
test itself compares floats exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from tzindex.core.errors import MalformedGeometry

EDGE_EPSILON = 1e-9
MIN_RING_POINTS = 4
MIN_DISTINCT_POINTS = 3


class RingLocation(str, Enum):
    """Position of a point relative to a closed ring."""

    INSIDE = "inside"
    OUTSIDE = "outside"
    BOUNDARY = "boundary"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in degrees; edges are inclusive."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    @classmethod
    def of_coordinates(cls, coords: np.ndarray) -> "BoundingBox":
        mins = coords.min(axis=0)
        maxs = coords.max(axis=0)
        return cls(
            min_lat=float(mins[1]),
            min_lon=float(mins[0]),
            max_lat=float(maxs[1]),
            max_lon=float(maxs[0]),
        )

    def contains_point(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
            or other.min_lon > self.max_lon
            or other.max_lon < self.min_lon
        )

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min_lat=min(self.min_lat, other.min_lat),
            min_lon=min(self.min_lon, other.min_lon),
            max_lat=max(self.max_lat, other.max_lat),
            max_lon=max(self.max_lon, other.max_lon),
        )

    def as_array(self) -> np.ndarray:
        """Return ``[min_lon, min_lat, max_lon, max_lat]`` for the hierarchy builder."""
        return np.array([self.min_lon, self.min_lat, self.max_lon, self.max_lat], dtype=np.float64)


class Ring:
    """A closed boundary loop."""

    __slots__ = ("_coords", "_bbox")

    def __init__(self, coords: np.ndarray) -> None:
        # Own a private copy so freezing it never touches the caller's array.
        coords = np.array(coords, dtype=np.float64, copy=True)
        coords.setflags(write=False)
        self._coords = coords
        self._bbox = BoundingBox.of_coordinates(coords)

    @classmethod
    def from_coordinates(
        cls,
        points: Iterable[Sequence[float]],
        *,
        zone_id: str | None = None,
    ) -> "Ring":
        """Build a ring from ``(lon, lat)`` pairs, closing it when the input is open."""
        try:
            coords = np.array([(float(p[0]), float(p[1])) for p in points], dtype=np.float64)
        except (TypeError, ValueError, IndexError) as exc:
            raise MalformedGeometry(zone_id, f"ring vertices must be (lon, lat) number pairs: {exc}") from exc
        if coords.ndim != 2 or coords.shape[0] == 0:
            raise MalformedGeometry(zone_id, "ring has no vertices")
        if not np.isfinite(coords).all():
            raise MalformedGeometry(zone_id, "ring contains non-finite coordinates")
        if not np.array_equal(coords[0], coords[-1]):
            coords = np.vstack([coords, coords[:1]])
        if coords.shape[0] < MIN_RING_POINTS:
            raise MalformedGeometry(
                zone_id,
                f"ring has {coords.shape[0]} points after closure, need at least {MIN_RING_POINTS}",
            )
        distinct = np.unique(coords[:-1], axis=0).shape[0]
        if distinct < MIN_DISTINCT_POINTS:
            raise MalformedGeometry(
                zone_id,
                f"ring has {distinct} distinct vertices, need at least {MIN_DISTINCT_POINTS}",
            )
        return cls(coords)

    @property
    def coords(self) -> np.ndarray:
        return self._coords

    @property
    def bbox(self) -> BoundingBox:
        return self._bbox

    def __len__(self) -> int:
        return int(self._coords.shape[0])

    def locate(self, lat: float, lon: float) -> RingLocation:
        return locate_in_ring(self, lat, lon)


def locate_in_ring(ring: Ring, lat: float, lon: float) -> RingLocation:
    """Classify a point against a ring with the crossing-number rule."""

    if not ring.bbox.contains_point(lat, lon):
        # An on-edge point always falls within the ring's box, so only the
        # epsilon band around the box could still be a boundary hit.
        if not BoundingBox(
            ring.bbox.min_lat - EDGE_EPSILON,
            ring.bbox.min_lon - EDGE_EPSILON,
            ring.bbox.max_lat + EDGE_EPSILON,
            ring.bbox.max_lon + EDGE_EPSILON,
        ).contains_point(lat, lon):
            return RingLocation.OUTSIDE
    coords = ring.coords
    x0 = coords[:-1, 0]
    y0 = coords[:-1, 1]
    x1 = coords[1:, 0]
    y1 = coords[1:, 1]
    dx = x1 - x0
    dy = y1 - y0

    if _on_any_segment(lon, lat, x0, y0, dx, dy):
        return RingLocation.BOUNDARY

    straddles = (y0 > lat) != (y1 > lat)
    if not straddles.any():
        return RingLocation.OUTSIDE
    sx0 = x0[straddles]
    sy0 = y0[straddles]
    x_cross = sx0 + (lat - sy0) * dx[straddles] / dy[straddles]
    crossings = int(np.count_nonzero(lon < x_cross))
    return RingLocation.INSIDE if crossings % 2 == 1 else RingLocation.OUTSIDE


def _on_any_segment(
    px: float,
    py: float,
    x0: np.ndarray,
    y0: np.ndarray,
    dx: np.ndarray,
    dy: np.ndarray,
) -> bool:
    length_sq = dx * dx + dy * dy
    rel_x = px - x0
    rel_y = py - y0
    t = np.divide(
        rel_x * dx + rel_y * dy,
        length_sq,
        out=np.zeros_like(length_sq),
        where=length_sq > 0.0,
    )
    np.clip(t, 0.0, 1.0, out=t)
    off_x = rel_x - t * dx
    off_y = rel_y - t * dy
    return bool(np.any(off_x * off_x + off_y * off_y <= EDGE_EPSILON * EDGE_EPSILON))


class Polygon:
    """An outer ring with zero or more holes."""

    __slots__ = ("_shell", "_holes", "_bbox")

    def __init__(self, shell: Ring, holes: Sequence[Ring] = ()) -> None:
        self._shell = shell
        self._holes = tuple(holes)
        self._bbox = shell.bbox
        # Holes are not checked against the shell; a stray hole widens the box
        # instead of being dropped.
        for hole in self._holes:
            self._bbox = self._bbox.union(hole.bbox)

    @classmethod
    def from_coordinates(
        cls,
        exterior: Iterable[Sequence[float]],
        holes: Iterable[Iterable[Sequence[float]]] = (),
        *,
        zone_id: str | None = None,
    ) -> "Polygon":
        shell = Ring.from_coordinates(exterior, zone_id=zone_id)
        return cls(shell, [Ring.from_coordinates(hole, zone_id=zone_id) for hole in holes])

    @property
    def shell(self) -> Ring:
        return self._shell

    @property
    def holes(self) -> tuple[Ring, ...]:
        return self._holes

    @property
    def bbox(self) -> BoundingBox:
        return self._bbox

    @property
    def vertex_count(self) -> int:
        return len(self._shell) + sum(len(hole) for hole in self._holes)

    def contains(self, lat: float, lon: float) -> bool:
        return contains(self, lat, lon)


def bounding_box_of(polygon: Polygon) -> BoundingBox:
    return polygon.bbox


def contains(polygon: Polygon, lat: float, lon: float) -> bool:
    """Exact containment; points on any boundary edge count as inside."""

    location = polygon.shell.locate(lat, lon)
    if location is RingLocation.OUTSIDE:
        return False
    if location is RingLocation.BOUNDARY:
        return True
    for hole in polygon.holes:
        hole_location = hole.locate(lat, lon)
        if hole_location is RingLocation.BOUNDARY:
            return True
        if hole_location is RingLocation.INSIDE:
            return False
    return True


@dataclass(frozen=True)
class Region:
    """All polygons belonging to one zone identifier."""

    zone_id: str
    polygons: tuple[Polygon, ...]

    @cached_property
    def bbox(self) -> BoundingBox:
        box = self.polygons[0].bbox
        for polygon in self.polygons[1:]:
            box = box.union(polygon.bbox)
        return box

    def contains(self, lat: float, lon: float) -> bool:
        return any(contains(polygon, lat, lon) for polygon in self.polygons)


__all__ = [
    "BoundingBox",
    "EDGE_EPSILON",
    "Polygon",
    "Region",
    "Ring",
    "RingLocation",
    "bounding_box_of",
    "contains",
    "locate_in_ring",
]
