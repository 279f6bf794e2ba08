"""Point-to-zone lookup primitives, layered like the rest of the package.

``l0`` reads boundary datasets into records, ``l1`` holds the geometry model
and the bounding-volume hierarchy, ``l2`` assembles them into the index.
"""

from .l0.records import GeometryRecord
from .l0.sources import RecordSource, detect_format, open_source
from .l1.geometry import (
    EDGE_EPSILON,
    BoundingBox,
    Polygon,
    Region,
    Ring,
    RingLocation,
    bounding_box_of,
    contains,
    locate_in_ring,
)
from .l1.hierarchy import BoundingVolumeHierarchy
from .l2.index import (
    WORLD,
    IndexStats,
    SpatialIndex,
    build,
    validate_coordinate,
    validate_region,
)

__all__ = [
    "BoundingBox",
    "BoundingVolumeHierarchy",
    "EDGE_EPSILON",
    "GeometryRecord",
    "IndexStats",
    "Polygon",
    "RecordSource",
    "Region",
    "Ring",
    "RingLocation",
    "SpatialIndex",
    "WORLD",
    "bounding_box_of",
    "build",
    "contains",
    "detect_format",
    "locate_in_ring",
    "open_source",
    "validate_coordinate",
    "validate_region",
]
