"""Offline latitude/longitude to time-zone identifier lookup."""

from tzindex.core.config import EngineConfig, load_config
from tzindex.core.errors import (
    ConfigurationError,
    DataAcquisitionFailure,
    InvalidBoundingRegion,
    InvalidCoordinate,
    MalformedGeometry,
    TzIndexError,
)
from tzindex.engine import TimeZoneEngine
from tzindex.lookup import WORLD, BoundingBox, GeometryRecord

__all__ = [
    "BoundingBox",
    "ConfigurationError",
    "DataAcquisitionFailure",
    "EngineConfig",
    "GeometryRecord",
    "InvalidBoundingRegion",
    "InvalidCoordinate",
    "MalformedGeometry",
    "TimeZoneEngine",
    "TzIndexError",
    "WORLD",
    "load_config",
]
