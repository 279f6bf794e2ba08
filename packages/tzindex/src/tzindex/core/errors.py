"""Error types used across tzindex modules."""

from __future__ import annotations

from typing import Sequence


class TzIndexError(RuntimeError):
    """Base error for tzindex failures."""


class ConfigurationError(TzIndexError):
    """Raised when configuration files or environment values are invalid."""


class InvalidBoundingRegion(TzIndexError, ValueError):
    """Raised when a build-time bounding region violates one or more constraints.

    Every violation found is kept in ``violations`` so callers see all of
    them in one round trip.
    """

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__(" ".join(self.violations))


class DataAcquisitionFailure(TzIndexError):
    """Raised when the boundary dataset cannot be read, unpacked or decoded."""


class MalformedGeometry(TzIndexError):
    """Raised when a decoded record fails basic ring shape invariants."""

    def __init__(self, zone_id: str | None, detail: str) -> None:
        message = f"malformed geometry for zone '{zone_id}': {detail}" if zone_id else detail
        super().__init__(message)
        self.zone_id = zone_id
        self.detail = detail


class InvalidCoordinate(TzIndexError, ValueError):
    """Raised by queries when latitude or longitude is outside the valid range."""

    def __init__(self, latitude: float, longitude: float, detail: str) -> None:
        super().__init__(detail)
        self.latitude = latitude
        self.longitude = longitude
