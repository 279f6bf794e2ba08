"""Records handed from data acquisition to the spatial index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

Coordinate = Sequence[float]


@dataclass(frozen=True)
class GeometryRecord:
    """One zone polygon as raw ``(lon, lat)`` coordinate sequences."""

    zone_id: str
    exterior: Sequence[Coordinate]
    holes: Sequence[Sequence[Coordinate]] = field(default_factory=tuple)


__all__ = ["Coordinate", "GeometryRecord"]
