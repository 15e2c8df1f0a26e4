"""
Geographic primitives shared by the analysis stages.

- BoundingBox: (west, south, east, north) in WGS84 degrees
- AOIPolygon: closed lon/lat ring for an area of interest
- haversine_distance: great-circle distance in meters
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from shapely.geometry import Point, Polygon

from src.terrain.exceptions import InvalidBoundingBoxError, InvalidPolygonError

# Mean Earth radius used for great-circle distances (meters)
EARTH_RADIUS_M = 6371008.8


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned geographic bounding box.

    Attributes:
        west: Minimum longitude in degrees
        south: Minimum latitude in degrees
        east: Maximum longitude in degrees
        north: Maximum latitude in degrees
    """

    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> "BoundingBox":
        """Build from a (west, south, east, north) sequence."""
        if len(values) != 4:
            raise InvalidBoundingBoxError(
                f"bbox must have 4 values (west, south, east, north), got {len(values)}"
            )
        return cls(*(float(v) for v in values))

    def validate(self) -> "BoundingBox":
        """
        Check the box invariants.

        Raises:
            InvalidBoundingBoxError: If any coordinate is not finite, out of
                range, or the box has zero or negative area.
        """
        values = (self.west, self.south, self.east, self.north)
        if not all(math.isfinite(v) for v in values):
            raise InvalidBoundingBoxError(f"bbox contains non-finite values: {values}")
        if abs(self.south) > 90 or abs(self.north) > 90:
            raise InvalidBoundingBoxError(f"Latitude out of range in bbox: {values}")
        if abs(self.west) > 180 or abs(self.east) > 180:
            raise InvalidBoundingBoxError(f"Longitude out of range in bbox: {values}")
        if not (self.west < self.east and self.south < self.north):
            raise InvalidBoundingBoxError(
                f"Invalid bbox: need west < east and south < north, got {values}"
            )
        return self

    @property
    def mid_latitude(self) -> float:
        return (self.south + self.north) / 2

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def to_overpass(self) -> Tuple[float, float, float, float]:
        """Return (south, west, north, east), the order Overpass QL expects."""
        return (self.south, self.west, self.north, self.east)


class AOIPolygon:
    """
    Area-of-interest polygon given as a lon/lat ring.

    The ring is stored closed (first vertex repeated at the end). At least
    3 distinct vertices are required and the ring must enclose some area.
    """

    def __init__(self, vertices: Iterable[Sequence[float]]):
        points = [(float(lon), float(lat)) for lon, lat in vertices]
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        if len(set(points)) < 3:
            raise InvalidPolygonError(
                f"AOI polygon needs at least 3 distinct vertices, got {len(set(points))}"
            )
        self.ring = points + [points[0]]
        self.polygon = Polygon(self.ring)

        filled = self.polygon if self.polygon.is_valid else self.polygon.buffer(0)
        if filled.is_empty or filled.area == 0:
            raise InvalidPolygonError(f"AOI polygon encloses no area: {points}")

    @classmethod
    def from_points(cls, vertices: Iterable[Sequence[float]]) -> "AOIPolygon":
        return cls(vertices)

    @property
    def bounds(self) -> BoundingBox:
        west, south, east, north = self.polygon.bounds
        return BoundingBox(west, south, east, north)

    def contains(self, lon: float, lat: float) -> bool:
        """Point-in-polygon test; points on the boundary count as inside."""
        return self.polygon.covers(Point(lon, lat))

    def __len__(self) -> int:
        return len(self.ring) - 1

    def __repr__(self) -> str:
        return f"AOIPolygon({len(self)} vertices, bounds={self.polygon.bounds})"


def haversine_distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """
    Great-circle distance between two lon/lat points.

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))
