from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from math import asin, cos, degrees, radians, sin, sqrt

from geonear.errors import InvalidParameter

"""
Geospatial helpers: coordinates, distance models and unit conversions.

Two metrics are supported:
- planar: Euclidean distance on raw (lon, lat) degrees, no cos(lat) correction
- spherical: great-circle distance via haversine, expressed in radians

Thresholds handed to the query engine are already in the model's unit
(degrees for planar, radians for spherical). Converting a physical distance is
the caller's job; `km_to_degrees` / `km_to_radians` are provided for that.
"""

EARTH_RADIUS_KM = 6371.0

LON_MIN, LON_MAX = -180.0, 180.0
LAT_MIN, LAT_MAX = -90.0, 90.0

# Padding added to candidate boxes so float rounding at the edge never drops a boundary point.
_BOX_PAD_DEG = 1e-9


@dataclass(frozen=True)
class Coordinate:
    """A longitude/latitude pair in decimal degrees."""

    lon: float
    lat: float


@dataclass(frozen=True)
class BoundingBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat


WORLD = BoundingBox(LON_MIN, LAT_MIN, LON_MAX, LAT_MAX)


def is_valid_coordinate(lon: float, lat: float) -> bool:
    # Written so that NaN fails both comparisons.
    return LON_MIN <= lon <= LON_MAX and LAT_MIN <= lat <= LAT_MAX


def km_to_degrees(km: float, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    """Convert kilometres to planar degrees: `km / (R * pi / 180)`."""
    return float(km) / (float(earth_radius_km) * math.pi / 180)


def km_to_radians(km: float, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    """Convert kilometres to a spherical angle in radians: `km / R`."""
    return float(km) / float(earth_radius_km)


def radians_to_km(angle: float, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    return float(angle) * float(earth_radius_km)


def planar_distance(a: Coordinate, b: Coordinate) -> float:
    """Euclidean distance in degree space."""
    return sqrt((a.lon - b.lon) ** 2 + (a.lat - b.lat) ** 2)


def haversine_rad(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in radians between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * asin(min(1.0, sqrt(h)))


class DistanceModel(ABC):
    """A metric plus a conservative degree-space cover of its closed balls."""

    name: str

    @abstractmethod
    def distance(self, a: Coordinate, b: Coordinate) -> float:
        """Return a symmetric, non-negative distance (0 for equal coordinates)."""

    @abstractmethod
    def bounding_boxes(self, center: Coordinate, radius: float) -> list[BoundingBox]:
        """Return boxes whose union contains every point within `radius` of `center`."""


class PlanarDistance(DistanceModel):
    name = "planar"

    def distance(self, a: Coordinate, b: Coordinate) -> float:
        return planar_distance(a, b)

    def bounding_boxes(self, center: Coordinate, radius: float) -> list[BoundingBox]:
        r = float(radius) + _BOX_PAD_DEG
        return [BoundingBox(center.lon - r, center.lat - r, center.lon + r, center.lat + r)]


class SphericalDistance(DistanceModel):
    name = "spherical"

    def __init__(self, earth_radius_km: float = EARTH_RADIUS_KM):
        if not float(earth_radius_km) > 0:
            raise InvalidParameter("earth_radius_km", earth_radius_km, "must be > 0")
        self.earth_radius_km = float(earth_radius_km)

    def distance(self, a: Coordinate, b: Coordinate) -> float:
        return haversine_rad(a, b)

    def to_km(self, angle: float) -> float:
        return radians_to_km(angle, self.earth_radius_km)

    def from_km(self, km: float) -> float:
        return km_to_radians(km, self.earth_radius_km)

    def bounding_boxes(self, center: Coordinate, radius: float) -> list[BoundingBox]:
        r = float(radius)
        if r >= math.pi:
            return [WORLD]

        dlat = degrees(r) + _BOX_PAD_DEG
        min_lat = center.lat - dlat
        max_lat = center.lat + dlat
        # A cap touching a pole spans every longitude.
        if min_lat <= LAT_MIN or max_lat >= LAT_MAX:
            return [BoundingBox(LON_MIN, max(min_lat, LAT_MIN), LON_MAX, min(max_lat, LAT_MAX))]

        ratio = sin(r) / cos(radians(center.lat))
        if ratio >= 1.0:
            return [BoundingBox(LON_MIN, min_lat, LON_MAX, max_lat)]
        dlon = degrees(asin(ratio)) + _BOX_PAD_DEG

        min_lon = center.lon - dlon
        max_lon = center.lon + dlon
        if min_lon < LON_MIN:
            return [
                BoundingBox(min_lon + 360.0, min_lat, LON_MAX, max_lat),
                BoundingBox(LON_MIN, min_lat, max_lon, max_lat),
            ]
        if max_lon > LON_MAX:
            return [
                BoundingBox(min_lon, min_lat, LON_MAX, max_lat),
                BoundingBox(LON_MIN, min_lat, max_lon - 360.0, max_lat),
            ]
        return [BoundingBox(min_lon, min_lat, max_lon, max_lat)]


def distance_model(spherical: bool, *, earth_radius_km: float = EARTH_RADIUS_KM) -> DistanceModel:
    """Pick the metric for a query."""
    if spherical:
        return SphericalDistance(earth_radius_km)
    return PlanarDistance()
