"""Great-circle distance and bounding-box helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

from kollpaspar._constants import EARTH_RADIUS_M

# Kilometres per degree, used to size the tracked area.
_KM_PER_DEG_LAT = 111.0
_KM_PER_DEG_LON_AT_EQUATOR = 111.320


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 latitude/longitude pair in degrees."""

    lat: float
    long: float


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in metres between two points.

    NaN inputs yield NaN rather than raising, so callers comparing the
    result against a radius simply see "not close".
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = math.sin(delta_lat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    # Rounding can push a a hair above 1 for antipodal points.
    if a > 1.0:
        a = 1.0

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def bounding_box_around(lat: float, lon: float, radius_km: float) -> tuple[Coordinates, Coordinates]:
    """Return ``(lower_left, upper_right)`` corners of a box around a point."""
    delta_lat = radius_km / _KM_PER_DEG_LAT
    delta_lon = radius_km / (_KM_PER_DEG_LON_AT_EQUATOR * math.cos(math.radians(lat)))
    lower_left = Coordinates(lat=lat - delta_lat, long=lon - delta_lon)
    upper_right = Coordinates(lat=lat + delta_lat, long=lon + delta_lon)
    return lower_left, upper_right
