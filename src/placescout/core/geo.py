from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import Protocol

"""
Geospatial helpers.

Only what discovery needs: great-circle distance for radius checks in the offline
catalog search and for advertised-place proximity.
"""

EARTH_RADIUS_M = 6_371_000


class LatLon(Protocol):
    lat: float
    lon: float


def haversine_m(a: LatLon, b: LatLon) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))
