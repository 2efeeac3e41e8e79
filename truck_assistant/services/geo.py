"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import Tuple

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MILES = 3959.0
MILES_PER_DEGREE = 69.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float, radius: float = EARTH_RADIUS_KM) -> float:
    """Distance between two points on a sphere of the given *radius*."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return radius * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine(lat1, lon1, lat2, lon2, EARTH_RADIUS_KM)


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine(lat1, lon1, lat2, lon2, EARTH_RADIUS_MILES)


def bounding_box(lat: float, lng: float, radius_miles: float) -> Tuple[float, float, float, float]:
    """(west, north, east, south) box enclosing *radius_miles* around a point."""
    lat_degrees = radius_miles / MILES_PER_DEGREE
    lng_degrees = lat_degrees / max(math.cos(math.radians(lat)), 0.01)
    return (lng - lng_degrees, lat + lat_degrees, lng + lng_degrees, lat - lat_degrees)
