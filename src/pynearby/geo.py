"""Great-circle distance helpers."""

from __future__ import annotations

import math

from pynearby._constants import EARTH_RADIUS_KM
from pynearby.models.coordinate import Coordinate


def deg2rad(deg: float) -> float:
    return deg * (math.pi / 180)


def haversine_km(a: Coordinate, b: Coordinate, *, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    """Unrounded great-circle distance in kilometres between two points."""
    lat1 = deg2rad(a.latitude)
    lat2 = deg2rad(b.latitude)
    dlat = deg2rad(b.latitude - a.latitude)
    dlon = deg2rad(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return earth_radius_km * c


def distance_km(a: Coordinate, b: Coordinate, *, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    """Great-circle distance in kilometres, rounded to one decimal digit."""
    return round(haversine_km(a, b, earth_radius_km=earth_radius_km), 1)
