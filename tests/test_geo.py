from __future__ import annotations

import math

import pytest

from pynearby.geo import deg2rad, distance_km, haversine_km
from pynearby.models.coordinate import Coordinate

RIYADH = Coordinate(latitude=24.7136, longitude=46.6753)

_SAMPLE_POINTS = [
    RIYADH,
    Coordinate(latitude=24.75, longitude=46.70),
    Coordinate(latitude=0.0, longitude=0.0),
    Coordinate(latitude=-33.8688, longitude=151.2093),
    Coordinate(latitude=51.5074, longitude=-0.1278),
    Coordinate(latitude=89.9, longitude=-179.9),
    Coordinate(latitude=-90.0, longitude=180.0),
]


def test_deg2rad() -> None:
    assert deg2rad(180) == pytest.approx(math.pi)
    assert deg2rad(0) == 0


def test_scenario_riyadh_distance() -> None:
    entity = Coordinate(latitude=24.7500, longitude=46.7000)

    assert haversine_km(RIYADH, entity) == pytest.approx(4.75, abs=0.02)
    assert distance_km(RIYADH, entity) == 4.8


def test_distance_is_rounded_to_one_decimal() -> None:
    value = distance_km(RIYADH, Coordinate(latitude=24.80, longitude=46.75))
    assert value == round(value, 1)


def test_distance_symmetry_and_identity() -> None:
    for a in _SAMPLE_POINTS:
        assert distance_km(a, a) == 0.0
        for b in _SAMPLE_POINTS:
            assert distance_km(a, b) == distance_km(b, a)


def test_antipodal_points_do_not_raise() -> None:
    a = Coordinate(latitude=0.0, longitude=0.0)
    b = Coordinate(latitude=0.0, longitude=180.0)

    assert distance_km(a, b) == pytest.approx(math.pi * 6371.0, abs=0.1)


def test_custom_earth_radius() -> None:
    a = Coordinate(latitude=0.0, longitude=0.0)
    b = Coordinate(latitude=0.0, longitude=1.0)

    assert haversine_km(a, b, earth_radius_km=1.0) == pytest.approx(math.pi / 180)
