"""Proximity filter/sort engine."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pynearby._constants import DEFAULT_RADIUS_KM, EARTH_RADIUS_KM
from pynearby.config import NearbyConfig
from pynearby.geo import distance_km
from pynearby.ingestion.drivers import normalize_collection
from pynearby.models.coordinate import Coordinate
from pynearby.models.driver import DriverSnapshot, RankedDriver
from pynearby.models.result import ProximityResult


def rank(
    reference: Coordinate,
    snapshot: DriverSnapshot,
    *,
    earth_radius_km: float = EARTH_RADIUS_KM,
) -> RankedDriver:
    return RankedDriver(
        snapshot=snapshot,
        distance_km=distance_km(reference, snapshot.coordinates, earth_radius_km=earth_radius_km),
    )


def compute(
    reference: Coordinate,
    snapshots: Iterable[DriverSnapshot],
    radius_km: float = DEFAULT_RADIUS_KM,
    *,
    earth_radius_km: float = EARTH_RADIUS_KM,
) -> ProximityResult:
    """Rank *snapshots* by distance from *reference*, keeping those within *radius_km*.

    The result is a pure function of its arguments. Drivers at equal distance
    are ordered by id so that repeated pushes render identically.
    """
    if radius_km < 0:
        raise ValueError(f"radius_km must not be negative, got {radius_km}")

    nearby = [
        ranked
        for ranked in (rank(reference, snapshot, earth_radius_km=earth_radius_km) for snapshot in snapshots)
        if ranked.distance_km <= radius_km
    ]
    nearby.sort(key=lambda ranked: (ranked.distance_km, ranked.id))
    return ProximityResult(drivers=tuple(nearby))


class ProximityEngine:
    """:func:`compute` bound to a configured radius."""

    def __init__(self, *, radius_km: float = DEFAULT_RADIUS_KM, earth_radius_km: float = EARTH_RADIUS_KM) -> None:
        self.radius_km = radius_km
        self.earth_radius_km = earth_radius_km

    @classmethod
    def from_config(cls, config: NearbyConfig) -> ProximityEngine:
        return cls(radius_km=config.radius_km, earth_radius_km=config.earth_radius_km)

    def compute(self, reference: Coordinate, snapshots: Iterable[DriverSnapshot]) -> ProximityResult:
        return compute(reference, snapshots, self.radius_km, earth_radius_km=self.earth_radius_km)

    def compute_from_payload(self, reference: Coordinate, payload: Any) -> ProximityResult:
        """Normalize a raw full-collection payload and rank it."""
        return self.compute(reference, normalize_collection(payload))
