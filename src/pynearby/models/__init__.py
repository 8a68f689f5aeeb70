"""Data models for driver feeds and proximity results."""

from pynearby.models._base import NearbyBaseModel
from pynearby.models.coordinate import ORIGIN, Coordinate, parse_coordinate
from pynearby.models.driver import DriverSnapshot, RankedDriver, RawDriverRecord
from pynearby.models.result import (
    EMPTY_RESULT,
    ERROR_MESSAGES,
    ErrorKind,
    FeedState,
    FeedStatus,
    ProximityResult,
)

__all__ = [
    "EMPTY_RESULT",
    "ERROR_MESSAGES",
    "ORIGIN",
    "Coordinate",
    "DriverSnapshot",
    "ErrorKind",
    "FeedState",
    "FeedStatus",
    "NearbyBaseModel",
    "ProximityResult",
    "RankedDriver",
    "RawDriverRecord",
    "parse_coordinate",
]
