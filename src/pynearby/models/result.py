"""Proximity result and presentation state."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, overload

from pynearby.models.coordinate import Coordinate
from pynearby.models.driver import RankedDriver


class FeedStatus(StrEnum):
    AWAITING_LOCATION = "awaiting_location"
    SUBSCRIBING = "subscribing"
    READY = "ready"
    FAILED = "failed"


class ErrorKind(StrEnum):
    LOCATION_UNAVAILABLE = "location_unavailable"
    LOCATION_DENIED = "location_denied"
    LOCATION_TIMEOUT = "location_timeout"
    # Absent collection; reported as an empty result, never as a failure.
    FEED_UNAVAILABLE = "feed_unavailable"
    FEED_FAILED = "feed_failed"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.LOCATION_UNAVAILABLE: "Location services are not supported on this device.",
    ErrorKind.LOCATION_DENIED: "Could not determine your location.",
    ErrorKind.LOCATION_TIMEOUT: "Timed out while determining your location.",
    ErrorKind.FEED_UNAVAILABLE: "No drivers are published yet.",
    ErrorKind.FEED_FAILED: "The live driver feed is unavailable.",
}

LOADING_MESSAGE = "Searching for drivers in your area..."
EMPTY_MESSAGE = "There are no drivers in your area right now."


@dataclass(frozen=True)
class ProximityResult:
    """Drivers within the radius, nearest first."""

    drivers: tuple[RankedDriver, ...] = ()

    def __len__(self) -> int:
        return len(self.drivers)

    def __iter__(self) -> Iterator[RankedDriver]:
        return iter(self.drivers)

    def __bool__(self) -> bool:
        return bool(self.drivers)

    @overload
    def __getitem__(self, index: int) -> RankedDriver: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[RankedDriver, ...]: ...

    def __getitem__(self, index: int | slice) -> RankedDriver | tuple[RankedDriver, ...]:
        return self.drivers[index]

    def ids(self) -> list[str]:
        return [driver.id for driver in self.drivers]

    def to_list(self) -> list[dict[str, Any]]:
        return [driver.to_dict() for driver in self.drivers]


EMPTY_RESULT = ProximityResult()


@dataclass(frozen=True)
class FeedState:
    """Snapshot of a watcher, as handed to presentation code.

    A ``FAILED`` state never carries drivers.
    """

    status: FeedStatus
    result: ProximityResult = EMPTY_RESULT
    error: ErrorKind | None = None
    reference: Coordinate | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def failed(cls, error: ErrorKind, *, reference: Coordinate | None = None) -> FeedState:
        return cls(status=FeedStatus.FAILED, error=error, reference=reference)

    @property
    def is_terminal(self) -> bool:
        return self.status == FeedStatus.FAILED

    @property
    def is_loading(self) -> bool:
        return self.status in (FeedStatus.AWAITING_LOCATION, FeedStatus.SUBSCRIBING)

    @property
    def message(self) -> str | None:
        """The single user-facing line for this state, if any."""
        if self.error is not None:
            return ERROR_MESSAGES[self.error]
        if self.is_loading:
            return LOADING_MESSAGE
        if not self.result:
            return EMPTY_MESSAGE
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "error": self.error.value if self.error is not None else None,
            "message": self.message,
            "reference": self.reference.model_dump() if self.reference is not None else None,
            "updated_at": self.updated_at.isoformat(),
            "result": self.result.to_list(),
        }
