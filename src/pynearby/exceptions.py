"""Custom exception hierarchy for pynearby."""

from __future__ import annotations


class NearbyError(Exception):
    """Base exception for all pynearby errors."""


class NearbyConfigError(NearbyError):
    """Invalid or missing configuration."""


class NearbyTransportError(NearbyError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class NearbyTimeoutError(NearbyTransportError):
    """The request did not complete within the configured timeout."""


class LocationError(NearbyError):
    """The one-shot location lookup failed."""


class LocationUnavailableError(LocationError):
    """The host has no way to determine its position."""


class LocationDeniedError(LocationError):
    """The location request was refused (permission denied)."""


class LocationTimeoutError(LocationError):
    """The location request did not complete in time."""


class NearbyFeedError(NearbyError):
    """The live driver feed failed or was cancelled by the source."""
