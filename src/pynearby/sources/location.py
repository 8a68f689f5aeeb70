"""Location providers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from pynearby._transport import JsonTransport, Transport
from pynearby.config import NearbyConfig
from pynearby.exceptions import (
    LocationDeniedError,
    LocationError,
    LocationTimeoutError,
    LocationUnavailableError,
    NearbyConfigError,
    NearbyTimeoutError,
    NearbyTransportError,
)
from pynearby.models.coordinate import Coordinate, parse_coordinate

_logger = logging.getLogger(__name__)

_DENIED_STATUSES = frozenset({401, 403})


class StaticLocationProvider:
    """Provider for hosts that already know where they are.

    ``StaticLocationProvider(None)`` models a host with no location capability.
    """

    def __init__(
        self,
        coordinate: Coordinate | None,
        *,
        error: LocationError | None = None,
        delay: float = 0.0,
    ) -> None:
        self._coordinate = coordinate
        self._error = error
        self._delay = delay

    async def request_current_position(self) -> Coordinate:
        if self._delay > 0:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if self._coordinate is None:
            raise LocationUnavailableError("No location capability configured")
        return self._coordinate


class HttpLocationProvider:
    """Look the position up from a JSON geolocation endpoint.

    The response may be ``{"latitude": .., "longitude": ..}``, ``{"lat": ..,
    "lon": ..}`` or nest either under ``location``. 401/403 map to
    :class:`LocationDeniedError`, timeouts to :class:`LocationTimeoutError`,
    anything else to :class:`LocationUnavailableError`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: Transport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: NearbyConfig, *, transport: Transport | None = None) -> HttpLocationProvider:
        if not config.location_url:
            raise NearbyConfigError("location_url is required for HttpLocationProvider")
        return cls(config.location_url, timeout=config.location_timeout, transport=transport)

    async def request_current_position(self) -> Coordinate:
        try:
            body = await self._fetch()
        except NearbyTimeoutError as exc:
            raise LocationTimeoutError(str(exc)) from exc
        except NearbyTransportError as exc:
            if exc.status_code in _DENIED_STATUSES:
                raise LocationDeniedError(str(exc)) from exc
            raise LocationUnavailableError(str(exc)) from exc

        coordinate = parse_coordinate(body) if isinstance(body, dict) else None
        if coordinate is None or not coordinate.is_valid:
            _logger.debug("Geolocation response has no usable position: %r", body)
            raise LocationUnavailableError("Geolocation response has no usable position")
        return coordinate

    async def _fetch(self) -> Any:
        if self._transport is not None:
            return await self._transport.get_json(self._url)
        async with aiohttp.ClientSession() as session:
            return await JsonTransport(session, timeout=self._timeout).get_json(self._url)
