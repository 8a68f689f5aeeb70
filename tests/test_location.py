from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from pynearby.config import NearbyConfig
from pynearby.exceptions import (
    LocationDeniedError,
    LocationTimeoutError,
    LocationUnavailableError,
    NearbyConfigError,
    NearbyTimeoutError,
    NearbyTransportError,
)
from pynearby.models.coordinate import Coordinate
from pynearby.sources.location import HttpLocationProvider, StaticLocationProvider


class _FakeTransport:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.urls: list[str] = []

    async def get_json(self, url: str, *, params: Mapping[str, str] | None = None) -> Any:
        self.urls.append(url)
        if self._error is not None:
            raise self._error
        return self._response

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:  # pragma: no cover
        raise AssertionError("unexpected POST")


def _provider(transport: _FakeTransport) -> HttpLocationProvider:
    return HttpLocationProvider("https://geo.example.com/json", transport=transport)


@pytest.mark.asyncio
async def test_static_provider_returns_position() -> None:
    here = Coordinate(latitude=24.7, longitude=46.6)
    assert await StaticLocationProvider(here).request_current_position() == here


@pytest.mark.asyncio
async def test_static_provider_without_position_is_unavailable() -> None:
    with pytest.raises(LocationUnavailableError):
        await StaticLocationProvider(None).request_current_position()


@pytest.mark.asyncio
async def test_static_provider_raises_configured_error() -> None:
    with pytest.raises(LocationDeniedError):
        await StaticLocationProvider(None, error=LocationDeniedError()).request_current_position()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"latitude": 24.7, "longitude": 46.6},
        {"lat": 24.7, "lon": 46.6, "city": "Riyadh"},
        {"ip": "10.0.0.1", "location": {"lat": "24.7", "lng": "46.6"}},
    ],
)
async def test_http_provider_parses_common_shapes(body: dict[str, Any]) -> None:
    transport = _FakeTransport(body)

    position = await _provider(transport).request_current_position()

    assert position == Coordinate(latitude=24.7, longitude=46.6)
    assert transport.urls == ["https://geo.example.com/json"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, [], {"city": "Riyadh"}, {"lat": 124.7, "lon": 46.6}])
async def test_http_provider_unusable_body_is_unavailable(body: Any) -> None:
    with pytest.raises(LocationUnavailableError):
        await _provider(_FakeTransport(body)).request_current_position()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (NearbyTimeoutError("slow"), LocationTimeoutError),
        (NearbyTransportError("forbidden", status_code=403), LocationDeniedError),
        (NearbyTransportError("unauthorized", status_code=401), LocationDeniedError),
        (NearbyTransportError("server error", status_code=500), LocationUnavailableError),
        (NearbyTransportError("connection refused"), LocationUnavailableError),
    ],
)
async def test_http_provider_maps_transport_errors(error: Exception, expected: type[Exception]) -> None:
    with pytest.raises(expected):
        await _provider(_FakeTransport(error=error)).request_current_position()


def test_http_provider_from_config() -> None:
    with pytest.raises(NearbyConfigError):
        HttpLocationProvider.from_config(NearbyConfig())

    assert isinstance(
        HttpLocationProvider.from_config(NearbyConfig(location_url="https://geo.example.com/json")),
        HttpLocationProvider,
    )
