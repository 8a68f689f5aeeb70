"""Chat and booking action delegates."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pynearby._transport import JsonTransport, Transport
from pynearby.config import NearbyConfig
from pynearby.exceptions import NearbyConfigError

_logger = logging.getLogger(__name__)


class HttpActionDelegate:
    """POSTs ``{"driverId": ...}`` to the configured chat and booking endpoints.

    The response body is returned as-is; failures surface as
    :class:`~pynearby.exceptions.NearbyTransportError`.
    """

    def __init__(
        self,
        *,
        chat_url: str | None = None,
        booking_url: str | None = None,
        timeout: float = 15.0,
        transport: Transport | None = None,
    ) -> None:
        self._chat_url = chat_url
        self._booking_url = booking_url
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: NearbyConfig, *, transport: Transport | None = None) -> HttpActionDelegate:
        return cls(
            chat_url=config.chat_url,
            booking_url=config.booking_url,
            timeout=config.http_timeout,
            transport=transport,
        )

    async def open_conversation(self, driver_id: str) -> Any:
        if not self._chat_url:
            raise NearbyConfigError("chat_url is not configured")
        _logger.debug("Opening conversation with driver %s", driver_id)
        return await self._post(self._chat_url, driver_id)

    async def reserve_driver(self, driver_id: str) -> Any:
        if not self._booking_url:
            raise NearbyConfigError("booking_url is not configured")
        _logger.debug("Reserving driver %s", driver_id)
        return await self._post(self._booking_url, driver_id)

    async def _post(self, url: str, driver_id: str) -> Any:
        if not driver_id:
            raise ValueError("driver_id must be non-empty")
        payload = {"driverId": driver_id}
        if self._transport is not None:
            return await self._transport.post_json(url, payload)
        async with aiohttp.ClientSession() as session:
            return await JsonTransport(session, timeout=self._timeout).post_json(url, payload)
