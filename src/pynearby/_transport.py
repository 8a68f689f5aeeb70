"""JSON-over-HTTP transport shared by location providers and action delegates."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pynearby._constants import USER_AGENT
from pynearby._redact import redact_for_log, redact_url
from pynearby.exceptions import NearbyTimeoutError, NearbyTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface.

    Providers accept any object with this shape, so tests can pass a fake
    instead of a real :class:`JsonTransport`.
    """

    async def get_json(self, url: str, *, params: Mapping[str, str] | None = None) -> Any: ...

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any: ...


class JsonTransport:
    """Thin aiohttp wrapper that maps every failure onto :class:`NearbyTransportError`."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 15.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            self._headers.update(headers)

    async def get_json(self, url: str, *, params: Mapping[str, str] | None = None) -> Any:
        return await self._request("GET", url, params=params)

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        _logger.debug("POST body %s", redact_for_log(payload))
        return await self._request("POST", url, body=json.dumps(payload, separators=(",", ":")))

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> Any:
        headers = dict(self._headers)
        if body is not None:
            headers["content-type"] = "application/json; charset=UTF-8"

        _logger.debug("%s %s", method, redact_url(url))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise NearbyTransportError(
                        f"HTTP {resp.status} from {redact_url(url)}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except NearbyTransportError:
            raise
        except TimeoutError as exc:
            raise NearbyTimeoutError(f"Request to {redact_url(url)} timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise NearbyTransportError(f"Request to {redact_url(url)} failed: {exc}", endpoint=url) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise NearbyTransportError(
                f"Invalid JSON from {redact_url(url)}: {text[:200]}",
                status_code=resp.status,
                endpoint=url,
            ) from exc
