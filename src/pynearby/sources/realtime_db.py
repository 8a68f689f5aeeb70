"""Realtime-database streaming feed source.

Speaks the REST streaming protocol of hosted realtime databases: a GET on
``{base_url}/{path}.json`` with ``Accept: text/event-stream`` returns a
Server-Sent-Events stream of ``put`` / ``patch`` events, each carrying a
``{"path": ..., "data": ...}`` body relative to the requested location.

The source folds those events into a local copy of the collection and hands the
whole collection to the subscriber after every change, so consumers always see
full-collection snapshots.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

import aiohttp

from pynearby._constants import USER_AGENT
from pynearby._redact import redact_for_log, redact_url
from pynearby.config import NearbyConfig
from pynearby.exceptions import NearbyConfigError, NearbyFeedError
from pynearby.sources.base import FeedSubscription

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SseEvent:
    event: str
    data: str


async def iter_sse_events(lines: AsyncIterable[bytes]) -> AsyncIterator[SseEvent]:
    """Parse a Server-Sent-Events byte stream into events."""
    event_name = "message"
    data_lines: list[str] = []
    async for raw_line in lines:
        try:
            line = raw_line.decode("utf-8").rstrip("\r\n")
        except UnicodeDecodeError as exc:
            raise NearbyFeedError("Feed stream is not valid UTF-8") from exc
        if not line:
            if data_lines:
                yield SseEvent(event=event_name, data="\n".join(data_lines))
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
    if data_lines:
        yield SseEvent(event=event_name, data="\n".join(data_lines))


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _as_tree(node: Any) -> dict[str, Any]:
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        return {str(index): item for index, item in enumerate(node) if item is not None}
    return {}


def _set_path(node: Any, segments: list[str], value: Any) -> Any:
    """Return *node* with *value* written at *segments* (``None`` deletes)."""
    if not segments:
        return copy.deepcopy(value)
    tree = _as_tree(node)
    head, rest = segments[0], segments[1:]
    child = _set_path(tree.get(head), rest, value)
    if child is None:
        tree.pop(head, None)
    else:
        tree[head] = child
    return tree or None


class CollectionTree:
    """Local replica of the streamed location."""

    def __init__(self) -> None:
        self._root: Any = None

    def snapshot(self) -> Any:
        return copy.deepcopy(self._root)

    def apply(self, event: SseEvent) -> bool:
        """Apply one stream event; returns True when the collection changed.

        Raises :class:`NearbyFeedError` when the server cancels the stream.
        """
        if event.event == "keep-alive":
            return False
        if event.event == "cancel":
            raise NearbyFeedError("Feed stream cancelled by server (permission denied)")
        if event.event == "auth_revoked":
            raise NearbyFeedError("Feed stream credentials revoked")
        if event.event not in ("put", "patch"):
            _logger.debug("Ignoring stream event %s", event.event)
            return False

        try:
            body = json.loads(event.data)
        except json.JSONDecodeError as exc:
            raise NearbyFeedError(f"Stream event is not JSON: {event.data[:64]}") from exc
        if not isinstance(body, dict):
            raise NearbyFeedError("Stream event body is not an object")

        segments = _split_path(str(body.get("path") or "/"))
        data = body.get("data")
        if event.event == "put":
            self._root = _set_path(self._root, segments, data)
        elif isinstance(data, dict):
            for key, value in data.items():
                self._root = _set_path(self._root, segments + _split_path(key), value)
        else:
            raise NearbyFeedError("patch event data is not an object")
        return True


class RealtimeDbFeedSource:
    """Feed source backed by a realtime-database REST stream.

    Parameters
    ----------
    base_url
        Database root, e.g. ``https://example-default-rtdb.firebaseio.com``.
    auth_token
        Optional token sent as the ``auth`` query parameter.
    session
        Optional shared :class:`aiohttp.ClientSession`; one is created per
        subscription otherwise.
    connect_timeout
        Seconds allowed to establish the stream.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str | None = None,
        session: aiohttp.ClientSession | None = None,
        connect_timeout: float = 15.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._http = session
        self._timeout = aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout, sock_read=None)

    @classmethod
    def from_config(cls, config: NearbyConfig, *, session: aiohttp.ClientSession | None = None) -> RealtimeDbFeedSource:
        if not config.feed_url:
            raise NearbyConfigError("feed_url is required for RealtimeDbFeedSource")
        return cls(
            config.feed_url,
            auth_token=config.feed_auth_token,
            session=session,
            connect_timeout=config.http_timeout,
        )

    def url_for(self, collection_path: str) -> str:
        return f"{self._base_url}/{collection_path.strip('/')}.json"

    def subscribe(self, collection_path: str) -> FeedSubscription:
        loop = asyncio.get_running_loop()
        task: asyncio.Task[None] | None = None

        async def release(_subscription: FeedSubscription) -> None:
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        subscription = FeedSubscription(collection_path, on_close=release)
        task = loop.create_task(self._run(collection_path, subscription))
        return subscription

    async def _run(self, collection_path: str, subscription: FeedSubscription) -> None:
        try:
            await self._stream(collection_path, subscription)
        except NearbyFeedError as exc:
            _logger.debug("Feed stream for %s failed: %s", collection_path, exc)
            subscription.fail(exc)
        except Exception as exc:
            _logger.debug("Feed stream for %s crashed", collection_path, exc_info=True)
            error = NearbyFeedError(f"Feed stream for {collection_path} failed: {exc!r}")
            error.__cause__ = exc
            subscription.fail(error)
        else:
            subscription.finish()

    async def _stream(self, collection_path: str, subscription: FeedSubscription) -> None:
        url = self.url_for(collection_path)
        params = {"auth": self._auth_token} if self._auth_token else None
        headers = {"accept": "text/event-stream", "user-agent": USER_AGENT}

        session = self._http
        owns_session = session is None
        if session is None:
            session = aiohttp.ClientSession(timeout=self._timeout)

        _logger.debug("Opening feed stream %s", redact_url(url))
        tree = CollectionTree()
        try:
            async with session.get(url, params=params, headers=headers, timeout=self._timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise NearbyFeedError(f"HTTP {resp.status} from {redact_url(url)}: {text[:200]}")
                async for event in iter_sse_events(resp.content):
                    if tree.apply(event):
                        snapshot = tree.snapshot()
                        if _logger.isEnabledFor(logging.DEBUG):
                            _logger.debug("Feed %s updated: %s", collection_path, redact_for_log(snapshot))
                        subscription.deliver(snapshot)
        except aiohttp.ClientError as exc:
            raise NearbyFeedError(f"Feed stream {redact_url(url)} failed: {exc}") from exc
        finally:
            if owns_session:
                await session.close()
