"""External collaborator interfaces.

The watcher only ever talks to these protocols; concrete sources live next to
this module and tests substitute their own fakes.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pynearby.models.coordinate import Coordinate

_logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """One-shot position lookup for the observer."""

    async def request_current_position(self) -> Coordinate:
        """Return the current position.

        Raises :class:`~pynearby.exceptions.LocationUnavailableError`,
        :class:`~pynearby.exceptions.LocationDeniedError` or
        :class:`~pynearby.exceptions.LocationTimeoutError`.
        """
        ...


class FeedSource(Protocol):
    """Push-based source of full-collection driver snapshots."""

    def subscribe(self, collection_path: str) -> FeedSubscription: ...


class ActionDelegate(Protocol):
    """Side-effecting driver actions invoked by presentation code."""

    async def open_conversation(self, driver_id: str) -> Any: ...

    async def reserve_driver(self, driver_id: str) -> Any: ...


_END = object()


@dataclass(frozen=True)
class _Failure:
    error: BaseException


OnClose = Callable[["FeedSubscription"], Awaitable[None] | None]


class FeedSubscription:
    """Cancellable stream of full-collection payloads.

    Sources push into it with :meth:`deliver`, :meth:`fail` and :meth:`finish`
    (always from the event-loop thread); consumers iterate it with
    ``async for``. :meth:`aclose` releases the underlying source exactly once,
    however many times it is called.

    Usage::

        async with source.subscribe("drivers") as subscription:
            async for payload in subscription:
                ...
    """

    def __init__(self, collection_path: str, *, on_close: OnClose | None = None) -> None:
        self.collection_path = collection_path
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._on_close = on_close
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def deliver(self, payload: Any) -> None:
        """Queue a full-collection payload (``None`` means "collection absent")."""
        if self._closed or self._finished:
            return
        self._queue.put_nowait(payload)

    def fail(self, error: BaseException) -> None:
        """End the stream with *error*, raised to the consumer."""
        if self._closed or self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_Failure(error))

    def finish(self) -> None:
        """End the stream normally."""
        if self._closed or self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_END)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def __aiter__(self) -> FeedSubscription:
        return self

    async def __anext__(self) -> Any:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END or self._closed:
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            raise item.error
        return item

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a consumer blocked in __anext__.
        self._queue.put_nowait(_END)
        on_close, self._on_close = self._on_close, None
        if on_close is None:
            return
        result = on_close(self)
        if inspect.isawaitable(result):
            await result
        _logger.debug("Feed subscription to %s released", self.collection_path)

    async def __aenter__(self) -> FeedSubscription:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
