"""Live feed subscription manager.

Owns the one-shot location lookup and the feed subscription, and republishes a
fresh :class:`~pynearby.models.result.FeedState` after every feed push:

``AWAITING_LOCATION -> SUBSCRIBING -> READY`` with ``FAILED`` as the terminal
state for location errors and feed failures.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from pynearby.config import NearbyConfig
from pynearby.exceptions import (
    LocationDeniedError,
    LocationError,
    LocationTimeoutError,
    LocationUnavailableError,
    NearbyError,
    NearbyFeedError,
)
from pynearby.models.coordinate import Coordinate
from pynearby.models.result import ErrorKind, FeedState, FeedStatus, ProximityResult
from pynearby.proximity import ProximityEngine
from pynearby.sources.base import FeedSource, FeedSubscription, LocationProvider

_logger = logging.getLogger(__name__)

StateCallback = Callable[[FeedState], None]


def location_error_kind(error: LocationError) -> ErrorKind:
    if isinstance(error, LocationDeniedError):
        return ErrorKind.LOCATION_DENIED
    if isinstance(error, LocationTimeoutError):
        return ErrorKind.LOCATION_TIMEOUT
    return ErrorKind.LOCATION_UNAVAILABLE


class NearbyDriversWatcher:
    """Radius-filtered, distance-sorted view of a live driver feed.

    Usage::

        async with NearbyDriversWatcher(
            config,
            location_provider=StaticLocationProvider(here),
            feed_source=RealtimeDbFeedSource.from_config(config),
        ) as watcher:
            async for state in watcher.updates():
                render(state)

    The feed subscription is released exactly once when the watcher is closed,
    whichever state it reached. A failed watcher stays failed; create a new one
    to retry.
    """

    def __init__(
        self,
        config: NearbyConfig,
        *,
        location_provider: LocationProvider,
        feed_source: FeedSource,
        on_state: StateCallback | None = None,
    ) -> None:
        self._config = config.validate()
        self._engine = ProximityEngine.from_config(config)
        self._location_provider = location_provider
        self._feed_source = feed_source
        self._on_state = on_state

        self._state = FeedState(status=FeedStatus.AWAITING_LOCATION)
        self._version = 0
        self._waiters: list[asyncio.Future[None]] = []
        self._task: asyncio.Task[None] | None = None
        self._subscription: FeedSubscription | None = None
        self._stopped = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> NearbyDriversWatcher:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Begin locating and subscribing in a background task."""
        if self._task is not None or self._stopped:
            raise NearbyError("Watcher already started; create a new watcher to observe again")
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pynearby-watcher")

    async def close(self) -> None:
        """Stop observing and release the feed subscription."""
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._release_subscription()
        self._mark_stopped()
        if task is not None and task.done() and not task.cancelled():
            # Surface unexpected errors from the background task.
            task.result()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def result(self) -> ProximityResult:
        return self._state.result

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def updates(self) -> AsyncIterator[FeedState]:
        """Yield the current state, then every newer one.

        States published faster than the consumer iterates are coalesced to
        the latest. Iteration ends after a ``FAILED`` state or once the
        watcher stops.
        """
        version = self._version
        state = self._state
        yield state
        while not state.is_terminal:
            if not await self._wait_for_change(version, None):
                return
            version = self._version
            state = self._state
            yield state

    async def next_state(self, timeout: float | None = None) -> FeedState | None:
        """Wait for the next published state.

        Returns ``None`` if the watcher stops first; raises ``TimeoutError``
        after *timeout* seconds.
        """
        version = self._version
        if await self._wait_for_change(version, timeout):
            return self._state
        return None

    async def wait_for(self, predicate: Callable[[FeedState], bool], timeout: float | None = None) -> FeedState:
        """Wait until *predicate* holds for the current state.

        Returns the latest state early if the watcher stops; raises
        ``TimeoutError`` after *timeout* seconds.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            state = self._state
            if predicate(state) or self._stopped:
                return state
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            await self._wait_for_change(self._version, remaining)

    async def wait_until_ready(self, timeout: float | None = None) -> FeedState:
        """Wait for the first ``READY`` (or ``FAILED``) state."""
        return await self.wait_for(
            lambda state: state.status in (FeedStatus.READY, FeedStatus.FAILED),
            timeout,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        try:
            try:
                reference = await self._locate()
            except LocationError as exc:
                self._fail(location_error_kind(exc), exc)
                return
            self._publish(FeedState(status=FeedStatus.SUBSCRIBING, reference=reference))
            await self._consume(reference)
        finally:
            await self._release_subscription()
            self._mark_stopped()

    async def _locate(self) -> Coordinate:
        timeout = self._config.location_timeout
        try:
            reference = await asyncio.wait_for(self._location_provider.request_current_position(), timeout)
        except TimeoutError as exc:
            raise LocationTimeoutError(f"No position within {timeout}s") from exc
        if not reference.is_valid:
            raise LocationUnavailableError(f"Position {reference} is out of range")
        _logger.debug("Reference point %s", reference)
        return reference

    async def _consume(self, reference: Coordinate) -> None:
        path = self._config.collection_path
        try:
            subscription = self._feed_source.subscribe(path)
        except Exception as exc:
            _logger.debug("Subscribing to %s failed", path, exc_info=True)
            self._fail(ErrorKind.FEED_FAILED, exc, reference=reference)
            return
        self._subscription = subscription
        try:
            async for payload in subscription:
                if payload is None:
                    _logger.debug("Collection %s is absent; no drivers to show", path)
                result = self._engine.compute_from_payload(reference, payload)
                _logger.debug("Collection %s pushed; %d driver(s) within %s km", path, len(result), self._engine.radius_km)
                self._publish(FeedState(status=FeedStatus.READY, result=result, reference=reference))
        except NearbyFeedError as exc:
            self._fail(ErrorKind.FEED_FAILED, exc, reference=reference)

    async def _release_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.aclose()

    def _fail(self, kind: ErrorKind, error: Exception, *, reference: Coordinate | None = None) -> None:
        _logger.warning("Nearby drivers unavailable (%s): %s", kind.value, error)
        self._publish(FeedState.failed(kind, reference=reference))

    def _publish(self, state: FeedState) -> None:
        self._state = state
        self._version += 1
        self._wake()
        if self._on_state is not None:
            try:
                self._on_state(state)
            except Exception:
                _logger.debug("on_state callback failed", exc_info=True)

    def _mark_stopped(self) -> None:
        self._stopped = True
        self._wake()

    def _wake(self) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def _wait_for_change(self, version: int, timeout: float | None) -> bool:
        if self._version != version:
            return True
        if self._stopped:
            return False
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, timeout)
        finally:
            with contextlib.suppress(ValueError):
                self._waiters.remove(waiter)
        return self._version != version
