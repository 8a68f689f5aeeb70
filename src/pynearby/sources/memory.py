"""In-process feed source."""

from __future__ import annotations

import copy
from typing import Any

from pynearby._constants import DEFAULT_COLLECTION_PATH
from pynearby.sources.base import FeedSubscription


class InMemoryFeedSource:
    """Feed source driven by explicit :meth:`push` calls.

    Like a realtime database ``value`` listener, a new subscriber immediately
    receives the latest payload pushed to its path, if any. Useful for tests,
    demos and for bridging feeds this package has no adapter for.
    """

    def __init__(self) -> None:
        self._subscriptions: list[FeedSubscription] = []
        self._latest: dict[str, Any] = {}
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, collection_path: str) -> FeedSubscription:
        self.subscribe_calls += 1
        subscription = FeedSubscription(collection_path, on_close=self._unsubscribe)
        self._subscriptions.append(subscription)
        if collection_path in self._latest:
            subscription.deliver(copy.deepcopy(self._latest[collection_path]))
        return subscription

    def push(self, payload: Any, collection_path: str = DEFAULT_COLLECTION_PATH) -> None:
        """Publish a full-collection payload to every subscriber of *collection_path*."""
        self._latest[collection_path] = copy.deepcopy(payload)
        for subscription in self._matching(collection_path):
            subscription.deliver(copy.deepcopy(payload))

    def fail(self, error: BaseException, collection_path: str = DEFAULT_COLLECTION_PATH) -> None:
        for subscription in self._matching(collection_path):
            subscription.fail(error)

    def close(self) -> None:
        """End every open stream normally."""
        for subscription in list(self._subscriptions):
            subscription.finish()

    def _matching(self, collection_path: str) -> list[FeedSubscription]:
        return [sub for sub in self._subscriptions if sub.collection_path == collection_path]

    def _unsubscribe(self, subscription: FeedSubscription) -> None:
        self.unsubscribe_calls += 1
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
