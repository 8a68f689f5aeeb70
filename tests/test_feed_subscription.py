from __future__ import annotations

import asyncio

import pytest

from pynearby.exceptions import NearbyFeedError
from pynearby.sources.base import FeedSubscription
from pynearby.sources.memory import InMemoryFeedSource


@pytest.mark.asyncio
async def test_subscription_yields_delivered_payloads_in_order() -> None:
    subscription = FeedSubscription("drivers")
    subscription.deliver({"a": 1})
    subscription.deliver(None)
    subscription.finish()

    assert [payload async for payload in subscription] == [{"a": 1}, None]


@pytest.mark.asyncio
async def test_subscription_raises_failure_after_pending_payloads() -> None:
    subscription = FeedSubscription("drivers")
    subscription.deliver({"a": 1})
    subscription.fail(NearbyFeedError("cancelled"))

    assert await subscription.__anext__() == {"a": 1}
    with pytest.raises(NearbyFeedError, match="cancelled"):
        await subscription.__anext__()


@pytest.mark.asyncio
async def test_aclose_runs_release_exactly_once() -> None:
    calls: list[str] = []

    async def _release(subscription: FeedSubscription) -> None:
        calls.append(subscription.collection_path)

    subscription = FeedSubscription("drivers", on_close=_release)
    await subscription.aclose()
    await subscription.aclose()

    assert calls == ["drivers"]
    assert subscription.closed


@pytest.mark.asyncio
async def test_aclose_wakes_blocked_consumer() -> None:
    subscription = FeedSubscription("drivers")

    async def _consume() -> list[object]:
        return [payload async for payload in subscription]

    consumer = asyncio.create_task(_consume())
    await asyncio.sleep(0)
    await subscription.aclose()

    assert await asyncio.wait_for(consumer, 1.0) == []


@pytest.mark.asyncio
async def test_deliveries_after_close_are_dropped() -> None:
    subscription = FeedSubscription("drivers")
    async with subscription:
        pass

    subscription.deliver({"late": True})
    subscription.fail(NearbyFeedError("late"))

    assert [payload async for payload in subscription] == []


@pytest.mark.asyncio
async def test_memory_source_replays_latest_payload_to_new_subscribers() -> None:
    source = InMemoryFeedSource()
    source.push({"d1": {"name": "first"}})
    source.push({"d1": {"name": "second"}})

    subscription = source.subscribe("drivers")

    assert await subscription.__anext__() == {"d1": {"name": "second"}}
    await subscription.aclose()


@pytest.mark.asyncio
async def test_memory_source_routes_by_collection_path() -> None:
    source = InMemoryFeedSource()
    drivers = source.subscribe("drivers")
    riders = source.subscribe("riders")

    source.push({"r1": {}}, "riders")
    source.close()

    assert [payload async for payload in drivers] == []
    assert [payload async for payload in riders] == [{"r1": {}}]


@pytest.mark.asyncio
async def test_memory_source_copies_payloads() -> None:
    source = InMemoryFeedSource()
    subscription = source.subscribe("drivers")
    payload = {"d1": {"name": "Ali"}}

    source.push(payload)
    payload["d1"]["name"] = "changed"

    assert await subscription.__anext__() == {"d1": {"name": "Ali"}}


@pytest.mark.asyncio
async def test_memory_source_counts_unsubscribes() -> None:
    source = InMemoryFeedSource()
    subscription = source.subscribe("drivers")

    await subscription.aclose()
    await subscription.aclose()

    assert source.subscribe_calls == 1
    assert source.unsubscribe_calls == 1
    assert source.active_subscriptions == 0
