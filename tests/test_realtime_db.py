from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from aiohttp import test_utils, web

from pynearby.config import NearbyConfig
from pynearby.exceptions import NearbyConfigError, NearbyFeedError
from pynearby.models.coordinate import Coordinate
from pynearby.models.result import ErrorKind, FeedStatus
from pynearby.sources.location import StaticLocationProvider
from pynearby.sources.realtime_db import CollectionTree, RealtimeDbFeedSource, SseEvent, iter_sse_events
from pynearby.watcher import NearbyDriversWatcher


async def _lines(*lines: bytes) -> AsyncIterator[bytes]:
    for line in lines:
        yield line


def _event(name: str, path: str, data: Any) -> SseEvent:
    return SseEvent(event=name, data=json.dumps({"path": path, "data": data}))


def _sse(name: str, path: str, data: Any) -> bytes:
    return f"event: {name}\ndata: {json.dumps({'path': path, 'data': data})}\n\n".encode()


# ------------------------------------------------------------------
# SSE parsing
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_iter_sse_events_parses_named_events() -> None:
    stream = _lines(
        b"event: put\n",
        b'data: {"path": "/", "data": null}\n',
        b"\n",
        b": comment\n",
        b"event: keep-alive\r\n",
        b"data: null\r\n",
        b"\r\n",
    )

    events = [event async for event in iter_sse_events(stream)]

    assert events == [
        SseEvent(event="put", data='{"path": "/", "data": null}'),
        SseEvent(event="keep-alive", data="null"),
    ]


@pytest.mark.asyncio
async def test_iter_sse_events_joins_multiline_data_and_flushes_tail() -> None:
    stream = _lines(b"data: one\n", b"data: two\n")

    events = [event async for event in iter_sse_events(stream)]

    assert events == [SseEvent(event="message", data="one\ntwo")]


# ------------------------------------------------------------------
# Collection replica
# ------------------------------------------------------------------


class TestCollectionTree:
    def test_root_put_replaces_collection(self) -> None:
        tree = CollectionTree()
        assert tree.apply(_event("put", "/", {"d1": {"name": "Ali"}}))
        assert tree.apply(_event("put", "/", {"d2": {"name": "Omar"}}))

        assert tree.snapshot() == {"d2": {"name": "Omar"}}

    def test_nested_put_updates_single_field(self) -> None:
        tree = CollectionTree()
        tree.apply(_event("put", "/", {"d1": {"name": "Ali", "rating": 4.0}}))
        tree.apply(_event("put", "/d1/rating", 4.5))

        assert tree.snapshot() == {"d1": {"name": "Ali", "rating": 4.5}}

    def test_put_null_deletes_node(self) -> None:
        tree = CollectionTree()
        tree.apply(_event("put", "/", {"d1": {"name": "Ali"}, "d2": {"name": "Omar"}}))
        tree.apply(_event("put", "/d1", None))

        assert tree.snapshot() == {"d2": {"name": "Omar"}}

        tree.apply(_event("put", "/d2", None))
        assert tree.snapshot() is None

    def test_patch_merges_children(self) -> None:
        tree = CollectionTree()
        tree.apply(_event("put", "/", {"d1": {"name": "Ali", "trips": 1}}))
        tree.apply(_event("patch", "/d1", {"trips": 2, "coordinates/lat": 24.7}))

        assert tree.snapshot() == {"d1": {"name": "Ali", "trips": 2, "coordinates": {"lat": 24.7}}}

    def test_snapshot_is_a_copy(self) -> None:
        tree = CollectionTree()
        tree.apply(_event("put", "/", {"d1": {"name": "Ali"}}))

        tree.snapshot()["d1"]["name"] = "changed"

        assert tree.snapshot() == {"d1": {"name": "Ali"}}

    def test_keep_alive_and_unknown_events_do_not_change(self) -> None:
        tree = CollectionTree()

        assert not tree.apply(SseEvent(event="keep-alive", data="null"))
        assert not tree.apply(SseEvent(event="message", data="hello"))

    @pytest.mark.parametrize("name", ["cancel", "auth_revoked"])
    def test_server_termination_raises(self, name: str) -> None:
        with pytest.raises(NearbyFeedError):
            CollectionTree().apply(SseEvent(event=name, data="null"))

    def test_malformed_event_raises(self) -> None:
        with pytest.raises(NearbyFeedError):
            CollectionTree().apply(SseEvent(event="put", data="{not json"))
        with pytest.raises(NearbyFeedError):
            CollectionTree().apply(SseEvent(event="patch", data=json.dumps({"path": "/", "data": 3})))


# ------------------------------------------------------------------
# Source
# ------------------------------------------------------------------


def test_url_for_and_from_config() -> None:
    source = RealtimeDbFeedSource.from_config(NearbyConfig(feed_url="https://db.example.com/"))

    assert source.url_for("drivers") == "https://db.example.com/drivers.json"
    assert source.url_for("/fleet/drivers/") == "https://db.example.com/fleet/drivers.json"

    with pytest.raises(NearbyConfigError):
        RealtimeDbFeedSource.from_config(NearbyConfig())


@pytest.mark.asyncio
async def test_stream_delivers_full_collection_snapshots() -> None:
    seen_auth: list[str | None] = []

    async def _handler(request: web.Request) -> web.StreamResponse:
        seen_auth.append(request.query.get("auth"))
        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        await resp.write(_sse("put", "/", {"d1": {"name": "Ali", "coordinates": {"lat": 24.75, "lng": 46.7}}}))
        await resp.write(b"event: keep-alive\ndata: null\n\n")
        await resp.write(_sse("put", "/d2", {"name": "Omar"}))
        await resp.write(_sse("put", "/d1", None))
        return resp

    app = web.Application()
    app.router.add_get("/drivers.json", _handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        source = RealtimeDbFeedSource(str(server.make_url("/")), auth_token="secret")
        subscription = source.subscribe("drivers")
        payloads = [payload async for payload in subscription]
        await subscription.aclose()
    finally:
        await server.close()

    assert seen_auth == ["secret"]
    assert payloads == [
        {"d1": {"name": "Ali", "coordinates": {"lat": 24.75, "lng": 46.7}}},
        {"d1": {"name": "Ali", "coordinates": {"lat": 24.75, "lng": 46.7}}, "d2": {"name": "Omar"}},
        {"d2": {"name": "Omar"}},
    ]


@pytest.mark.asyncio
async def test_stream_http_error_fails_subscription() -> None:
    async def _handler(request: web.Request) -> web.Response:
        return web.Response(status=401, text='{"error": "Permission denied"}')

    app = web.Application()
    app.router.add_get("/drivers.json", _handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        subscription = RealtimeDbFeedSource(str(server.make_url("/"))).subscribe("drivers")
        with pytest.raises(NearbyFeedError, match="HTTP 401"):
            await subscription.__anext__()
        await subscription.aclose()
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_stream_cancel_event_fails_subscription() -> None:
    async def _handler(request: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        await resp.write(_sse("put", "/", {"d1": {}}))
        await resp.write(b"event: cancel\ndata: null\n\n")
        return resp

    app = web.Application()
    app.router.add_get("/drivers.json", _handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        subscription = RealtimeDbFeedSource(str(server.make_url("/"))).subscribe("drivers")
        assert await subscription.__anext__() == {"d1": {}}
        with pytest.raises(NearbyFeedError):
            await subscription.__anext__()
        await subscription.aclose()
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_iter_sse_events_rejects_invalid_utf8() -> None:
    stream = _lines(b"event: put\n", b'data: {"path": "/", "data": "\xff"}\n', b"\n")

    with pytest.raises(NearbyFeedError, match="UTF-8"):
        [event async for event in iter_sse_events(stream)]


@pytest.mark.asyncio
async def test_undecodable_stream_fails_watcher() -> None:
    async def _handler(request: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        await resp.write(b'event: put\ndata: {"path": "/", "data": {"d1": {"name": "\xff"}}}\n\n')
        return resp

    app = web.Application()
    app.router.add_get("/drivers.json", _handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        watcher = NearbyDriversWatcher(
            NearbyConfig(),
            location_provider=StaticLocationProvider(Coordinate(latitude=24.7136, longitude=46.6753)),
            feed_source=RealtimeDbFeedSource(str(server.make_url("/"))),
        )
        async with watcher:
            state = await watcher.wait_until_ready(timeout=2.0)
    finally:
        await server.close()

    assert state.status == FeedStatus.FAILED
    assert state.error == ErrorKind.FEED_FAILED
    assert not state.result


@pytest.mark.asyncio
async def test_unexpected_stream_error_fails_subscription() -> None:
    class _CrashingSource(RealtimeDbFeedSource):
        async def _stream(self, collection_path: str, subscription: Any) -> None:
            raise RuntimeError("boom")

    subscription = _CrashingSource("https://db.example.com").subscribe("drivers")

    with pytest.raises(NearbyFeedError) as excinfo:
        await asyncio.wait_for(subscription.__anext__(), 1.0)
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    await subscription.aclose()
