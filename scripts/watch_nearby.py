#!/usr/bin/env python3
"""Print nearby drivers from a live feed as they change.

Configuration comes from ``NEARBY_*`` environment variables (see
``NearbyConfig.from_env``); command-line flags override them.

Examples::

    # Fixed position, realtime-database stream
    NEARBY_FEED_URL=https://example-default-rtdb.firebaseio.com \\
        python scripts/watch_nearby.py --lat 24.7136 --lon 46.6753

    # Position from a geolocation endpoint, MQTT feed
    python scripts/watch_nearby.py --location-url https://ipapi.co/json --mqtt-host broker.local
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pynearby import (  # noqa: E402
    Coordinate,
    FeedState,
    FeedStatus,
    HttpLocationProvider,
    MqttFeedSource,
    NearbyConfig,
    NearbyConfigError,
    NearbyDriversWatcher,
    RealtimeDbFeedSource,
    StaticLocationProvider,
)
from pynearby.sources.base import FeedSource, LocationProvider  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    position = parser.add_argument_group("position")
    position.add_argument("--lat", type=float, help="Reference latitude")
    position.add_argument("--lon", type=float, help="Reference longitude")
    position.add_argument("--location-url", help="JSON geolocation endpoint")

    feed = parser.add_argument_group("feed")
    feed.add_argument("--feed-url", help="Realtime-database base URL")
    feed.add_argument("--mqtt-host", help="MQTT broker host")
    feed.add_argument("--collection", help="Collection path (default: drivers)")
    feed.add_argument("--radius", type=float, help="Radius in km (default: 10)")

    parser.add_argument("--json", action="store_true", help="Print each state as a JSON line")
    parser.add_argument("--once", action="store_true", help="Exit after the first ready/failed state")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> NearbyConfig:
    overrides: dict[str, Any] = {}
    if args.location_url:
        overrides["location_url"] = args.location_url
    if args.feed_url:
        overrides["feed_url"] = args.feed_url
    if args.mqtt_host:
        overrides["mqtt_host"] = args.mqtt_host
    if args.collection:
        overrides["collection_path"] = args.collection
    if args.radius is not None:
        overrides["radius_km"] = args.radius
    return NearbyConfig.from_env(**overrides)


def _build_location_provider(args: argparse.Namespace, config: NearbyConfig) -> LocationProvider:
    if args.lat is not None and args.lon is not None:
        return StaticLocationProvider(Coordinate(latitude=args.lat, longitude=args.lon))
    if config.location_url:
        return HttpLocationProvider.from_config(config)
    # No way to locate: the watcher reports location_unavailable.
    return StaticLocationProvider(None)


def _build_feed_source(config: NearbyConfig) -> FeedSource:
    if config.feed_url:
        return RealtimeDbFeedSource.from_config(config)
    if config.mqtt_host:
        return MqttFeedSource.from_config(config)
    raise NearbyConfigError("Set --feed-url / NEARBY_FEED_URL or --mqtt-host / NEARBY_MQTT_HOST")


def _print_state(state: FeedState, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(state.to_dict(), ensure_ascii=False))
        return
    if state.status != FeedStatus.READY or not state.result:
        print(f"[{state.status.value}] {state.message}")
        return
    print(f"[{state.status.value}] {len(state.result)} driver(s) nearby")
    for ranked in state.result:
        driver = ranked.snapshot
        print(
            f"  {ranked.distance_km:5.1f} km  {driver.name or driver.id}"
            f"  ★ {driver.display_rating}  {driver.trip_count} trips"
            f"  {driver.vehicle_label}  {driver.location_label}"
        )


async def _watch(args: argparse.Namespace) -> int:
    config = _build_config(args)
    watcher = NearbyDriversWatcher(
        config,
        location_provider=_build_location_provider(args, config),
        feed_source=_build_feed_source(config),
    )
    async with watcher:
        async for state in watcher.updates():
            _print_state(state, as_json=args.json)
            if args.once and state.status in (FeedStatus.READY, FeedStatus.FAILED):
                break
    return 1 if watcher.state.status == FeedStatus.FAILED else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_watch(args))
    except NearbyConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
