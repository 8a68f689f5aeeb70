"""External collaborators: location providers, feed sources, action delegates."""

from pynearby.sources.actions import HttpActionDelegate
from pynearby.sources.base import ActionDelegate, FeedSource, FeedSubscription, LocationProvider
from pynearby.sources.location import HttpLocationProvider, StaticLocationProvider
from pynearby.sources.memory import InMemoryFeedSource
from pynearby.sources.mqtt import MqttFeedSource
from pynearby.sources.realtime_db import RealtimeDbFeedSource

__all__ = [
    "ActionDelegate",
    "FeedSource",
    "FeedSubscription",
    "HttpActionDelegate",
    "HttpLocationProvider",
    "InMemoryFeedSource",
    "LocationProvider",
    "MqttFeedSource",
    "RealtimeDbFeedSource",
    "StaticLocationProvider",
]
