"""pynearby - Async Python client for live nearby-driver proximity feeds."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynearby")
except PackageNotFoundError:
    __version__ = "0+local"
from pynearby.config import NearbyConfig
from pynearby.exceptions import (
    LocationDeniedError,
    LocationError,
    LocationTimeoutError,
    LocationUnavailableError,
    NearbyConfigError,
    NearbyError,
    NearbyFeedError,
    NearbyTimeoutError,
    NearbyTransportError,
)
from pynearby.geo import distance_km, haversine_km
from pynearby.ingestion.drivers import normalize, normalize_collection
from pynearby.models import (
    Coordinate,
    DriverSnapshot,
    ErrorKind,
    FeedState,
    FeedStatus,
    ProximityResult,
    RankedDriver,
)
from pynearby.proximity import ProximityEngine, compute
from pynearby.sources import (
    FeedSubscription,
    HttpActionDelegate,
    HttpLocationProvider,
    InMemoryFeedSource,
    MqttFeedSource,
    RealtimeDbFeedSource,
    StaticLocationProvider,
)
from pynearby.watcher import NearbyDriversWatcher

__all__ = [
    "__version__",
    "Coordinate",
    "DriverSnapshot",
    "ErrorKind",
    "FeedState",
    "FeedStatus",
    "FeedSubscription",
    "HttpActionDelegate",
    "HttpLocationProvider",
    "InMemoryFeedSource",
    "LocationDeniedError",
    "LocationError",
    "LocationTimeoutError",
    "LocationUnavailableError",
    "MqttFeedSource",
    "NearbyConfig",
    "NearbyConfigError",
    "NearbyDriversWatcher",
    "NearbyError",
    "NearbyFeedError",
    "NearbyTimeoutError",
    "NearbyTransportError",
    "ProximityEngine",
    "ProximityResult",
    "RankedDriver",
    "RealtimeDbFeedSource",
    "StaticLocationProvider",
    "compute",
    "distance_km",
    "haversine_km",
    "normalize",
    "normalize_collection",
]
