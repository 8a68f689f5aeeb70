"""Client configuration for pynearby."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pynearby._constants import (
    DEFAULT_COLLECTION_PATH,
    DEFAULT_LOCATION_TIMEOUT,
    DEFAULT_RADIUS_KM,
    EARTH_RADIUS_KM,
)
from pynearby.exceptions import NearbyConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class NearbyConfig:
    """Watcher and feed-source configuration.

    Parameters
    ----------
    radius_km : float
        Drivers farther than this from the reference point are dropped.
    earth_radius_km : float
        Sphere radius used by the haversine distance.
    collection_path : str
        Path of the driver collection on the feed source.
    location_timeout : float
        Seconds to wait for the one-shot location lookup.
    http_timeout : float
        Total timeout in seconds for plain HTTP requests.
    location_url : str or None
        JSON geolocation endpoint used by ``HttpLocationProvider``.
    feed_url : str or None
        Base URL of a realtime-database REST streaming endpoint.
    feed_auth_token : str or None
        Token sent as ``?auth=`` to the realtime database.
    mqtt_host : str or None
        MQTT broker host for ``MqttFeedSource``.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic_prefix : str
        Prefix joined in front of ``collection_path`` to form the topic.
    mqtt_username : str or None
        MQTT username.
    mqtt_password : str or None
        MQTT password.
    mqtt_tls : bool
        Connect with TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    chat_url : str or None
        Endpoint that opens a conversation with a driver.
    booking_url : str or None
        Endpoint that reserves a driver.
    """

    radius_km: float = DEFAULT_RADIUS_KM
    earth_radius_km: float = EARTH_RADIUS_KM
    collection_path: str = DEFAULT_COLLECTION_PATH
    location_timeout: float = DEFAULT_LOCATION_TIMEOUT
    http_timeout: float = 15.0
    location_url: str | None = None
    feed_url: str | None = None
    feed_auth_token: str | None = None
    mqtt_host: str | None = None
    mqtt_port: int = 8883
    mqtt_topic_prefix: str = ""
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = True
    mqtt_keepalive: int = 120
    chat_url: str | None = None
    booking_url: str | None = None

    def validate(self) -> NearbyConfig:
        """Raise :class:`NearbyConfigError` for values the watcher cannot use."""
        if self.radius_km <= 0:
            raise NearbyConfigError(f"radius_km must be positive, got {self.radius_km}")
        if self.earth_radius_km <= 0:
            raise NearbyConfigError(f"earth_radius_km must be positive, got {self.earth_radius_km}")
        if self.location_timeout <= 0:
            raise NearbyConfigError(f"location_timeout must be positive, got {self.location_timeout}")
        if not self.collection_path.strip("/ "):
            raise NearbyConfigError("collection_path must be non-empty")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> NearbyConfig:
        """Create configuration from ``NEARBY_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "NEARBY_COLLECTION_PATH": "collection_path",
            "NEARBY_LOCATION_URL": "location_url",
            "NEARBY_FEED_URL": "feed_url",
            "NEARBY_FEED_AUTH_TOKEN": "feed_auth_token",
            "NEARBY_MQTT_HOST": "mqtt_host",
            "NEARBY_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "NEARBY_MQTT_USERNAME": "mqtt_username",
            "NEARBY_MQTT_PASSWORD": "mqtt_password",
            "NEARBY_CHAT_URL": "chat_url",
            "NEARBY_BOOKING_URL": "booking_url",
        }
        _ENV_FLOAT_MAP = {
            "NEARBY_RADIUS_KM": "radius_km",
            "NEARBY_EARTH_RADIUS_KM": "earth_radius_km",
            "NEARBY_LOCATION_TIMEOUT": "location_timeout",
            "NEARBY_HTTP_TIMEOUT": "http_timeout",
        }
        _ENV_INT_MAP = {
            "NEARBY_MQTT_PORT": "mqtt_port",
            "NEARBY_MQTT_KEEPALIVE": "mqtt_keepalive",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise NearbyConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("NEARBY_MQTT_TLS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
