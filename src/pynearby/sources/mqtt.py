"""MQTT feed source.

Publishers send the whole driver collection as one JSON message on
``{topic_prefix}/{collection_path}``, ideally retained so new subscribers get
the current collection straight away. An empty retained message clears the
collection.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pynearby._redact import redact_for_log
from pynearby.config import NearbyConfig
from pynearby.exceptions import NearbyConfigError, NearbyFeedError
from pynearby.sources.base import FeedSubscription

ClientFactory = Callable[[str], mqtt.Client]

# CONNACK codes that retrying cannot fix: MQTT 3.1.1 bad credentials / not
# authorized, MQTT 5 client id rejected, bad credentials, not authorized,
# banned, bad auth method.
_PERMANENT_REFUSALS = frozenset({4, 5, 0x85, 0x86, 0x87, 0x8A, 0x8C})


def build_topic(topic_prefix: str, collection_path: str) -> str:
    parts = [part.strip("/") for part in (topic_prefix, collection_path) if part.strip("/")]
    return "/".join(parts)


def decode_feed_payload(payload: bytes) -> Any:
    """Decode one MQTT message into a full-collection payload.

    An empty message decodes to ``None`` (collection absent).
    """
    text = payload.decode("utf-8").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise NearbyFeedError(f"MQTT payload is not JSON: {text[:64]}") from exc


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv5,
    )


class MqttFeedSource:
    """Threaded paho-mqtt subscriber that feeds payloads onto the asyncio loop.

    Each :meth:`subscribe` call gets its own client; closing the subscription
    disconnects it and stops its network thread.

    Every message carries the whole collection, so a message that is not JSON
    is logged and dropped and the previous collection stays current. A broker
    that refuses the credentials or the client ends the subscription with
    :class:`NearbyFeedError`; other refusals are left to paho's reconnect.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 8883,
        topic_prefix: str = "",
        username: str | None = None,
        password: str | None = None,
        tls: bool = True,
        keepalive: int = 120,
        client_factory: ClientFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topic_prefix = topic_prefix
        self._username = username
        self._password = password
        self._tls = tls
        self._keepalive = keepalive
        self._client_factory = client_factory or _default_client_factory
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: NearbyConfig, **kwargs: Any) -> MqttFeedSource:
        if not config.mqtt_host:
            raise NearbyConfigError("mqtt_host is required for MqttFeedSource")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic_prefix=config.mqtt_topic_prefix,
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            keepalive=config.mqtt_keepalive,
            **kwargs,
        )

    def subscribe(self, collection_path: str) -> FeedSubscription:
        loop = asyncio.get_running_loop()
        topic = build_topic(self._topic_prefix, collection_path)
        client = self._client_factory(f"pynearby_{secrets.token_hex(6)}")
        client.enable_logger(self._logger)
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        async def release(_subscription: FeedSubscription) -> None:
            await loop.run_in_executor(None, self._stop_client, client)

        subscription = FeedSubscription(collection_path, on_close=release)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value in _PERMANENT_REFUSALS:
                self._logger.warning("MQTT connect refused: %s", reason_code)
                loop.call_soon_threadsafe(
                    subscription.fail,
                    NearbyFeedError(f"MQTT broker refused connection: {reason_code}"),
                )
                return
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected, subscribing topic=%s", topic)
            c.subscribe(topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                payload = decode_feed_payload(msg.payload)
            except (NearbyFeedError, UnicodeDecodeError):
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            if self._logger.isEnabledFor(logging.DEBUG):
                self._logger.debug("MQTT collection update topic=%s payload=%s", msg.topic, redact_for_log(payload))
            loop.call_soon_threadsafe(subscription.deliver, payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if not subscription.closed:
                # paho reconnects on its own; the last collection stays valid meanwhile.
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        self._logger.debug("MQTT feed start host=%s port=%s topic=%s", self._host, self._port, topic)
        client.connect_async(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()
        return subscription

    def _stop_client(self, client: mqtt.Client) -> None:
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
