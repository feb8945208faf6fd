"""MQTT snapshot source.

Subscribes to the topic the device publishes its JSON status on and hands
every decoded payload to an asyncio loop. The network loop runs in paho's
own thread; payloads cross into the event loop via ``call_soon_threadsafe``
so the consumer sees them in arrival order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from fencewatch.config import FenceWatchConfig
from fencewatch.exceptions import FenceWatchConfigError, MalformedSnapshotError


def decode_snapshot_payload(payload: bytes) -> dict[str, Any]:
    """Decode an MQTT message body into a JSON object."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except ValueError as exc:
        raise MalformedSnapshotError(f"snapshot payload is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise MalformedSnapshotError("snapshot payload decoded to non-object JSON")
    return parsed


class MqttSnapshotSource:
    """Threaded paho-mqtt runtime that emits snapshot payloads onto an asyncio loop.

    A received message means the device is reachable, so ``online`` is set
    to ``True`` unless the payload says otherwise. Losing the broker
    connection emits ``{"online": False}``. Undecodable messages are
    forwarded as empty payloads: they still count as a tick, never as an
    error.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_payload: Callable[[dict[str, Any]], Any],
        host: str,
        topic: str,
        port: int = 1883,
        username: str | None = None,
        password: str | None = None,
        keepalive: int = 60,
        tls: bool = False,
        client_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_payload = on_payload
        self._host = host
        self._topic = topic
        self._port = port
        self._username = username
        self._password = password
        self._keepalive = keepalive
        self._tls = tls
        self._client_id = client_id or f"fencewatch-{uuid.uuid4().hex[:12]}"
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @classmethod
    def from_config(
        cls,
        config: FenceWatchConfig,
        *,
        loop: asyncio.AbstractEventLoop,
        on_payload: Callable[[dict[str, Any]], Any],
    ) -> MqttSnapshotSource:
        if not config.mqtt_host:
            raise FenceWatchConfigError("mqtt_host is required for the MQTT snapshot source")
        return cls(
            loop=loop,
            on_payload=on_payload,
            host=config.mqtt_host,
            topic=config.mqtt_topic,
            port=config.mqtt_port,
            username=config.mqtt_username,
            password=config.mqtt_password,
            keepalive=config.mqtt_keepalive,
            tls=config.mqtt_tls,
        )

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def _emit(self, payload: dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._on_payload, payload)

    def handle_message(self, body: bytes) -> None:
        """Decode one message body and forward it."""
        try:
            payload = decode_snapshot_payload(body)
        except MalformedSnapshotError as exc:
            self._logger.warning("Undecodable snapshot forwarded as empty: %s", exc)
            payload = {}
        else:
            payload.setdefault("online", True)
        self._emit(payload)

    def handle_disconnect(self, reason_code: Any) -> None:
        """Report an unexpected broker disconnect as the device going offline."""
        if not self._running:
            return
        self._logger.warning("MQTT disconnected: %s", reason_code)
        self._emit({"online": False})

    def start(self) -> None:
        """Connect and subscribe."""
        self.stop()
        self._logger.debug(
            "MQTT source start requested host=%s port=%s topic=%s client_id=%s",
            self._host,
            self._port,
            self._topic,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        client.enable_logger(self._logger)
        if self._username:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s; subscribing topic=%s", reason_code, self._topic)
            c.subscribe(self._topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._logger.debug("Received PUBLISH topic=%s bytes=%s", msg.topic, len(msg.payload))
            self.handle_message(msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self.handle_disconnect(reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
