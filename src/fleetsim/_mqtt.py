"""MQTT broadcast sink.

Publishes location updates to a broker so that transport adapters running
in other processes can fan them out. Publishing is handed to paho's
network thread; the scheduler never waits on the broker.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from fleetsim.config import SimulationConfig
from fleetsim.models.location import LocationData
from fleetsim.models.state import InitialState
from fleetsim.state.events import BroadcastEvent


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
    )


class MqttBroadcaster:
    """Broadcast port publishing JSON messages to ``<prefix>/<trackerId>/location``.

    The latest snapshot is published retained to ``<prefix>/initial_state``
    so late subscribers get a full picture on connect.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        topic_prefix: str = "fleetsim",
        keepalive: int = 60,
        client_id: str = "fleetsim-simulator",
        client_factory: Callable[[str], Any] = _default_client_factory,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topic_prefix = topic_prefix.rstrip("/")
        self._keepalive = keepalive
        self._client_id = client_id
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: Any | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: SimulationConfig, **kwargs: Any) -> MqttBroadcaster:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic_prefix=config.mqtt_topic_prefix,
            keepalive=config.mqtt_keepalive,
            **kwargs,
        )

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def location_topic(self, tracker_id: str) -> str:
        return f"{self._topic_prefix}/{tracker_id}/location"

    @property
    def initial_state_topic(self) -> str:
        return f"{self._topic_prefix}/initial_state"

    def start(self) -> None:
        """Connect asynchronously and start paho's network thread."""
        self.stop()
        self._logger.debug("MQTT broadcaster connecting host=%s port=%s", self._host, self._port)
        client = self._client_factory(self._client_id)
        client.enable_logger(self._logger)

        def on_connect(_c: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any = None) -> None:
            if getattr(reason_code, "value", reason_code) != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)

        def on_disconnect(_c: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any = None) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect
        client.connect_async(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        """Disconnect and stop the network thread if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _publish(self, topic: str, payload: dict[str, Any], *, retain: bool = False) -> None:
        client = self._client
        if client is None:
            return
        try:
            info = client.publish(topic, json.dumps(payload, separators=(",", ":")), qos=0, retain=retain)
        except Exception:
            self._logger.warning("MQTT publish to %s failed", topic, exc_info=True)
            return
        rc = getattr(info, "rc", mqtt.MQTT_ERR_SUCCESS)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.debug("MQTT publish to %s not queued rc=%s", topic, rc)

    def on_location_update(self, location: LocationData) -> None:
        self._publish(
            self.location_topic(location.tracker_id),
            {"event": str(BroadcastEvent.LOCATION_UPDATE), "data": location.to_wire()},
        )

    def publish_initial_state(self, state: InitialState) -> None:
        self._publish(
            self.initial_state_topic,
            {"event": str(BroadcastEvent.INITIAL_STATE), "data": state.to_wire()},
            retain=True,
        )
