"""MQTT publisher used by :class:`eulerpi.core.sinks.PubSubSink`."""

from __future__ import annotations

import logging
from typing import Optional

import paho.mqtt.client as mqtt

from ..config.runtime import MqttSettings

logger = logging.getLogger(__name__)


class MqttPublisher:
    """
    Thin wrapper around a paho client running its own network thread.

    Publish failures are logged and dropped; there is no retry and no
    acknowledgement back to the caller.
    """

    def __init__(self, settings: Optional[MqttSettings] = None, client: Optional[mqtt.Client] = None) -> None:
        self.settings = settings or MqttSettings()
        self.client: Optional[mqtt.Client] = client
        self.connected = False
        self.failures = 0

    # ---------- Public controls ----------

    def start(self) -> None:
        if self.client is None:
            self.client = self._build_client()
        c = self.client
        c.on_connect = self._on_connect
        c.on_disconnect = self._on_disconnect
        c.user_data_set(self)
        logger.info("Connecting to MQTT broker %s:%d", self.settings.host, self.settings.port)
        c.connect(self.settings.host, int(self.settings.port), keepalive=int(self.settings.keepalive))
        c.loop_start()

    def stop(self) -> None:
        if self.client is None:
            return
        try:
            self.client.loop_stop()
            self.client.disconnect()
        finally:
            self.client = None
            self.connected = False

    def publish(self, topic: str, payload: str, *, retain: bool = False) -> None:
        if self.client is None:
            self.failures += 1
            logger.warning("MQTT publish to %s dropped: publisher not started", topic)
            return
        info = self.client.publish(topic, payload, qos=int(self.settings.qos), retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.failures += 1
            if self.failures <= 10 or self.failures % 100 == 0:
                logger.warning(
                    "MQTT publish to %s failed: %s (count=%d)",
                    topic, mqtt.error_string(info.rc), self.failures,
                )

    # ---------- Internals ----------

    def _build_client(self) -> mqtt.Client:
        c = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.settings.client_id)
        if self.settings.username:
            c.username_pw_set(self.settings.username, self.settings.password or None)
        return c

    @staticmethod
    def _on_connect(client: mqtt.Client, userdata: "MqttPublisher", flags, rc, properties=None):
        userdata.connected = not rc.is_failure if hasattr(rc, "is_failure") else rc == 0
        if userdata.connected:
            logger.info("MQTT connected")
        else:
            logger.warning("MQTT connection refused: %s", rc)

    @staticmethod
    def _on_disconnect(client: mqtt.Client, userdata: "MqttPublisher", flags, rc, properties=None):
        userdata.connected = False
        logger.info("MQTT disconnected: %s", rc)
