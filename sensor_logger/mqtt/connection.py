"""Conexión al broker MQTT con paho-mqtt.

El loop de red lo maneja quien llama (``poll``), no un hilo interno de
paho: los callbacks solo encolan mensajes entrantes y marcan el estado.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Protocol, Sequence

import paho.mqtt.client as mqtt

from ..errors import BrokerConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    topic: str
    payload: bytes


class BrokerConnection(Protocol):
    """Lo que el loop de ingesta necesita del broker."""

    def connect(self) -> None:
        ...

    def subscribe(self, topics: Sequence[str]) -> None:
        ...

    def poll(self, timeout: float) -> List[InboundMessage]:
        ...

    def close(self) -> None:
        ...


class PahoBrokerConnection:
    """Conexión at-most-once (QoS 0) al broker.

    Cada ``connect`` crea un cliente nuevo; una reconexión vuelve a pasar
    por ``subscribe``.
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 5,
        client_id: Optional[str] = None,
        connect_timeout: float = 5.0,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.keepalive = keepalive
        # El usuario MQTT hace de client id en el despliegue.
        self.client_id = client_id or username or f"gaia-sensor-logger-{int(time.time())}"
        self.connect_timeout = connect_timeout

        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._connect_rc: Optional[int] = None
        self._inbox: Deque[InboundMessage] = deque()

    def connect(self) -> None:
        self.close()
        self._connected = False
        self._connect_rc = None

        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        if self.username:
            client.username_pw_set(self.username, self.password or None)

        logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)
        try:
            client.connect(self.broker_host, self.broker_port, keepalive=self.keepalive)
        except OSError as e:
            raise BrokerConnectionError(f"connect to {self.broker_host}:{self.broker_port} failed: {e}") from e

        self._client = client

        # Esperar CONNACK dirigiendo el loop de red nosotros mismos.
        deadline = time.monotonic() + self.connect_timeout
        while self._connect_rc is None:
            if time.monotonic() > deadline:
                raise BrokerConnectionError("Connection timeout waiting for CONNACK")
            rc = client.loop(timeout=0.1)
            if rc != mqtt.MQTT_ERR_SUCCESS:
                raise BrokerConnectionError(f"loop failed during connect: {mqtt.error_string(rc)}")

        if not self._connected:
            raise BrokerConnectionError(f"Connection refused: rc={self._connect_rc}")

    def subscribe(self, topics: Sequence[str]) -> None:
        if self._client is None:
            raise BrokerConnectionError("subscribe before connect")

        total = len(topics)
        for i, topic in enumerate(topics, start=1):
            result, _mid = self._client.subscribe(topic, qos=0)
            if result != mqtt.MQTT_ERR_SUCCESS:
                raise BrokerConnectionError(f"subscribe {topic} failed: {mqtt.error_string(result)}")
            logger.debug("[MQTT] Subscribed %s (%.0f%%)", topic, 100.0 * i / total)

        logger.info("[MQTT] Subscribed to %d topics", total)

    def poll(self, timeout: float) -> List[InboundMessage]:
        if self._client is None:
            raise BrokerConnectionError("poll before connect")

        rc = self._client.loop(timeout=timeout)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            self._connected = False
            raise BrokerConnectionError(f"poll failed: {mqtt.error_string(rc)}")

        messages = list(self._inbox)
        self._inbox.clear()
        return messages

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.disconnect()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
            self._client = None
        self._connected = False
        self._inbox.clear()

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        """Callback de conexión."""
        self._connect_rc = int(getattr(rc, "value", rc))
        if rc == 0:
            self._connected = True
            logger.info("[MQTT] Connected!")
        else:
            self._connected = False
            logger.error("[MQTT] Connection failed: rc=%s", rc)

    def _on_disconnect(self, client, userdata, flags, rc, properties=None):
        """Callback de desconexión."""
        self._connected = False
        logger.warning("[MQTT] Disconnected (rc=%s)", rc)

    def _on_message(self, client, userdata, msg):
        self._inbox.append(InboundMessage(topic=msg.topic, payload=bytes(msg.payload)))

    @property
    def is_connected(self) -> bool:
        return self._connected
