"""Loop de ingesta MQTT.

Flujo:
  MQTT topic <device_id>/<metric>
  → decode_topic
  → parse_payload
  → CollectionRegistry.lookup
  → TimeSeriesStore.insert

Estados: CONNECTING → SUBSCRIBED → RECEIVING (⟲ por mensaje). Cualquier error
de conexión del broker vuelve a CONNECTING, con backoff entre intentos.
Los errores por mensaje nunca detienen el loop.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..core.domain.metric import Metric
from ..core.domain.sensor_record import SensorRecord
from ..core.domain.topic import decode_topic
from ..core.registry import CollectionRegistry
from ..errors import (
    BrokerConnectionError,
    MalformedPayload,
    MalformedTopic,
    StorageWriteError,
    UnknownMetric,
)
from ..storage.timeseries import TimeSeriesStore
from .backoff import ReconnectBackoff
from .connection import BrokerConnection, InboundMessage
from .payload import parse_payload
from .receiver_stats import ReceiverStats

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoopState(str, Enum):
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECEIVING = "receiving"
    STOPPED = "stopped"


class IngestionLoop:
    """Tarea de larga vida que posee la conexión al broker.

    Uso:
        loop = IngestionLoop(connection, registry, store, topics)
        loop.start()          # hilo daemon
        ...
        loop.stop()           # solo para shutdown ordenado / tests
    """

    def __init__(
        self,
        connection: BrokerConnection,
        registry: CollectionRegistry,
        store: TimeSeriesStore,
        topics: Sequence[str],
        backoff: Optional[ReconnectBackoff] = None,
        poll_timeout: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        self._connection = connection
        self._registry = registry
        self._store = store
        self._topics: List[str] = list(topics)
        self._backoff = backoff or ReconnectBackoff()
        self._poll_timeout = poll_timeout
        self._clock = clock

        self._stop_event = threading.Event()
        # Por defecto la espera del backoff se corta si piden stop.
        self._sleep = sleep or self._stop_event.wait
        self._thread: Optional[threading.Thread] = None
        self._state = LoopState.CONNECTING
        self._stats = ReceiverStats()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="mqtt-ingestion", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("[MQTT] Ingestion loop stopped. %s", self._stats)

    def run(self) -> None:
        """Drive the connect/subscribe/receive cycle until ``stop`` is called."""
        logger.info("[MQTT] Ingestion loop starting with %d topics", len(self._topics))
        try:
            while not self._stop_event.is_set():
                try:
                    if self._state != LoopState.SUBSCRIBED:
                        self.open()
                    self._receive()
                except BrokerConnectionError as e:
                    if self._stop_event.is_set():
                        break
                    self._state = LoopState.CONNECTING
                    self._stats.incr("reconnects")
                    delay = self._backoff.next_delay()
                    logger.warning(
                        "[MQTT] Broker connection error: %s. Reconnecting in %.2fs (attempt %d)",
                        e,
                        delay,
                        self._backoff.attempt,
                    )
                    self._sleep(delay)
        finally:
            self._state = LoopState.STOPPED
            self._connection.close()

    def open(self) -> None:
        """Connect and subscribe every topic. Raises BrokerConnectionError.

        Startup calls this once synchronously so an unreachable broker is
        fatal; afterwards ``run`` reconnects on its own.
        """
        self._state = LoopState.CONNECTING
        self._connection.connect()
        self._connection.subscribe(self._topics)
        self._state = LoopState.SUBSCRIBED
        self._backoff.reset()
        logger.info("[MQTT] Listening to MQTT messages ✅")

    def _receive(self) -> None:
        self._state = LoopState.RECEIVING
        while not self._stop_event.is_set():
            for message in self._connection.poll(self._poll_timeout):
                self.handle_message(message)

    # ------------------------------------------------------------------
    # Procesamiento por mensaje
    # ------------------------------------------------------------------

    def handle_message(self, message: InboundMessage) -> Optional[SensorRecord]:
        """Decode, route and persist one publish. Returns the stored record or None."""
        self._stats.incr("received")
        self._stats.last_message_at = time.time()

        try:
            record, metric, handle = self._build_record(message)
            self._write(metric, handle, record)
        except MalformedTopic as e:
            self._stats.incr("malformed_topic")
            logger.warning("[MQTT] %s", e)
            return None
        except MalformedPayload as e:
            self._stats.incr("malformed_payload")
            logger.warning("[MQTT] %s (topic=%s)", e, message.topic)
            return None
        except UnknownMetric as e:
            self._stats.incr("unknown_metric")
            logger.warning("[MQTT] %s (topic=%s)", e, message.topic)
            return None
        except StorageWriteError as e:
            self._stats.incr("write_failed")
            logger.error("[MQTT] Error when storing data: %s", e)
            return None
        except Exception as e:
            self._stats.incr("processing_failed")
            logger.exception("[MQTT] Processing error: %s (topic=%s)", e, message.topic)
            return None

        self._stats.incr("stored")
        logger.debug("[MQTT] Stored %s=%s for %s", metric.value, record.value, record.device_id)
        return record

    def _build_record(self, message: InboundMessage):
        device_id, token = decode_topic(message.topic)
        value = parse_payload(message.payload)

        metric = Metric.parse(token)
        handle = self._registry.lookup(metric) if metric is not None else None
        if handle is None:
            raise UnknownMetric(token)

        # Timestamp = instante de ingesta; el payload no trae tiempo.
        record = SensorRecord(device_id=device_id, timestamp=self._clock(), value=value)
        return record, metric, handle

    def _write(self, metric: Metric, handle, record: SensorRecord) -> None:
        try:
            self._store.insert(handle, record)
        except SQLAlchemyError as e:
            raise StorageWriteError(getattr(handle, "name", metric.value), e) from e

    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stats(self) -> ReceiverStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def health_check(self) -> dict:
        return {
            "healthy": self.is_running and self._state == LoopState.RECEIVING,
            "running": self.is_running,
            "state": self._state.value,
            "topics": len(self._topics),
            **self._stats.to_dict(),
        }
