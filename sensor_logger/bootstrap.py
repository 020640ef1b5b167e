"""Arranque del servicio: conexiones, registro de colecciones y loop de ingesta.

Cualquier fallo aquí es fatal (StartupError): el servicio no corre
parcialmente configurado.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from common.config import Settings
from common.db import DatabaseUnavailable, create_database_engine

from .core.domain.metric import Metric
from .core.domain.topic import subscription_topics
from .core.registry import CollectionRegistry
from .errors import BrokerConnectionError, StartupError
from .mqtt.connection import BrokerConnection, PahoBrokerConnection
from .mqtt.ingestion_loop import IngestionLoop
from .queries.sensor_data import SensorQueryEngine
from .storage.devices import fetch_device_ids
from .storage.retention import RetentionSweeper
from .storage.timeseries import Granularity, TimeSeriesStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Objetos de larga vida compartidos por el loop de ingesta y la API."""

    registry: CollectionRegistry
    store: TimeSeriesStore
    query_engine: SensorQueryEngine
    device_ids: List[str] = field(default_factory=list)
    ingestion: Optional[IngestionLoop] = None
    sweeper: Optional[RetentionSweeper] = None
    engines: List[Engine] = field(default_factory=list)

    def start(self) -> None:
        """Start background work. The first broker connection is synchronous."""
        if self.ingestion is not None:
            try:
                self.ingestion.open()
            except BrokerConnectionError as e:
                self.stop()
                raise StartupError(f"MQTT broker unreachable: {e}") from e
        if self.sweeper is not None:
            self.sweeper.start()
        if self.ingestion is not None:
            self.ingestion.start()

    def stop(self) -> None:
        if self.ingestion is not None:
            self.ingestion.stop()
        if self.sweeper is not None:
            self.sweeper.stop()
        for engine in self.engines:
            engine.dispose()


def build_registry(
    store: TimeSeriesStore,
    metrics: Iterable[Metric],
    retention: timedelta,
    granularity: Granularity = Granularity.MINUTES,
) -> CollectionRegistry:
    """Verify/create one collection per configured metric."""
    logger.info("[STORAGE] Verifying collections...")
    registry = CollectionRegistry()
    try:
        registry.populate(
            metrics,
            lambda metric: store.ensure_collection(metric.collection_name, retention, granularity),
        )
    except SQLAlchemyError as e:
        raise StartupError(f"Could not set up collections: {e}") from e
    logger.info("[STORAGE] Collections have been set up! ✅")
    return registry


def build_runtime(
    settings: Settings,
    connection_factory: Optional[Callable[[Settings], BrokerConnection]] = None,
) -> Runtime:
    try:
        ts_engine = create_database_engine(settings.timeseries_database_url, label="TSDB")
        if settings.devices_database_url == settings.timeseries_database_url:
            devices_engine = ts_engine
        else:
            devices_engine = create_database_engine(settings.devices_database_url, label="DB")
    except DatabaseUnavailable as e:
        raise StartupError(str(e)) from e

    engines = [ts_engine] if devices_engine is ts_engine else [ts_engine, devices_engine]

    try:
        return _build_services(settings, ts_engine, devices_engine, engines, connection_factory)
    except StartupError:
        for engine in engines:
            engine.dispose()
        raise


def _build_services(
    settings: Settings,
    ts_engine: Engine,
    devices_engine: Engine,
    engines: List[Engine],
    connection_factory: Optional[Callable[[Settings], BrokerConnection]],
) -> Runtime:
    store = TimeSeriesStore(ts_engine)
    metrics = [Metric(m) for m in settings.metrics]
    registry = build_registry(store, metrics, timedelta(hours=settings.retention_hours))

    query_engine = SensorQueryEngine(
        registry,
        store,
        default_window=timedelta(hours=settings.query_window_hours),
    )
    sweeper = RetentionSweeper(store, registry, interval_seconds=settings.purge_interval_seconds)

    try:
        device_ids = fetch_device_ids(devices_engine)
    except SQLAlchemyError as e:
        raise StartupError(f"Could not list devices: {e}") from e

    runtime = Runtime(
        registry=registry,
        store=store,
        query_engine=query_engine,
        device_ids=device_ids,
        sweeper=sweeper,
        engines=engines,
    )

    if not device_ids:
        logger.warning("[DB] There's no device in the database; MQTT ingestion disabled")
        return runtime

    factory = connection_factory or _paho_connection
    topics = list(subscription_topics(device_ids, registry.metrics()))
    runtime.ingestion = IngestionLoop(factory(settings), registry, store, topics)
    return runtime


def _paho_connection(settings: Settings) -> BrokerConnection:
    return PahoBrokerConnection(
        broker_host=settings.mqtt_host,
        broker_port=settings.mqtt_port,
        username=settings.mqtt_username or None,
        password=settings.mqtt_password or None,
        keepalive=settings.mqtt_keepalive_seconds,
    )
