"""Fixtures compartidos: SQLite en memoria, reloj controlable y broker falso."""

from __future__ import annotations

import threading
import time
from collections import deque
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from sensor_logger.bootstrap import Runtime, build_registry
from sensor_logger.core.domain.metric import Metric
from sensor_logger.errors import BrokerConnectionError
from sensor_logger.mqtt.connection import InboundMessage
from sensor_logger.queries.sensor_data import SensorQueryEngine
from sensor_logger.storage.timeseries import TimeSeriesStore


class FakeClock:
    """Reloj fijo que se avanza a mano."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeBrokerConnection:
    """Broker scripteado.

    ``script`` es una secuencia de lotes de mensajes o excepciones; cada
    ``poll`` consume un elemento. Agotado el script, ``poll`` devuelve
    listas vacías y marca ``exhausted``.
    """

    def __init__(self, script=None, connect_failures: int = 0):
        self.script = deque(script or [])
        self.connect_failures = connect_failures
        self.connect_calls = 0
        self.subscriptions = []
        self.close_calls = 0
        self.exhausted = threading.Event()

    def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise BrokerConnectionError("broker down")

    def subscribe(self, topics) -> None:
        self.subscriptions.append(list(topics))

    def poll(self, timeout: float):
        if not self.script:
            self.exhausted.set()
            time.sleep(0.01)
            return []
        item = self.script.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.close_calls += 1


def msg(topic: str, payload: str) -> InboundMessage:
    return InboundMessage(topic=topic, payload=payload.encode("utf-8"))


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine) -> TimeSeriesStore:
    return TimeSeriesStore(engine)


@pytest.fixture
def registry(store):
    return build_registry(store, list(Metric), timedelta(hours=24))


@pytest.fixture
def query_engine(registry, store, clock) -> SensorQueryEngine:
    return SensorQueryEngine(registry, store, clock=clock)


@pytest.fixture
def runtime(registry, store, query_engine) -> Runtime:
    return Runtime(
        registry=registry,
        store=store,
        query_engine=query_engine,
        device_ids=["device1"],
    )
