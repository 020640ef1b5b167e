"""Almacenamiento de series temporales sobre SQLAlchemy.

Cada métrica tiene su propia colección (una tabla) con el mismo esquema:
device_id, timestamp (instante de ingesta, UTC) y data (valor numérico).
La expiración por retención la aplica ``purge_expired``; SQL no tiene TTL
nativo como las colecciones time-series de MongoDB.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List

from sqlalchemy import Column, DateTime, Float, Index, Integer, MetaData, String, Table
from sqlalchemy import delete, inspect, insert, select
from sqlalchemy.engine import Engine

from ..core.domain.sensor_record import SensorRecord

logger = logging.getLogger(__name__)


class Granularity(str, Enum):
    """Bucketing hint for the collection; maps to MongoDB time-series granularity."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"


@dataclass(frozen=True)
class CollectionHandle:
    """Opaque reference to one per-metric collection."""

    name: str
    retention: timedelta
    granularity: Granularity
    table: Table = field(repr=False, compare=False)


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _to_storage(ts: datetime) -> datetime:
    # Se guarda como UTC naive: SQLite descarta la zona y las comparaciones
    # de rango deben ser homogéneas entre backends.
    return _to_utc(ts).replace(tzinfo=None)


class TimeSeriesStore:
    """Storage backend consumed by the registry, ingestion loop and queries.

    Operations:
    - ensure_collection(name, retention, granularity) -> CollectionHandle
    - insert(handle, record)
    - find(handle, device_id, since) -> List[SensorRecord]
    - purge_expired(handle, now) -> int
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._metadata = MetaData()
        self._lock = threading.Lock()

    def list_collections(self) -> List[str]:
        return inspect(self._engine).get_table_names()

    def ensure_collection(
        self,
        name: str,
        retention: timedelta = timedelta(hours=24),
        granularity: Granularity = Granularity.MINUTES,
    ) -> CollectionHandle:
        """Return a handle for ``name``, creating the collection if missing."""
        with self._lock:
            table = self._metadata.tables.get(name)
            if table is None:
                table = Table(
                    name,
                    self._metadata,
                    Column("id", Integer, primary_key=True, autoincrement=True),
                    Column("device_id", String(255), nullable=False),
                    Column("timestamp", DateTime(timezone=False), nullable=False),
                    Column("data", Float, nullable=False),
                    Index(f"ix_{name}_device_ts", "device_id", "timestamp"),
                )

            existed = inspect(self._engine).has_table(name)
            if not existed:
                table.create(self._engine, checkfirst=True)
                logger.info(
                    "[STORAGE] Created collection %s (retention=%s granularity=%s)",
                    name,
                    retention,
                    granularity.value,
                )
            else:
                logger.debug("[STORAGE] Collection %s already exists", name)

        return CollectionHandle(
            name=name,
            retention=retention,
            granularity=granularity,
            table=table,
        )

    def insert(self, handle: CollectionHandle, record: SensorRecord) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                insert(handle.table).values(
                    device_id=record.device_id,
                    timestamp=_to_storage(record.timestamp),
                    data=float(record.value),
                )
            )

    def find(self, handle: CollectionHandle, device_id: str, since: datetime) -> List[SensorRecord]:
        """Records for ``device_id`` with ``timestamp >= since``, oldest first."""
        t = handle.table
        stmt = (
            select(t.c.device_id, t.c.timestamp, t.c.data)
            .where(t.c.device_id == device_id)
            .where(t.c.timestamp >= _to_storage(since))
            .order_by(t.c.timestamp.asc(), t.c.id.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()

        return [
            SensorRecord(device_id=row.device_id, timestamp=_to_utc(row.timestamp), value=float(row.data))
            for row in rows
        ]

    def purge_expired(self, handle: CollectionHandle, now: datetime) -> int:
        """Delete records older than the handle's retention. Returns rows removed."""
        cutoff = _to_storage(now - handle.retention)
        with self._engine.begin() as conn:
            result = conn.execute(delete(handle.table).where(handle.table.c.timestamp < cutoff))
        removed = result.rowcount or 0
        if removed:
            logger.info("[STORAGE] Purged %d expired records from %s", removed, handle.name)
        return removed
