"""Barrido periódico de lecturas expiradas."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..core.registry import CollectionRegistry
from .timeseries import TimeSeriesStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetentionSweeper:
    """Hilo daemon que aplica la retención de cada colección del registro."""

    def __init__(
        self,
        store: TimeSeriesStore,
        registry: CollectionRegistry,
        interval_seconds: float = 300.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._registry = registry
        self._interval = interval_seconds
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._total_purged = 0

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="retention-sweeper", daemon=True)
        self._thread.start()
        logger.info("[STORAGE] Retention sweeper started interval=%.0fs", self._interval)

    def stop(self):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def sweep_once(self) -> int:
        now = self._clock()
        purged = 0
        for metric, handle in self._registry.items():
            try:
                purged += self._store.purge_expired(handle, now)
            except SQLAlchemyError as e:
                logger.warning("[STORAGE] Purge failed for %s: %s", metric.value, e)
        self._total_purged += purged
        return purged

    def _run(self):
        while not self._stop_event.wait(self._interval):
            self.sweep_once()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def total_purged(self) -> int:
        return self._total_purged
