"""Registro de colecciones por métrica.

Se puebla una sola vez al arrancar (escritor exclusivo) y a partir de ahí
solo se lee, desde el loop de ingesta y desde cada request de consulta.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .domain.metric import Metric

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Lock de muchos lectores / un escritor, con preferencia al escritor.

    Un escritor esperando bloquea lectores nuevos, así ningún lector ve
    el registro a medio poblar.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CollectionRegistry:
    """Metric -> collection handle map shared by ingestion and queries.

    Usage:
        registry = CollectionRegistry()
        registry.populate(metrics, store.ensure_collection_for)
        handle = registry.lookup("ph")   # None if not configured
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._handles: Dict[Metric, object] = {}
        self._order: Tuple[Metric, ...] = ()
        self._populated = False
        # Lectores que llegan antes de poblar esperan aquí.
        self._ready = threading.Event()

    def populate(self, metrics: Iterable[Metric], factory: Callable[[Metric], object]) -> None:
        """Acquire or create one storage object per metric.

        Runs under the exclusive write lock; must be called exactly once.
        If the factory raises, the registry stays unpopulated and the error
        propagates (startup treats it as fatal).
        """
        with self._lock.write():
            if self._populated:
                raise RuntimeError("CollectionRegistry already populated")

            handles: Dict[Metric, object] = {}
            order: List[Metric] = []
            for metric in metrics:
                if metric in handles:
                    continue
                handles[metric] = factory(metric)
                order.append(metric)

            self._handles = handles
            self._order = tuple(order)
            self._populated = True
            self._ready.set()

        logger.info(
            "[REGISTRY] Populated with %d collections: %s",
            len(self._order),
            ", ".join(m.value for m in self._order),
        )

    def lookup(self, metric: Union[Metric, str]) -> Optional[object]:
        """Return the handle for a configured metric, or None.

        Accepts a ``Metric`` or the raw topic token.
        """
        parsed = Metric.parse(metric)
        if parsed is None:
            return None
        self._ready.wait()
        with self._lock.read():
            return self._handles.get(parsed)

    def metrics(self) -> Tuple[Metric, ...]:
        """Configured metrics, in configuration order."""
        self._ready.wait()
        with self._lock.read():
            return self._order

    def items(self) -> List[Tuple[Metric, object]]:
        self._ready.wait()
        with self._lock.read():
            return [(m, self._handles[m]) for m in self._order]

    @property
    def is_populated(self) -> bool:
        return self._populated

    def __contains__(self, metric: object) -> bool:
        if not isinstance(metric, (str, Metric)):
            return False
        return self.lookup(metric) is not None

    def __len__(self) -> int:
        return len(self.metrics())
