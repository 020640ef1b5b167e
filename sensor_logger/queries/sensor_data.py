"""Consulta multi-métrica con ventana de tiempo.

Política fail-fast: si cualquiera de las métricas pedidas no está
configurada, falla la consulta completa antes de leer nada. Un error de
lectura en cualquier colección también aborta la consulta entera.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..core.domain.metric import Metric
from ..core.domain.sensor_record import SensorRecord
from ..core.registry import CollectionRegistry
from ..errors import QueryBackendError, QueryNotFound
from ..storage.timeseries import TimeSeriesStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SensorQueryEngine:
    def __init__(
        self,
        registry: CollectionRegistry,
        store: TimeSeriesStore,
        default_window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._registry = registry
        self._store = store
        self._default_window = default_window
        self._clock = clock

    def query(
        self,
        device_id: str,
        metrics: Optional[Iterable[Union[Metric, str]]] = None,
        window: Optional[timedelta] = None,
    ) -> Dict[Metric, List[SensorRecord]]:
        """Recent records of ``device_id`` per metric.

        Args:
            device_id: Device to read; not validated, stored ids are trusted.
            metrics: Metrics (or raw tokens) to read, in order. None = all configured.
            window: Lookback from now; defaults to 24h.

        Returns:
            Mapping metric -> records ascending by timestamp. Every requested
            metric is present, with an empty list when there is no data.

        Raises:
            QueryNotFound: a requested metric is not configured.
            QueryBackendError: a storage read failed.
            ValueError: window is not positive or reaches before year 1.
        """
        window = self._default_window if window is None else window
        if window <= timedelta(0):
            raise ValueError(f"window must be positive, got {window}")

        resolved = self._resolve(metrics)
        try:
            since = self._clock() - window
        except OverflowError as e:
            raise ValueError(f"window too large: {window}") from e

        result: Dict[Metric, List[SensorRecord]] = {}
        for metric, handle in resolved:
            try:
                records = self._store.find(handle, device_id, since)
            except SQLAlchemyError as e:
                logger.error(
                    "[API] There's an error when trying to get %s data for device=%s: %s",
                    metric.value,
                    device_id,
                    e,
                )
                raise QueryBackendError(metric.value, e) from e
            result[metric] = sorted(records, key=lambda r: r.timestamp)

        return result

    def _resolve(self, metrics):
        if metrics is None:
            return self._registry.items()

        resolved = []
        for token in metrics:
            handle = self._registry.lookup(token)
            if handle is None:
                raise QueryNotFound(str(token))
            metric = Metric.parse(token)
            if any(m is metric for m, _ in resolved):
                continue
            resolved.append((metric, handle))
        return resolved
