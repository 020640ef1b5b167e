"""Persistencia: colecciones de series temporales y tabla de dispositivos."""

from .devices import fetch_device_ids
from .retention import RetentionSweeper
from .timeseries import CollectionHandle, Granularity, TimeSeriesStore

__all__ = [
    "CollectionHandle",
    "Granularity",
    "RetentionSweeper",
    "TimeSeriesStore",
    "fetch_device_ids",
]
