"""Queries de lecturas recientes."""

from .sensor_data import DEFAULT_WINDOW, SensorQueryEngine

__all__ = ["DEFAULT_WINDOW", "SensorQueryEngine"]
