"""Endpoints HTTP del servicio."""

from .health import router as health_router
from .sensor import router as sensor_router

__all__ = [
    "health_router",
    "sensor_router",
]
