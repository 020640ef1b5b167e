"""Ingesta MQTT.

Estructura modular:
- connection.py: conexión paho-mqtt (QoS 0, loop de red explícito)
- payload.py: validación del payload numérico
- ingestion_loop.py: loop de ingesta (decode → registry → storage)
- backoff.py: backoff de reconexión
- receiver_stats.py: contadores del loop
"""

from .backoff import ReconnectBackoff
from .connection import BrokerConnection, InboundMessage, PahoBrokerConnection
from .ingestion_loop import IngestionLoop, LoopState
from .payload import parse_payload
from .receiver_stats import ReceiverStats

__all__ = [
    "BrokerConnection",
    "InboundMessage",
    "IngestionLoop",
    "LoopState",
    "PahoBrokerConnection",
    "ReceiverStats",
    "ReconnectBackoff",
    "parse_payload",
]
