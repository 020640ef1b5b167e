"""Error taxonomy for ingestion, queries and startup."""

from __future__ import annotations


class SensorLoggerError(Exception):
    """Base class for every error raised by this service."""


# --- Ingesta: nunca fatales, el mensaje se descarta y se loguea.

class IngestionError(SensorLoggerError):
    pass


class MalformedTopic(IngestionError):
    def __init__(self, topic: str, reason: str = "malformed"):
        self.topic = topic
        self.reason = reason
        super().__init__(f"Malformed topic {topic!r}: {reason}")


class MalformedPayload(IngestionError):
    def __init__(self, payload: str, reason: str = "not a decimal number"):
        self.payload = payload
        self.reason = reason
        super().__init__(f"Malformed payload {payload[:64]!r}: {reason}")


class UnknownMetric(IngestionError):
    def __init__(self, metric: str):
        self.metric = metric
        super().__init__(f"Metric {metric!r} is not configured")


class StorageWriteError(IngestionError):
    def __init__(self, collection: str, cause: Exception):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Write to {collection} failed: {type(cause).__name__}: {cause}")


# --- Consultas: se propagan al llamador.

class QueryError(SensorLoggerError):
    pass


class QueryNotFound(QueryError):
    def __init__(self, metric: str):
        self.metric = metric
        super().__init__(f"Metric {metric!r} is not configured")


class QueryBackendError(QueryError):
    def __init__(self, metric: str, cause: Exception):
        self.metric = metric
        self.cause = cause
        super().__init__(f"Read from {metric} failed: {type(cause).__name__}")


# --- Conexión / arranque.

class BrokerConnectionError(SensorLoggerError):
    """Broker unreachable or connection dropped while polling."""


class StartupError(SensorLoggerError):
    """Fatal: the service cannot run in a partially configured state."""
