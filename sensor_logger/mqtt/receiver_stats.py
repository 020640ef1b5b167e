"""Statistics for the ingestion loop."""

from __future__ import annotations

import threading


class ReceiverStats:
    """Contadores del loop de ingesta (escritos por un hilo, leídos por la API)."""

    def __init__(self):
        self._lock = threading.Lock()
        self.received = 0
        self.stored = 0
        self.malformed_topic = 0
        self.malformed_payload = 0
        self.unknown_metric = 0
        self.write_failed = 0
        self.processing_failed = 0
        self.reconnects = 0
        self.last_message_at: float = 0

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    @property
    def dropped(self) -> int:
        return (
            self.malformed_topic
            + self.malformed_payload
            + self.unknown_metric
            + self.write_failed
            + self.processing_failed
        )

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} stored={self.stored} "
            f"dropped={self.dropped} reconnects={self.reconnects}"
        )

    def to_dict(self) -> dict:
        """Convert stats to dictionary."""
        with self._lock:
            return {
                "received": self.received,
                "stored": self.stored,
                "malformed_topic": self.malformed_topic,
                "malformed_payload": self.malformed_payload,
                "unknown_metric": self.unknown_metric,
                "write_failed": self.write_failed,
                "processing_failed": self.processing_failed,
                "reconnects": self.reconnects,
                "last_message_at": self.last_message_at,
            }
