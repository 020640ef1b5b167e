"""Backoff exponencial para reconexiones al broker.

Los reintentos no tienen límite de cantidad, pero sí de espera: el loop de
ingesta vive mientras viva el proceso.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass
class ReconnectBackoff:
    """Configuración y estado del backoff de reconexión."""

    base_delay: float = 0.5  # segundos
    max_delay: float = 30.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True  # ±25%

    attempt: int = 0

    def calculate_delay(self, attempt: int) -> float:
        """Delay for a given attempt (1-indexed), capped at ``max_delay``."""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

    def next_delay(self) -> float:
        self.attempt += 1
        return self.calculate_delay(self.attempt)

    def reset(self) -> None:
        self.attempt = 0
