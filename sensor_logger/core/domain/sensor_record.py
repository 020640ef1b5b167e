from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class SensorRecord:
    """Una lectura persistida: dispositivo, instante de ingesta y valor.

    ``value`` viene validado en rango f32 pero se guarda como float de
    Python (64 bits), sin redondear a 32 bits.
    """

    device_id: str
    timestamp: datetime
    value: float

    def __post_init__(self):
        # Todos los instantes se manejan en UTC con zona explícita.
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, "timestamp", self.timestamp.astimezone(timezone.utc))

