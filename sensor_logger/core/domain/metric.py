from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class Metric(str, Enum):
    """Canales de telemetría conocidos.

    El valor es el token que viaja en el topic MQTT (``<device_id>/<metric>``).
    """

    EC = "ec"
    TDS = "tds"
    TEMP_C = "tempC"
    PH = "ph"

    @classmethod
    def parse(cls, token: Union[str, "Metric"]) -> Optional["Metric"]:
        """Return the metric for a raw topic token, or None if unknown.

        Tokens are case-sensitive: ``tempC`` is valid, ``tempc`` is not.
        """
        if isinstance(token, cls):
            return token
        try:
            return cls(token)
        except ValueError:
            return None

    @property
    def collection_name(self) -> str:
        return COLLECTION_NAMES[self]

    def __str__(self) -> str:
        return self.value


COLLECTION_NAMES = {
    Metric.EC: "sensor-ec",
    Metric.TDS: "sensor-tds",
    Metric.TEMP_C: "sensor-temp-c",
    Metric.PH: "sensor-ph",
}
