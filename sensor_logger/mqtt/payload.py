"""Validación del payload MQTT.

El payload es texto UTF-8 con un número decimal, sin envoltorio JSON,
sin unidades y sin timestamp.
"""

from __future__ import annotations

import math
import re

from ..errors import MalformedPayload

# Límite de float de 32 bits: los canales se modelan como f32.
FLOAT32_MAX = 3.4028234663852886e38

_DECIMAL_RE = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


def parse_payload(payload: bytes) -> float:
    """Parse a raw publish payload into a reading value.

    Raises:
        MalformedPayload: not UTF-8 decimal text, or out of the 32-bit range.
    """
    text = payload.decode("utf-8", errors="replace").strip()

    if not _DECIMAL_RE.match(text):
        raise MalformedPayload(text)

    value = float(text)
    if not math.isfinite(value) or abs(value) > FLOAT32_MAX:
        raise MalformedPayload(text, "out of 32-bit float range")
    return value
