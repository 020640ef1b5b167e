"""Gaia sensor logger.

Ingesta de telemetría MQTT hacia colecciones de series temporales por métrica,
con una API HTTP para consultar las lecturas recientes de un dispositivo.
"""

__version__ = "0.2.0"
