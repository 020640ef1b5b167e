"""Domain types shared by the ingestion and query paths."""

from .metric import Metric
from .sensor_record import SensorRecord
from .topic import decode_topic, encode_topic, subscription_topics

__all__ = [
    "Metric",
    "SensorRecord",
    "decode_topic",
    "encode_topic",
    "subscription_topics",
]
