"""Codec for broker topics of the form ``<device_id>/<metric>``."""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple, Union

from ...errors import MalformedTopic
from .metric import Metric

TOPIC_SEPARATOR = "/"


def decode_topic(topic: str) -> Tuple[str, str]:
    """Split a topic into ``(device_id, metric_token)``.

    Only the first separator counts; everything after it is the raw metric
    token. Membership of the token in the configured metric set is not
    checked here.
    """
    device_id, sep, metric_token = topic.partition(TOPIC_SEPARATOR)
    if not sep:
        raise MalformedTopic(topic, "missing separator")
    if not device_id:
        raise MalformedTopic(topic, "empty device id")
    return device_id, metric_token


def encode_topic(device_id: str, metric: Union[Metric, str]) -> str:
    return f"{device_id}{TOPIC_SEPARATOR}{metric}"


def subscription_topics(device_ids: Iterable[str], metrics: Iterable[Metric]) -> Iterator[str]:
    metrics = list(metrics)
    for device_id in device_ids:
        for metric in metrics:
            yield encode_topic(device_id, metric)
