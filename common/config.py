from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv


DEFAULT_METRICS = "ec,tds,tempC,ph"
DEFAULT_SQLITE_URL = "sqlite:///./sensor-data.db"


def _default_env_file() -> str:
    # .env en el directorio de trabajo por defecto.
    return str(Path.cwd() / ".env")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")


@dataclass(frozen=True)
class Settings:
    mqtt_host: str
    mqtt_port: int
    mqtt_username: str
    mqtt_password: str
    mqtt_keepalive_seconds: int

    timeseries_database_url: str
    devices_database_url: str

    metrics: Tuple[str, ...]
    retention_hours: int
    query_window_hours: int
    purge_interval_seconds: int

    api_host: str
    api_port: int
    log_level: str


def _parse_metrics(raw: str) -> Tuple[str, ...]:
    # Import tardío: common no debe depender del paquete del servicio al importarse.
    from sensor_logger.core.domain.metric import Metric

    tokens = [t.strip() for t in raw.split(",") if t.strip()]
    if not tokens:
        raise ValueError("SENSOR_METRICS must name at least one metric")

    seen = []
    for token in tokens:
        metric = Metric.parse(token)
        if metric is None:
            raise ValueError(
                f"Unknown metric {token!r} in SENSOR_METRICS "
                f"(known: {', '.join(m.value for m in Metric)})"
            )
        if metric.value not in seen:
            seen.append(metric.value)
    return tuple(seen)


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("SENSOR_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    mqtt_host = os.getenv("MQTT_ADDRESS", "localhost")
    mqtt_port = _int_env("MQTT_PORT", 1883)
    mqtt_username = os.getenv("SPECIAL_USER", "")
    mqtt_password = os.getenv("SPECIAL_PASS", "")
    mqtt_keepalive_seconds = _int_env("MQTT_KEEPALIVE_SECONDS", 5)

    timeseries_url = os.getenv("TIMESERIES_DATABASE_URL", DEFAULT_SQLITE_URL)
    # The device table usually lives in the relational backend; fall back to the
    # same database so a single SQLite file is enough for local runs.
    devices_url = os.getenv("DATABASE_URL", timeseries_url)

    retention_hours = _int_env("SENSOR_RETENTION_HOURS", 24)
    query_window_hours = _int_env("SENSOR_QUERY_WINDOW_HOURS", 24)
    purge_interval_seconds = _int_env("SENSOR_PURGE_INTERVAL_SECONDS", 300)
    for name, value in (
        ("SENSOR_RETENTION_HOURS", retention_hours),
        ("SENSOR_QUERY_WINDOW_HOURS", query_window_hours),
        ("SENSOR_PURGE_INTERVAL_SECONDS", purge_interval_seconds),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got: {value}")

    return Settings(
        mqtt_host=mqtt_host,
        mqtt_port=mqtt_port,
        mqtt_username=mqtt_username,
        mqtt_password=mqtt_password,
        mqtt_keepalive_seconds=mqtt_keepalive_seconds,
        timeseries_database_url=timeseries_url,
        devices_database_url=devices_url,
        metrics=_parse_metrics(os.getenv("SENSOR_METRICS", DEFAULT_METRICS)),
        retention_hours=retention_hours,
        query_window_hours=query_window_hours,
        purge_interval_seconds=purge_interval_seconds,
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=_int_env("API_PORT", 8000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
