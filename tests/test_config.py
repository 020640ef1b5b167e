import os

import pytest

from common.config import get_settings

ENV_VARS = [
    "MQTT_ADDRESS", "MQTT_PORT", "SPECIAL_USER", "SPECIAL_PASS", "MQTT_KEEPALIVE_SECONDS",
    "TIMESERIES_DATABASE_URL", "DATABASE_URL", "SENSOR_METRICS", "SENSOR_RETENTION_HOURS",
    "SENSOR_QUERY_WINDOW_HOURS", "SENSOR_PURGE_INTERVAL_SECONDS", "API_HOST", "API_PORT", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SENSOR_ENV_FILE", str(tmp_path / "missing.env"))
    yield
    # load_dotenv escribe directo en os.environ.
    for name in ENV_VARS:
        os.environ.pop(name, None)


class TestGetSettings:

    def test_defaults(self):
        s = get_settings()

        assert s.mqtt_host == "localhost"
        assert s.mqtt_port == 1883
        assert s.mqtt_keepalive_seconds == 5
        assert s.metrics == ("ec", "tds", "tempC", "ph")
        assert s.retention_hours == 24
        assert s.query_window_hours == 24
        assert s.devices_database_url == s.timeseries_database_url
        assert s.api_port == 8000
        assert s.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MQTT_ADDRESS", "broker.local")
        monkeypatch.setenv("SPECIAL_USER", "logger")
        monkeypatch.setenv("SPECIAL_PASS", "secret")
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/gaia")
        monkeypatch.setenv("SENSOR_METRICS", "ph, ec")

        s = get_settings()

        assert s.mqtt_host == "broker.local"
        assert s.mqtt_username == "logger"
        assert s.mqtt_password == "secret"
        assert s.devices_database_url == "postgresql://u:p@db/gaia"
        assert s.metrics == ("ph", "ec")

    def test_env_file_does_not_override_real_env(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MQTT_ADDRESS=from-file\nSPECIAL_USER=file-user\n")
        monkeypatch.setenv("SENSOR_ENV_FILE", str(env_file))
        monkeypatch.setenv("MQTT_ADDRESS", "from-env")

        s = get_settings()

        assert s.mqtt_host == "from-env"
        assert s.mqtt_username == "file-user"

    @pytest.mark.parametrize("metrics", ["ec,salinity", " , "])
    def test_invalid_metrics(self, monkeypatch, metrics):
        monkeypatch.setenv("SENSOR_METRICS", metrics)

        with pytest.raises(ValueError):
            get_settings()

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("MQTT_PORT", "not-a-port")

        with pytest.raises(ValueError, match="MQTT_PORT"):
            get_settings()

    def test_non_positive_window(self, monkeypatch):
        monkeypatch.setenv("SENSOR_QUERY_WINDOW_HOURS", "0")

        with pytest.raises(ValueError):
            get_settings()
