"""Tests de la API HTTP (FastAPI TestClient)."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from sensor_logger.core.domain.metric import Metric
from sensor_logger.core.domain.sensor_record import SensorRecord
from sensor_logger.main import create_app
from sensor_logger.queries.sensor_data import SensorQueryEngine


@pytest.fixture
def client(runtime):
    app = create_app(runtime, start_background=False)
    with TestClient(app) as c:
        yield c


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        body = client.get("/ready").json()

        assert body["status"] == "ready"
        assert body["metrics"] == ["ec", "tds", "tempC", "ph"]
        assert body["devices"] == 1
        assert body["ingestion"] is None


class TestLegacyGetRoute:

    def test_all_metrics_when_topic_omitted(self, client, store, registry, now):
        store.insert(registry.lookup(Metric.PH), SensorRecord("device1", now - timedelta(minutes=1), 7.2))

        resp = client.request("GET", "/get", json={"device_id": "device1"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert set(data) == {"ec", "tds", "tempC", "ph"}
        assert data["ec"] == []
        point = data["ph"][0]
        assert point["metadata"] == {"device_id": "device1"}
        assert point["data"] == pytest.approx(7.2)
        assert _parse_ts(point["timestamp"]) == now - timedelta(minutes=1)

    def test_single_topic(self, client):
        resp = client.request("GET", "/get", json={"device_id": "device1", "topic": "tds"})

        assert resp.status_code == 200
        assert resp.json() == {"data": {"tds": []}}

    def test_unknown_topic_is_404(self, client):
        resp = client.request("GET", "/get", json={"device_id": "device1", "topic": "salinity"})

        assert resp.status_code == 404

    def test_missing_device_id_is_422(self, client):
        resp = client.request("GET", "/get", json={"topic": "ph"})

        assert resp.status_code == 422


class TestSensorDataRoute:

    def test_multiple_topics(self, client, store, registry, now):
        store.insert(registry.lookup(Metric.EC), SensorRecord("device1", now - timedelta(hours=1), 1.4))

        resp = client.get("/sensors/device1/data", params=[("topic", "ec"), ("topic", "ph")])

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert list(data) == ["ec", "ph"]
        assert [p["data"] for p in data["ec"]] == [pytest.approx(1.4)]

    def test_window_hours(self, client, store, registry, now):
        store.insert(registry.lookup(Metric.EC), SensorRecord("device1", now - timedelta(hours=3), 1.4))

        resp = client.get("/sensors/device1/data", params={"topic": "ec", "window_hours": 2})

        assert resp.json()["data"]["ec"] == []

    @pytest.mark.parametrize("window_hours", ["0", "-1", "1e-12", "1e8", "inf", "nan"])
    def test_invalid_window_is_422(self, client, window_hours):
        resp = client.get("/sensors/device1/data", params={"window_hours": window_hours})

        assert resp.status_code == 422

    def test_one_unknown_topic_fails_request(self, client):
        resp = client.get("/sensors/device1/data", params=[("topic", "ph"), ("topic", "salinity")])

        assert resp.status_code == 404

    def test_backend_error_is_500(self, runtime, registry, clock):
        broken = MagicMock()
        broken.find.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        runtime.query_engine = SensorQueryEngine(registry, broken, clock=clock)

        app = create_app(runtime, start_background=False)
        with TestClient(app) as c:
            resp = c.get("/sensors/device1/data")

        assert resp.status_code == 500
        assert "db down" not in resp.text
