# tests/test_routers.py
"""HTTP surface: status codes and the JSON envelope."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from bzpark.database import get_db
from bzpark.main import app
from bzpark.routers.esp8266 import get_esp8266_client
from bzpark.services.esp8266_client import ESP8266Client


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: startup would try the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def broken_db_client():
    def override_get_db():
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def esp_board(handler):
    app.dependency_overrides[get_esp8266_client] = lambda: ESP8266Client(
        "http://esp.local", transport=httpx.MockTransport(handler))


class TestEnvelope:
    def test_list_carries_count(self, client, make_service):
        make_service(vehicle_type="car")
        make_service(vehicle_type="motorcycle")

        resp = client.get("/api/service/")

        body = resp.json()
        assert resp.status_code == 200
        assert body["success"] is True
        assert body["count"] == 2
        assert len(body["data"]) == 2
        assert body["timestamp"].endswith("Z")

    def test_create_returns_201(self, client):
        resp = client.post("/api/user/", json={"plate_number": "abc-123"})

        assert resp.status_code == 201
        assert resp.json()["data"]["plate_number"] == "ABC-123"

    def test_schema_violation_is_400(self, client):
        resp = client.post("/api/parking-slot/", json={"location": "A1", "status": "reserved"})

        body = resp.json()
        assert resp.status_code == 400
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert "status" in body["error"]

    def test_missing_row_is_404(self, client):
        resp = client.get("/api/sensor/9999")

        assert resp.status_code == 404
        assert resp.json()["error"] == "Sensor not found"

    def test_duplicate_is_409(self, client, make_user):
        make_user(plate_number="DUP-0001")

        resp = client.post("/api/user/", json={"plate_number": "dup-0001"})

        assert resp.status_code == 409

    def test_unreachable_store_is_503(self, broken_db_client):
        resp = broken_db_client.get("/api/user/")

        body = resp.json()
        assert resp.status_code == 503
        assert body["error"] == "Database operation failed"
        assert "server closed" not in resp.text


class TestHoldPaymentEndpoint:
    def test_admitted(self, client, make_user, make_slot):
        user = make_user()
        make_slot(status="available")

        resp = client.post("/api/hold-payment/",
                           json={"user_id": user.user_id, "amount": 50, "payment_method": "gcash"})

        body = resp.json()
        assert resp.status_code == 201
        assert body["data"]["hold_payment"]["is_done"] is False
        assert body["data"]["availability"]["remaining"] == 0

    def test_denied_with_counts(self, client, make_user, make_slot, make_hold):
        user = make_user()
        make_slot(status="available")
        make_hold(user.user_id)

        resp = client.post("/api/hold-payment/",
                           json={"user_id": user.user_id, "amount": 50, "payment_method": "gcash"})

        body = resp.json()
        assert resp.status_code == 409
        assert body["success"] is False
        assert body["data"] == {"available_count": 1, "pending_count": 1}

    def test_bad_method_is_400(self, client, make_user, make_slot):
        user = make_user()
        make_slot(status="available")

        resp = client.post("/api/hold-payment/",
                           json={"user_id": user.user_id, "amount": 50, "payment_method": "cash"})

        assert resp.status_code == 400

    def test_availability(self, client, make_slot):
        make_slot(status="available")
        make_slot(status="occupied")

        resp = client.get("/api/hold-payment/availability")

        assert resp.json()["data"]["available_count"] == 1


class TestSlotEndpoints:
    def test_sensor_update(self, client, make_slot):
        slot = make_slot(status="available")

        resp = client.put(f"/api/parking-slot/{slot.slot_id}/sensor-update",
                          json={"sensor_status": "working", "sensor_range": 1})

        body = resp.json()
        assert resp.status_code == 200
        assert body["data"] == {"slot_id": slot.slot_id, "previous_status": "available",
                                "new_status": "occupied", "changed": True}

    def test_sensor_update_defaults_to_working(self, client, make_slot):
        slot = make_slot(status="available")

        resp = client.put(f"/api/parking-slot/{slot.slot_id}/sensor-update", json={"sensor_range": 1})

        assert resp.status_code == 200
        assert resp.json()["data"]["new_status"] == "occupied"

    def test_sensor_update_rejects_out_of_range(self, client, make_slot):
        slot = make_slot(status="available")

        resp = client.put(f"/api/parking-slot/{slot.slot_id}/sensor-update",
                          json={"sensor_status": "working", "sensor_range": 1001})

        assert resp.status_code == 400

    def test_sensor_put_reconciles_slots(self, client, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=50)
        slot = make_slot(status="available", sensor_id=sensor.sensor_id)

        client.put(f"/api/sensor/{sensor.sensor_id}", json={"sensor_range": 2})
        resp = client.get(f"/api/parking-slot/{slot.slot_id}")

        assert resp.json()["data"]["status"] == "occupied"


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json()["data"]["database"] == "ok"

    def test_database_down(self, broken_db_client):
        resp = broken_db_client.get("/api/health")

        assert resp.status_code == 503
        assert resp.json()["data"]["database"] == "unreachable"


class TestESP8266Endpoints:
    def test_distance_both(self, client):
        esp_board(lambda request: httpx.Response(200, json={"distance1": 5, "distance2": 120}))

        resp = client.get("/api/esp8266/distance/both")

        assert resp.status_code == 200
        assert resp.json()["data"] == {"distance1": 5, "distance2": 120}

    def test_board_down_is_503(self, client):
        def handler(request):
            raise httpx.ConnectError("no route to host", request=request)
        esp_board(handler)

        resp = client.get("/api/esp8266/status")

        assert resp.status_code == 503

    def test_board_error_is_502(self, client):
        esp_board(lambda request: httpx.Response(500, json={"error": "sensor fault"}))

        resp = client.get("/api/esp8266/sensor/on")

        assert resp.status_code == 502

    def test_pull_without_configured_sensors(self, client):
        esp_board(lambda request: httpx.Response(200, json={"distance1": 5}))

        resp = client.post("/api/esp8266/update-sensor-ranges")

        assert resp.status_code == 400
