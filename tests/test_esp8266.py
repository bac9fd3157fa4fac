# tests/test_esp8266.py
"""ESP8266 gateway client, reading ingestion and the polling loop."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from contextlib import contextmanager

import httpx
import pytest
from unittest.mock import AsyncMock, patch
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.services.esp8266_client import ESP8266Client, ESP8266Error, extract_distance
from bzpark.services.sensor_poller import SensorPoller, apply_readings


def board(routes: dict, status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "no route"})
        return httpx.Response(status_code, json=body)
    return httpx.MockTransport(handler)


def refused() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


class TestExtractDistance:
    @pytest.mark.parametrize("payload, channel, expected", [
        ({"distance1": 12, "distance2": 40}, 1, 12),
        ({"distance1": 12, "distance2": 40}, 2, 40),
        ({"sensor_1": "7.6", "sensor_2": 3}, 1, 8),
        ({"Range2": 150.2}, 2, 150),
        ({"distance": 22}, 1, 22),
        (31, 2, 31),
    ])
    def test_key_spellings(self, payload, channel, expected):
        assert extract_distance(payload, channel) == expected

    def test_missing_channel(self):
        assert extract_distance({"distance1": 12}, 2) is None

    def test_garbage(self):
        assert extract_distance({"distance1": "n/a"}, 1) is None
        assert extract_distance(["x"], 1) is None

    def test_non_finite(self):
        assert extract_distance({"distance1": "inf"}, 1) is None
        assert extract_distance({"distance2": "nan"}, 2) is None
        assert extract_distance(float("inf"), 1) is None


class TestESP8266Client:
    @pytest.mark.asyncio
    async def test_reads_both_channels(self):
        client = ESP8266Client("http://esp.local", transport=board(
            {"/distance/both": {"distance1": 2, "distance2": 80}}))

        assert await client.read_channels() == {1: 2, 2: 80}

    @pytest.mark.asyncio
    async def test_error_status_raises_with_code(self):
        client = ESP8266Client("http://esp.local", transport=board({"/": {"ok": False}}, status_code=500))

        with pytest.raises(ESP8266Error) as exc:
            await client.status()

        assert exc.value.status_code == 500
        assert exc.value.unreachable is False

    @pytest.mark.asyncio
    async def test_unreachable_board(self):
        client = ESP8266Client("http://esp.local", transport=refused())

        with pytest.raises(ESP8266Error) as exc:
            await client.distances()

        assert exc.value.unreachable is True

    @pytest.mark.asyncio
    async def test_unknown_channel(self):
        with pytest.raises(ValueError):
            await ESP8266Client("http://esp.local", transport=board({})).distance(3)


class TestApplyReadings:
    @pytest.mark.asyncio
    async def test_readings_flow_through_to_slots(self, db, make_sensor, make_slot):
        s1 = make_sensor(status="maintenance", sensor_range=0)
        s2 = make_sensor(status="working", sensor_range=1)
        slot1 = make_slot(status="maintenance", sensor_id=s1.sensor_id)
        slot2 = make_slot(status="occupied", sensor_id=s2.sensor_id)

        applied = await apply_readings(db, {1: 2, 2: 90}, {1: s1.sensor_id, 2: s2.sensor_id})

        assert [a["success"] for a in applied] == [True, True]
        assert db.get(Sensor, s1.sensor_id).status == "working"
        assert db.get(ParkingSlot, slot1.slot_id).status == "occupied"
        assert db.get(ParkingSlot, slot2.slot_id).status == "available"

    @pytest.mark.asyncio
    async def test_unmapped_channel_ignored(self, db, make_sensor):
        sensor = make_sensor()

        applied = await apply_readings(db, {1: 20, 2: 30}, {1: sensor.sensor_id})

        assert len(applied) == 1
        assert applied[0]["channel"] == 1

    @pytest.mark.asyncio
    async def test_out_of_range_reading_skipped(self, db, make_sensor):
        sensor = make_sensor(sensor_range=50)

        applied = await apply_readings(db, {1: 4000}, {1: sensor.sensor_id})

        assert applied[0]["success"] is False
        assert db.get(Sensor, sensor.sensor_id).sensor_range == 50

    @pytest.mark.asyncio
    async def test_unknown_sensor_reported(self, db):
        applied = await apply_readings(db, {1: 20}, {1: 999})
        assert applied[0]["success"] is False
        assert applied[0]["error"] == "Sensor not found"


class TestSensorPoller:
    @pytest.mark.asyncio
    async def test_unchanged_reading_not_reapplied(self, db, make_sensor):
        sensor = make_sensor(sensor_range=50)
        client = ESP8266Client("http://esp.local", transport=board(
            {"/distance/both": {"distance1": 12}}))
        poller = SensorPoller(client=client, sensors={1: sensor.sensor_id}, interval=1)

        @contextmanager
        def shared_session():
            yield db

        with patch("bzpark.services.sensor_poller.session_scope", shared_session):
            first = await poller.poll_once()
            second = await poller.poll_once()

        assert len(first) == 1 and first[0]["success"]
        assert second == []
        assert db.get(Sensor, sensor.sensor_id).sensor_range == 12

    @pytest.mark.asyncio
    async def test_board_error_propagates(self):
        client = ESP8266Client("http://esp.local", transport=refused())
        poller = SensorPoller(client=client, sensors={1: 1}, interval=1)

        with pytest.raises(ESP8266Error):
            await poller.poll_once()

    @pytest.mark.asyncio
    async def test_failed_apply_is_retried_next_round(self):
        client = AsyncMock()
        client.read_channels.return_value = {1: 10}
        poller = SensorPoller(client=client, sensors={1: 5}, interval=1)

        @contextmanager
        def no_session():
            yield None

        failing = AsyncMock(return_value=[{"channel": 1, "sensor_id": 5, "sensor_range": 10,
                                           "success": False, "error": "Database operation failed"}])
        with patch("bzpark.services.sensor_poller.session_scope", no_session), \
                patch("bzpark.services.sensor_poller.apply_readings", failing):
            await poller.poll_once()
            await poller.poll_once()

        assert failing.await_count == 2
