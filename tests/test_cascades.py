# tests/test_cascades.py
"""Arduino → sensor → slot cascades triggered by entity updates."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from bzpark.config import settings
from bzpark.models.arduino import Arduino
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.services.arduino_service import update_arduino
from bzpark.services.event_dispatcher import (
    ArduinoStatusChanged, SensorReadingChanged, dispatch_event,
)
from bzpark.services.sensor_service import infer_status, reconcile_sensor, update_sensor
from bzpark.utils.result import ErrorKind


class TestSensorUpdateCascade:
    @pytest.mark.asyncio
    async def test_short_range_marks_slots_occupied(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=50)
        slot = make_slot(status="available", sensor_id=sensor.sensor_id)

        result = await update_sensor(db, sensor.sensor_id, {"sensor_range": 2})

        assert result.success
        assert result.data.status == "working"
        assert db.get(ParkingSlot, slot.slot_id).status == "occupied"

    @pytest.mark.asyncio
    async def test_zero_range_infers_maintenance(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=50)
        slot = make_slot(status="available", sensor_id=sensor.sensor_id)

        result = await update_sensor(db, sensor.sensor_id, {"sensor_range": 0})

        assert result.data.status == "maintenance"
        assert db.get(ParkingSlot, slot.slot_id).status == "maintenance"

    @pytest.mark.asyncio
    async def test_explicit_status_is_not_overridden(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="maintenance", sensor_range=0)
        slot = make_slot(status="maintenance", sensor_id=sensor.sensor_id)

        await update_sensor(db, sensor.sensor_id, {"sensor_range": 0, "status": "working"})

        assert db.get(Sensor, sensor.sensor_id).status == "working"
        assert db.get(ParkingSlot, slot.slot_id).status == "occupied"

    @pytest.mark.asyncio
    async def test_type_only_update_leaves_slots_alone(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=1)
        slot = make_slot(status="available", sensor_id=sensor.sensor_id)

        await update_sensor(db, sensor.sensor_id, {"sensor_type": "infrared"})

        assert db.get(ParkingSlot, slot.slot_id).status == "available"

    @pytest.mark.asyncio
    async def test_update_succeeds_when_cascade_blows_up(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=50)
        make_slot(status="available", sensor_id=sensor.sensor_id)

        with patch("bzpark.services.event_dispatcher.reconcile_sensor_cascade",
                   new_callable=AsyncMock, side_effect=RuntimeError("cascade down")):
            result = await update_sensor(db, sensor.sensor_id, {"sensor_range": 1})

        assert result.success
        assert db.get(Sensor, sensor.sensor_id).sensor_range == 1

    def test_infer_status(self):
        assert infer_status(1) == "working"
        assert infer_status(0) == "maintenance"


class TestReconcileSensor:
    @pytest.mark.asyncio
    async def test_stores_reading_and_reports_each_slot(self, db, make_sensor, make_slot):
        sensor = make_sensor(status="working", sensor_range=50)
        a = make_slot(status="available", sensor_id=sensor.sensor_id)
        b = make_slot(status="available", sensor_id=sensor.sensor_id)

        result = await reconcile_sensor(db, sensor.sensor_id, "working", 0)

        assert result.success
        assert {e.slot_id for e in result.data} == {a.slot_id, b.slot_id}
        assert all(e.outcome.new_status == "occupied" for e in result.data)
        assert db.get(Sensor, sensor.sensor_id).sensor_range == 0

    @pytest.mark.asyncio
    async def test_unknown_sensor(self, db):
        result = await reconcile_sensor(db, 12345, "working", 10)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_bad_reading_writes_nothing(self, db, make_sensor):
        sensor = make_sensor(status="working", sensor_range=50)

        result = await reconcile_sensor(db, sensor.sensor_id, "working", 5000)

        assert result.kind == ErrorKind.VALIDATION
        assert db.get(Sensor, sensor.sensor_id).sensor_range == 50


class TestArduinoMaintenanceChain:
    @pytest.mark.asyncio
    async def test_maintenance_reaches_sensors_and_slots(self, db, make_arduino, make_sensor, make_slot):
        arduino = make_arduino(status="working")
        sensor = make_sensor(arduino_id=arduino.arduino_id, status="working", sensor_range=1)
        slot = make_slot(status="occupied", sensor_id=sensor.sensor_id)

        result = await update_arduino(db, arduino.arduino_id, {"status": "maintenance"})

        assert result.success
        assert result.data["status"] == "maintenance"
        assert result.data["sensor_count"] == 1
        assert db.get(Sensor, sensor.sensor_id).status == "maintenance"
        assert db.get(ParkingSlot, slot.slot_id).status == "maintenance"

    @pytest.mark.asyncio
    async def test_chain_to_slots_can_be_switched_off(self, db, make_arduino, make_sensor, make_slot):
        arduino = make_arduino(status="working")
        sensor = make_sensor(arduino_id=arduino.arduino_id, status="working", sensor_range=1)
        slot = make_slot(status="occupied", sensor_id=sensor.sensor_id)

        with patch.object(settings, "CASCADE_CHAIN_TO_SLOTS", False):
            await update_arduino(db, arduino.arduino_id, {"status": "maintenance"})

        assert db.get(Sensor, sensor.sensor_id).status == "maintenance"
        assert db.get(ParkingSlot, slot.slot_id).status == "occupied"

    @pytest.mark.asyncio
    async def test_back_to_working_does_not_cascade(self, db, make_arduino, make_sensor):
        arduino = make_arduino(status="maintenance")
        sensor = make_sensor(arduino_id=arduino.arduino_id, status="maintenance", sensor_range=0)

        await update_arduino(db, arduino.arduino_id, {"status": "working"})

        assert db.get(Sensor, sensor.sensor_id).status == "maintenance"

    @pytest.mark.asyncio
    async def test_update_succeeds_when_cascade_raises(self, db, make_arduino, make_sensor):
        arduino = make_arduino(status="working")
        make_sensor(arduino_id=arduino.arduino_id, status="working")

        with patch("bzpark.services.event_dispatcher.cascade_arduino_maintenance",
                   new_callable=AsyncMock, side_effect=RuntimeError("sensor table locked")):
            result = await update_arduino(db, arduino.arduino_id, {"status": "maintenance"})

        assert result.success
        assert db.get(Arduino, arduino.arduino_id).status == "maintenance"


class TestDispatchEvent:
    @pytest.mark.asyncio
    async def test_handler_exception_is_swallowed_and_rolled_back(self):
        db = MagicMock()
        with patch("bzpark.services.event_dispatcher.reconcile_sensor_cascade",
                   new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            result = await dispatch_event(SensorReadingChanged(1, "working", 10), db)

        assert result is None
        db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_non_maintenance_status_is_ignored(self):
        db = MagicMock()
        with patch("bzpark.services.event_dispatcher.cascade_arduino_maintenance",
                   new_callable=AsyncMock) as cascade:
            result = await dispatch_event(ArduinoStatusChanged(1, "working"), db)

        assert result is None
        cascade.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_event_is_ignored(self):
        assert await dispatch_event(object(), MagicMock()) is None
