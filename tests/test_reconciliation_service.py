# tests/test_reconciliation_service.py
"""Unit tests for the slot reconciliation engine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock
from sqlalchemy.exc import SQLAlchemyError
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.services.reconciliation_service import (
    cascade_arduino_maintenance, compute_slot_status, reconcile_sensor_cascade,
    reconcile_slot, update_slot_from_sensor, validate_reading,
)
from bzpark.utils.result import INFRA_MESSAGE, ErrorKind


def make_slot(slot_id=1, status="available"):
    return SimpleNamespace(slot_id=slot_id, status=status)


class ExplodingSlot:
    """Slot whose status can't even be read."""
    slot_id = 99

    @property
    def status(self):
        raise RuntimeError("row vanished")


class TestComputeSlotStatus:
    @pytest.mark.parametrize("distance", [0, 1, 3, 500, 1000])
    def test_maintenance_health_wins_at_any_distance(self, distance):
        assert compute_slot_status("occupied", "maintenance", distance) == "maintenance"
        assert compute_slot_status("available", "maintenance", distance) == "maintenance"

    @pytest.mark.parametrize("distance", [0, 1, 2])
    def test_below_threshold_is_occupied(self, distance):
        assert compute_slot_status("available", "working", distance) == "occupied"

    @pytest.mark.parametrize("distance", [4, 50, 1000])
    def test_above_threshold_is_available(self, distance):
        assert compute_slot_status("occupied", "working", distance) == "available"

    @pytest.mark.parametrize("current", ["available", "occupied", "maintenance"])
    def test_exact_threshold_keeps_current_status(self, current):
        assert compute_slot_status(current, "working", 3) == current

    def test_exact_threshold_without_status_defaults_to_maintenance(self):
        assert compute_slot_status(None, "working", 3) == "maintenance"


class TestValidateReading:
    def test_valid_reading(self):
        assert validate_reading("working", 0) is None
        assert validate_reading("maintenance", 1000) is None

    @pytest.mark.parametrize("distance", [-1, 1001])
    def test_out_of_range_rejected(self, distance):
        assert "between 0 and 1000" in validate_reading("working", distance)

    def test_non_integer_rejected(self):
        assert validate_reading("working", 2.5) is not None
        assert validate_reading("working", True) is not None

    def test_unknown_health_rejected(self):
        assert "working" in validate_reading("broken", 10)


class TestReconcileSlot:
    @pytest.mark.asyncio
    async def test_change_is_persisted(self):
        db = MagicMock()
        slot = make_slot(status="available")

        result = await reconcile_slot(db, slot, "working", 1)

        assert result.success
        assert result.data.previous_status == "available"
        assert result.data.new_status == "occupied"
        assert result.data.changed is True
        assert slot.status == "occupied"
        db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_replaying_same_reading_writes_once(self):
        db = MagicMock()
        slot = make_slot(status="available")

        first = await reconcile_slot(db, slot, "working", 1)
        second = await reconcile_slot(db, slot, "working", 1)

        assert first.data.changed is True
        assert second.data.changed is False
        assert second.data.new_status == "occupied"
        assert db.commit.call_count == 1

    @pytest.mark.asyncio
    async def test_threshold_reading_is_a_no_op(self):
        db = MagicMock()
        slot = make_slot(status="occupied")

        result = await reconcile_slot(db, slot, "working", 3)

        assert result.data.changed is False
        assert slot.status == "occupied"
        db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_reading_never_touches_store(self):
        db = MagicMock()
        slot = make_slot(status="available")

        result = await reconcile_slot(db, slot, "working", 1001)

        assert not result.success
        assert result.kind == ErrorKind.VALIDATION
        assert slot.status == "available"
        db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_failure_is_rolled_back(self):
        db = MagicMock()
        db.commit.side_effect = SQLAlchemyError("disk full")

        result = await reconcile_slot(db, make_slot(status="available"), "working", 1)

        assert not result.success
        assert result.kind == ErrorKind.INFRA
        assert result.error == INFRA_MESSAGE
        db.rollback.assert_called_once()


class TestSensorCascade:
    @pytest.mark.asyncio
    async def test_each_slot_reconciled_independently(self, db, make_sensor, make_slot):
        sensor = make_sensor()
        s1 = make_slot(status="available", sensor_id=sensor.sensor_id)
        s2 = make_slot(status="occupied", sensor_id=sensor.sensor_id)

        result = await reconcile_sensor_cascade(db, sensor.sensor_id, "working", 1)

        assert result.success
        assert result.count == 2
        outcomes = {e.slot_id: e.outcome for e in result.data}
        assert outcomes[s1.slot_id].new_status == "occupied"
        assert outcomes[s1.slot_id].changed is True
        assert outcomes[s2.slot_id].new_status == "occupied"
        assert outcomes[s2.slot_id].changed is False
        assert db.get(ParkingSlot, s1.slot_id).status == "occupied"

    @pytest.mark.asyncio
    async def test_other_sensors_slots_untouched(self, db, make_sensor, make_slot):
        wired = make_sensor()
        other = make_sensor()
        foreign = make_slot(status="available", sensor_id=other.sensor_id)
        make_slot(status="available", sensor_id=wired.sensor_id)

        await reconcile_sensor_cascade(db, wired.sensor_id, "working", 1)

        assert db.get(ParkingSlot, foreign.slot_id).status == "available"

    @pytest.mark.asyncio
    async def test_failing_slot_does_not_stop_the_rest(self):
        s1 = make_slot(slot_id=1, status="available")
        s2 = make_slot(slot_id=2, status="available")
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [s1, s2]
        db.commit.side_effect = [SQLAlchemyError("deadlock"), None]

        result = await reconcile_sensor_cascade(db, 7, "working", 1)

        assert result.success
        first, second = result.data
        assert first.slot_id == 1 and first.success is False
        assert first.error == INFRA_MESSAGE
        assert second.slot_id == 2 and second.success is True
        assert second.outcome.new_status == "occupied"

    @pytest.mark.asyncio
    async def test_unexpected_error_on_one_slot_is_isolated(self):
        healthy = make_slot(slot_id=2, status="occupied")
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [ExplodingSlot(), healthy]

        result = await reconcile_sensor_cascade(db, 7, "working", 40)

        first, second = result.data
        assert first.success is False
        assert "row vanished" in first.error
        assert second.success is True
        assert healthy.status == "available"

    @pytest.mark.asyncio
    async def test_sensor_without_slots(self, db, make_sensor):
        sensor = make_sensor()

        result = await reconcile_sensor_cascade(db, sensor.sensor_id, "working", 1)

        assert result.success
        assert result.data == []
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_out_of_range_reading_rejected_before_loading_slots(self):
        db = MagicMock()

        result = await reconcile_sensor_cascade(db, 7, "working", -5)

        assert result.kind == ErrorKind.VALIDATION
        db.query.assert_not_called()


class TestArduinoMaintenanceCascade:
    @pytest.mark.asyncio
    async def test_all_sensors_forced_to_maintenance(self, db, make_arduino, make_sensor):
        arduino = make_arduino()
        a = make_sensor(arduino_id=arduino.arduino_id, status="working")
        b = make_sensor(arduino_id=arduino.arduino_id, status="working")
        loose = make_sensor(status="working")

        result = await cascade_arduino_maintenance(db, arduino.arduino_id)

        assert result.success
        assert all(e.success for e in result.data)
        assert db.get(Sensor, a.sensor_id).status == "maintenance"
        assert db.get(Sensor, b.sensor_id).status == "maintenance"
        assert db.get(Sensor, loose.sensor_id).status == "working"

    @pytest.mark.asyncio
    async def test_one_failing_sensor_does_not_stop_the_others(self):
        s1 = SimpleNamespace(sensor_id=1, status="working", sensor_range=10)
        s2 = SimpleNamespace(sensor_id=2, status="working", sensor_range=20)
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [s1, s2]
        db.commit.side_effect = [SQLAlchemyError("lock timeout"), None]

        result = await cascade_arduino_maintenance(db, 1)

        assert result.success
        first, second = result.data
        assert first.success is False and first.error == INFRA_MESSAGE
        assert second.success is True
        assert s2.status == "maintenance"
        db.rollback.assert_called_once()


class TestUpdateSlotFromSensor:
    @pytest.mark.asyncio
    async def test_missing_slot(self, db):
        result = await update_slot_from_sensor(db, 404, "working", 10)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_updates_one_slot(self, db, make_slot):
        slot = make_slot(status="occupied")

        result = await update_slot_from_sensor(db, slot.slot_id, "working", 120)

        assert result.success
        assert result.data.new_status == "available"
        assert db.get(ParkingSlot, slot.slot_id).status == "available"
