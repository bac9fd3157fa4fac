# bzpark/services/sensor_service.py
"""
Distance sensors: CRUD, lookups, statistics.

An update carrying `status` or `sensor_range` commits the sensor first, then
emits SensorReadingChanged so every slot wired to the sensor is reconciled.
When only a range is supplied the health is inferred from it
(range > 0 → working, range == 0 → maintenance).
"""

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from bzpark.models.arduino import Arduino
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.services.event_dispatcher import SensorReadingChanged, dispatch_event
from bzpark.services.reconciliation_service import reconcile_sensor_cascade, validate_reading
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("sensor_type", "arduino_id", "status", "sensor_range")


def infer_status(sensor_range: int) -> str:
    return "working" if sensor_range > 0 else "maintenance"


def _find(db: Session, sensor_id: int):
    return db.query(Sensor).filter(Sensor.sensor_id == sensor_id).first()


def _arduino_exists(db: Session, arduino_id: int) -> bool:
    return db.query(Arduino.arduino_id).filter(Arduino.arduino_id == arduino_id).first() is not None


@handles_store_errors("Listing sensors")
async def list_sensors(db: Session) -> ServiceResult:
    sensors = db.query(Sensor).order_by(Sensor.created_at.desc()).all()
    return ServiceResult.listing(sensors, "Sensors retrieved successfully")


@handles_store_errors("Getting sensor")
async def get_sensor(db: Session, sensor_id: int) -> ServiceResult:
    sensor = _find(db, sensor_id)
    if not sensor:
        return not_found("Sensor not found")
    return ServiceResult.ok(sensor, "Sensor retrieved successfully")


@handles_store_errors("Getting sensors by Arduino")
async def list_sensors_by_arduino(db: Session, arduino_id: int) -> ServiceResult:
    sensors = (db.query(Sensor).filter(Sensor.arduino_id == arduino_id)
               .order_by(Sensor.created_at.desc()).all())
    return ServiceResult.listing(sensors, f"Sensors for Arduino {arduino_id}")


@handles_store_errors("Getting sensors by status")
async def list_sensors_by_status(db: Session, status: str) -> ServiceResult:
    sensors = (db.query(Sensor).filter(Sensor.status == status)
               .order_by(Sensor.created_at.desc()).all())
    return ServiceResult.listing(sensors, f"Sensors with status '{status}'")


@handles_store_errors("Creating sensor")
async def create_sensor(db: Session, data: dict) -> ServiceResult:
    arduino_id = data.get("arduino_id")
    if arduino_id is not None and not _arduino_exists(db, arduino_id):
        return not_found("Arduino device not found")

    sensor = Sensor(
        sensor_type=data["sensor_type"],
        arduino_id=arduino_id,
        status=data.get("status") or "maintenance",
        sensor_range=data.get("sensor_range") or 0,
    )
    db.add(sensor)
    db.commit()
    db.refresh(sensor)
    logger.info(f"Sensor {sensor.sensor_id} ({sensor.sensor_type}) created on Arduino {arduino_id}")
    return ServiceResult.ok(sensor, "Sensor created successfully")


@handles_store_errors("Updating sensor")
async def update_sensor(db: Session, sensor_id: int, data: dict) -> ServiceResult:
    sensor = _find(db, sensor_id)
    if not sensor:
        return not_found("Sensor not found")

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        return validation_error("No valid fields to update")

    if "arduino_id" in changes and not _arduino_exists(db, changes["arduino_id"]):
        return not_found("Arduino device not found")

    if "sensor_range" in changes and "status" not in changes:
        changes["status"] = infer_status(changes["sensor_range"])

    reading_changed = "status" in changes or "sensor_range" in changes
    for field, value in changes.items():
        setattr(sensor, field, value)
    db.commit()
    db.refresh(sensor)

    if reading_changed:
        await dispatch_event(
            SensorReadingChanged(sensor_id=sensor_id, status=sensor.status,
                                 sensor_range=sensor.sensor_range),
            db,
        )
        db.refresh(sensor)
    return ServiceResult.ok(sensor, "Sensor updated successfully")


@handles_store_errors("Reconciling sensor slots")
async def reconcile_sensor(db: Session, sensor_id: int, status: str, sensor_range: int) -> ServiceResult:
    """
    Store a reading pushed by a scanning collaborator and reconcile the sensor's
    slots in the same call. The per-slot results are returned to the caller.
    """
    error = validate_reading(status, sensor_range)
    if error:
        return validation_error(error)
    sensor = _find(db, sensor_id)
    if not sensor:
        return not_found("Sensor not found")

    sensor.status = status
    sensor.sensor_range = sensor_range
    db.commit()
    return await reconcile_sensor_cascade(db, sensor_id, status, sensor_range)


@handles_store_errors("Deleting sensor")
async def delete_sensor(db: Session, sensor_id: int) -> ServiceResult:
    sensor = _find(db, sensor_id)
    if not sensor:
        return not_found("Sensor not found")

    slot_count = db.query(func.count(ParkingSlot.slot_id)).filter(ParkingSlot.sensor_id == sensor_id).scalar()
    if slot_count:
        return conflict(f"Cannot delete sensor: {slot_count} parking slot(s) are using this sensor")

    db.delete(sensor)
    db.commit()
    return ServiceResult.ok(sensor, "Sensor deleted successfully")


@handles_store_errors("Getting sensor statistics")
async def sensor_stats(db: Session) -> ServiceResult:
    overview = db.query(
        func.count(Sensor.sensor_id).label("total_sensors"),
        func.count(func.distinct(Sensor.sensor_type)).label("unique_types"),
        func.count(case((Sensor.status == "working", 1))).label("working_sensors"),
        func.count(case((Sensor.status == "maintenance", 1))).label("maintenance_sensors"),
        func.count(case((Sensor.arduino_id.is_(None), 1))).label("unassigned_sensors"),
        func.avg(Sensor.sensor_range).label("avg_range"),
        func.min(Sensor.sensor_range).label("min_range"),
        func.max(Sensor.sensor_range).label("max_range"),
    ).one()

    by_type = (
        db.query(
            Sensor.sensor_type,
            func.count(Sensor.sensor_id).label("count"),
            func.count(case((Sensor.status == "working", 1))).label("working_count"),
            func.avg(Sensor.sensor_range).label("avg_range"),
        )
        .group_by(Sensor.sensor_type)
        .order_by(func.count(Sensor.sensor_id).desc())
        .all()
    )
    overview = dict(overview._mapping)
    if overview["avg_range"] is not None:
        overview["avg_range"] = round(float(overview["avg_range"]), 2)
    breakdown = []
    for row in by_type:
        entry = dict(row._mapping)
        entry["avg_range"] = round(float(entry["avg_range"] or 0), 2)
        breakdown.append(entry)
    return ServiceResult.ok({"overview": overview, "typeBreakdown": breakdown},
                            "Sensor statistics retrieved successfully")
