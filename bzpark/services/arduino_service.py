# bzpark/services/arduino_service.py
"""
Arduino controllers: CRUD, lookups, statistics.
Setting status to 'maintenance' emits ArduinoStatusChanged after the commit;
the dispatcher then forces the attached sensors into maintenance.
"""

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from bzpark.models.arduino import Arduino
from bzpark.models.sensor import Sensor
from bzpark.services.event_dispatcher import ArduinoStatusChanged, dispatch_event
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("ip_address", "location", "status")


def _sensor_counts(db: Session, arduino_ids=None) -> dict:
    q = db.query(Sensor.arduino_id, func.count(Sensor.sensor_id)).group_by(Sensor.arduino_id)
    if arduino_ids is not None:
        q = q.filter(Sensor.arduino_id.in_(arduino_ids))
    return {arduino_id: count for arduino_id, count in q.all()}


def _with_sensor_count(db: Session, devices: list) -> list[dict]:
    counts = _sensor_counts(db, [d.arduino_id for d in devices])
    return [
        {
            "arduino_id": d.arduino_id,
            "ip_address": d.ip_address,
            "location": d.location,
            "status": d.status,
            "created_at": d.created_at,
            "sensor_count": counts.get(d.arduino_id, 0),
        }
        for d in devices
    ]


def _find(db: Session, arduino_id: int):
    return db.query(Arduino).filter(Arduino.arduino_id == arduino_id).first()


def _find_by_ip(db: Session, ip_address: str):
    return db.query(Arduino).filter(Arduino.ip_address == ip_address).first()


@handles_store_errors("Listing Arduino devices")
async def list_arduinos(db: Session) -> ServiceResult:
    devices = db.query(Arduino).order_by(Arduino.created_at.desc()).all()
    return ServiceResult.listing(_with_sensor_count(db, devices), "Arduino devices retrieved successfully")


@handles_store_errors("Getting Arduino device")
async def get_arduino(db: Session, arduino_id: int) -> ServiceResult:
    device = _find(db, arduino_id)
    if not device:
        return not_found("Arduino device not found")
    return ServiceResult.ok(_with_sensor_count(db, [device])[0], "Arduino device retrieved successfully")


@handles_store_errors("Getting Arduino device by IP")
async def get_arduino_by_ip(db: Session, ip_address: str) -> ServiceResult:
    device = _find_by_ip(db, ip_address)
    if not device:
        return not_found("Arduino device not found")
    return ServiceResult.ok(_with_sensor_count(db, [device])[0], "Arduino device retrieved successfully")


@handles_store_errors("Getting Arduino devices by location")
async def list_arduinos_by_location(db: Session, location: str) -> ServiceResult:
    devices = (db.query(Arduino).filter(Arduino.location == location)
               .order_by(Arduino.created_at.desc()).all())
    return ServiceResult.listing(_with_sensor_count(db, devices), f"Arduino devices at '{location}'")


@handles_store_errors("Getting Arduino devices by status")
async def list_arduinos_by_status(db: Session, status: str) -> ServiceResult:
    devices = (db.query(Arduino).filter(Arduino.status == status)
               .order_by(Arduino.created_at.desc()).all())
    return ServiceResult.listing(_with_sensor_count(db, devices), f"Arduino devices with status '{status}'")


@handles_store_errors("Getting connected sensors")
async def list_connected_sensors(db: Session, arduino_id: int) -> ServiceResult:
    if not _find(db, arduino_id):
        return not_found("Arduino device not found")
    sensors = db.query(Sensor).filter(Sensor.arduino_id == arduino_id).all()
    return ServiceResult.listing(sensors, f"Sensors connected to Arduino {arduino_id}")


@handles_store_errors("Creating Arduino device")
async def create_arduino(db: Session, data: dict) -> ServiceResult:
    ip_address = data["ip_address"].strip()
    if _find_by_ip(db, ip_address):
        return conflict("Arduino device with this IP address already exists")

    device = Arduino(ip_address=ip_address, location=data["location"],
                     status=data.get("status") or "working")
    db.add(device)
    db.commit()
    db.refresh(device)
    logger.info(f"Arduino {device.arduino_id} registered at {device.ip_address} ({device.location})")
    return ServiceResult.ok(_with_sensor_count(db, [device])[0], "Arduino device created successfully")


@handles_store_errors("Updating Arduino device")
async def update_arduino(db: Session, arduino_id: int, data: dict) -> ServiceResult:
    device = _find(db, arduino_id)
    if not device:
        return not_found("Arduino device not found")

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        return validation_error("No valid fields to update")

    if "ip_address" in changes and changes["ip_address"] != device.ip_address:
        if _find_by_ip(db, changes["ip_address"]):
            return conflict("Arduino device with this IP address already exists")

    for field, value in changes.items():
        setattr(device, field, value)
    db.commit()

    # Sensor cascade runs after our own commit; its outcome is logged only
    if changes.get("status") == "maintenance":
        await dispatch_event(ArduinoStatusChanged(arduino_id=arduino_id, status="maintenance"), db)

    device = _find(db, arduino_id)
    return ServiceResult.ok(_with_sensor_count(db, [device])[0], "Arduino device updated successfully")


@handles_store_errors("Deleting Arduino device")
async def delete_arduino(db: Session, arduino_id: int) -> ServiceResult:
    device = _find(db, arduino_id)
    if not device:
        return not_found("Arduino device not found")

    deleted = _with_sensor_count(db, [device])[0]
    # Sensors survive their controller
    db.query(Sensor).filter(Sensor.arduino_id == arduino_id).update(
        {Sensor.arduino_id: None}, synchronize_session=False
    )
    db.delete(device)
    db.commit()
    return ServiceResult.ok(deleted, "Arduino device deleted successfully")


@handles_store_errors("Getting Arduino statistics")
async def arduino_stats(db: Session) -> ServiceResult:
    overview = db.query(
        func.count(Arduino.arduino_id).label("total_devices"),
        func.count(func.distinct(Arduino.location)).label("unique_locations"),
        func.count(case((Arduino.status == "working", 1))).label("working_devices"),
        func.count(case((Arduino.status == "maintenance", 1))).label("maintenance_devices"),
        func.min(Arduino.created_at).label("first_device_created"),
        func.max(Arduino.created_at).label("last_device_created"),
    ).one()

    by_location = (
        db.query(
            Arduino.location,
            func.count(Arduino.arduino_id).label("device_count"),
            func.count(case((Arduino.status == "working", 1))).label("working_count"),
            func.count(case((Arduino.status == "maintenance", 1))).label("maintenance_count"),
        )
        .group_by(Arduino.location)
        .order_by(func.count(Arduino.arduino_id).desc())
        .all()
    )
    return ServiceResult.ok(
        {"overview": dict(overview._mapping), "locationBreakdown": [dict(r._mapping) for r in by_location]},
        "Arduino statistics retrieved successfully",
    )
