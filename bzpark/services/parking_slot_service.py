# bzpark/services/parking_slot_service.py
"""
Parking slots: CRUD, filtered lookups, statistics.
A direct update is a manual override; the next sensor reading wins again.
"""

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.models.service import Service
from bzpark.utils.logger import get_logger
from bzpark.utils.result import ServiceResult, handles_store_errors, not_found, validation_error

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("location", "status", "sensor_id", "service_id")
NULLABLE_FIELDS = ("sensor_id", "service_id")


def _find(db: Session, slot_id: int):
    return db.query(ParkingSlot).filter(ParkingSlot.slot_id == slot_id).first()


def _check_references(db: Session, data: dict):
    """Returns a not-found result for a dangling sensor/service id, else None."""
    sensor_id = data.get("sensor_id")
    if sensor_id is not None and not db.query(Sensor.sensor_id).filter(Sensor.sensor_id == sensor_id).first():
        return not_found("Sensor not found")
    service_id = data.get("service_id")
    if service_id is not None and not db.query(Service.service_id).filter(Service.service_id == service_id).first():
        return not_found("Service not found")
    return None


def _listing(db: Session, *criteria):
    q = db.query(ParkingSlot)
    for c in criteria:
        q = q.filter(c)
    return q.order_by(ParkingSlot.created_at.desc()).all()


@handles_store_errors("Listing parking slots")
async def list_slots(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db), "Parking slots retrieved successfully")


@handles_store_errors("Getting parking slot")
async def get_slot(db: Session, slot_id: int) -> ServiceResult:
    slot = _find(db, slot_id)
    if not slot:
        return not_found("Parking slot not found")
    return ServiceResult.ok(slot, "Parking slot retrieved successfully")


@handles_store_errors("Getting parking slots by location")
async def list_slots_by_location(db: Session, location: str) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingSlot.location == location),
                                 f"Parking slots at '{location}'")


@handles_store_errors("Getting parking slots by status")
async def list_slots_by_status(db: Session, status: str) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingSlot.status == status),
                                 f"Parking slots with status '{status}'")


@handles_store_errors("Getting parking slots by sensor")
async def list_slots_by_sensor(db: Session, sensor_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingSlot.sensor_id == sensor_id),
                                 f"Parking slots monitored by sensor {sensor_id}")


@handles_store_errors("Getting parking slots by service")
async def list_slots_by_service(db: Session, service_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingSlot.service_id == service_id),
                                 f"Parking slots for service {service_id}")


@handles_store_errors("Creating parking slot")
async def create_slot(db: Session, data: dict) -> ServiceResult:
    missing = _check_references(db, data)
    if missing:
        return missing

    slot = ParkingSlot(
        location=data["location"],
        status=data.get("status") or "maintenance",
        sensor_id=data.get("sensor_id"),
        service_id=data.get("service_id"),
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    logger.info(f"Parking slot {slot.slot_id} created at {slot.location} (sensor={slot.sensor_id})")
    return ServiceResult.ok(slot, "Parking slot created successfully")


@handles_store_errors("Updating parking slot")
async def update_slot(db: Session, slot_id: int, data: dict) -> ServiceResult:
    slot = _find(db, slot_id)
    if not slot:
        return not_found("Parking slot not found")

    changes = {
        k: v for k, v in data.items()
        if k in UPDATABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
    }
    if not changes:
        return validation_error("No valid fields to update")

    missing = _check_references(db, changes)
    if missing:
        return missing

    for field, value in changes.items():
        setattr(slot, field, value)
    db.commit()
    db.refresh(slot)
    if "status" in changes:
        logger.info(f"Parking slot {slot_id} manually set to '{slot.status}'")
    return ServiceResult.ok(slot, "Parking slot updated successfully")


@handles_store_errors("Deleting parking slot")
async def delete_slot(db: Session, slot_id: int) -> ServiceResult:
    slot = _find(db, slot_id)
    if not slot:
        return not_found("Parking slot not found")
    db.delete(slot)
    db.commit()
    return ServiceResult.ok(slot, "Parking slot deleted successfully")


def _status_counts(status_col):
    return (
        func.count(case((status_col == "available", 1))).label("available_slots"),
        func.count(case((status_col == "occupied", 1))).label("occupied_slots"),
        func.count(case((status_col == "maintenance", 1))).label("maintenance_slots"),
    )


@handles_store_errors("Getting parking slot statistics")
async def slot_stats(db: Session) -> ServiceResult:
    overview = db.query(
        func.count(ParkingSlot.slot_id).label("total_slots"),
        *_status_counts(ParkingSlot.status),
        func.count(func.distinct(ParkingSlot.location)).label("unique_locations"),
        func.count(func.distinct(ParkingSlot.sensor_id)).label("slots_with_sensors"),
        func.count(func.distinct(ParkingSlot.service_id)).label("slots_with_services"),
        func.min(ParkingSlot.created_at).label("first_slot_created"),
        func.max(ParkingSlot.created_at).label("last_slot_created"),
    ).one()

    by_location = (
        db.query(ParkingSlot.location, func.count(ParkingSlot.slot_id).label("total_slots"),
                 *_status_counts(ParkingSlot.status))
        .group_by(ParkingSlot.location)
        .order_by(func.count(ParkingSlot.slot_id).desc())
        .all()
    )

    by_service = (
        db.query(Service.vehicle_type, func.count(ParkingSlot.slot_id).label("total_slots"),
                 *_status_counts(ParkingSlot.status))
        .outerjoin(ParkingSlot, ParkingSlot.service_id == Service.service_id)
        .group_by(Service.service_id, Service.vehicle_type)
        .order_by(func.count(ParkingSlot.slot_id).desc())
        .all()
    )
    return ServiceResult.ok(
        {
            "overview": dict(overview._mapping),
            "locationBreakdown": [dict(r._mapping) for r in by_location],
            "serviceBreakdown": [dict(r._mapping) for r in by_service],
        },
        "Parking slot statistics retrieved successfully",
    )
