# bzpark/services/reconciliation_service.py
"""
Slot reconciliation engine.

Turns a sensor reading (health + distance in cm) into a parking-slot status,
for one slot or for every slot wired to a sensor, and forces the sensors of an
Arduino into maintenance when the Arduino goes into maintenance.

Rules, first match wins:
  health == maintenance            → maintenance
  distance <  OCCUPIED_THRESHOLD   → occupied
  distance >  OCCUPIED_THRESHOLD   → available
  distance == OCCUPIED_THRESHOLD   → unchanged (maintenance if the slot has no status)

A slot is written only when its status actually changes, so replaying the same
reading is a no-op.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bzpark.config import settings
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    INFRA_MESSAGE, ServiceResult, handles_store_errors, infra_error, not_found, validation_error,
)

logger = get_logger(__name__)

OCCUPIED_THRESHOLD_CM = settings.SENSOR_OCCUPIED_THRESHOLD_CM
SENSOR_HEALTH = ("working", "maintenance")


@dataclass
class SlotOutcome:
    slot_id: int
    previous_status: Optional[str]
    new_status: str
    changed: bool


@dataclass
class SlotCascadeEntry:
    slot_id: int
    success: bool
    outcome: Optional[SlotOutcome] = None
    error: Optional[str] = None


@dataclass
class SensorCascadeEntry:
    sensor_id: int
    success: bool
    sensor_range: int = 0
    error: Optional[str] = None


def validate_reading(health, distance_cm) -> Optional[str]:
    """Returns an error message, or None when the reading can be reconciled."""
    errors = []
    if health not in SENSOR_HEALTH:
        errors.append("Sensor status must be either 'working' or 'maintenance'")
    if isinstance(distance_cm, bool) or not isinstance(distance_cm, int):
        errors.append("Sensor range must be a whole number of centimeters")
    elif not 0 <= distance_cm <= settings.SENSOR_MAX_RANGE_CM:
        errors.append(f"Sensor range must be between 0 and {settings.SENSOR_MAX_RANGE_CM} cm")
    return ", ".join(errors) or None


def compute_slot_status(current_status: Optional[str], health: str, distance_cm: int,
                        threshold: int = OCCUPIED_THRESHOLD_CM) -> str:
    if health == "maintenance":
        return "maintenance"
    if distance_cm < threshold:
        return "occupied"
    if distance_cm > threshold:
        return "available"
    # Exactly on the threshold: can't tell, keep what we have
    return current_status or "maintenance"


async def reconcile_slot(db: Session, slot: ParkingSlot, health: str, distance_cm: int) -> ServiceResult:
    """Apply one reading to one slot. Commits only when the status changes."""
    error = validate_reading(health, distance_cm)
    if error:
        return validation_error(error)

    try:
        slot_id = slot.slot_id
        previous = slot.status
        new_status = compute_slot_status(previous, health, distance_cm)
        outcome = SlotOutcome(slot_id=slot_id, previous_status=previous,
                              new_status=new_status, changed=new_status != previous)
        if not outcome.changed:
            return ServiceResult.ok(outcome, "Parking slot status unchanged")

        slot.status = new_status
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        return infra_error(exc, f"Reconciling parking slot {getattr(slot, 'slot_id', '?')}")

    logger.info(f"[RECONCILE] slot {slot_id}: {previous} → {new_status} "
                f"(health={health}, range={distance_cm}cm)")
    return ServiceResult.ok(outcome, f"Parking slot status updated to '{new_status}' based on sensor data")


@handles_store_errors("Updating parking slot from sensor")
async def update_slot_from_sensor(db: Session, slot_id: int, sensor_status: str,
                                  sensor_range: int) -> ServiceResult:
    error = validate_reading(sensor_status, sensor_range)
    if error:
        return validation_error(error)
    slot = db.query(ParkingSlot).filter(ParkingSlot.slot_id == slot_id).first()
    if not slot:
        return not_found("Parking slot not found")
    return await reconcile_slot(db, slot, sensor_status, sensor_range)


async def reconcile_sensor_cascade(db: Session, sensor_id: int, health: str,
                                   distance_cm: int) -> ServiceResult:
    """
    Reconcile every slot monitored by `sensor_id`. Slots are independent: a
    failure on one is recorded in its entry and the rest are still processed.
    """
    error = validate_reading(health, distance_cm)
    if error:
        return validation_error(error)

    try:
        slots = db.query(ParkingSlot).filter(ParkingSlot.sensor_id == sensor_id).all()
    except SQLAlchemyError as exc:
        db.rollback()
        return infra_error(exc, f"Loading parking slots for sensor {sensor_id}")

    if not slots:
        return ServiceResult.ok([], "No parking slots connected to this sensor", count=0)

    entries = []
    for slot in slots:
        slot_id = slot.slot_id
        try:
            result = await reconcile_slot(db, slot, health, distance_cm)
        except Exception as exc:
            logger.error(f"[CASCADE] sensor {sensor_id}: slot {slot_id} failed: {exc}", exc_info=True)
            entries.append(SlotCascadeEntry(slot_id=slot_id, success=False, error=str(exc)))
            continue
        if result.success:
            entries.append(SlotCascadeEntry(slot_id=slot_id, success=True, outcome=result.data))
        else:
            logger.warning(f"[CASCADE] sensor {sensor_id}: slot {slot_id} not reconciled: {result.error}")
            entries.append(SlotCascadeEntry(slot_id=slot_id, success=False, error=result.error))

    failed = sum(1 for e in entries if not e.success)
    message = f"Reconciled {len(entries) - failed} of {len(entries)} parking slot(s) for sensor {sensor_id}"
    return ServiceResult.ok(entries, message, count=len(entries))


async def cascade_arduino_maintenance(db: Session, arduino_id: int) -> ServiceResult:
    """
    Force every sensor of `arduino_id` into maintenance, one sensor per commit.
    A failing sensor is logged and reported; the others are still forced.
    """
    try:
        sensors = db.query(Sensor).filter(Sensor.arduino_id == arduino_id).all()
        targets = [(s, s.sensor_id, s.sensor_range or 0) for s in sensors]
    except SQLAlchemyError as exc:
        db.rollback()
        return infra_error(exc, f"Loading sensors for Arduino {arduino_id}")

    entries = []
    for sensor, sensor_id, sensor_range in targets:
        try:
            if sensor.status != "maintenance":
                sensor.status = "maintenance"
                db.commit()
            entries.append(SensorCascadeEntry(sensor_id=sensor_id, success=True, sensor_range=sensor_range))
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"[CASCADE] Arduino {arduino_id}: sensor {sensor_id} "
                           f"not set to maintenance: {exc}")
            entries.append(SensorCascadeEntry(sensor_id=sensor_id, success=False,
                                              sensor_range=sensor_range, error=INFRA_MESSAGE))

    forced = sum(1 for e in entries if e.success)
    logger.info(f"[CASCADE] Arduino {arduino_id}: {forced}/{len(entries)} sensor(s) set to maintenance")
    return ServiceResult.ok(entries, f"Updated {forced} sensor(s) to maintenance status", count=len(entries))
