# bzpark/routers/parking_slot.py
"""Parking slots: CRUD, filters, statistics, and the per-slot sensor update."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.parking_slot import (
    ParkingSlotCreate, ParkingSlotOut, ParkingSlotUpdate, SlotReconcileOut, SlotSensorUpdate,
)
from bzpark.services import parking_slot_service
from bzpark.services.reconciliation_service import update_slot_from_sensor
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/parking-slot")


@router.get("/")
async def list_slots(db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.list_slots(db), ParkingSlotOut)


@router.get("/location/{location}")
async def list_slots_by_location(location: str, db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.list_slots_by_location(db, location), ParkingSlotOut)


@router.get("/status/{slot_status}")
async def list_slots_by_status(slot_status: str, db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.list_slots_by_status(db, slot_status), ParkingSlotOut)


@router.get("/sensor/{sensor_id}")
async def list_slots_by_sensor(sensor_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.list_slots_by_sensor(db, sensor_id), ParkingSlotOut)


@router.get("/service/{service_id}")
async def list_slots_by_service(service_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.list_slots_by_service(db, service_id), ParkingSlotOut)


@router.get("/stats")
async def slot_stats(db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.slot_stats(db))


@router.get("/health", summary="Parking slot service health check")
async def slot_health(db: Session = Depends(get_db)):
    result = await parking_slot_service.list_slots(db)
    result.data = {"service": "parking-slot", "database": "connected" if result.success else "disconnected"}
    if result.success:
        result.message = "Parking slot service is healthy"
        result.count = None
    return envelope(result, failure_message="Parking slot service is unhealthy")


@router.get("/{slot_id}")
async def get_slot(slot_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_slot_service.get_slot(db, slot_id), ParkingSlotOut)


@router.post("/", status_code=201)
async def create_slot(body: ParkingSlotCreate, db: Session = Depends(get_db)):
    result = await parking_slot_service.create_slot(db, body.model_dump())
    return envelope(result, ParkingSlotOut, created=True, failure_message="Failed to create parking slot")


@router.put("/{slot_id}/sensor-update", summary="Reconcile one slot from a sensor reading")
async def update_from_sensor(slot_id: int, body: SlotSensorUpdate, db: Session = Depends(get_db)):
    result = await update_slot_from_sensor(db, slot_id, body.sensor_status, body.sensor_range)
    return envelope(result, SlotReconcileOut, failure_message="Failed to update parking slot from sensor")


@router.put("/{slot_id}", summary="Manual override")
async def update_slot(slot_id: int, body: ParkingSlotUpdate, db: Session = Depends(get_db)):
    result = await parking_slot_service.update_slot(db, slot_id, body.model_dump(exclude_unset=True))
    return envelope(result, ParkingSlotOut, failure_message="Failed to update parking slot")


@router.delete("/{slot_id}")
async def delete_slot(slot_id: int, db: Session = Depends(get_db)):
    result = await parking_slot_service.delete_slot(db, slot_id)
    return envelope(result, ParkingSlotOut, failure_message="Failed to delete parking slot")
