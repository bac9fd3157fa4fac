# bzpark/routers/sensor.py
"""
Distance sensors. PUT with status/sensor_range and POST /reconcile both
re-derive the status of every parking slot wired to the sensor.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.sensor import SensorCreate, SensorOut, SensorReading, SensorUpdate
from bzpark.services import sensor_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/sensor")


@router.get("/")
async def list_sensors(db: Session = Depends(get_db)):
    return envelope(await sensor_service.list_sensors(db), SensorOut)


@router.get("/arduino/{arduino_id}")
async def list_sensors_by_arduino(arduino_id: int, db: Session = Depends(get_db)):
    return envelope(await sensor_service.list_sensors_by_arduino(db, arduino_id), SensorOut)


@router.get("/status/{sensor_status}")
async def list_sensors_by_status(sensor_status: str, db: Session = Depends(get_db)):
    return envelope(await sensor_service.list_sensors_by_status(db, sensor_status), SensorOut)


@router.get("/stats")
async def sensor_stats(db: Session = Depends(get_db)):
    return envelope(await sensor_service.sensor_stats(db))


@router.get("/{sensor_id}")
async def get_sensor(sensor_id: int, db: Session = Depends(get_db)):
    return envelope(await sensor_service.get_sensor(db, sensor_id), SensorOut)


@router.post("/", status_code=201)
async def create_sensor(body: SensorCreate, db: Session = Depends(get_db)):
    result = await sensor_service.create_sensor(db, body.model_dump())
    return envelope(result, SensorOut, created=True, failure_message="Failed to create sensor")


@router.put("/{sensor_id}")
async def update_sensor(sensor_id: int, body: SensorUpdate, db: Session = Depends(get_db)):
    """
    Update a sensor. A new sensor_range without status sets the status too
    (> 0 → working, 0 → maintenance). Connected slots are reconciled afterwards.
    """
    result = await sensor_service.update_sensor(db, sensor_id, body.model_dump(exclude_unset=True))
    return envelope(result, SensorOut, failure_message="Failed to update sensor")


@router.post("/{sensor_id}/reconcile", summary="Apply a reading and reconcile every connected slot")
async def reconcile_sensor(sensor_id: int, body: SensorReading, db: Session = Depends(get_db)):
    result = await sensor_service.reconcile_sensor(db, sensor_id, body.status, body.sensor_range)
    return envelope(result, failure_message="Failed to reconcile parking slots")


@router.delete("/{sensor_id}")
async def delete_sensor(sensor_id: int, db: Session = Depends(get_db)):
    result = await sensor_service.delete_sensor(db, sensor_id)
    return envelope(result, SensorOut, failure_message="Failed to delete sensor")
