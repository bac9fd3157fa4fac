# bzpark/routers/arduino.py
"""Arduino controller registry. Setting status to maintenance cascades to sensors."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.arduino import ArduinoCreate, ArduinoOut, ArduinoUpdate
from bzpark.schemas.sensor import SensorOut
from bzpark.services import arduino_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/arduino")


@router.get("/", summary="All Arduino devices with sensor counts")
async def list_arduinos(db: Session = Depends(get_db)):
    return envelope(await arduino_service.list_arduinos(db), ArduinoOut)


@router.get("/ip/{ip_address}")
async def get_arduino_by_ip(ip_address: str, db: Session = Depends(get_db)):
    return envelope(await arduino_service.get_arduino_by_ip(db, ip_address), ArduinoOut)


@router.get("/location/{location}")
async def list_arduinos_by_location(location: str, db: Session = Depends(get_db)):
    return envelope(await arduino_service.list_arduinos_by_location(db, location), ArduinoOut)


@router.get("/status/{device_status}")
async def list_arduinos_by_status(device_status: str, db: Session = Depends(get_db)):
    return envelope(await arduino_service.list_arduinos_by_status(db, device_status), ArduinoOut)


@router.get("/stats", summary="Device counts per status and location")
async def arduino_stats(db: Session = Depends(get_db)):
    return envelope(await arduino_service.arduino_stats(db))


@router.get("/{arduino_id}")
async def get_arduino(arduino_id: int, db: Session = Depends(get_db)):
    return envelope(await arduino_service.get_arduino(db, arduino_id), ArduinoOut)


@router.get("/{arduino_id}/sensors", summary="Sensors wired to this Arduino")
async def list_connected_sensors(arduino_id: int, db: Session = Depends(get_db)):
    return envelope(await arduino_service.list_connected_sensors(db, arduino_id), SensorOut)


@router.post("/", status_code=201)
async def create_arduino(body: ArduinoCreate, db: Session = Depends(get_db)):
    result = await arduino_service.create_arduino(db, body.model_dump())
    return envelope(result, ArduinoOut, created=True, failure_message="Failed to create Arduino device")


@router.put("/{arduino_id}")
async def update_arduino(arduino_id: int, body: ArduinoUpdate, db: Session = Depends(get_db)):
    """
    Update an Arduino. status=maintenance also forces its sensors (and, through
    them, their parking slots) into maintenance. Cascade failures are logged and
    do not change this response.
    """
    result = await arduino_service.update_arduino(db, arduino_id, body.model_dump(exclude_unset=True))
    return envelope(result, ArduinoOut, failure_message="Failed to update Arduino device")


@router.delete("/{arduino_id}")
async def delete_arduino(arduino_id: int, db: Session = Depends(get_db)):
    result = await arduino_service.delete_arduino(db, arduino_id)
    return envelope(result, ArduinoOut, failure_message="Failed to delete Arduino device")
