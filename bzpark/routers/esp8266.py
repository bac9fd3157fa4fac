# bzpark/routers/esp8266.py
"""
Proxy to the ESP8266 sensor board plus a one-shot pull that writes both
distance channels into their configured sensors (which reconciles the slots).
Board unreachable → 503, board error status → 502.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bzpark.config import settings
from bzpark.database import get_db
from bzpark.services.esp8266_client import ESP8266Client, ESP8266Error
from bzpark.services.sensor_poller import apply_readings
from bzpark.utils.logger import get_logger
from bzpark.utils.responses import envelope, error_envelope
from bzpark.utils.result import ServiceResult

router = APIRouter(prefix="/esp8266")
logger = get_logger(__name__)


def get_esp8266_client() -> ESP8266Client:
    return ESP8266Client()


def _gateway_failure(e: ESP8266Error, message: str):
    code = status.HTTP_503_SERVICE_UNAVAILABLE if e.unreachable else status.HTTP_502_BAD_GATEWAY
    return error_envelope(code, message, str(e))


async def _proxy(call, ok_message: str, failure_message: str):
    try:
        data = await call()
    except ESP8266Error as e:
        logger.warning(f"{failure_message}: {e}")
        return _gateway_failure(e, failure_message)
    return envelope(ServiceResult.ok(data, ok_message))


@router.get("/status")
async def esp8266_status(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(client.status, "ESP8266 status retrieved successfully",
                        "Failed to get ESP8266 status")


@router.get("/sensor/on")
async def sensors_on(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(client.sensors_on, "Sensors turned ON successfully",
                        "Failed to turn sensors ON")


@router.get("/sensor/off")
async def sensors_off(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(client.sensors_off, "Sensors turned OFF successfully",
                        "Failed to turn sensors OFF")


@router.get("/distance/1")
async def distance_1(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(lambda: client.distance(1), "Distance sensor 1 data retrieved successfully",
                        "Failed to get distance from sensor 1")


@router.get("/distance/2")
async def distance_2(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(lambda: client.distance(2), "Distance sensor 2 data retrieved successfully",
                        "Failed to get distance from sensor 2")


@router.get("/distance/both")
async def distance_both(client: ESP8266Client = Depends(get_esp8266_client)):
    return await _proxy(client.distances, "Both sensor distances retrieved successfully",
                        "Failed to get distances from both sensors")


@router.post("/update-sensor-ranges", summary="Pull both distances into their sensors")
async def update_sensor_ranges(client: ESP8266Client = Depends(get_esp8266_client),
                               db: Session = Depends(get_db)):
    sensors = settings.ESP8266_SENSORS
    if not sensors:
        return error_envelope(status.HTTP_400_BAD_REQUEST, "No ESP8266 sensor ids configured",
                              "Set ESP8266_SENSOR_ID_1 and/or ESP8266_SENSOR_ID_2")
    try:
        readings = await client.read_channels()
    except ESP8266Error as e:
        logger.warning(f"Sensor range pull failed: {e}")
        return _gateway_failure(e, "Failed to read distances from ESP8266")

    applied = await apply_readings(db, readings, sensors)
    updated = sum(1 for a in applied if a["success"])
    return envelope(ServiceResult.ok(applied, f"Updated {updated} of {len(applied)} sensor(s)",
                                     count=len(applied)))
