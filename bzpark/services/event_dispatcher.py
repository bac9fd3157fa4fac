# bzpark/services/event_dispatcher.py
"""
Routes post-commit events to the cascade handlers.

Arduino and sensor updates commit their own row first, then emit an event here.
Whatever happens in the cascade is logged and never reaches the caller of the
primary update.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from bzpark.config import settings
from bzpark.services.reconciliation_service import (
    cascade_arduino_maintenance, reconcile_sensor_cascade,
)
from bzpark.utils.logger import get_logger
from bzpark.utils.result import ServiceResult

logger = get_logger(__name__)


@dataclass
class SensorReadingChanged:
    sensor_id: int
    status: str           # working | maintenance
    sensor_range: int     # cm


@dataclass
class ArduinoStatusChanged:
    arduino_id: int
    status: str


async def _on_sensor_reading(event: SensorReadingChanged, db: Session) -> ServiceResult:
    result = await reconcile_sensor_cascade(db, event.sensor_id, event.status, event.sensor_range)
    if result.success:
        logger.info(f"Auto-updated parking slots for sensor {event.sensor_id}: {result.message}")
    else:
        logger.warning(f"Slot cascade for sensor {event.sensor_id} failed: {result.error}")
    return result


async def _on_arduino_status(event: ArduinoStatusChanged, db: Session) -> Optional[ServiceResult]:
    if event.status != "maintenance":
        return None

    result = await cascade_arduino_maintenance(db, event.arduino_id)
    if not result.success:
        logger.warning(f"Sensor cascade for Arduino {event.arduino_id} failed: {result.error}")
        return result

    if settings.CASCADE_CHAIN_TO_SLOTS:
        for entry in result.data:
            if entry.success:
                await dispatch_event(
                    SensorReadingChanged(entry.sensor_id, "maintenance", entry.sensor_range), db
                )
    return result


async def dispatch_event(event, db: Session) -> Optional[ServiceResult]:
    try:
        if isinstance(event, SensorReadingChanged):
            return await _on_sensor_reading(event, db)
        if isinstance(event, ArduinoStatusChanged):
            return await _on_arduino_status(event, db)
        logger.warning(f"No handler for event {type(event).__name__}")
    except Exception as e:
        logger.error(f"Cascade for {event} failed: {e}", exc_info=True)
        db.rollback()
    return None
