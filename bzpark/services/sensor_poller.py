# bzpark/services/sensor_poller.py
"""
ESP8266 polling service: pulls both distance channels at a fixed interval and
feeds them into sensor updates, so the slot cascade fires as if the sensor
bridge had pushed the reading.

Channel → sensor id comes from ESP8266_SENSOR_ID_1 / ESP8266_SENSOR_ID_2.
A reading is only applied when it moved by at least MIN_CHANGE_CM since the
last applied value, so an idle board doesn't rewrite the same range every tick.
"""

import asyncio

from bzpark.config import settings
from bzpark.database import session_scope
from bzpark.services.esp8266_client import ESP8266Client, ESP8266Error
from bzpark.services.sensor_service import update_sensor
from bzpark.utils.logger import get_logger

logger = get_logger(__name__)

# Retry delay in seconds (doubles on each failure, max 60s)
_MIN_BACKOFF = 3
_MAX_BACKOFF = 60

MIN_CHANGE_CM = 1


async def apply_readings(db, readings: dict, sensors: dict) -> list[dict]:
    """
    Push one round of channel readings into the mapped sensors. Readings for
    unmapped channels are ignored. Returns one entry per applied sensor.
    """
    applied = []
    for channel, cm in readings.items():
        sensor_id = sensors.get(channel)
        if not sensor_id:
            continue
        if not 0 <= cm <= settings.SENSOR_MAX_RANGE_CM:
            logger.warning(f"ESP8266 channel {channel}: {cm}cm out of range, skipped")
            applied.append({"channel": channel, "sensor_id": sensor_id, "sensor_range": cm,
                            "success": False, "error": "Reading out of range"})
            continue
        result = await update_sensor(db, sensor_id, {"sensor_range": cm, "status": "working"})
        applied.append({
            "channel": channel,
            "sensor_id": sensor_id,
            "sensor_range": cm,
            "success": result.success,
            "error": result.error,
        })
    return applied


class SensorPoller:
    def __init__(self, client: ESP8266Client = None, sensors: dict = None, interval: float = None):
        self.client = client or ESP8266Client()
        self.sensors = sensors if sensors is not None else settings.ESP8266_SENSORS
        self.interval = interval or settings.ESP8266_POLL_INTERVAL_SECONDS
        self._last_applied: dict[int, int] = {}

    def _changed(self, readings: dict) -> dict:
        fresh = {}
        for channel, cm in readings.items():
            previous = self._last_applied.get(channel)
            if previous is None or abs(cm - previous) >= MIN_CHANGE_CM:
                fresh[channel] = cm
        return fresh

    async def poll_once(self) -> list[dict]:
        readings = self._changed(await self.client.read_channels())
        if not readings:
            return []
        with session_scope() as db:
            applied = await apply_readings(db, readings, self.sensors)
        for entry in applied:
            if entry["success"]:
                self._last_applied[entry["channel"]] = entry["sensor_range"]
            else:
                logger.warning(f"ESP8266 channel {entry['channel']} → sensor {entry['sensor_id']} "
                               f"not updated: {entry['error']}")
        return applied

    async def run(self):
        backoff = _MIN_BACKOFF
        logger.info(f"📡 Polling ESP8266 at {self.client.base_url} every {self.interval}s "
                    f"(channels → sensors: {self.sensors})")
        while True:
            try:
                await self.poll_once()
                backoff = _MIN_BACKOFF
                await asyncio.sleep(self.interval)
                continue
            except ESP8266Error as e:
                logger.warning(f"❌ ESP8266 poll failed: {e}. Retry in {backoff}s")
            except asyncio.CancelledError:
                logger.info("ESP8266 polling stopped")
                raise
            except Exception as e:
                logger.error(f"❌ ESP8266 poll, unexpected error: {e}", exc_info=True)

            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, _MAX_BACKOFF)


def start_sensor_polling():
    """Launch the poller as a background task. Called once at startup."""
    sensors = settings.ESP8266_SENSORS
    if not sensors:
        logger.warning("No ESP8266 sensor ids configured, polling disabled.")
        return None
    return asyncio.create_task(SensorPoller(sensors=sensors).run(), name="esp8266-poller")
