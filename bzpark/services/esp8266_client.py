# bzpark/services/esp8266_client.py
"""
Async HTTP client for the ESP8266 board that fronts the ultrasonic sensors.

Board endpoints (all GET, JSON bodies):
  /               board status
  /sensor/on      power the sensors
  /sensor/off     power them down
  /distance/1     channel 1 reading
  /distance/2     channel 2 reading
  /distance/both  both channels in one body

The firmware has shipped several key spellings for the distances
(`distance1`, `sensor1`, `range1`, `value1`, or a bare `distance` on the
single-channel routes), so readings are extracted by key pattern.
"""

import re
from typing import Optional

import httpx

from bzpark.config import settings
from bzpark.utils.logger import get_logger

logger = get_logger(__name__)

_CHANNEL_KEY = {
    1: re.compile(r"(sensor|distance|range|value)_?1$", re.IGNORECASE),
    2: re.compile(r"(sensor|distance|range|value)_?2$", re.IGNORECASE),
}
_BARE_KEY = re.compile(r"^(distance|range|value|sensorvalue)$", re.IGNORECASE)


class ESP8266Error(Exception):
    """Board unreachable or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def unreachable(self) -> bool:
        return self.status_code is None


def _as_cm(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return round(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def extract_distance(payload, channel: int) -> Optional[int]:
    """Pull one channel's distance (whole cm) out of a board response."""
    if isinstance(payload, (int, float, str)) and not isinstance(payload, bool):
        return _as_cm(payload)
    if not isinstance(payload, dict):
        return None
    for key, value in payload.items():
        if _CHANNEL_KEY[channel].search(key):
            return _as_cm(value)
    for key, value in payload.items():
        if _BARE_KEY.match(key):
            return _as_cm(value)
    return None


class ESP8266Client:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.ESP8266_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ESP8266_TIMEOUT_SECONDS
        self._transport = transport

    async def _get(self, endpoint: str):
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers={"Content-Type": "application/json"})
        except httpx.TimeoutException:
            raise ESP8266Error(f"ESP8266 timed out on {endpoint}")
        except httpx.TransportError as e:
            raise ESP8266Error(f"ESP8266 unreachable on {endpoint}: {e}")

        if response.status_code != 200:
            logger.warning(f"ESP8266 {endpoint} returned HTTP {response.status_code}")
            raise ESP8266Error(f"ESP8266 returned HTTP {response.status_code} on {endpoint}",
                               status_code=response.status_code)
        try:
            return response.json()
        except ValueError:
            return response.text.strip()

    async def status(self):
        return await self._get("/")

    async def sensors_on(self):
        return await self._get("/sensor/on")

    async def sensors_off(self):
        return await self._get("/sensor/off")

    async def distance(self, channel: int):
        if channel not in (1, 2):
            raise ValueError(f"Unknown distance channel {channel}")
        return await self._get(f"/distance/{channel}")

    async def distances(self):
        return await self._get("/distance/both")

    async def read_channels(self) -> dict:
        """{channel: cm} for every channel the board reported."""
        payload = await self.distances()
        readings = {}
        for channel in (1, 2):
            cm = extract_distance(payload, channel)
            if cm is not None:
                readings[channel] = cm
        return readings
