# bzpark/schemas/arduino.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

IPV4_PATTERN = (
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)

DeviceStatus = Literal["working", "maintenance"]


class ArduinoCreate(BaseModel):
    ip_address: str = Field(max_length=50, pattern=IPV4_PATTERN)
    location: str = Field(min_length=1, max_length=20)
    status: DeviceStatus = "working"


class ArduinoUpdate(BaseModel):
    ip_address: Optional[str] = Field(None, max_length=50, pattern=IPV4_PATTERN)
    location: Optional[str] = Field(None, min_length=1, max_length=20)
    status: Optional[DeviceStatus] = None


class ArduinoOut(BaseModel):
    arduino_id: int
    ip_address: str
    location: str
    status: str
    created_at: Optional[datetime]
    sensor_count: Optional[int] = None

    class Config:
        from_attributes = True
