# bzpark/schemas/sensor.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

from bzpark.config import settings

SensorHealth = Literal["working", "maintenance"]


class SensorCreate(BaseModel):
    sensor_type: str = Field(min_length=1, max_length=50)
    arduino_id: Optional[int] = None
    status: SensorHealth = "maintenance"
    sensor_range: int = Field(0, ge=0, le=settings.SENSOR_MAX_RANGE_CM)


class SensorUpdate(BaseModel):
    sensor_type: Optional[str] = Field(None, min_length=1, max_length=50)
    arduino_id: Optional[int] = None
    status: Optional[SensorHealth] = None
    sensor_range: Optional[int] = Field(None, ge=0, le=settings.SENSOR_MAX_RANGE_CM)


class SensorReading(BaseModel):
    """Health + distance pushed by a sensor bridge or scanning collaborator."""
    status: SensorHealth
    sensor_range: int = Field(ge=0, le=settings.SENSOR_MAX_RANGE_CM)


class SensorOut(BaseModel):
    sensor_id: int
    sensor_type: str
    status: str
    sensor_range: int
    arduino_id: Optional[int]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
