# bzpark/schemas/parking_slot.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

from bzpark.config import settings

SlotStatus = Literal["available", "occupied", "maintenance"]


class ParkingSlotCreate(BaseModel):
    location: str = Field(min_length=1, max_length=20)
    status: SlotStatus = "maintenance"
    sensor_id: Optional[int] = None
    service_id: Optional[int] = None


class ParkingSlotUpdate(BaseModel):
    location: Optional[str] = Field(None, min_length=1, max_length=20)
    status: Optional[SlotStatus] = None
    sensor_id: Optional[int] = None
    service_id: Optional[int] = None


class SlotSensorUpdate(BaseModel):
    sensor_status: Literal["working", "maintenance"] = "working"
    sensor_range: int = Field(0, ge=0, le=settings.SENSOR_MAX_RANGE_CM)


class ParkingSlotOut(BaseModel):
    slot_id: int
    location: str
    status: Optional[str]
    sensor_id: Optional[int]
    service_id: Optional[int]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class SlotReconcileOut(BaseModel):
    slot_id: int
    previous_status: Optional[str]
    new_status: str
    changed: bool

    class Config:
        from_attributes = True
