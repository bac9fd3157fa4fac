# bzpark/schemas/parking_activity.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ParkingActivityStart(BaseModel):
    user_id: int
    start_time: Optional[datetime] = None


class ParkingActivityEnd(BaseModel):
    end_time: Optional[datetime] = None


class ParkingActivityUpdate(BaseModel):
    user_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_paid: Optional[bool] = None


class ParkingActivityOut(BaseModel):
    act_id: int
    user_id: int
    start_time: datetime
    end_time: Optional[datetime]
    duration: Optional[int]     # seconds
    amount: int
    is_paid: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
