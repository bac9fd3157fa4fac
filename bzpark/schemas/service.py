# bzpark/schemas/service.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ServiceCreate(BaseModel):
    vehicle_type: str = Field(min_length=1, max_length=20)
    first_2_hrs: int = Field(0, ge=0)
    per_succ_hr: int = Field(0, ge=0)


class ServiceUpdate(BaseModel):
    vehicle_type: Optional[str] = Field(None, min_length=1, max_length=20)
    first_2_hrs: Optional[int] = Field(None, ge=0)
    per_succ_hr: Optional[int] = Field(None, ge=0)


class ServiceOut(BaseModel):
    service_id: int
    vehicle_type: str
    first_2_hrs: int
    per_succ_hr: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
