# bzpark/schemas/user.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    plate_number: str = Field(min_length=1, max_length=20)
    service_id: Optional[int] = None


class UserUpdate(BaseModel):
    plate_number: Optional[str] = Field(None, min_length=1, max_length=20)
    service_id: Optional[int] = None


class UserOut(BaseModel):
    user_id: int
    plate_number: str
    service_id: Optional[int]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
