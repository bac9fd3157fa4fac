# bzpark/schemas/parking_payment.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

ParkingMethod = Literal["gcash", "paymaya", "cash"]


class ParkingPaymentCreate(BaseModel):
    user_id: int
    act_id: int
    amount: float = Field(ge=0.01, le=9999.99)
    payment_method: ParkingMethod


class ParkingPaymentUpdate(BaseModel):
    user_id: Optional[int] = None
    act_id: Optional[int] = None
    amount: Optional[float] = Field(None, ge=0.01, le=9999.99)
    payment_method: Optional[ParkingMethod] = None


class ParkingPaymentOut(BaseModel):
    parking_payment_id: int
    user_id: int
    act_id: int
    amount: float
    payment_method: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
