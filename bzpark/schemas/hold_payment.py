# bzpark/schemas/hold_payment.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

HoldMethod = Literal["gcash", "paymaya"]


class HoldPaymentCreate(BaseModel):
    user_id: int
    amount: float
    payment_method: str   # checked by the admission controller, not here


class HoldPaymentUpdate(BaseModel):
    user_id: Optional[int] = None
    amount: Optional[float] = Field(None, ge=0.01, le=999.99)
    payment_method: Optional[HoldMethod] = None
    is_done: Optional[bool] = None


class HoldPaymentOut(BaseModel):
    hold_payment_id: int
    user_id: int
    amount: float
    payment_method: str
    is_done: Optional[bool]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
