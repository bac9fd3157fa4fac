# bzpark/routers/parking_payment.py
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.parking_payment import ParkingPaymentCreate, ParkingPaymentOut, ParkingPaymentUpdate
from bzpark.services import parking_payment_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/parking-payment")


@router.get("/")
async def list_payments(db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.list_payments(db), ParkingPaymentOut)


@router.get("/statistics")
async def payment_stats(db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.payment_stats(db))


@router.get("/user/{user_id}")
async def list_payments_by_user(user_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.list_payments_by_user(db, user_id), ParkingPaymentOut)


@router.get("/activity/{act_id}")
async def list_payments_by_activity(act_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.list_payments_by_activity(db, act_id), ParkingPaymentOut)


@router.get("/method/{method}")
async def list_payments_by_method(method: str, db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.list_payments_by_method(db, method), ParkingPaymentOut)


@router.get("/amount-range")
async def list_payments_by_amount(min_amount: float, max_amount: float, db: Session = Depends(get_db)):
    result = await parking_payment_service.list_payments_by_amount(db, min_amount, max_amount)
    return envelope(result, ParkingPaymentOut)


@router.get("/date-range")
async def list_payments_by_date(start_date: datetime, end_date: datetime, db: Session = Depends(get_db)):
    result = await parking_payment_service.list_payments_by_date(db, start_date, end_date)
    return envelope(result, ParkingPaymentOut)


@router.get("/{parking_payment_id}")
async def get_payment(parking_payment_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_payment_service.get_payment(db, parking_payment_id), ParkingPaymentOut)


@router.post("/", status_code=201, summary="Record a payment; marks the activity paid")
async def create_payment(body: ParkingPaymentCreate, db: Session = Depends(get_db)):
    result = await parking_payment_service.create_payment(db, body.model_dump())
    return envelope(result, ParkingPaymentOut, created=True, failure_message="Failed to create parking payment")


@router.put("/{parking_payment_id}")
async def update_payment(parking_payment_id: int, body: ParkingPaymentUpdate, db: Session = Depends(get_db)):
    result = await parking_payment_service.update_payment(
        db, parking_payment_id, body.model_dump(exclude_unset=True)
    )
    return envelope(result, ParkingPaymentOut, failure_message="Failed to update parking payment")


@router.delete("/{parking_payment_id}")
async def delete_payment(parking_payment_id: int, db: Session = Depends(get_db)):
    result = await parking_payment_service.delete_payment(db, parking_payment_id)
    return envelope(result, ParkingPaymentOut, failure_message="Failed to delete parking payment")
