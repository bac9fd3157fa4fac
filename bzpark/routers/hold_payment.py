# bzpark/routers/hold_payment.py
"""
Hold payments. POST / is admission-controlled: denied with 409 (carrying
available_count and pending_count) when every available slot is already held.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.hold_payment import HoldPaymentCreate, HoldPaymentOut, HoldPaymentUpdate
from bzpark.services import hold_payment_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/hold-payment")


@router.get("/")
async def list_holds(db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_holds(db), HoldPaymentOut)


@router.get("/statistics")
async def hold_stats(db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.hold_stats(db))


@router.get("/availability", summary="Available slots vs pending holds")
async def slot_availability(db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.get_slot_availability(db))


@router.get("/pending")
async def list_pending(db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_pending(db), HoldPaymentOut)


@router.get("/completed")
async def list_completed(db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_completed(db), HoldPaymentOut)


@router.get("/status/{done_status}", summary="done | pending")
async def list_by_done_status(done_status: str, db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_by_done_status(db, done_status), HoldPaymentOut)


@router.get("/user/{user_id}")
async def list_holds_by_user(user_id: int, db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_holds_by_user(db, user_id), HoldPaymentOut)


@router.get("/method/{method}")
async def list_holds_by_method(method: str, db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.list_holds_by_method(db, method), HoldPaymentOut)


@router.get("/amount-range")
async def list_holds_by_amount(min_amount: float, max_amount: float, db: Session = Depends(get_db)):
    result = await hold_payment_service.list_holds_by_amount(db, min_amount, max_amount)
    return envelope(result, HoldPaymentOut)


@router.get("/date-range")
async def list_holds_by_date(start_date: datetime, end_date: datetime, db: Session = Depends(get_db)):
    result = await hold_payment_service.list_holds_by_date(db, start_date, end_date)
    return envelope(result, HoldPaymentOut)


@router.get("/{hold_payment_id}")
async def get_hold(hold_payment_id: int, db: Session = Depends(get_db)):
    return envelope(await hold_payment_service.get_hold(db, hold_payment_id), HoldPaymentOut)


@router.post("/", status_code=201, summary="Reserve slot capacity with a hold payment")
async def create_hold(body: HoldPaymentCreate, db: Session = Depends(get_db)):
    result = await hold_payment_service.check_and_create_hold(
        db, body.user_id, body.amount, body.payment_method
    )
    if result.success:
        result.data = {
            "hold_payment": HoldPaymentOut.model_validate(result.data["hold_payment"]),
            "availability": result.data["availability"],
        }
    return envelope(result, created=True, failure_message="Failed to create hold payment")


@router.put("/{hold_payment_id}/mark-done")
async def mark_done(hold_payment_id: int, db: Session = Depends(get_db)):
    result = await hold_payment_service.mark_done(db, hold_payment_id)
    return envelope(result, HoldPaymentOut, failure_message="Failed to mark hold payment as done")


@router.put("/{hold_payment_id}/mark-pending")
async def mark_pending(hold_payment_id: int, db: Session = Depends(get_db)):
    result = await hold_payment_service.mark_pending(db, hold_payment_id)
    return envelope(result, HoldPaymentOut, failure_message="Failed to mark hold payment as pending")


@router.put("/{hold_payment_id}")
async def update_hold(hold_payment_id: int, body: HoldPaymentUpdate, db: Session = Depends(get_db)):
    result = await hold_payment_service.update_hold(db, hold_payment_id, body.model_dump(exclude_unset=True))
    return envelope(result, HoldPaymentOut, failure_message="Failed to update hold payment")


@router.delete("/{hold_payment_id}")
async def delete_hold(hold_payment_id: int, db: Session = Depends(get_db)):
    result = await hold_payment_service.delete_hold(db, hold_payment_id)
    return envelope(result, HoldPaymentOut, failure_message="Failed to delete hold payment")
