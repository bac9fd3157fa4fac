# bzpark/services/parking_payment_service.py
"""Payments settling a parking activity. Recording one marks the activity paid."""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from bzpark.models.parking_activity import ParkingActivity
from bzpark.models.parking_payment import ParkingPayment
from bzpark.models.user import User
from bzpark.utils.logger import get_logger
from bzpark.utils.result import ServiceResult, handles_store_errors, not_found, validation_error
from bzpark.utils.timeutil import as_utc_naive

logger = get_logger(__name__)

PARKING_METHODS = ("gcash", "paymaya", "cash")
UPDATABLE_FIELDS = ("user_id", "act_id", "amount", "payment_method")
MIN_PAYMENT_AMOUNT = 0.01
MAX_PAYMENT_AMOUNT = 9999.99


def validate_amount(amount) -> Optional[str]:
    if (not isinstance(amount, (int, float)) or isinstance(amount, bool)
            or not MIN_PAYMENT_AMOUNT <= round(amount, 2) <= MAX_PAYMENT_AMOUNT):
        return f"Amount must be between {MIN_PAYMENT_AMOUNT} and {MAX_PAYMENT_AMOUNT}"
    return None


def _find(db: Session, parking_payment_id: int):
    return (db.query(ParkingPayment)
            .filter(ParkingPayment.parking_payment_id == parking_payment_id)
            .first())


def _missing_reference(db: Session, user_id=None, act_id=None):
    if user_id is not None and not db.query(User.user_id).filter(User.user_id == user_id).first():
        return not_found("User not found")
    if act_id is not None and not db.query(ParkingActivity.act_id).filter(ParkingActivity.act_id == act_id).first():
        return not_found("Parking activity not found")
    return None


def _listing(db: Session, *criteria):
    q = db.query(ParkingPayment)
    for c in criteria:
        q = q.filter(c)
    return q.order_by(ParkingPayment.created_at.desc(), ParkingPayment.parking_payment_id.desc()).all()


@handles_store_errors("Listing parking payments")
async def list_payments(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db), "Parking payments retrieved successfully")


@handles_store_errors("Getting parking payment")
async def get_payment(db: Session, parking_payment_id: int) -> ServiceResult:
    payment = _find(db, parking_payment_id)
    if not payment:
        return not_found("Parking payment not found")
    return ServiceResult.ok(payment, "Parking payment retrieved successfully")


@handles_store_errors("Getting parking payments by user")
async def list_payments_by_user(db: Session, user_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingPayment.user_id == user_id),
                                 f"Parking payments for user {user_id}")


@handles_store_errors("Getting parking payments by activity")
async def list_payments_by_activity(db: Session, act_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingPayment.act_id == act_id),
                                 f"Parking payments for activity {act_id}")


@handles_store_errors("Getting parking payments by method")
async def list_payments_by_method(db: Session, method: str) -> ServiceResult:
    if method not in PARKING_METHODS:
        return validation_error("Payment method must be 'gcash', 'paymaya', or 'cash'")
    return ServiceResult.listing(_listing(db, ParkingPayment.payment_method == method),
                                 f"Parking payments paid with {method}")


@handles_store_errors("Getting parking payments by amount range")
async def list_payments_by_amount(db: Session, min_amount: float, max_amount: float) -> ServiceResult:
    if min_amount < 0 or max_amount < 0:
        return validation_error("Amounts must be non-negative")
    if min_amount > max_amount:
        return validation_error("min_amount cannot be greater than max_amount")
    rows = _listing(db, ParkingPayment.amount >= min_amount, ParkingPayment.amount <= max_amount)
    return ServiceResult.listing(rows, "Parking payments retrieved successfully")


@handles_store_errors("Getting parking payments by date range")
async def list_payments_by_date(db: Session, start_date: datetime, end_date: datetime) -> ServiceResult:
    start_date, end_date = as_utc_naive(start_date), as_utc_naive(end_date)
    if start_date > end_date:
        return validation_error("start_date must be before end_date")
    rows = _listing(db, ParkingPayment.created_at >= start_date, ParkingPayment.created_at <= end_date)
    return ServiceResult.listing(rows, "Parking payments retrieved successfully")


@handles_store_errors("Creating parking payment")
async def create_payment(db: Session, data: dict) -> ServiceResult:
    error = validate_amount(data.get("amount"))
    if error:
        return validation_error(error)
    missing = _missing_reference(db, data["user_id"], data["act_id"])
    if missing:
        return missing

    payment = ParkingPayment(
        user_id=data["user_id"],
        act_id=data["act_id"],
        amount=round(float(data["amount"]), 2),
        payment_method=data["payment_method"],
    )
    db.add(payment)
    db.query(ParkingActivity).filter(ParkingActivity.act_id == data["act_id"]).update(
        {ParkingActivity.is_paid: True}, synchronize_session=False
    )
    db.commit()
    db.refresh(payment)
    logger.info(f"Parking payment {payment.parking_payment_id} recorded for activity {payment.act_id} "
                f"({payment.amount} via {payment.payment_method})")
    return ServiceResult.ok(payment, "Parking payment created successfully")


@handles_store_errors("Updating parking payment")
async def update_payment(db: Session, parking_payment_id: int, data: dict) -> ServiceResult:
    payment = _find(db, parking_payment_id)
    if not payment:
        return not_found("Parking payment not found")

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        return validation_error("No valid fields to update")
    if "amount" in changes:
        error = validate_amount(changes["amount"])
        if error:
            return validation_error(error)
        changes["amount"] = round(float(changes["amount"]), 2)

    missing = _missing_reference(db, changes.get("user_id"), changes.get("act_id"))
    if missing:
        return missing

    for field, value in changes.items():
        setattr(payment, field, value)
    db.commit()
    db.refresh(payment)
    return ServiceResult.ok(payment, "Parking payment updated successfully")


@handles_store_errors("Deleting parking payment")
async def delete_payment(db: Session, parking_payment_id: int) -> ServiceResult:
    payment = _find(db, parking_payment_id)
    if not payment:
        return not_found("Parking payment not found")
    db.delete(payment)
    db.commit()
    return ServiceResult.ok(payment, "Parking payment deleted successfully")


def _method_total(method: str):
    return func.coalesce(
        func.sum(case((ParkingPayment.payment_method == method, ParkingPayment.amount), else_=0)), 0
    )


@handles_store_errors("Getting parking payment statistics")
async def payment_stats(db: Session) -> ServiceResult:
    row = db.query(
        func.count(ParkingPayment.parking_payment_id).label("total_payments"),
        func.coalesce(func.sum(ParkingPayment.amount), 0).label("total_amount"),
        func.avg(ParkingPayment.amount).label("average_amount"),
        func.min(ParkingPayment.amount).label("min_amount"),
        func.max(ParkingPayment.amount).label("max_amount"),
        func.count(case((ParkingPayment.payment_method == "gcash", 1))).label("gcash_count"),
        func.count(case((ParkingPayment.payment_method == "paymaya", 1))).label("paymaya_count"),
        func.count(case((ParkingPayment.payment_method == "cash", 1))).label("cash_count"),
        _method_total("gcash").label("gcash_total"),
        _method_total("paymaya").label("paymaya_total"),
        _method_total("cash").label("cash_total"),
    ).one()
    stats = dict(row._mapping)
    for key in ("total_amount", "average_amount", "gcash_total", "paymaya_total", "cash_total"):
        if stats[key] is not None:
            stats[key] = round(float(stats[key]), 2)
    return ServiceResult.ok(stats, "Parking payment statistics retrieved successfully")
