# bzpark/services/hold_payment_service.py
"""
Hold payments and the admission check that gates them.

A new hold payment is admitted only while
    pending hold payments < parking slots with status 'available'.
No particular slot is reserved; the available slots are a count budget.

Admission runs in one transaction:
  1. SELECT ... FOR UPDATE on the admission_lock row (serializes admissions
     across workers on PostgreSQL; SQLite serializes writers on its own)
  2. INSERT INTO hold_payment SELECT ... WHERE pending < available
  3. rowcount 0 → denied, nothing written
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, case, func, insert, literal, or_, select
from sqlalchemy.orm import Session

from bzpark.models.admission_lock import ADMISSION_LOCK_ID, AdmissionLock
from bzpark.models.hold_payment import HoldPayment
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.user import User
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)
from bzpark.utils.timeutil import as_utc_naive, utcnow

logger = get_logger(__name__)

HOLD_METHODS = ("gcash", "paymaya")
MIN_HOLD_AMOUNT = 0.01
MAX_HOLD_AMOUNT = 999.99
UPDATABLE_FIELDS = ("user_id", "amount", "payment_method", "is_done")

_is_pending = or_(HoldPayment.is_done.is_(None), HoldPayment.is_done.is_(False))


def _pending_count_query():
    return select(func.count(HoldPayment.hold_payment_id)).where(_is_pending)


def _available_count_query():
    return select(func.count(ParkingSlot.slot_id)).where(ParkingSlot.status == "available")


def _counts(db: Session) -> tuple[int, int]:
    available = db.execute(_available_count_query()).scalar() or 0
    pending = db.execute(_pending_count_query()).scalar() or 0
    return available, pending


def validate_hold(amount, payment_method) -> Optional[str]:
    """Amounts are checked after rounding to cents, the precision they are stored at."""
    errors = []
    if payment_method not in HOLD_METHODS:
        errors.append("Payment method must be either 'gcash' or 'paymaya'")
    if (not isinstance(amount, (int, float)) or isinstance(amount, bool)
            or not MIN_HOLD_AMOUNT <= round(amount, 2) <= MAX_HOLD_AMOUNT):
        errors.append(f"Amount must be between {MIN_HOLD_AMOUNT} and {MAX_HOLD_AMOUNT}")
    return ", ".join(errors) or None


def _find(db: Session, hold_payment_id: int):
    return db.query(HoldPayment).filter(HoldPayment.hold_payment_id == hold_payment_id).first()


def _listing(db: Session, *criteria):
    q = db.query(HoldPayment)
    for c in criteria:
        q = q.filter(c)
    return q.order_by(HoldPayment.created_at.desc(), HoldPayment.hold_payment_id.desc()).all()


@handles_store_errors("Creating hold payment")
async def check_and_create_hold(db: Session, user_id: int, amount: float, payment_method: str) -> ServiceResult:
    error = validate_hold(amount, payment_method)
    if error:
        return validation_error(error)
    if not db.query(User.user_id).filter(User.user_id == user_id).first():
        return not_found("User not found")

    db.execute(
        select(AdmissionLock.lock_id)
        .where(AdmissionLock.lock_id == ADMISSION_LOCK_ID)
        .with_for_update()
    )

    guarded_row = select(
        literal(user_id),
        literal(round(float(amount), 2), HoldPayment.amount.type),
        literal(payment_method),
        literal(False, Boolean()),
        literal(utcnow(), DateTime()),
    ).where(_pending_count_query().scalar_subquery() < _available_count_query().scalar_subquery())

    inserted = db.execute(
        insert(HoldPayment).from_select(
            ["user_id", "amount", "payment_method", "is_done", "created_at"], guarded_row
        )
    ).rowcount

    available, pending = _counts(db)
    if not inserted:
        db.rollback()
        logger.info(f"[ADMISSION] denied for user {user_id}: "
                    f"{pending} pending vs {available} available")
        return conflict(
            "No parking slots available for a hold payment",
            data={"available_count": available, "pending_count": pending},
        )

    hold = (db.query(HoldPayment)
            .filter(HoldPayment.user_id == user_id)
            .order_by(HoldPayment.hold_payment_id.desc())
            .first())
    db.commit()
    db.refresh(hold)
    logger.info(f"[ADMISSION] hold payment {hold.hold_payment_id} admitted for user {user_id} "
                f"({pending}/{available} slots held)")
    return ServiceResult.ok(
        {
            "hold_payment": hold,
            "availability": {
                "available_count": available,
                "pending_count": pending,
                "remaining": available - pending,
            },
        },
        "Hold payment created successfully",
    )


@handles_store_errors("Getting slot availability")
async def get_slot_availability(db: Session) -> ServiceResult:
    available, pending = _counts(db)
    return ServiceResult.ok(
        {
            "available_count": available,
            "pending_count": pending,
            "remaining": max(0, available - pending),
            "can_hold": pending < available,
        },
        "Slot availability retrieved successfully",
    )


@handles_store_errors("Listing hold payments")
async def list_holds(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db), "Hold payments retrieved successfully")


@handles_store_errors("Getting hold payment")
async def get_hold(db: Session, hold_payment_id: int) -> ServiceResult:
    hold = _find(db, hold_payment_id)
    if not hold:
        return not_found("Hold payment not found")
    return ServiceResult.ok(hold, "Hold payment retrieved successfully")


@handles_store_errors("Getting hold payments by user")
async def list_holds_by_user(db: Session, user_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, HoldPayment.user_id == user_id),
                                 f"Hold payments for user {user_id}")


@handles_store_errors("Getting hold payments by method")
async def list_holds_by_method(db: Session, method: str) -> ServiceResult:
    if method not in HOLD_METHODS:
        return validation_error("Payment method must be either 'gcash' or 'paymaya'")
    return ServiceResult.listing(_listing(db, HoldPayment.payment_method == method),
                                 f"Hold payments paid with {method}")


@handles_store_errors("Getting hold payments by amount range")
async def list_holds_by_amount(db: Session, min_amount: float, max_amount: float) -> ServiceResult:
    if min_amount < 0 or max_amount < 0:
        return validation_error("Amounts must be non-negative")
    if min_amount > max_amount:
        return validation_error("min_amount cannot be greater than max_amount")
    rows = _listing(db, HoldPayment.amount >= min_amount, HoldPayment.amount <= max_amount)
    return ServiceResult.listing(rows, "Hold payments retrieved successfully")


@handles_store_errors("Getting hold payments by date range")
async def list_holds_by_date(db: Session, start_date: datetime, end_date: datetime) -> ServiceResult:
    start_date, end_date = as_utc_naive(start_date), as_utc_naive(end_date)
    if start_date > end_date:
        return validation_error("start_date must be before end_date")
    rows = _listing(db, HoldPayment.created_at >= start_date, HoldPayment.created_at <= end_date)
    return ServiceResult.listing(rows, "Hold payments retrieved successfully")


@handles_store_errors("Getting pending hold payments")
async def list_pending(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db, _is_pending), "Pending hold payments retrieved successfully")


@handles_store_errors("Getting completed hold payments")
async def list_completed(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db, HoldPayment.is_done.is_(True)),
                                 "Completed hold payments retrieved successfully")


async def list_by_done_status(db: Session, status: str) -> ServiceResult:
    if status == "done":
        return await list_completed(db)
    if status == "pending":
        return await list_pending(db)
    return validation_error("Status must be either 'done' or 'pending'")


@handles_store_errors("Updating hold payment")
async def update_hold(db: Session, hold_payment_id: int, data: dict) -> ServiceResult:
    hold = _find(db, hold_payment_id)
    if not hold:
        return not_found("Hold payment not found")

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        return validation_error("No valid fields to update")

    error = validate_hold(changes.get("amount", hold.amount),
                          changes.get("payment_method", hold.payment_method))
    if error:
        return validation_error(error)
    if "user_id" in changes and not db.query(User.user_id).filter(User.user_id == changes["user_id"]).first():
        return not_found("User not found")
    if "amount" in changes:
        changes["amount"] = round(float(changes["amount"]), 2)

    for field, value in changes.items():
        setattr(hold, field, value)
    db.commit()
    db.refresh(hold)
    return ServiceResult.ok(hold, "Hold payment updated successfully")


async def _set_done(db: Session, hold_payment_id: int, done: bool) -> ServiceResult:
    hold = _find(db, hold_payment_id)
    if not hold:
        return not_found("Hold payment not found")
    hold.is_done = done
    db.commit()
    db.refresh(hold)
    label = "done" if done else "pending"
    logger.info(f"Hold payment {hold_payment_id} marked {label}")
    return ServiceResult.ok(hold, f"Hold payment marked as {label}")


@handles_store_errors("Marking hold payment done")
async def mark_done(db: Session, hold_payment_id: int) -> ServiceResult:
    return await _set_done(db, hold_payment_id, True)


@handles_store_errors("Marking hold payment pending")
async def mark_pending(db: Session, hold_payment_id: int) -> ServiceResult:
    return await _set_done(db, hold_payment_id, False)


@handles_store_errors("Deleting hold payment")
async def delete_hold(db: Session, hold_payment_id: int) -> ServiceResult:
    hold = _find(db, hold_payment_id)
    if not hold:
        return not_found("Hold payment not found")
    db.delete(hold)
    db.commit()
    return ServiceResult.ok(hold, "Hold payment deleted successfully")


@handles_store_errors("Getting hold payment statistics")
async def hold_stats(db: Session) -> ServiceResult:
    row = db.query(
        func.count(HoldPayment.hold_payment_id).label("total_payments"),
        func.coalesce(func.sum(HoldPayment.amount), 0).label("total_amount"),
        func.avg(HoldPayment.amount).label("average_amount"),
        func.min(HoldPayment.amount).label("min_amount"),
        func.max(HoldPayment.amount).label("max_amount"),
        func.count(case((HoldPayment.payment_method == "gcash", 1))).label("gcash_count"),
        func.count(case((HoldPayment.payment_method == "paymaya", 1))).label("paymaya_count"),
        func.coalesce(func.sum(case((HoldPayment.payment_method == "gcash", HoldPayment.amount), else_=0)), 0)
            .label("gcash_total"),
        func.coalesce(func.sum(case((HoldPayment.payment_method == "paymaya", HoldPayment.amount), else_=0)), 0)
            .label("paymaya_total"),
        func.count(case((_is_pending, 1))).label("pending_count"),
        func.count(case((HoldPayment.is_done.is_(True), 1))).label("done_count"),
    ).one()
    stats = dict(row._mapping)
    for key in ("total_amount", "average_amount", "gcash_total", "paymaya_total"):
        if stats[key] is not None:
            stats[key] = round(float(stats[key]), 2)
    return ServiceResult.ok(stats, "Hold payment statistics retrieved successfully")
