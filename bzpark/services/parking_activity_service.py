# bzpark/services/parking_activity_service.py
"""
Parking sessions.

start → open session (end_time NULL), at most one per user.
end   → sets end_time, duration (seconds) and amount from the user's service:
          no service or still open → 0
          ≤ 2 h                    → first_2_hrs
          > 2 h                    → first_2_hrs + ceil((seconds - 7200) / 3600) * per_succ_hr
"""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from bzpark.models.parking_activity import ParkingActivity
from bzpark.models.parking_payment import ParkingPayment
from bzpark.models.service import Service
from bzpark.models.user import User
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)
from bzpark.utils.timeutil import as_utc_naive, utcnow

logger = get_logger(__name__)

FLAT_RATE_SECONDS = 2 * 3600
UPDATABLE_FIELDS = ("user_id", "start_time", "end_time", "is_paid")


def compute_amount(duration_seconds: Optional[int], service: Optional[Service]) -> int:
    if service is None or duration_seconds is None:
        return 0
    if duration_seconds <= FLAT_RATE_SECONDS:
        return service.first_2_hrs
    extra_hours = math.ceil((duration_seconds - FLAT_RATE_SECONDS) / 3600)
    return service.first_2_hrs + extra_hours * service.per_succ_hr


def _user_service(db: Session, user_id: int) -> Optional[Service]:
    return (db.query(Service)
            .join(User, User.service_id == Service.service_id)
            .filter(User.user_id == user_id)
            .first())


def _apply_pricing(db: Session, activity: ParkingActivity):
    if activity.end_time is None:
        activity.duration = None
        activity.amount = 0
        return
    activity.duration = max(0, int((activity.end_time - activity.start_time).total_seconds()))
    activity.amount = compute_amount(activity.duration, _user_service(db, activity.user_id))


def _find(db: Session, act_id: int):
    return db.query(ParkingActivity).filter(ParkingActivity.act_id == act_id).first()


def _user_exists(db: Session, user_id: int) -> bool:
    return db.query(User.user_id).filter(User.user_id == user_id).first() is not None


def _listing(db: Session, *criteria):
    q = db.query(ParkingActivity)
    for c in criteria:
        q = q.filter(c)
    return q.order_by(ParkingActivity.start_time.desc()).all()


@handles_store_errors("Listing parking activities")
async def list_activities(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db), "Parking activities retrieved successfully")


@handles_store_errors("Getting active parking activities")
async def list_active(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingActivity.end_time.is_(None)),
                                 "Active parking activities retrieved successfully")


@handles_store_errors("Getting completed parking activities")
async def list_completed(db: Session) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingActivity.end_time.isnot(None)),
                                 "Completed parking activities retrieved successfully")


@handles_store_errors("Getting parking activities by user")
async def list_by_user(db: Session, user_id: int) -> ServiceResult:
    return ServiceResult.listing(_listing(db, ParkingActivity.user_id == user_id),
                                 f"Parking activities for user {user_id}")


@handles_store_errors("Getting parking activities by date range")
async def list_by_date_range(db: Session, start_date: datetime, end_date: datetime) -> ServiceResult:
    start_date, end_date = as_utc_naive(start_date), as_utc_naive(end_date)
    if start_date > end_date:
        return validation_error("start_date must be before end_date")
    rows = _listing(db, ParkingActivity.start_time >= start_date, ParkingActivity.start_time <= end_date)
    return ServiceResult.listing(rows, "Parking activities retrieved successfully")


@handles_store_errors("Getting parking activity")
async def get_activity(db: Session, act_id: int) -> ServiceResult:
    activity = _find(db, act_id)
    if not activity:
        return not_found("Parking activity not found")
    return ServiceResult.ok(activity, "Parking activity retrieved successfully")


@handles_store_errors("Starting parking activity")
async def start_activity(db: Session, user_id: int, start_time: Optional[datetime] = None) -> ServiceResult:
    if not _user_exists(db, user_id):
        return not_found("User not found")

    open_session = (db.query(ParkingActivity.act_id)
                    .filter(ParkingActivity.user_id == user_id, ParkingActivity.end_time.is_(None))
                    .first())
    if open_session:
        return conflict("User already has an active parking session")

    activity = ParkingActivity(user_id=user_id, start_time=as_utc_naive(start_time) or utcnow())
    db.add(activity)
    db.commit()
    db.refresh(activity)
    logger.info(f"Parking activity {activity.act_id} started for user {user_id}")
    return ServiceResult.ok(activity, "Parking activity started successfully")


@handles_store_errors("Ending parking activity")
async def end_activity(db: Session, act_id: int, end_time: Optional[datetime] = None) -> ServiceResult:
    activity = _find(db, act_id)
    if not activity:
        return not_found("Parking activity not found")
    if activity.end_time is not None:
        return conflict("Parking activity is already ended")

    end_time = as_utc_naive(end_time) or utcnow()
    if end_time < activity.start_time:
        return validation_error("end_time cannot be before start_time")

    activity.end_time = end_time
    _apply_pricing(db, activity)
    db.commit()
    db.refresh(activity)
    logger.info(f"Parking activity {act_id} ended: {activity.duration}s, amount={activity.amount}")
    return ServiceResult.ok(activity, "Parking activity ended successfully")


@handles_store_errors("Updating parking activity")
async def update_activity(db: Session, act_id: int, data: dict) -> ServiceResult:
    activity = _find(db, act_id)
    if not activity:
        return not_found("Parking activity not found")

    changes = {
        k: v for k, v in data.items()
        if k in UPDATABLE_FIELDS and (v is not None or k == "end_time")
    }
    if not changes:
        return validation_error("No valid fields to update")
    if "user_id" in changes and not _user_exists(db, changes["user_id"]):
        return not_found("User not found")

    for field in ("start_time", "end_time"):
        if field in changes:
            changes[field] = as_utc_naive(changes[field])

    for field, value in changes.items():
        setattr(activity, field, value)
    if activity.end_time is not None and activity.end_time < activity.start_time:
        db.rollback()
        return validation_error("end_time cannot be before start_time")

    if changes.get("is_paid") is False:
        removed = (db.query(ParkingPayment).filter(ParkingPayment.act_id == act_id)
                   .delete(synchronize_session=False))
        if removed:
            logger.info(f"Parking activity {act_id} marked unpaid: {removed} payment(s) removed")

    if {"user_id", "start_time", "end_time"} & changes.keys():
        _apply_pricing(db, activity)
    db.commit()
    db.refresh(activity)
    return ServiceResult.ok(activity, "Parking activity updated successfully")


@handles_store_errors("Deleting parking activity")
async def delete_activity(db: Session, act_id: int) -> ServiceResult:
    activity = _find(db, act_id)
    if not activity:
        return not_found("Parking activity not found")
    db.query(ParkingPayment).filter(ParkingPayment.act_id == act_id).delete(synchronize_session=False)
    db.delete(activity)
    db.commit()
    return ServiceResult.ok(activity, "Parking activity deleted successfully")


@handles_store_errors("Getting parking statistics")
async def activity_stats(db: Session) -> ServiceResult:
    completed = ParkingActivity.end_time.isnot(None)
    row = db.query(
        func.count(ParkingActivity.act_id).label("total_activities"),
        func.count(case((ParkingActivity.end_time.is_(None), 1))).label("active_activities"),
        func.count(case((completed, 1))).label("completed_activities"),
        func.count(case((ParkingActivity.is_paid.is_(True), 1))).label("paid_activities"),
        func.avg(case((completed, ParkingActivity.duration))).label("avg_duration_seconds"),
        func.max(case((completed, ParkingActivity.duration))).label("max_duration_seconds"),
        func.min(case((completed, ParkingActivity.duration))).label("min_duration_seconds"),
        func.coalesce(func.sum(ParkingActivity.amount), 0).label("total_amount"),
    ).one()
    stats = dict(row._mapping)
    if stats["avg_duration_seconds"] is not None:
        stats["avg_duration_seconds"] = round(float(stats["avg_duration_seconds"]), 2)
    return ServiceResult.ok(stats, "Parking statistics retrieved successfully")
