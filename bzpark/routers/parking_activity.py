# bzpark/routers/parking_activity.py
"""Parking sessions: start, end (prices the session), filters, statistics."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.parking_activity import (
    ParkingActivityEnd, ParkingActivityOut, ParkingActivityStart, ParkingActivityUpdate,
)
from bzpark.services import parking_activity_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/parking-activity")


@router.get("/")
async def list_activities(db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.list_activities(db), ParkingActivityOut)


@router.get("/active", summary="Sessions without an end time")
async def list_active(db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.list_active(db), ParkingActivityOut)


@router.get("/completed")
async def list_completed(db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.list_completed(db), ParkingActivityOut)


@router.get("/statistics")
async def activity_stats(db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.activity_stats(db))


@router.get("/user/{user_id}")
async def list_by_user(user_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.list_by_user(db, user_id), ParkingActivityOut)


@router.get("/date-range", summary="Sessions started between two timestamps")
async def list_by_date_range(start_date: datetime, end_date: datetime, db: Session = Depends(get_db)):
    result = await parking_activity_service.list_by_date_range(db, start_date, end_date)
    return envelope(result, ParkingActivityOut)


@router.get("/{act_id}")
async def get_activity(act_id: int, db: Session = Depends(get_db)):
    return envelope(await parking_activity_service.get_activity(db, act_id), ParkingActivityOut)


@router.post("/", status_code=201, summary="Start a parking session")
async def start_activity(body: ParkingActivityStart, db: Session = Depends(get_db)):
    result = await parking_activity_service.start_activity(db, body.user_id, body.start_time)
    return envelope(result, ParkingActivityOut, created=True, failure_message="Failed to start parking activity")


@router.post("/{act_id}/end", summary="End a session and compute its amount")
async def end_activity(act_id: int, body: Optional[ParkingActivityEnd] = None, db: Session = Depends(get_db)):
    end_time = body.end_time if body else None
    result = await parking_activity_service.end_activity(db, act_id, end_time)
    return envelope(result, ParkingActivityOut, failure_message="Failed to end parking activity")


@router.put("/{act_id}")
async def update_activity(act_id: int, body: ParkingActivityUpdate, db: Session = Depends(get_db)):
    """Setting is_paid=false removes the session's parking payments."""
    result = await parking_activity_service.update_activity(db, act_id, body.model_dump(exclude_unset=True))
    return envelope(result, ParkingActivityOut, failure_message="Failed to update parking activity")


@router.delete("/{act_id}")
async def delete_activity(act_id: int, db: Session = Depends(get_db)):
    result = await parking_activity_service.delete_activity(db, act_id)
    return envelope(result, ParkingActivityOut, failure_message="Failed to delete parking activity")
