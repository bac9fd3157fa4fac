# bzpark/services/user_service.py
"""Vehicle owners: CRUD and plate-number lookups."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from bzpark.models.hold_payment import HoldPayment
from bzpark.models.parking_activity import ParkingActivity
from bzpark.models.parking_payment import ParkingPayment
from bzpark.models.service import Service
from bzpark.models.user import User
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)

UPDATABLE_FIELDS = ("plate_number", "service_id")


def normalize_plate(plate: str) -> str:
    return plate.strip().upper()


def _find(db: Session, user_id: int):
    return db.query(User).filter(User.user_id == user_id).first()


def _find_by_plate(db: Session, plate: str):
    return db.query(User).filter(User.plate_number == normalize_plate(plate)).first()


def _service_exists(db: Session, service_id: int) -> bool:
    return db.query(Service.service_id).filter(Service.service_id == service_id).first() is not None


@handles_store_errors("Listing users")
async def list_users(db: Session) -> ServiceResult:
    users = db.query(User).order_by(User.created_at.desc()).all()
    return ServiceResult.listing(users, "Users retrieved successfully")


@handles_store_errors("Getting user")
async def get_user(db: Session, user_id: int) -> ServiceResult:
    user = _find(db, user_id)
    if not user:
        return not_found("User not found")
    return ServiceResult.ok(user, "User retrieved successfully")


@handles_store_errors("Getting user by plate number")
async def get_user_by_plate(db: Session, plate: str) -> ServiceResult:
    user = _find_by_plate(db, plate)
    if not user:
        return not_found("User not found")
    return ServiceResult.ok(user, "User retrieved successfully")


@handles_store_errors("Searching users")
async def search_users(db: Session, term: str) -> ServiceResult:
    term = (term or "").strip()
    if not term:
        return validation_error("Search term is required")
    users = (db.query(User).filter(User.plate_number.ilike(f"%{term}%"))
             .order_by(User.created_at.desc()).all())
    return ServiceResult.listing(users, f"Users matching '{term}'")


@handles_store_errors("Getting users by service")
async def list_users_by_service(db: Session, service_id: int) -> ServiceResult:
    users = (db.query(User).filter(User.service_id == service_id)
             .order_by(User.created_at.desc()).all())
    return ServiceResult.listing(users, f"Users on service {service_id}")


@handles_store_errors("Creating user")
async def create_user(db: Session, data: dict) -> ServiceResult:
    plate = normalize_plate(data["plate_number"])
    if not plate:
        return validation_error("Plate number is required")
    if _find_by_plate(db, plate):
        return conflict("User with this plate number already exists")
    service_id = data.get("service_id")
    if service_id is not None and not _service_exists(db, service_id):
        return not_found("Service not found")

    user = User(plate_number=plate, service_id=service_id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return ServiceResult.ok(user, "User created successfully")


@handles_store_errors("Updating user")
async def update_user(db: Session, user_id: int, data: dict) -> ServiceResult:
    user = _find(db, user_id)
    if not user:
        return not_found("User not found")

    changes = {
        k: v for k, v in data.items()
        if k in UPDATABLE_FIELDS and (v is not None or k == "service_id")
    }
    if not changes:
        return validation_error("No valid fields to update")

    if "plate_number" in changes:
        changes["plate_number"] = normalize_plate(changes["plate_number"])
        other = _find_by_plate(db, changes["plate_number"])
        if other and other.user_id != user_id:
            return conflict("User with this plate number already exists")
    if changes.get("service_id") is not None and not _service_exists(db, changes["service_id"]):
        return not_found("Service not found")

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return ServiceResult.ok(user, "User updated successfully")


@handles_store_errors("Deleting user")
async def delete_user(db: Session, user_id: int) -> ServiceResult:
    user = _find(db, user_id)
    if not user:
        return not_found("User not found")

    references = {
        "parking activities": db.query(func.count(ParkingActivity.act_id))
                                .filter(ParkingActivity.user_id == user_id).scalar(),
        "hold payments": db.query(func.count(HoldPayment.hold_payment_id))
                           .filter(HoldPayment.user_id == user_id).scalar(),
        "parking payments": db.query(func.count(ParkingPayment.parking_payment_id))
                              .filter(ParkingPayment.user_id == user_id).scalar(),
    }
    blocking = [f"{n} {name}" for name, n in references.items() if n]
    if blocking:
        return conflict(f"Cannot delete user: user still has {', '.join(blocking)}")

    db.delete(user)
    db.commit()
    return ServiceResult.ok(user, "User deleted successfully")
