# bzpark/services/service_service.py
"""Pricing services (one per vehicle type)."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.service import Service
from bzpark.models.user import User
from bzpark.utils.logger import get_logger
from bzpark.utils.result import (
    ServiceResult, conflict, handles_store_errors, not_found, validation_error,
)

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("vehicle_type", "first_2_hrs", "per_succ_hr")


def _find(db: Session, service_id: int):
    return db.query(Service).filter(Service.service_id == service_id).first()


def _find_by_type(db: Session, vehicle_type: str):
    return db.query(Service).filter(Service.vehicle_type == vehicle_type.strip()).first()


@handles_store_errors("Listing services")
async def list_services(db: Session) -> ServiceResult:
    services = db.query(Service).order_by(Service.service_id).all()
    return ServiceResult.listing(services, "Services retrieved successfully")


@handles_store_errors("Getting service")
async def get_service(db: Session, service_id: int) -> ServiceResult:
    service = _find(db, service_id)
    if not service:
        return not_found("Service not found")
    return ServiceResult.ok(service, "Service retrieved successfully")


@handles_store_errors("Getting service by vehicle type")
async def get_service_by_vehicle_type(db: Session, vehicle_type: str) -> ServiceResult:
    service = _find_by_type(db, vehicle_type)
    if not service:
        return not_found("Service not found")
    return ServiceResult.ok(service, "Service retrieved successfully")


@handles_store_errors("Creating service")
async def create_service(db: Session, data: dict) -> ServiceResult:
    vehicle_type = data["vehicle_type"].strip()
    if not vehicle_type:
        return validation_error("Vehicle type is required")
    if _find_by_type(db, vehicle_type):
        return conflict("Service for this vehicle type already exists")

    service = Service(vehicle_type=vehicle_type,
                      first_2_hrs=data.get("first_2_hrs") or 0,
                      per_succ_hr=data.get("per_succ_hr") or 0)
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info(f"Service {service.service_id} '{vehicle_type}' created "
                f"({service.first_2_hrs} first 2h, {service.per_succ_hr}/h after)")
    return ServiceResult.ok(service, "Service created successfully")


@handles_store_errors("Updating service")
async def update_service(db: Session, service_id: int, data: dict) -> ServiceResult:
    service = _find(db, service_id)
    if not service:
        return not_found("Service not found")

    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        return validation_error("No valid fields to update")

    if "vehicle_type" in changes:
        changes["vehicle_type"] = changes["vehicle_type"].strip()
        other = _find_by_type(db, changes["vehicle_type"])
        if other and other.service_id != service_id:
            return conflict("Service for this vehicle type already exists")

    for field, value in changes.items():
        setattr(service, field, value)
    db.commit()
    db.refresh(service)
    return ServiceResult.ok(service, "Service updated successfully")


@handles_store_errors("Deleting service")
async def delete_service(db: Session, service_id: int) -> ServiceResult:
    service = _find(db, service_id)
    if not service:
        return not_found("Service not found")

    # Users and slots stay, just without pricing
    db.query(User).filter(User.service_id == service_id).update(
        {User.service_id: None}, synchronize_session=False
    )
    db.query(ParkingSlot).filter(ParkingSlot.service_id == service_id).update(
        {ParkingSlot.service_id: None}, synchronize_session=False
    )
    db.delete(service)
    db.commit()
    return ServiceResult.ok(service, "Service deleted successfully")


@handles_store_errors("Getting service statistics")
async def service_stats(db: Session) -> ServiceResult:
    overview = db.query(
        func.count(Service.service_id).label("total_services"),
        func.min(Service.first_2_hrs).label("min_first_2_hrs"),
        func.max(Service.first_2_hrs).label("max_first_2_hrs"),
        func.avg(Service.first_2_hrs).label("avg_first_2_hrs"),
        func.min(Service.per_succ_hr).label("min_per_succ_hr"),
        func.max(Service.per_succ_hr).label("max_per_succ_hr"),
        func.avg(Service.per_succ_hr).label("avg_per_succ_hr"),
    ).one()
    overview = dict(overview._mapping)
    for key in ("avg_first_2_hrs", "avg_per_succ_hr"):
        if overview[key] is not None:
            overview[key] = round(float(overview[key]), 2)

    users_per_service = (
        db.query(Service.vehicle_type, func.count(User.user_id).label("user_count"))
        .outerjoin(User, User.service_id == Service.service_id)
        .group_by(Service.service_id, Service.vehicle_type)
        .order_by(func.count(User.user_id).desc())
        .all()
    )
    return ServiceResult.ok(
        {"overview": overview, "typeBreakdown": [dict(r._mapping) for r in users_per_service]},
        "Service statistics retrieved successfully",
    )
