# bzpark/routers/service.py
"""Pricing services per vehicle type."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.service import ServiceCreate, ServiceOut, ServiceUpdate
from bzpark.services import service_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/service")


@router.get("/")
async def list_services(db: Session = Depends(get_db)):
    return envelope(await service_service.list_services(db), ServiceOut)


@router.get("/statistics")
async def service_stats(db: Session = Depends(get_db)):
    return envelope(await service_service.service_stats(db))


@router.get("/vehicle/{vehicle_type}")
async def get_service_by_vehicle_type(vehicle_type: str, db: Session = Depends(get_db)):
    return envelope(await service_service.get_service_by_vehicle_type(db, vehicle_type), ServiceOut)


@router.get("/{service_id}")
async def get_service(service_id: int, db: Session = Depends(get_db)):
    return envelope(await service_service.get_service(db, service_id), ServiceOut)


@router.post("/", status_code=201)
async def create_service(body: ServiceCreate, db: Session = Depends(get_db)):
    result = await service_service.create_service(db, body.model_dump())
    return envelope(result, ServiceOut, created=True, failure_message="Failed to create service")


@router.put("/{service_id}")
async def update_service(service_id: int, body: ServiceUpdate, db: Session = Depends(get_db)):
    result = await service_service.update_service(db, service_id, body.model_dump(exclude_unset=True))
    return envelope(result, ServiceOut, failure_message="Failed to update service")


@router.delete("/{service_id}", summary="Delete a service; its users and slots are detached")
async def delete_service(service_id: int, db: Session = Depends(get_db)):
    result = await service_service.delete_service(db, service_id)
    return envelope(result, ServiceOut, failure_message="Failed to delete service")
