# bzpark/routers/user.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bzpark.database import get_db
from bzpark.schemas.user import UserCreate, UserOut, UserUpdate
from bzpark.services import user_service
from bzpark.utils.responses import envelope

router = APIRouter(prefix="/user")


@router.get("/")
async def list_users(db: Session = Depends(get_db)):
    return envelope(await user_service.list_users(db), UserOut)


@router.get("/search", summary="Partial plate-number search")
async def search_users(plate: str = Query(""), db: Session = Depends(get_db)):
    return envelope(await user_service.search_users(db, plate), UserOut)


@router.get("/plate/{plate_number}")
async def get_user_by_plate(plate_number: str, db: Session = Depends(get_db)):
    return envelope(await user_service.get_user_by_plate(db, plate_number), UserOut)


@router.get("/service/{service_id}")
async def list_users_by_service(service_id: int, db: Session = Depends(get_db)):
    return envelope(await user_service.list_users_by_service(db, service_id), UserOut)


@router.get("/{user_id}")
async def get_user(user_id: int, db: Session = Depends(get_db)):
    return envelope(await user_service.get_user(db, user_id), UserOut)


@router.post("/", status_code=201)
async def create_user(body: UserCreate, db: Session = Depends(get_db)):
    result = await user_service.create_user(db, body.model_dump())
    return envelope(result, UserOut, created=True, failure_message="Failed to create user")


@router.put("/{user_id}")
async def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db)):
    result = await user_service.update_user(db, user_id, body.model_dump(exclude_unset=True))
    return envelope(result, UserOut, failure_message="Failed to update user")


@router.delete("/{user_id}")
async def delete_user(user_id: int, db: Session = Depends(get_db)):
    result = await user_service.delete_user(db, user_id)
    return envelope(result, UserOut, failure_message="Failed to delete user")
