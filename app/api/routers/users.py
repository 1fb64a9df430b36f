from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import AddressOut, UserCreate, UserRead
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, svc: UserService = Depends(get_service)):
    return svc.create_user(payload)


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, svc: UserService = Depends(get_service)):
    try:
        return svc.get_user(user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{user_id}/addresses", response_model=List[AddressOut])
def list_addresses(user_id: int, svc: UserService = Depends(get_service)):
    """Zapisane adresy dostawy, najnowszy pierwszy."""
    try:
        return svc.list_addresses(user_id)
    except ShopError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
