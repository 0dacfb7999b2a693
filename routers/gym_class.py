from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from db.init import get_db
from models.role import ValidRoles
from models.user import User
from services import classes as class_service
from services.classes import serialize_class
from utils.deps import role_required

router = APIRouter()

managers = role_required(ValidRoles.coach, ValidRoles.admin)
readers = role_required(ValidRoles.coach, ValidRoles.admin, ValidRoles.receptionist)


class ClassCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    max_capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = Field(None, alias="isActive")


class ClassUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    max_capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = Field(None, alias="isActive")


@router.post("", status_code=status.HTTP_201_CREATED)
def create(body: ClassCreate, db: Session = Depends(get_db), user: User = Depends(managers)):
    return serialize_class(class_service.create(db, body.model_dump(), user))


@router.get("", dependencies=[Depends(readers)])
def find_all(db: Session = Depends(get_db)):
    return [serialize_class(c) for c in class_service.find_all(db)]


@router.get("/active", dependencies=[Depends(readers)])
def find_active(db: Session = Depends(get_db)):
    return [serialize_class(c) for c in class_service.find_active(db)]


@router.get("/{class_id}", dependencies=[Depends(readers)])
def find_one(class_id: str, db: Session = Depends(get_db)):
    return serialize_class(class_service.find_one(db, class_id))


@router.patch("/{class_id}")
def update(class_id: str, body: ClassUpdate, db: Session = Depends(get_db), user: User = Depends(managers)):
    return serialize_class(class_service.update(db, class_id, body.model_dump(exclude_unset=True), user))


@router.patch("/{class_id}/toggle-active")
def toggle_active(class_id: str, db: Session = Depends(get_db), user: User = Depends(managers)):
    return serialize_class(class_service.toggle_active(db, class_id, user))


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(class_id: str, db: Session = Depends(get_db), user: User = Depends(managers)):
    class_service.remove(db, class_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
