from typing import Literal, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from db.init import get_db
from models.role import ValidRoles
from services import memberships as membership_service
from utils.deps import role_required

router = APIRouter()


class MembershipCreate(BaseModel):
    name: str = Field(..., min_length=1)
    cost: float = Field(..., ge=0)
    max_classes_assistance: int = Field(..., ge=0)
    max_gym_assistance: int = Field(..., ge=0)
    duration_months: Literal[1, 12]  # monthly or yearly
    status: Optional[bool] = None


class MembershipUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    max_classes_assistance: Optional[int] = Field(None, ge=0)
    max_gym_assistance: Optional[int] = Field(None, ge=0)
    duration_months: Optional[Literal[1, 12]] = None
    status: Optional[bool] = None


def serialize(m):
    return {c.name: getattr(m, c.name) for c in m.__table__.columns}


@router.get("", dependencies=[Depends(role_required(ValidRoles.admin, ValidRoles.receptionist))])
def find_all(db: Session = Depends(get_db)):
    return [serialize(m) for m in membership_service.find_all(db)]


@router.get(
    "/{membership_id}",
    dependencies=[Depends(role_required(ValidRoles.admin, ValidRoles.receptionist, ValidRoles.coach))],
)
def find_one(membership_id: str, db: Session = Depends(get_db)):
    return serialize(membership_service.find_membership_by_id(db, membership_id))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(role_required(ValidRoles.admin))])
def create(body: MembershipCreate, db: Session = Depends(get_db)):
    return serialize(membership_service.create_membership(db, body.model_dump()))


@router.put("/{membership_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def update(membership_id: str, body: MembershipUpdate, db: Session = Depends(get_db)):
    return serialize(membership_service.update_membership(db, membership_id, body.model_dump(exclude_unset=True)))


@router.patch("/{membership_id}/toggle-status", dependencies=[Depends(role_required(ValidRoles.admin))])
def toggle_status(membership_id: str, db: Session = Depends(get_db)):
    return serialize(membership_service.toggle_membership_status(db, membership_id))


@router.delete(
    "/{membership_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(role_required(ValidRoles.admin))],
)
def remove(membership_id: str, db: Session = Depends(get_db)):
    membership_service.remove_membership(db, membership_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
