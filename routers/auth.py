from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Session

from db.init import get_db
from models.login import LoginRequest
from models.role import ValidRoles
from models.user import User
from services import auth as auth_service
from utils.deps import get_current_user, role_required

router = APIRouter()

# --- Pydantic Models ---

class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    full_name: str = Field(..., min_length=1, alias="fullName")
    age: int = Field(..., ge=1, le=120)
    password: str = Field(..., min_length=6, max_length=50)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, alias="fullName")
    age: Optional[int] = Field(None, ge=1, le=120)
    password: Optional[str] = Field(None, min_length=6, max_length=50)
    is_active: Optional[bool] = Field(None, alias="isActive")


class RolesRequest(BaseModel):
    roles: List[ValidRoles] = Field(..., min_length=1)

# --- Endpoints ---

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    return auth_service.register(db, body.email, body.full_name, body.age, body.password)


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.login(db, body.email, body.password)


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return auth_service.serialize_user(user)


@router.get("", dependencies=[Depends(role_required(ValidRoles.admin))])
def find_all(db: Session = Depends(get_db)):
    return [auth_service.serialize_user(u) for u in auth_service.find_all_users(db)]


@router.get("/{user_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def find_one(user_id: str, db: Session = Depends(get_db)):
    return auth_service.serialize_user(auth_service.find_user(db, user_id))


@router.patch("/{user_id}")
def update(
    user_id: str,
    body: UpdateUserRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = auth_service.update_user(db, user_id, body.model_dump(exclude_unset=True), current_user)
    return auth_service.serialize_user(user)


@router.delete("/{user_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def remove(user_id: str, db: Session = Depends(get_db)):
    return auth_service.remove_user(db, user_id)


@router.put("/{user_id}/roles", dependencies=[Depends(role_required(ValidRoles.admin))])
def assign_roles(user_id: str, body: RolesRequest, db: Session = Depends(get_db)):
    return auth_service.serialize_user(auth_service.assign_roles(db, user_id, body.roles))


@router.post("/{user_id}/roles", dependencies=[Depends(role_required(ValidRoles.admin))])
def add_roles(user_id: str, body: RolesRequest, db: Session = Depends(get_db)):
    return auth_service.serialize_user(auth_service.add_roles(db, user_id, body.roles))


@router.delete("/{user_id}/roles", dependencies=[Depends(role_required(ValidRoles.admin))])
def remove_roles(user_id: str, body: RolesRequest, db: Session = Depends(get_db)):
    return auth_service.serialize_user(auth_service.remove_roles(db, user_id, body.roles))
