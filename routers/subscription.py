from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from db.init import get_db
from models.role import ValidRoles
from services import subscriptions as subscription_service
from services.subscriptions import serialize_subscription
from utils.deps import role_required

router = APIRouter()

staff = role_required(ValidRoles.admin, ValidRoles.receptionist)
admin_only = role_required(ValidRoles.admin)


class CreateSubscriptionRequest(BaseModel):
    user_id: str = Field(..., alias="userId")


class AddMembershipRequest(BaseModel):
    membership_id: str = Field(..., alias="membershipId")


class UpdateSubscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = Field(None, alias="isActive")


@router.get("/user/{user_id}", dependencies=[Depends(staff)])
def get_by_user(user_id: str, db: Session = Depends(get_db)):
    return serialize_subscription(subscription_service.find_subscription_by_user(db, user_id))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(staff)])
def create(body: CreateSubscriptionRequest, db: Session = Depends(get_db)):
    subscription = subscription_service.create_subscription_for_user(db, body.user_id)
    return serialize_subscription(subscription)


@router.post("/{subscription_id}/memberships", dependencies=[Depends(staff)])
def add_membership(subscription_id: str, body: AddMembershipRequest, db: Session = Depends(get_db)):
    subscription = subscription_service.add_membership(db, subscription_id, body.membership_id)
    return serialize_subscription(subscription)


@router.get("", dependencies=[Depends(admin_only)])
def find_all(db: Session = Depends(get_db)):
    return [serialize_subscription(s) for s in subscription_service.find_all(db)]


@router.get(
    "/{subscription_id}",
    dependencies=[Depends(role_required(ValidRoles.admin, ValidRoles.receptionist, ValidRoles.client))],
)
def find_one(subscription_id: str, db: Session = Depends(get_db)):
    return serialize_subscription(subscription_service.find_one(db, subscription_id))


@router.patch("/{subscription_id}", dependencies=[Depends(admin_only)])
def update(subscription_id: str, body: UpdateSubscriptionRequest, db: Session = Depends(get_db)):
    subscription = subscription_service.update(db, subscription_id, body.model_dump(exclude_unset=True))
    return serialize_subscription(subscription)


@router.patch("/{subscription_id}/deactivate", dependencies=[Depends(admin_only)])
def deactivate(subscription_id: str, db: Session = Depends(get_db)):
    return serialize_subscription(subscription_service.deactivate_subscription(db, subscription_id))


@router.patch("/{subscription_id}/activate", dependencies=[Depends(admin_only)])
def activate(subscription_id: str, db: Session = Depends(get_db)):
    return serialize_subscription(subscription_service.activate_subscription(db, subscription_id))


@router.patch("/{subscription_id}/refresh", dependencies=[Depends(admin_only)])
def refresh_statuses(subscription_id: str, db: Session = Depends(get_db)):
    subscription = subscription_service.find_one(db, subscription_id)
    return serialize_subscription(subscription_service.refresh_item_statuses(db, subscription))


@router.patch("/{subscription_id}/items/{item_id}/cancel", dependencies=[Depends(admin_only)])
def cancel_item(subscription_id: str, item_id: str, db: Session = Depends(get_db)):
    return serialize_subscription(subscription_service.cancel_item(db, subscription_id, item_id))


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def remove(subscription_id: str, db: Session = Depends(get_db)):
    subscription_service.remove(db, subscription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
