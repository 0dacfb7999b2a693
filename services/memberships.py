import logging
from typing import List

from sqlalchemy.orm import Session

from models.membership import Membership
from utils.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def find_all(db: Session) -> List[Membership]:
    return db.query(Membership).order_by(Membership.created_at.desc()).all()


def find_membership_by_id(db: Session, membership_id: str) -> Membership:
    membership = db.query(Membership).filter(Membership.id == membership_id).first()
    if not membership:
        raise NotFoundError("Membership not found")
    return membership


def validate_name_is_unique(db: Session, name: str) -> None:
    if db.query(Membership).filter(Membership.name == name).first():
        raise ConflictError("Membership name already in use")


def create_membership(db: Session, data: dict) -> Membership:
    validate_name_is_unique(db, data["name"])

    if data.get("status") is None:
        data["status"] = True
    membership = Membership(**data)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    logger.info(f"Created membership {membership.name}")
    return membership


def update_membership(db: Session, membership_id: str, data: dict) -> Membership:
    membership = find_membership_by_id(db, membership_id)

    if data.get("name") and data["name"] != membership.name:
        validate_name_is_unique(db, data["name"])

    for k, v in data.items():
        if v is not None:
            setattr(membership, k, v)
    db.commit()
    db.refresh(membership)
    return membership


def remove_membership(db: Session, membership_id: str) -> None:
    membership = find_membership_by_id(db, membership_id)
    db.delete(membership)
    db.commit()


def toggle_membership_status(db: Session, membership_id: str) -> Membership:
    membership = find_membership_by_id(db, membership_id)
    membership.status = not membership.status
    db.commit()
    db.refresh(membership)
    return membership
