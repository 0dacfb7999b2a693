import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.attendance import Attendance
from models.gym_class import GymClass
from models.role import ValidRoles
from models.user import User
from utils.dates import utcnow
from utils.deps import has_any_role
from utils.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


def _live(db: Session):
    return db.query(GymClass).filter(GymClass.deleted_at.is_(None))


def serialize_class(gym_class: GymClass) -> dict:
    data = {c.name: getattr(gym_class, c.name) for c in gym_class.__table__.columns}
    if gym_class.created_by:
        data["created_by"] = {"id": gym_class.created_by.id, "fullName": gym_class.created_by.full_name}
    return data


def _validate_name_is_unique(db: Session, name: str) -> None:
    if _live(db).filter(GymClass.name == name).first():
        raise ConflictError(f"A class named '{name}' already exists")


def _class_has_attendances(db: Session, class_id: str) -> bool:
    count = db.query(func.count(Attendance.id)).filter(Attendance.class_id == class_id).scalar()
    return (count or 0) > 0


def _validate_user_can_modify(gym_class: GymClass, user: User) -> None:
    # admins can modify any class, coaches only the ones they created
    if has_any_role(user, [ValidRoles.admin]):
        return
    if gym_class.created_by_id != user.id:
        raise ForbiddenError("You can only modify classes you created")


def create(db: Session, data: dict, created_by: User) -> GymClass:
    _validate_name_is_unique(db, data["name"])

    gym_class = GymClass(**{k: v for k, v in data.items() if v is not None}, created_by=created_by)
    db.add(gym_class)
    db.commit()
    db.refresh(gym_class)
    logger.info(f"Class {gym_class.name} created by {created_by.email}")
    return gym_class


def find_all(db: Session) -> List[GymClass]:
    return _live(db).order_by(GymClass.name.asc()).all()


def find_active(db: Session) -> List[GymClass]:
    return _live(db).filter(GymClass.is_active.is_(True)).order_by(GymClass.name.asc()).all()


def find_one(db: Session, class_id: str) -> GymClass:
    gym_class = _live(db).filter(GymClass.id == class_id).first()
    if not gym_class:
        raise NotFoundError(f"Class with ID '{class_id}' not found")
    return gym_class


def update(db: Session, class_id: str, data: dict, user: User) -> GymClass:
    gym_class = find_one(db, class_id)
    _validate_user_can_modify(gym_class, user)

    if data.get("name") and data["name"] != gym_class.name:
        _validate_name_is_unique(db, data["name"])

    for k, v in data.items():
        if v is not None:
            setattr(gym_class, k, v)
    db.commit()
    db.refresh(gym_class)
    return gym_class


def toggle_active(db: Session, class_id: str, user: User) -> GymClass:
    gym_class = find_one(db, class_id)
    _validate_user_can_modify(gym_class, user)

    is_admin = has_any_role(user, [ValidRoles.admin])
    if not is_admin and gym_class.is_active and _class_has_attendances(db, class_id):
        raise BadRequestError("You cannot deactivate this class because it has registered attendances")

    gym_class.is_active = not gym_class.is_active
    db.commit()
    db.refresh(gym_class)
    return gym_class


def remove(db: Session, class_id: str, user: User) -> None:
    gym_class = find_one(db, class_id)
    _validate_user_can_modify(gym_class, user)

    if not has_any_role(user, [ValidRoles.admin]) and _class_has_attendances(db, class_id):
        raise BadRequestError("You cannot delete this class because it has registered attendances")

    gym_class.deleted_at = utcnow()
    db.commit()
    logger.info(f"Class {class_id} removed by {user.email}")
