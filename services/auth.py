import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.role import Role, ValidRoles, user_roles
from models.user import User
from services.subscriptions import create_subscription_for_user
from utils.deps import has_any_role
from utils.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "age": user.age,
        "isActive": user.is_active,
        "roles": sorted(user.role_names),
    }


def get_jwt_token(user: User) -> str:
    return create_access_token({"id": user.id, "email": user.email})


def _get_role(db: Session, name) -> Optional[Role]:
    return db.query(Role).filter(Role.name == str(getattr(name, "value", name))).first()


def _resolve_roles(db: Session, role_names: Iterable) -> List[Role]:
    names = [str(getattr(r, "value", r)) for r in role_names]
    roles = db.query(Role).filter(Role.name.in_(names)).all()
    found = {r.name for r in roles}
    missing = [n for n in names if n not in found]
    if missing:
        raise NotFoundError(f"The following roles were not found: {', '.join(missing)}")
    return roles


def _count_admins(db: Session) -> int:
    return (
        db.query(func.count(User.id))
        .join(user_roles, user_roles.c.user_id == User.id)
        .join(Role, Role.id == user_roles.c.role_id)
        .filter(Role.name == ValidRoles.admin.value)
        .scalar()
        or 0
    )


def _email_taken(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
    q = db.query(User).filter(User.email == email.lower().strip())
    if exclude_id:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def create_user_with_roles(db: Session, email: str, full_name: str, age: int, password: str, roles: List[Role]) -> User:
    """
    Create a user with the given roles and an empty active subscription.
    The whole registration is one transaction: if the subscription cannot be
    created the user is not kept either.
    """
    if _email_taken(db, email):
        raise BadRequestError("Email already registered")

    user = User(
        email=email,
        full_name=full_name,
        age=age,
        password_hash=hash_password(password),
        roles=list(roles),
    )
    db.add(user)
    try:
        db.flush()
        create_subscription_for_user(db, user.id, commit=False)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Failed to register {email}: {e.orig}")
        raise BadRequestError("Email already registered")
    except Exception:
        db.rollback()
        logger.exception(f"Failed to create subscription for {email}. Registration aborted.")
        raise
    db.refresh(user)
    return user


def register(db: Session, email: str, full_name: str, age: int, password: str) -> dict:
    default_role = _get_role(db, ValidRoles.client)
    if not default_role:
        raise RuntimeError('Default role "client" not found, run the seed first')

    user = create_user_with_roles(db, email, full_name, age, password, [default_role])
    logger.info(f"Registered user {user.email}")
    return {**serialize_user(user), "token": get_jwt_token(user)}


def login(db: Session, email: str, password: str) -> dict:
    user = db.query(User).filter(User.email == email.lower().strip()).first()
    if not user:
        raise NotFoundError(f"User {email} not found")

    if not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise UnauthorizedError("Email or password incorrect")

    return {**serialize_user(user), "token": get_jwt_token(user)}


def find_all_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at).all()


def find_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


def update_user(db: Session, user_id: str, data: dict, acting_user: User) -> User:
    user = find_user(db, user_id)

    if not has_any_role(acting_user, [ValidRoles.admin]) and acting_user.id != user_id:
        raise ForbiddenError("You can only update your own profile. You cannot update other users.")

    if data.get("email") and data["email"].lower().strip() != user.email:
        if _email_taken(db, data["email"], exclude_id=user_id):
            raise BadRequestError("Email already in use")

    password = data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    fields = {"email": "email", "full_name": "full_name", "age": "age", "is_active": "is_active"}
    for key, attr in fields.items():
        if data.get(key) is not None:
            setattr(user, attr, data[key])

    db.commit()
    db.refresh(user)
    return user


def remove_user(db: Session, user_id: str) -> dict:
    user = find_user(db, user_id)

    if ValidRoles.admin.value in user.role_names and _count_admins(db) <= 1:
        raise BadRequestError("Cannot delete the last admin user")

    db.delete(user)
    db.commit()
    logger.info(f"Deleted user {user_id}")
    return {"message": f"User with ID {user_id} deleted successfully"}


def assign_roles(db: Session, user_id: str, role_names: List[ValidRoles]) -> User:
    """Replace the user's roles."""
    user = find_user(db, user_id)

    names = {r.value for r in role_names}
    if ValidRoles.admin.value not in names and ValidRoles.admin.value in user.role_names:
        if _count_admins(db) <= 1:
            raise BadRequestError("Cannot remove admin role from the last admin user")

    user.roles = _resolve_roles(db, role_names)
    db.commit()
    db.refresh(user)
    return user


def add_roles(db: Session, user_id: str, role_names: List[ValidRoles]) -> User:
    user = find_user(db, user_id)

    existing = user.role_names
    user.roles = user.roles + [r for r in _resolve_roles(db, role_names) if r.name not in existing]
    db.commit()
    db.refresh(user)
    return user


def remove_roles(db: Session, user_id: str, role_names: List[ValidRoles]) -> User:
    """Remove roles; a user left without roles falls back to `client`."""
    user = find_user(db, user_id)

    names = {r.value for r in role_names}
    if ValidRoles.admin.value in names and ValidRoles.admin.value in user.role_names:
        if _count_admins(db) <= 1:
            raise BadRequestError("Cannot remove admin role from the last admin user")

    user.roles = [r for r in user.roles if r.name not in names]
    if not user.roles:
        default_role = _get_role(db, ValidRoles.client)
        if not default_role:
            raise RuntimeError('Default role "client" not found')
        user.roles = [default_role]

    db.commit()
    db.refresh(user)
    return user
