from typing import Iterable

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from db.init import get_db
from models.user import User
from utils.errors import ForbiddenError, UnauthorizedError
from utils.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:

    if credentials is None or not credentials.scheme.lower() == "bearer":
        raise UnauthorizedError("Not authenticated")
    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("id"):
        raise UnauthorizedError("Invalid token")

    user = db.query(User).filter(User.id == payload["id"]).first()
    if not user:
        raise UnauthorizedError("Token not valid")
    if not user.is_active:
        raise UnauthorizedError("User is inactive")
    return user


def has_any_role(user: User, roles: Iterable[str]) -> bool:
    return bool(user.role_names & {str(getattr(r, "value", r)) for r in roles})


def ensure_roles(user: User, roles: Iterable[str]) -> None:
    """Raise ForbiddenError unless the user holds at least one of `roles`.

    An empty `roles` means any authenticated user is allowed.
    """
    roles = [str(getattr(r, "value", r)) for r in roles]
    if not roles:
        return
    if not has_any_role(user, roles):
        raise ForbiddenError(
            f"User {user.email} does not have a valid role. Required: {', '.join(roles)}"
        )


def role_required(*roles):
    def wrapper(user: User = Depends(get_current_user)) -> User:
        ensure_roles(user, roles)
        return user
    return wrapper
