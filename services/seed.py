"""
Default data: roles, one user per role and the membership catalog.
Only rows that do not exist yet are inserted.
"""
import logging

from sqlalchemy.orm import Session

from models.membership import Membership
from models.role import Role, ValidRoles
from models.user import User

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"email": "admin@example.com", "full_name": "Admin User", "age": 30, "password": "admin123", "roles": [ValidRoles.admin]},
    {"email": "coach@example.com", "full_name": "Coach User", "age": 28, "password": "coach123", "roles": [ValidRoles.coach]},
    {"email": "client@example.com", "full_name": "Client User", "age": 25, "password": "client123", "roles": [ValidRoles.client]},
    {"email": "receptionist@example.com", "full_name": "Receptionist User", "age": 27, "password": "recep123", "roles": [ValidRoles.receptionist]},
]

SEED_MEMBERSHIPS = [
    {"name": "Basic Monthly", "cost": 50.0, "max_classes_assistance": 8, "max_gym_assistance": 15, "duration_months": 1},
    {"name": "Premium Monthly", "cost": 80.0, "max_classes_assistance": 20, "max_gym_assistance": 30, "duration_months": 1},
    {"name": "Basic Yearly", "cost": 500.0, "max_classes_assistance": 96, "max_gym_assistance": 180, "duration_months": 12},
    {"name": "Premium Yearly", "cost": 800.0, "max_classes_assistance": 240, "max_gym_assistance": 365, "duration_months": 12},
    {"name": "VIP Yearly", "cost": 1200.0, "max_classes_assistance": 365, "max_gym_assistance": 365, "duration_months": 12},
]


def seed_roles(db: Session) -> int:
    created = 0
    for role in ValidRoles:
        if not db.query(Role).filter(Role.name == role.value).first():
            db.add(Role(name=role.value))
            created += 1
    db.commit()
    return created


def seed_users(db: Session) -> int:
    from services.auth import create_user_with_roles

    created = 0
    for data in SEED_USERS:
        if db.query(User).filter(User.email == data["email"]).first():
            continue
        roles = db.query(Role).filter(Role.name.in_([r.value for r in data["roles"]])).all()
        create_user_with_roles(db, data["email"], data["full_name"], data["age"], data["password"], roles)
        created += 1
    return created


def seed_memberships(db: Session) -> int:
    created = 0
    for data in SEED_MEMBERSHIPS:
        if not db.query(Membership).filter(Membership.name == data["name"]).first():
            db.add(Membership(status=True, **data))
            created += 1
    db.commit()
    return created


def run_seed(db: Session) -> dict:
    return {
        "roles": seed_roles(db),
        "users": seed_users(db),
        "memberships": seed_memberships(db),
    }
