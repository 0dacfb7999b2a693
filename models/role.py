import enum
import uuid

from sqlalchemy import Column, String, ForeignKey, Table
from db.init import Base


class ValidRoles(str, enum.Enum):
    admin = "admin"
    coach = "coach"
    client = "client"
    receptionist = "receptionist"


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(50), unique=True, nullable=False)
