import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship, validates
from db.init import Base
from models.role import user_roles


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(150), unique=True, index=True, nullable=False)
    full_name = Column(String(150), nullable=False)
    age = Column(Integer)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    roles = relationship("Role", secondary=user_roles, lazy="selectin")
    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")
    attendances = relationship(
        "Attendance",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Attendance.user_id",
    )

    @validates("email")
    def normalize_email(self, key, value):
        return value.lower().strip() if value else value

    @property
    def role_names(self):
        return {r.name for r in self.roles}
