import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, func
from db.init import Base


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), unique=True, nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    status = Column(Boolean, default=True, nullable=False)  # available for purchase
    max_classes_assistance = Column(Integer, nullable=False, default=0)
    max_gym_assistance = Column(Integer, nullable=False, default=0)
    duration_months = Column(Integer, nullable=False)  # 1 (monthly) or 12 (yearly)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
