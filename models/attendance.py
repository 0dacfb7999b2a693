import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Enum, Index, text, func
from sqlalchemy.orm import relationship
from db.init import Base


class AttendanceType(str, enum.Enum):
    GYM = "gym"
    CLASS = "class"


class Attendance(Base):
    __tablename__ = "attendances"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(
        Enum(AttendanceType, name="attendance_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    entrance_datetime = Column(DateTime, nullable=False, index=True)  # naive UTC
    exit_datetime = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    date_key = Column(String(10), nullable=False)  # YYYY-MM-DD of the entrance (UTC)

    # Class attendances only
    class_id = Column(String(36), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=True)
    coach_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="attendances", foreign_keys=[user_id])
    coach = relationship("User", foreign_keys=[coach_id])
    gym_class = relationship("GymClass", back_populates="attendances")

    __table_args__ = (
        # at most one open session per user
        Index(
            "uq_attendances_open_session",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )
