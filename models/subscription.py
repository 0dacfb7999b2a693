import enum
import uuid

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Numeric, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from db.init import Base


class SubscriptionItemStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    purchase_date = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)  # soft delete

    user = relationship("User", back_populates="subscriptions")
    items = relationship(
        "SubscriptionItem",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionItem.start_date",
    )


class SubscriptionItem(Base):
    __tablename__ = "subscription_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subscription_id = Column(String(36), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    membership_id = Column(String(36), ForeignKey("memberships.id", ondelete="SET NULL"), nullable=True)

    # Values frozen from the membership template at purchase time
    name = Column(String(150), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    max_classes_assistance = Column(Integer, nullable=False)
    max_gym_assistance = Column(Integer, nullable=False)
    duration_months = Column(Integer, nullable=False)

    purchase_date = Column(Date, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(
            SubscriptionItemStatus,
            name="subscription_item_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=SubscriptionItemStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    subscription = relationship("Subscription", back_populates="items")
    membership = relationship("Membership")
