import logging
from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session, selectinload

from models.membership import Membership
from models.subscription import Subscription, SubscriptionItem, SubscriptionItemStatus
from models.user import User
from utils.dates import utcnow
from utils.errors import BadRequestError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _base_query(db: Session):
    return (
        db.query(Subscription)
        .options(selectinload(Subscription.items), selectinload(Subscription.user))
        .filter(Subscription.deleted_at.is_(None))
    )


def serialize_subscription(subscription: Subscription) -> dict:
    data = {c.name: getattr(subscription, c.name) for c in subscription.__table__.columns}
    data["items"] = [
        {c.name: getattr(item, c.name) for c in item.__table__.columns}
        for item in subscription.items
    ]
    if subscription.user:
        data["user"] = {"id": subscription.user.id, "email": subscription.user.email, "fullName": subscription.user.full_name}
    return data


def has_active_subscription(db: Session, user_id: str, exclude_id: Optional[str] = None) -> bool:
    q = db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.is_active.is_(True),
        Subscription.deleted_at.is_(None),
    )
    if exclude_id:
        q = q.filter(Subscription.id != exclude_id)
    return q.first() is not None


def find_subscription_by_user(db: Session, user_id: str) -> Subscription:
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundError("User not found")

    subscription = (
        _base_query(db)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.is_active.desc(), Subscription.created_at.desc())
        .first()
    )
    if not subscription:
        raise NotFoundError("Subscription not found for this user")
    return subscription


def create_subscription_for_user(db: Session, user_id: str, commit: bool = True) -> Subscription:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if has_active_subscription(db, user_id):
        raise ConflictError(
            "User already has an active subscription. It must expire before a new one can be acquired."
        )

    subscription = Subscription(
        name=f"Subscription for {user.full_name}",
        purchase_date=date.today(),
        is_active=True,
        user=user,
    )
    db.add(subscription)
    if commit:
        db.commit()
        db.refresh(subscription)
    else:
        db.flush()
    return subscription


def find_all(db: Session) -> List[Subscription]:
    return _base_query(db).order_by(Subscription.created_at.desc()).all()


def find_one(db: Session, subscription_id: str) -> Subscription:
    subscription = _base_query(db).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")
    return subscription


def add_membership(db: Session, subscription_id: str, membership_id: str, today: Optional[date] = None) -> Subscription:
    """
    Buy a membership into the subscription as a frozen SubscriptionItem.

    The item is ACTIVE from today when nothing else is active, otherwise it
    is queued as PENDING right after the last item ends.
    """
    today = today or date.today()

    membership = db.query(Membership).filter(Membership.id == membership_id).first()
    if not membership:
        raise NotFoundError("Membership not found")
    if not membership.status:
        raise BadRequestError("Membership is not available for purchase")

    subscription = find_one(db, subscription_id)
    refresh_item_statuses(db, subscription, today=today, commit=False)

    live = [
        i for i in subscription.items
        if i.status in (SubscriptionItemStatus.ACTIVE, SubscriptionItemStatus.PENDING)
    ]
    if any(i.status == SubscriptionItemStatus.ACTIVE for i in live):
        start = max(i.end_date for i in live) + timedelta(days=1)
        status = SubscriptionItemStatus.PENDING
    else:
        start = today
        status = SubscriptionItemStatus.ACTIVE

    item = SubscriptionItem(
        membership_id=membership.id,
        name=membership.name,
        cost=membership.cost,
        max_classes_assistance=membership.max_classes_assistance,
        max_gym_assistance=membership.max_gym_assistance,
        duration_months=membership.duration_months,
        purchase_date=today,
        start_date=start,
        end_date=start + relativedelta(months=membership.duration_months),
        status=status,
    )
    subscription.items.append(item)
    db.commit()
    db.refresh(subscription)

    logger.info(f"Added membership {membership.name} to subscription {subscription.id} as {status.value}")
    return subscription


def refresh_item_statuses(db: Session, subscription: Subscription, today: Optional[date] = None, commit: bool = True) -> Subscription:
    """Expire ACTIVE items past their end date and start PENDING items whose start date arrived."""
    today = today or date.today()

    for item in subscription.items:
        if item.status == SubscriptionItemStatus.ACTIVE and item.end_date < today:
            item.status = SubscriptionItemStatus.EXPIRED
    for item in sorted(subscription.items, key=lambda i: i.start_date):
        if item.status == SubscriptionItemStatus.PENDING and item.start_date <= today:
            item.status = (
                SubscriptionItemStatus.EXPIRED if item.end_date < today else SubscriptionItemStatus.ACTIVE
            )

    if commit:
        db.commit()
        db.refresh(subscription)
    else:
        db.flush()
    return subscription


def cancel_item(db: Session, subscription_id: str, item_id: str) -> Subscription:
    subscription = find_one(db, subscription_id)
    item = next((i for i in subscription.items if i.id == item_id), None)
    if not item:
        raise NotFoundError(f"Subscription item with ID {item_id} not found")
    if item.status in (SubscriptionItemStatus.EXPIRED, SubscriptionItemStatus.CANCELLED):
        raise BadRequestError(f"Subscription item is already {item.status.value}")

    item.status = SubscriptionItemStatus.CANCELLED
    db.commit()
    db.refresh(subscription)
    return subscription


def update(db: Session, subscription_id: str, data: dict) -> Subscription:
    subscription = find_one(db, subscription_id)

    if data.get("is_active") and not subscription.is_active:
        if has_active_subscription(db, subscription.user_id, exclude_id=subscription.id):
            raise ConflictError("User already has an active subscription.")

    for k, v in data.items():
        if v is not None:
            setattr(subscription, k, v)
    db.commit()
    db.refresh(subscription)
    return subscription


def deactivate_subscription(db: Session, subscription_id: str) -> Subscription:
    subscription = find_one(db, subscription_id)
    subscription.is_active = False
    db.commit()
    db.refresh(subscription)
    return subscription


def activate_subscription(db: Session, subscription_id: str) -> Subscription:
    subscription = find_one(db, subscription_id)

    if has_active_subscription(db, subscription.user_id, exclude_id=subscription.id):
        raise ConflictError("User already has an active subscription.")

    subscription.is_active = True
    db.commit()
    db.refresh(subscription)
    return subscription


def remove(db: Session, subscription_id: str) -> None:
    subscription = find_one(db, subscription_id)
    subscription.deleted_at = utcnow()
    subscription.is_active = False
    db.commit()
