"""
Attendance & quota accounting.

Quota calculator, check-in/check-out lifecycle and attendance statistics.
Every function works on the caller's SQLAlchemy session; the router owns it.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from models.attendance import Attendance, AttendanceType
from models.gym_class import GymClass
from models.subscription import Subscription, SubscriptionItemStatus
from models.user import User
from utils.dates import current_month_window, date_key, day_end, day_start, month_key, start_of_year, utcnow
from utils.errors import ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------
# Lookups
# ---------------------------
def validate_user_exists(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with ID '{user_id}' not found")
    return user


def find_active_attendance(db: Session, user_id: str) -> Optional[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id, Attendance.is_active.is_(True))
        .first()
    )


def is_user_currently_inside(db: Session, user_id: str) -> bool:
    count = (
        db.query(func.count(Attendance.id))
        .filter(Attendance.user_id == user_id, Attendance.is_active.is_(True))
        .scalar()
    )
    return (count or 0) > 0


# ---------------------------
# Quota calculator
# ---------------------------
def calculate_available_attendances(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Remaining gym/class passes for the current month.

    Allowance is the sum over ACTIVE items of the user's active subscription;
    usage is the number of attendances of each type entered this month.
    """
    subscription = (
        db.query(Subscription)
        .options(selectinload(Subscription.items))
        .filter(
            Subscription.user_id == user_id,
            Subscription.is_active.is_(True),
            Subscription.deleted_at.is_(None),
        )
        .first()
    )

    if not subscription or not subscription.items:
        return {"gym": 0, "classes": 0}

    total_gym = 0
    total_classes = 0
    for item in subscription.items:
        if item.status != SubscriptionItemStatus.ACTIVE:
            continue
        total_gym += item.max_gym_assistance or 0
        total_classes += item.max_classes_assistance or 0

    start, end = current_month_window(now)
    used = dict(
        db.query(Attendance.type, func.count(Attendance.id))
        .filter(
            Attendance.user_id == user_id,
            Attendance.entrance_datetime >= start,
            Attendance.entrance_datetime < end,
        )
        .group_by(Attendance.type)
        .all()
    )

    return {
        "gym": max(0, total_gym - used.get(AttendanceType.GYM, 0)),
        "classes": max(0, total_classes - used.get(AttendanceType.CLASS, 0)),
    }


def has_available_attendances(db: Session, user_id: str, type: AttendanceType, now: Optional[datetime] = None) -> int:
    try:
        available = calculate_available_attendances(db, user_id, now=now)
    except Exception:
        # Unknown entitlement means no passes
        logger.exception(f"Error calculating available attendances for user {user_id}")
        return 0
    return available["gym"] if type == AttendanceType.GYM else available["classes"]


# ---------------------------
# Check-in / check-out
# ---------------------------
def check_in(
    db: Session,
    user_id: str,
    type: AttendanceType,
    now: Optional[datetime] = None,
    class_id: Optional[str] = None,
    coach: Optional[User] = None,
    notes: Optional[str] = None,
) -> Attendance:
    user = validate_user_exists(db, user_id)

    if is_user_currently_inside(db, user_id):
        raise ConflictError("User is already inside the facility")

    gym_class = None
    if class_id:
        type = AttendanceType.CLASS
        gym_class = (
            db.query(GymClass)
            .filter(GymClass.id == class_id, GymClass.deleted_at.is_(None))
            .first()
        )
        if not gym_class or not gym_class.is_active:
            raise NotFoundError(f"Active class with ID '{class_id}' not found")

    now = now or utcnow()
    if has_available_attendances(db, user_id, type, now=now) <= 0:
        raise ForbiddenError(f"User has no passes available for {type.value}")

    attendance = Attendance(
        user=user,
        entrance_datetime=now,
        type=type,
        date_key=date_key(now),
        gym_class=gym_class,
        coach=coach,
        notes=notes,
    )
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError:
        # open-session index tripped by a concurrent check-in
        db.rollback()
        logger.warning(f"Concurrent check-in rejected for user {user_id}")
        raise ConflictError("User is already inside the facility")
    db.refresh(attendance)

    logger.info(f"Check-in {attendance.id}: user={user_id} type={type.value}")
    return attendance


def check_out(db: Session, user_id: str, now: Optional[datetime] = None) -> Attendance:
    validate_user_exists(db, user_id)

    attendance = find_active_attendance(db, user_id)
    if not attendance:
        raise NotFoundError("User has no active check-in")

    attendance.exit_datetime = now or utcnow()
    attendance.is_active = False
    db.commit()
    db.refresh(attendance)

    logger.info(f"Check-out {attendance.id}: user={user_id}")
    return attendance


def get_user_attendance_status(db: Session, user_id: str, now: Optional[datetime] = None) -> dict:
    validate_user_exists(db, user_id)

    current = find_active_attendance(db, user_id)
    status = {
        "isInside": current is not None,
        "availableAttendances": calculate_available_attendances(db, user_id, now=now),
    }
    if current:
        status["currentAttendance"] = {
            "id": current.id,
            "entranceDatetime": current.entrance_datetime,
            "type": current.type.value,
        }
    return status


# ---------------------------
# History & statistics
# ---------------------------
def get_user_attendance_history(
    db: Session,
    user_id: str,
    from_: Optional[date] = None,
    to: Optional[date] = None,
    type: Optional[AttendanceType] = None,
) -> List[Attendance]:
    validate_user_exists(db, user_id)

    q = db.query(Attendance).filter(Attendance.user_id == user_id)
    if type:
        q = q.filter(Attendance.type == type)
    if from_:
        q = q.filter(Attendance.entrance_datetime >= day_start(from_))
    if to:
        q = q.filter(Attendance.entrance_datetime <= day_end(to))

    return q.order_by(Attendance.entrance_datetime.desc()).all()


def get_active_attendances(db: Session) -> List[Attendance]:
    return (
        db.query(Attendance)
        .options(joinedload(Attendance.user))
        .filter(Attendance.is_active.is_(True))
        .order_by(Attendance.entrance_datetime.desc())
        .all()
    )


def calculate_monthly_stats(attendances: List[Attendance]) -> List[dict]:
    monthly: Dict[str, dict] = {}
    for attendance in attendances:
        key = month_key(attendance.entrance_datetime)
        entry = monthly.setdefault(key, {"month": key, "gymCount": 0, "classCount": 0})
        if attendance.type == AttendanceType.GYM:
            entry["gymCount"] += 1
        else:
            entry["classCount"] += 1
    return [monthly[k] for k in sorted(monthly)]


def get_user_attendance_stats(db: Session, user_id: str, now: Optional[datetime] = None) -> dict:
    validate_user_exists(db, user_id)

    now = now or utcnow()
    yearly = (
        db.query(Attendance)
        .filter(
            Attendance.user_id == user_id,
            Attendance.entrance_datetime >= start_of_year(now),
            Attendance.entrance_datetime <= now,
        )
        .all()
    )

    return {
        "totalGymAttendances": sum(1 for a in yearly if a.type == AttendanceType.GYM),
        "totalClassAttendances": sum(1 for a in yearly if a.type == AttendanceType.CLASS),
        "monthlyStats": calculate_monthly_stats(yearly),
    }
