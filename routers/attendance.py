import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from db.init import get_db
from models.attendance import Attendance, AttendanceType
from models.role import ValidRoles
from models.user import User
from services import attendances as attendance_service
from utils.deps import role_required

logger = logging.getLogger(__name__)

router = APIRouter()


class CheckInRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    type: AttendanceType


class CheckOutRequest(BaseModel):
    user_id: str = Field(..., alias="userId")


class ClassAttendanceRequest(BaseModel):
    user_id: str = Field(..., alias="userId")
    class_id: str = Field(..., alias="classId")
    notes: Optional[str] = None


def serialize_attendance(a: Attendance, with_user: bool = False) -> dict:
    data = {
        "id": a.id,
        "userId": a.user_id,
        "type": a.type.value,
        "entranceDatetime": a.entrance_datetime,
        "exitDatetime": a.exit_datetime,
        "isActive": a.is_active,
        "dateKey": a.date_key,
        "classId": a.class_id,
        "coachId": a.coach_id,
        "notes": a.notes,
    }
    if with_user and a.user:
        data["user"] = {"id": a.user.id, "email": a.user.email, "fullName": a.user.full_name}
    return data


@router.post("/check-in", status_code=status.HTTP_201_CREATED)
def check_in(
    body: CheckInRequest,
    db: Session = Depends(get_db),
    receptionist: User = Depends(role_required(ValidRoles.receptionist)),
):
    logger.info(f"Check-in requested by {receptionist.email} for user {body.user_id}")
    return serialize_attendance(attendance_service.check_in(db, body.user_id, body.type))


@router.post("/check-out")
def check_out(
    body: CheckOutRequest,
    db: Session = Depends(get_db),
    receptionist: User = Depends(role_required(ValidRoles.receptionist)),
):
    logger.info(f"Check-out requested by {receptionist.email} for user {body.user_id}")
    return serialize_attendance(attendance_service.check_out(db, body.user_id))


@router.post("/class", status_code=status.HTTP_201_CREATED)
def register_class_attendance(
    body: ClassAttendanceRequest,
    db: Session = Depends(get_db),
    coach: User = Depends(role_required(ValidRoles.coach, ValidRoles.admin)),
):
    attendance = attendance_service.check_in(
        db,
        body.user_id,
        AttendanceType.CLASS,
        class_id=body.class_id,
        coach=coach,
        notes=body.notes,
    )
    return serialize_attendance(attendance)


@router.get("/status/{user_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def get_status(user_id: str, db: Session = Depends(get_db)):
    return attendance_service.get_user_attendance_status(db, user_id)


@router.get("/history/{user_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def get_history(
    user_id: str,
    db: Session = Depends(get_db),
    from_: Optional[date] = Query(None, alias="from"),
    to: Optional[date] = Query(None),
    type: Optional[AttendanceType] = Query(None),
):
    rows = attendance_service.get_user_attendance_history(db, user_id, from_=from_, to=to, type=type)
    return [serialize_attendance(a) for a in rows]


@router.get("/stats/{user_id}", dependencies=[Depends(role_required(ValidRoles.admin))])
def get_stats(user_id: str, db: Session = Depends(get_db)):
    return attendance_service.get_user_attendance_stats(db, user_id)


@router.get("/active", dependencies=[Depends(role_required(ValidRoles.admin))])
def get_all_active(db: Session = Depends(get_db)):
    return [serialize_attendance(a, with_user=True) for a in attendance_service.get_active_attendances(db)]
