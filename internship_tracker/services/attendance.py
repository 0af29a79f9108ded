from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from internship_tracker.errors import ApiError
from internship_tracker.models import Attendance, AttendanceStatus, User
from internship_tracker.schemas import AttendanceManualCreateRequest, AttendanceUpdateRequest
from internship_tracker.services.day_keys import (
    day_key_for_date,
    is_late,
    month_bounds,
    normalize_day_key,
    normalize_ts,
)
from internship_tracker.services.photos import delete_photo, save_check_in_photo

logger = logging.getLogger("internship_tracker.attendance")

ALREADY_CHECKED_IN_MESSAGE = "You have already checked in today."


def _resolve_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise ApiError(status_code=404, code="USER_NOT_FOUND", message="User not found.")
    return user


def _resolve_attendance_for_day(db: Session, *, user_id: int, day_key: datetime) -> Attendance | None:
    return db.scalar(
        select(Attendance).where(
            Attendance.user_id == user_id,
            Attendance.date == day_key,
        )
    )


def _validate_check_order(check_in: datetime | None, check_out: datetime | None) -> None:
    if check_in is None or check_out is None:
        return
    if normalize_ts(check_out) < normalize_ts(check_in):
        raise ApiError(
            status_code=400,
            code="INVALID_TIME_RANGE",
            message="check_out must not be earlier than check_in.",
        )


def _insert_attendance(db: Session, attendance: Attendance, *, duplicate_code: str, duplicate_message: str) -> Attendance:
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost the race between the existence check and the insert.
        db.rollback()
        raise ApiError(status_code=400, code=duplicate_code, message=duplicate_message) from exc
    db.refresh(attendance)
    return attendance


def check_in(
    db: Session,
    *,
    user_id: int,
    photo: str | None = None,
    now_utc: datetime | None = None,
) -> Attendance:
    now = normalize_ts(now_utc)
    day_key = normalize_day_key(now)

    existing = _resolve_attendance_for_day(db, user_id=user_id, day_key=day_key)
    if existing is not None:
        raise ApiError(status_code=400, code="ALREADY_CHECKED_IN", message=ALREADY_CHECKED_IN_MESSAGE)

    photo_path = save_check_in_photo(photo, user_id=user_id, now_utc=now) if photo else None

    attendance = Attendance(
        user_id=user_id,
        date=day_key,
        check_in=now,
        status=AttendanceStatus.PRESENT,
        is_late=is_late(now),
        check_in_photo=photo_path,
    )
    try:
        _insert_attendance(
            db,
            attendance,
            duplicate_code="ALREADY_CHECKED_IN",
            duplicate_message=ALREADY_CHECKED_IN_MESSAGE,
        )
    except Exception:
        delete_photo(photo_path)
        raise

    logger.info(
        "attendance_check_in",
        extra={"user_id": user_id, "day_key": day_key.isoformat(), "is_late": attendance.is_late},
    )
    return attendance


def check_out(db: Session, *, user_id: int, now_utc: datetime | None = None) -> Attendance:
    now = normalize_ts(now_utc)
    day_key = normalize_day_key(now)

    attendance = _resolve_attendance_for_day(db, user_id=user_id, day_key=day_key)
    if attendance is None or attendance.check_in is None:
        raise ApiError(
            status_code=400,
            code="CHECKIN_REQUIRED",
            message="No check-in record found for today.",
        )
    if attendance.check_out is not None:
        raise ApiError(status_code=400, code="ALREADY_CHECKED_OUT", message="Already checked out.")

    attendance.check_out = now
    db.commit()
    db.refresh(attendance)
    logger.info("attendance_check_out", extra={"user_id": user_id, "day_key": day_key.isoformat()})
    return attendance


def list_user_attendance(db: Session, user_id: int) -> list[Attendance]:
    stmt = (
        select(Attendance)
        .where(Attendance.user_id == user_id)
        .order_by(Attendance.date.desc(), Attendance.id.desc())
    )
    return list(db.scalars(stmt).all())


def record_absence(db: Session, *, user_id: int, day: date) -> Attendance:
    _resolve_user(db, user_id)
    day_key = day_key_for_date(day)
    if _resolve_attendance_for_day(db, user_id=user_id, day_key=day_key) is not None:
        raise ApiError(status_code=400, code="RECORD_EXISTS", message="Record already exists.")

    attendance = Attendance(
        user_id=user_id,
        date=day_key,
        status=AttendanceStatus.ABSENT,
        is_late=False,
    )
    return _insert_attendance(
        db,
        attendance,
        duplicate_code="RECORD_EXISTS",
        duplicate_message="Record already exists.",
    )


def create_manual_attendance(db: Session, payload: AttendanceManualCreateRequest) -> Attendance:
    _resolve_user(db, payload.user_id)
    _validate_check_order(payload.check_in, payload.check_out)
    day_key = day_key_for_date(payload.date)
    if _resolve_attendance_for_day(db, user_id=payload.user_id, day_key=day_key) is not None:
        raise ApiError(status_code=400, code="RECORD_EXISTS", message="Record already exists.")

    check_in_ts = normalize_ts(payload.check_in) if payload.check_in is not None else None
    late = payload.is_late
    if late is None:
        late = is_late(check_in_ts) if check_in_ts is not None else False

    attendance = Attendance(
        user_id=payload.user_id,
        date=day_key,
        check_in=check_in_ts,
        check_out=normalize_ts(payload.check_out) if payload.check_out is not None else None,
        status=payload.status,
        is_late=late,
    )
    return _insert_attendance(
        db,
        attendance,
        duplicate_code="RECORD_EXISTS",
        duplicate_message="Record already exists.",
    )


def update_attendance(db: Session, attendance_id: int, payload: AttendanceUpdateRequest) -> Attendance:
    attendance = db.get(Attendance, attendance_id)
    if attendance is None:
        raise ApiError(status_code=404, code="ATTENDANCE_NOT_FOUND", message="Attendance record not found.")

    if payload.check_in is not None:
        attendance.check_in = normalize_ts(payload.check_in)
    if payload.check_out is not None:
        attendance.check_out = normalize_ts(payload.check_out)
    if payload.status is not None:
        attendance.status = payload.status
    if payload.is_late is not None:
        attendance.is_late = payload.is_late
    _validate_check_order(attendance.check_in, attendance.check_out)

    db.commit()
    db.refresh(attendance)
    return attendance


def monthly_report(db: Session, *, year: int, month: int) -> list[Attendance]:
    first_key, last_key = month_bounds(year, month)
    stmt = (
        select(Attendance)
        .options(selectinload(Attendance.user))
        .where(
            Attendance.date >= first_key,
            Attendance.date <= last_key,
        )
        .order_by(Attendance.date.asc(), Attendance.user_id.asc())
    )
    return list(db.scalars(stmt).all())
