from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from internship_tracker.audit import audit_request
from internship_tracker.db import get_db
from internship_tracker.errors import ApiError
from internship_tracker.models import UserRole
from internship_tracker.schemas import (
    AbsenceCreateRequest,
    AttendanceManualCreateRequest,
    AttendanceRead,
    AttendanceUpdateRequest,
    CheckInRequest,
    MonthlyReportRow,
)
from internship_tracker.security import claims_user_id, require_roles
from internship_tracker.services.attendance import (
    check_in,
    check_out,
    create_manual_attendance,
    list_user_attendance,
    monthly_report,
    record_absence,
    update_attendance,
)
from internship_tracker.services.exports import XLSX_MEDIA_TYPE, build_monthly_report_xlsx_bytes

router = APIRouter(prefix="/api", tags=["attendance"])

student_only = require_roles(UserRole.STUDENT)
admin_only = require_roles(UserRole.ADMIN)
admin_or_teacher = require_roles(UserRole.ADMIN, UserRole.TEACHER)


def _require_month_year(month: int | None, year: int | None) -> tuple[int, int]:
    if month is None or year is None:
        raise ApiError(status_code=400, code="MONTH_YEAR_REQUIRED", message="Month and Year required")
    return year, month


@router.post("/attendance/check-in", response_model=AttendanceRead)
def post_check_in(
    request: Request,
    payload: CheckInRequest | None = None,
    claims: dict[str, Any] = Depends(student_only),
    db: Session = Depends(get_db),
) -> AttendanceRead:
    attendance = check_in(
        db,
        user_id=claims_user_id(claims),
        photo=payload.photo if payload is not None else None,
    )
    audit_request(
        db,
        request,
        action="ATTENDANCE_CHECK_IN",
        entity_type="attendance",
        entity_id=attendance.id,
        details={"is_late": attendance.is_late, "photo": attendance.check_in_photo is not None},
    )
    return AttendanceRead.model_validate(attendance)


@router.post("/attendance/check-out", response_model=AttendanceRead)
def post_check_out(
    request: Request,
    claims: dict[str, Any] = Depends(student_only),
    db: Session = Depends(get_db),
) -> AttendanceRead:
    attendance = check_out(db, user_id=claims_user_id(claims))
    audit_request(
        db,
        request,
        action="ATTENDANCE_CHECK_OUT",
        entity_type="attendance",
        entity_id=attendance.id,
    )
    return AttendanceRead.model_validate(attendance)


@router.get("/attendance/my-history", response_model=list[AttendanceRead])
def get_my_history(
    claims: dict[str, Any] = Depends(student_only),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    return [AttendanceRead.model_validate(item) for item in list_user_attendance(db, claims_user_id(claims))]


@router.get(
    "/students/{student_id}/attendance",
    response_model=list[AttendanceRead],
    dependencies=[Depends(admin_or_teacher)],
)
def get_student_attendance(student_id: int, db: Session = Depends(get_db)) -> list[AttendanceRead]:
    return [AttendanceRead.model_validate(item) for item in list_user_attendance(db, student_id)]


@router.post(
    "/attendance/absent",
    response_model=AttendanceRead,
    dependencies=[Depends(admin_only)],
)
def post_absence(
    payload: AbsenceCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRead:
    attendance = record_absence(db, user_id=payload.user_id, day=payload.date)
    audit_request(
        db,
        request,
        action="ATTENDANCE_ABSENCE_RECORDED",
        entity_type="attendance",
        entity_id=attendance.id,
        details={"user_id": payload.user_id, "date": payload.date.isoformat()},
    )
    return AttendanceRead.model_validate(attendance)


@router.post(
    "/attendance",
    response_model=AttendanceRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def post_manual_attendance(
    payload: AttendanceManualCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRead:
    attendance = create_manual_attendance(db, payload)
    audit_request(
        db,
        request,
        action="ATTENDANCE_MANUAL_CREATED",
        entity_type="attendance",
        entity_id=attendance.id,
        details={"user_id": payload.user_id, "date": payload.date.isoformat(), "status": payload.status.value},
    )
    return AttendanceRead.model_validate(attendance)


@router.get(
    "/attendance/monthly-report",
    response_model=list[MonthlyReportRow],
    dependencies=[Depends(admin_or_teacher)],
)
def get_monthly_report(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970, le=9999),
    db: Session = Depends(get_db),
) -> list[MonthlyReportRow]:
    year_value, month_value = _require_month_year(month, year)
    return [MonthlyReportRow.model_validate(item) for item in monthly_report(db, year=year_value, month=month_value)]


@router.get(
    "/attendance/monthly-report.xlsx",
    dependencies=[Depends(admin_or_teacher)],
)
def get_monthly_report_xlsx(
    request: Request,
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970, le=9999),
    db: Session = Depends(get_db),
) -> Response:
    year_value, month_value = _require_month_year(month, year)
    payload = build_monthly_report_xlsx_bytes(db, year=year_value, month=month_value)
    audit_request(
        db,
        request,
        action="MONTHLY_REPORT_EXPORT_XLSX",
        entity_type="export",
        entity_id=f"{year_value}-{month_value:02d}",
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="attendance-{year_value}-{month_value:02d}.xlsx"',
        },
    )


@router.put(
    "/attendance/{attendance_id}",
    response_model=AttendanceRead,
    dependencies=[Depends(admin_only)],
)
def put_attendance(
    attendance_id: int,
    payload: AttendanceUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRead:
    attendance = update_attendance(db, attendance_id, payload)
    audit_request(
        db,
        request,
        action="ATTENDANCE_UPDATED",
        entity_type="attendance",
        entity_id=attendance.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return AttendanceRead.model_validate(attendance)
