from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from math import ceil
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from internship_tracker.models import (
    Attendance,
    AttendanceStatus,
    Department,
    LeaveRequest,
    LeaveStatus,
    User,
    UserRole,
)
from internship_tracker.schemas import (
    DashboardStatsRead,
    MonthlyTrendItem,
    PaginationRead,
    StatusCounts,
    StudentStatsItem,
    StudentStatsResponse,
)
from internship_tracker.services.day_keys import (
    local_date_of_key,
    month_bounds,
    normalize_day_key,
    shift_month,
)

TREND_MONTHS = 6


def _count(db: Session, stmt: Any) -> int:
    return int(db.scalar(stmt) or 0)


def tally_status_rows(rows: Iterable[tuple[Any, bool, int]]) -> dict[str, int]:
    """Fold ``(status, is_late, count)`` rows into report counters.

    PRESENT counts every present row, late or not; LATE is the late subset.
    PRESENT_ON_TIME is PRESENT minus the late present rows.
    """
    counts = {"PRESENT": 0, "ABSENT": 0, "LATE": 0, "PRESENT_ON_TIME": 0}
    for status, late, amount in rows:
        status_value = status.value if isinstance(status, AttendanceStatus) else str(status)
        amount = int(amount)
        counts[status_value] = counts.get(status_value, 0) + amount
        if late:
            counts["LATE"] += amount
        elif status_value == AttendanceStatus.PRESENT.value:
            counts["PRESENT_ON_TIME"] += amount
    return counts


def _month_status_rows(db: Session, *, year: int, month: int) -> list[tuple[Any, bool, int]]:
    first_key, last_key = month_bounds(year, month)
    stmt = (
        select(Attendance.status, Attendance.is_late, func.count(Attendance.id))
        .where(Attendance.date >= first_key, Attendance.date <= last_key)
        .group_by(Attendance.status, Attendance.is_late)
    )
    return [tuple(row) for row in db.execute(stmt).all()]


def _approved_leaves_in_month(db: Session, *, year: int, month: int) -> int:
    first_key, last_key = month_bounds(year, month)
    return _count(
        db,
        select(func.count(LeaveRequest.id)).where(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= local_date_of_key(last_key),
            LeaveRequest.end_date >= local_date_of_key(first_key),
        ),
    )


def dashboard_stats(db: Session, *, now_utc: datetime | None = None) -> DashboardStatsRead:
    today_key = normalize_day_key(now_utc)
    return DashboardStatsRead(
        total_users=_count(db, select(func.count(User.id)).where(User.role == UserRole.STUDENT)),
        total_departments=_count(db, select(func.count(Department.id))),
        check_ins_today=_count(
            db,
            select(func.count(Attendance.id)).where(
                Attendance.date == today_key,
                Attendance.status == AttendanceStatus.PRESENT,
            ),
        ),
        absent_today=_count(
            db,
            select(func.count(Attendance.id)).where(
                Attendance.date == today_key,
                Attendance.status == AttendanceStatus.ABSENT,
            ),
        ),
        pending_leaves=_count(
            db,
            select(func.count(LeaveRequest.id)).where(LeaveRequest.status == LeaveStatus.PENDING),
        ),
    )


def attendance_summary(db: Session, *, year: int, month: int) -> StatusCounts:
    counts = tally_status_rows(_month_status_rows(db, year=year, month=month))
    return StatusCounts(
        PRESENT=counts["PRESENT"],
        ABSENT=counts["ABSENT"],
        LATE=counts["LATE"],
        LEAVE=_approved_leaves_in_month(db, year=year, month=month),
    )


def monthly_trends(
    db: Session,
    *,
    now_utc: datetime | None = None,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrendItem]:
    local_today = local_date_of_key(normalize_day_key(now_utc))
    items: list[MonthlyTrendItem] = []
    for offset in range(months - 1, -1, -1):
        year, month = shift_month(local_today.year, local_today.month, -offset)
        counts = tally_status_rows(_month_status_rows(db, year=year, month=month))
        items.append(
            MonthlyTrendItem(
                month=month,
                year=year,
                present=counts["PRESENT_ON_TIME"],
                late=counts["LATE"],
                absent=counts["ABSENT"],
            )
        )
    return items


def student_stats(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str = "",
) -> StudentStatsResponse:
    page = max(1, page)
    limit = max(1, limit)
    conditions = [User.role == UserRole.STUDENT]
    term = search.strip()
    if term:
        conditions.append(
            or_(
                User.name.icontains(term, autoescape=True),
                User.email.icontains(term, autoescape=True),
            )
        )

    total = _count(db, select(func.count(User.id)).where(*conditions))
    students = list(
        db.scalars(
            select(User)
            .options(selectinload(User.department))
            .where(*conditions)
            .order_by(User.name.asc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    )

    student_ids = [student.id for student in students]
    rows_by_user: dict[int, list[tuple[Any, bool, int]]] = defaultdict(list)
    leaves_by_user: dict[int, int] = {}
    if student_ids:
        for user_id, status, late, amount in db.execute(
            select(Attendance.user_id, Attendance.status, Attendance.is_late, func.count(Attendance.id))
            .where(Attendance.user_id.in_(student_ids))
            .group_by(Attendance.user_id, Attendance.status, Attendance.is_late)
        ).all():
            rows_by_user[user_id].append((status, late, amount))
        for user_id, amount in db.execute(
            select(LeaveRequest.user_id, func.count(LeaveRequest.id))
            .where(
                LeaveRequest.user_id.in_(student_ids),
                LeaveRequest.status == LeaveStatus.APPROVED,
            )
            .group_by(LeaveRequest.user_id)
        ).all():
            leaves_by_user[user_id] = int(amount)

    items: list[StudentStatsItem] = []
    for student in students:
        counts = tally_status_rows(rows_by_user.get(student.id, []))
        items.append(
            StudentStatsItem(
                id=student.id,
                name=student.name,
                email=student.email,
                department_name=student.department.name if student.department is not None else None,
                stats=StatusCounts(
                    PRESENT=counts["PRESENT"],
                    ABSENT=counts["ABSENT"],
                    LATE=counts["LATE"],
                    LEAVE=leaves_by_user.get(student.id, 0),
                ),
            )
        )

    return StudentStatsResponse(
        students=items,
        pagination=PaginationRead(
            total=total,
            page=page,
            limit=limit,
            total_pages=ceil(total / limit) if total else 0,
        ),
    )
