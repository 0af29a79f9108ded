from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from internship_tracker.db import get_db
from internship_tracker.errors import ApiError
from internship_tracker.models import UserRole
from internship_tracker.schemas import (
    DashboardStatsRead,
    MonthlyTrendItem,
    StatusCounts,
    StudentStatsResponse,
)
from internship_tracker.security import require_roles
from internship_tracker.services.reports import (
    attendance_summary,
    dashboard_stats,
    monthly_trends,
    student_stats,
)

router = APIRouter(
    prefix="/api/reports",
    tags=["reports"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)


@router.get("/dashboard", response_model=DashboardStatsRead)
def get_dashboard(db: Session = Depends(get_db)) -> DashboardStatsRead:
    return dashboard_stats(db)


@router.get("/attendance-summary", response_model=StatusCounts)
def get_attendance_summary(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970, le=9999),
    db: Session = Depends(get_db),
) -> StatusCounts:
    if month is None or year is None:
        raise ApiError(status_code=400, code="MONTH_YEAR_REQUIRED", message="Month and Year required")
    return attendance_summary(db, year=year, month=month)


@router.get("/monthly-trends", response_model=list[MonthlyTrendItem])
def get_monthly_trends(db: Session = Depends(get_db)) -> list[MonthlyTrendItem]:
    return monthly_trends(db)


@router.get("/student-stats", response_model=StudentStatsResponse)
def get_student_stats(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str = Query(default="", max_length=255),
    db: Session = Depends(get_db),
) -> StudentStatsResponse:
    return student_stats(db, page=page, limit=limit, search=search)
