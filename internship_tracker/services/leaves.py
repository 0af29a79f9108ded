from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from internship_tracker.errors import ApiError
from internship_tracker.models import LeaveRequest, LeaveStatus
from internship_tracker.schemas import LeaveCreateRequest

FINAL_LEAVE_STATUSES = {LeaveStatus.APPROVED, LeaveStatus.REJECTED}


def _resolve_leave(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise ApiError(status_code=404, code="LEAVE_NOT_FOUND", message="Leave request not found.")
    return leave


def create_leave_request(db: Session, *, user_id: int, payload: LeaveCreateRequest) -> LeaveRequest:
    if payload.end_date < payload.start_date:
        raise ApiError(
            status_code=400,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    leave = LeaveRequest(
        user_id=user_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        type=payload.type,
        reason=payload.reason,
        status=LeaveStatus.PENDING,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def list_user_leaves(db: Session, user_id: int) -> list[LeaveRequest]:
    stmt = (
        select(LeaveRequest)
        .where(LeaveRequest.user_id == user_id)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_all_leaves(db: Session) -> list[LeaveRequest]:
    stmt = (
        select(LeaveRequest)
        .options(selectinload(LeaveRequest.user))
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def update_leave_status(db: Session, leave_id: int, new_status: LeaveStatus) -> LeaveRequest:
    if new_status not in FINAL_LEAVE_STATUSES:
        raise ApiError(
            status_code=400,
            code="INVALID_STATUS",
            message="Status must be APPROVED or REJECTED.",
        )

    leave = _resolve_leave(db, leave_id)
    if leave.status != LeaveStatus.PENDING:
        raise ApiError(
            status_code=400,
            code="INVALID_STATUS_TRANSITION",
            message=f"Leave request is already {leave.status.value}.",
        )

    # Only a row that is still PENDING may be decided.
    result = db.execute(
        update(LeaveRequest)
        .where(LeaveRequest.id == leave_id, LeaveRequest.status == LeaveStatus.PENDING)
        .values(status=new_status)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ApiError(
            status_code=400,
            code="INVALID_STATUS_TRANSITION",
            message="Leave request has already been decided.",
        )

    leave.status = new_status
    db.commit()
    db.refresh(leave)
    return leave


def delete_leave(db: Session, leave_id: int) -> None:
    leave = _resolve_leave(db, leave_id)
    db.delete(leave)
    db.commit()
