from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from internship_tracker.audit import audit_request
from internship_tracker.db import get_db
from internship_tracker.models import UserRole
from internship_tracker.schemas import (
    LeaveCreateRequest,
    LeaveRead,
    LeaveStatusUpdateRequest,
    LeaveWithUserRead,
    MessageResponse,
)
from internship_tracker.security import claims_user_id, require_roles
from internship_tracker.services.leaves import (
    create_leave_request,
    delete_leave,
    list_all_leaves,
    list_user_leaves,
    update_leave_status,
)

router = APIRouter(prefix="/api/leaves", tags=["leaves"])

student_only = require_roles(UserRole.STUDENT)
admin_only = require_roles(UserRole.ADMIN)


@router.post("", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def post_leave(
    payload: LeaveCreateRequest,
    request: Request,
    claims: dict[str, Any] = Depends(student_only),
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = create_leave_request(db, user_id=claims_user_id(claims), payload=payload)
    audit_request(
        db,
        request,
        action="LEAVE_REQUESTED",
        entity_type="leave_request",
        entity_id=leave.id,
        details={
            "type": leave.type.value,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
        },
    )
    return LeaveRead.model_validate(leave)


@router.get("/my-history", response_model=list[LeaveRead])
def get_my_leaves(
    claims: dict[str, Any] = Depends(student_only),
    db: Session = Depends(get_db),
) -> list[LeaveRead]:
    return [LeaveRead.model_validate(item) for item in list_user_leaves(db, claims_user_id(claims))]


@router.get("", response_model=list[LeaveWithUserRead], dependencies=[Depends(admin_only)])
def get_all_leaves(db: Session = Depends(get_db)) -> list[LeaveWithUserRead]:
    return [LeaveWithUserRead.model_validate(item) for item in list_all_leaves(db)]


@router.put("/{leave_id}/status", response_model=LeaveRead, dependencies=[Depends(admin_only)])
def put_leave_status(
    leave_id: int,
    payload: LeaveStatusUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = update_leave_status(db, leave_id, payload.status)
    audit_request(
        db,
        request,
        action="LEAVE_STATUS_UPDATED",
        entity_type="leave_request",
        entity_id=leave.id,
        details={"status": leave.status.value},
    )
    return LeaveRead.model_validate(leave)


@router.delete("/{leave_id}", response_model=MessageResponse, dependencies=[Depends(admin_only)])
def remove_leave(
    leave_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> MessageResponse:
    delete_leave(db, leave_id)
    audit_request(db, request, action="LEAVE_DELETED", entity_type="leave_request", entity_id=leave_id)
    return MessageResponse(message="Leave request deleted")
