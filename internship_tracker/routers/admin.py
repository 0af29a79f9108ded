from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from internship_tracker.audit import audit_request
from internship_tracker.db import get_db
from internship_tracker.models import Department, InternshipLocation, Saka, UserRole
from internship_tracker.schemas import (
    DepartmentCreate,
    DepartmentRead,
    LocationRead,
    LocationUpsert,
    MessageResponse,
    SakaRead,
    SakaUpsert,
    UserCreateRequest,
    UserRead,
    UserSummaryRead,
    UserUpdateRequest,
)
from internship_tracker.security import get_current_claims, require_roles
from internship_tracker.services import master_data
from internship_tracker.services.users import create_user, delete_user, list_users, update_user

router = APIRouter(prefix="/api", tags=["admin"])

admin_only = require_roles(UserRole.ADMIN)


# Users


@router.post(
    "/users",
    response_model=UserSummaryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def post_user(
    payload: UserCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> UserSummaryRead:
    user = create_user(db, payload)
    audit_request(
        db,
        request,
        action="USER_CREATED",
        entity_type="user",
        entity_id=user.id,
        details={"role": user.role.value},
    )
    return UserSummaryRead.model_validate(user)


@router.get("/users", response_model=list[UserRead], dependencies=[Depends(get_current_claims)])
def get_users(db: Session = Depends(get_db)) -> list[UserRead]:
    return [UserRead.model_validate(item) for item in list_users(db)]


@router.put("/users/{user_id}", response_model=UserSummaryRead, dependencies=[Depends(admin_only)])
def put_user(
    user_id: int,
    payload: UserUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> UserSummaryRead:
    user = update_user(db, user_id, payload)
    audit_request(
        db,
        request,
        action="USER_UPDATED",
        entity_type="user",
        entity_id=user.id,
        details={"fields": sorted(payload.model_fields_set - {"password"})},
    )
    return UserSummaryRead.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse, dependencies=[Depends(admin_only)])
def remove_user(user_id: int, request: Request, db: Session = Depends(get_db)) -> MessageResponse:
    delete_user(db, user_id)
    audit_request(db, request, action="USER_DELETED", entity_type="user", entity_id=user_id)
    return MessageResponse(message="User deleted")


# Departments


@router.post(
    "/departments",
    response_model=DepartmentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def post_department(payload: DepartmentCreate, request: Request, db: Session = Depends(get_db)) -> DepartmentRead:
    department = master_data.create_row(db, Department, {"name": payload.name.strip()})
    audit_request(db, request, action="DEPARTMENT_CREATED", entity_type="department", entity_id=department.id)
    return DepartmentRead.model_validate(department)


@router.get("/departments", response_model=list[DepartmentRead], dependencies=[Depends(admin_only)])
def get_departments(db: Session = Depends(get_db)) -> list[DepartmentRead]:
    return [DepartmentRead.model_validate(item) for item in master_data.list_rows(db, Department)]


@router.put("/departments/{department_id}", response_model=DepartmentRead, dependencies=[Depends(admin_only)])
def put_department(
    department_id: int,
    payload: DepartmentCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> DepartmentRead:
    department = master_data.update_row(db, Department, department_id, {"name": payload.name.strip()})
    audit_request(
        db,
        request,
        action="DEPARTMENT_UPDATED",
        entity_type="department",
        entity_id=department.id,
        details={"name": department.name},
    )
    return DepartmentRead.model_validate(department)


@router.delete("/departments/{department_id}", response_model=MessageResponse, dependencies=[Depends(admin_only)])
def remove_department(department_id: int, request: Request, db: Session = Depends(get_db)) -> MessageResponse:
    master_data.delete_row(db, Department, department_id)
    audit_request(db, request, action="DEPARTMENT_DELETED", entity_type="department", entity_id=department_id)
    return MessageResponse(message="Department deleted")


# Internship locations


@router.post(
    "/locations",
    response_model=LocationRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def post_location(payload: LocationUpsert, request: Request, db: Session = Depends(get_db)) -> LocationRead:
    location = master_data.create_row(
        db,
        InternshipLocation,
        {"name": payload.name.strip(), "address": payload.address},
    )
    audit_request(db, request, action="LOCATION_CREATED", entity_type="location", entity_id=location.id)
    return LocationRead.model_validate(location)


@router.get("/locations", response_model=list[LocationRead], dependencies=[Depends(admin_only)])
def get_locations(db: Session = Depends(get_db)) -> list[LocationRead]:
    return [LocationRead.model_validate(item) for item in master_data.list_rows(db, InternshipLocation)]


@router.put("/locations/{location_id}", response_model=LocationRead, dependencies=[Depends(admin_only)])
def put_location(
    location_id: int,
    payload: LocationUpsert,
    request: Request,
    db: Session = Depends(get_db),
) -> LocationRead:
    location = master_data.update_row(
        db,
        InternshipLocation,
        location_id,
        {"name": payload.name.strip(), "address": payload.address},
    )
    audit_request(
        db,
        request,
        action="LOCATION_UPDATED",
        entity_type="location",
        entity_id=location.id,
        details={"name": location.name},
    )
    return LocationRead.model_validate(location)


@router.delete("/locations/{location_id}", response_model=MessageResponse, dependencies=[Depends(admin_only)])
def remove_location(location_id: int, request: Request, db: Session = Depends(get_db)) -> MessageResponse:
    master_data.delete_row(db, InternshipLocation, location_id)
    audit_request(db, request, action="LOCATION_DELETED", entity_type="location", entity_id=location_id)
    return MessageResponse(message="Location deleted")


# Sakas


@router.post(
    "/sakas",
    response_model=SakaRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def post_saka(payload: SakaUpsert, request: Request, db: Session = Depends(get_db)) -> SakaRead:
    saka = master_data.create_row(db, Saka, {"saka_name": payload.saka_name.strip()})
    audit_request(db, request, action="SAKA_CREATED", entity_type="saka", entity_id=saka.id)
    return SakaRead.model_validate(saka)


@router.get("/sakas", response_model=list[SakaRead], dependencies=[Depends(admin_only)])
def get_sakas(db: Session = Depends(get_db)) -> list[SakaRead]:
    return [SakaRead.model_validate(item) for item in master_data.list_rows(db, Saka)]


@router.put("/sakas/{saka_id}", response_model=SakaRead, dependencies=[Depends(admin_only)])
def put_saka(
    saka_id: int,
    payload: SakaUpsert,
    request: Request,
    db: Session = Depends(get_db),
) -> SakaRead:
    saka = master_data.update_row(db, Saka, saka_id, {"saka_name": payload.saka_name.strip()})
    audit_request(
        db,
        request,
        action="SAKA_UPDATED",
        entity_type="saka",
        entity_id=saka.id,
        details={"saka_name": saka.saka_name},
    )
    return SakaRead.model_validate(saka)


@router.delete("/sakas/{saka_id}", response_model=MessageResponse, dependencies=[Depends(admin_only)])
def remove_saka(saka_id: int, request: Request, db: Session = Depends(get_db)) -> MessageResponse:
    master_data.delete_row(db, Saka, saka_id)
    audit_request(db, request, action="SAKA_DELETED", entity_type="saka", entity_id=saka_id)
    return MessageResponse(message="Saka deleted")
