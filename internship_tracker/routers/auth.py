from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from internship_tracker.audit import audit_request, client_ip
from internship_tracker.db import get_db
from internship_tracker.errors import ApiError
from internship_tracker.models import User
from internship_tracker.schemas import (
    LoginRequest,
    LoginResponse,
    LoginUser,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    UserRead,
)
from internship_tracker.security import (
    create_access_token,
    ensure_login_attempt_allowed,
    get_current_user,
    register_login_failure,
    register_login_success,
)
from internship_tracker.services.users import authenticate, register_user, update_profile
from internship_tracker.settings import get_settings

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> LoginResponse:
    ip = client_ip(request)
    if ip:
        ensure_login_attempt_allowed(ip)

    user = authenticate(db, email=payload.email, password=payload.password)
    if user is None:
        if ip:
            register_login_failure(ip)
        audit_request(
            db,
            request,
            action="LOGIN_FAIL",
            success=False,
            details={"email": payload.email.strip()},
        )
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid email or password.")

    if ip:
        register_login_success(ip)

    token, claims = create_access_token(user)
    request.state.actor = user.role.value.lower()
    request.state.actor_id = str(user.id)
    audit_request(
        db,
        request,
        action="LOGIN_SUCCESS",
        entity_type="user",
        entity_id=user.id,
        details={"jti": claims["jti"]},
    )
    return LoginResponse(
        token=token,
        expires_in=get_settings().access_token_minutes * 60,
        user=LoginUser(id=user.id, name=user.name, role=user.role),
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> RegisterResponse:
    user = register_user(db, payload)
    audit_request(
        db,
        request,
        action="USER_REGISTERED",
        entity_type="user",
        entity_id=user.id,
        details={"role": user.role.value},
    )
    return RegisterResponse(message="User registered successfully", user_id=user.id)


@router.get("/profile", response_model=UserRead)
def get_profile(user: User = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(user)


@router.put("/profile", response_model=UserRead)
def put_profile(
    payload: ProfileUpdateRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserRead:
    updated = update_profile(db, user, payload)
    audit_request(
        db,
        request,
        action="PROFILE_UPDATED",
        entity_type="user",
        entity_id=updated.id,
        details={"fields": sorted(payload.model_fields_set - {"password"})},
    )
    return UserRead.model_validate(updated)
