from __future__ import annotations

import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from internship_tracker.errors import ApiError
from internship_tracker.models import Department, InternshipLocation, Saka, User, UserRole
from internship_tracker.schemas import (
    ProfileUpdateRequest,
    RegisterRequest,
    UserCreateRequest,
    UserUpdateRequest,
)
from internship_tracker.security import hash_password, verify_password

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SELF_REGISTER_ROLES = (UserRole.STUDENT, UserRole.TEACHER)


def _normalize_email(email: str) -> str:
    value = email.strip()
    if not EMAIL_RE.match(value):
        raise ApiError(status_code=400, code="INVALID_EMAIL", message="Invalid email format")
    return value


def _parse_role(raw: str) -> UserRole:
    try:
        return UserRole(raw.strip().upper())
    except ValueError:
        allowed = ", ".join(role.value for role in UserRole)
        raise ApiError(status_code=400, code="INVALID_ROLE", message=f"Invalid role. Allowed: {allowed}") from None


def _ensure_email_available(db: Session, email: str, *, exclude_user_id: int | None = None) -> None:
    stmt = select(User).where(User.email == email)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    if db.scalar(stmt) is not None:
        raise ApiError(status_code=400, code="EMAIL_EXISTS", message="Email already exists")


def _ensure_reference(db: Session, model: type, ref_id: int | None, label: str) -> None:
    if ref_id is None:
        return
    if db.get(model, ref_id) is None:
        raise ApiError(status_code=404, code=f"{label.upper()}_NOT_FOUND", message=f"{label.capitalize()} not found.")


def _commit_user(db: Session, user: User) -> User:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ApiError(status_code=400, code="EMAIL_EXISTS", message="Email already exists") from exc
    db.refresh(user)
    return user


def resolve_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise ApiError(status_code=404, code="USER_NOT_FOUND", message="User not found.")
    return user


def authenticate(db: Session, *, email: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.email == email.strip()))
    if user is None:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def register_user(db: Session, payload: RegisterRequest) -> User:
    email = _normalize_email(payload.email)
    _ensure_email_available(db, email)

    role = UserRole.STUDENT
    if payload.role:
        requested = payload.role.strip().upper()
        if requested in {item.value for item in SELF_REGISTER_ROLES}:
            role = UserRole(requested)

    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        role=role,
        student_id=payload.student_id.strip(),
    )
    db.add(user)
    return _commit_user(db, user)


def create_user(db: Session, payload: UserCreateRequest) -> User:
    email = _normalize_email(payload.email)
    role = _parse_role(payload.role)
    _ensure_email_available(db, email)
    _ensure_reference(db, Department, payload.department_id, "department")
    _ensure_reference(db, InternshipLocation, payload.location_id, "location")
    _ensure_reference(db, Saka, payload.saka_id, "saka")

    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        role=role,
        student_id=payload.student_id,
        department_id=payload.department_id,
        location_id=payload.location_id,
        saka_id=payload.saka_id,
    )
    db.add(user)
    return _commit_user(db, user)


def list_users(db: Session) -> list[User]:
    stmt = (
        select(User)
        .options(
            selectinload(User.department),
            selectinload(User.location),
            selectinload(User.saka),
        )
        .order_by(User.id)
    )
    return list(db.scalars(stmt).all())


def update_user(db: Session, user_id: int, payload: UserUpdateRequest) -> User:
    user = resolve_user(db, user_id)
    fields = payload.model_fields_set

    if payload.email is not None:
        email = _normalize_email(payload.email)
        _ensure_email_available(db, email, exclude_user_id=user.id)
        user.email = email
    if payload.role is not None:
        user.role = _parse_role(payload.role)
    if payload.password:
        user.password_hash = hash_password(payload.password)
    if payload.name is not None:
        user.name = payload.name.strip()
    if "student_id" in fields:
        user.student_id = payload.student_id
    if "department_id" in fields:
        _ensure_reference(db, Department, payload.department_id, "department")
        user.department_id = payload.department_id
    if "location_id" in fields:
        _ensure_reference(db, InternshipLocation, payload.location_id, "location")
        user.location_id = payload.location_id
    if "saka_id" in fields:
        _ensure_reference(db, Saka, payload.saka_id, "saka")
        user.saka_id = payload.saka_id

    return _commit_user(db, user)


def update_profile(db: Session, user: User, payload: ProfileUpdateRequest) -> User:
    if payload.email is not None:
        email = _normalize_email(payload.email)
        _ensure_email_available(db, email, exclude_user_id=user.id)
        user.email = email
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.password:
        user.password_hash = hash_password(payload.password)
    return _commit_user(db, user)


def delete_user(db: Session, user_id: int) -> None:
    user = resolve_user(db, user_id)
    db.delete(user)
    db.commit()
