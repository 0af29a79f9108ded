"""Lookup tables referenced by users: departments, sakas and internship locations."""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from internship_tracker.db import Base
from internship_tracker.errors import ApiError
from internship_tracker.models import Department, InternshipLocation, Saka

ModelT = TypeVar("ModelT", bound=Base)

_LABELS: dict[type, str] = {
    Department: "Department",
    Saka: "Saka",
    InternshipLocation: "Location",
}


def _label(model: type) -> str:
    return _LABELS.get(model, model.__name__)


def _commit(db: Session, model: type, row: Any) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ApiError(
            status_code=400,
            code="DUPLICATE_NAME",
            message=f"{_label(model)} name already exists.",
        ) from exc
    db.refresh(row)


def list_rows(db: Session, model: type[ModelT]) -> list[ModelT]:
    return list(db.scalars(select(model).order_by(model.id)).all())


def get_row(db: Session, model: type[ModelT], row_id: int) -> ModelT:
    row = db.get(model, row_id)
    if row is None:
        label = _label(model)
        raise ApiError(status_code=404, code=f"{label.upper()}_NOT_FOUND", message=f"{label} not found.")
    return row


def create_row(db: Session, model: type[ModelT], values: dict[str, Any]) -> ModelT:
    row = model(**values)
    db.add(row)
    _commit(db, model, row)
    return row


def update_row(db: Session, model: type[ModelT], row_id: int, values: dict[str, Any]) -> ModelT:
    row = get_row(db, model, row_id)
    for key, value in values.items():
        setattr(row, key, value)
    _commit(db, model, row)
    return row


def delete_row(db: Session, model: type[ModelT], row_id: int) -> None:
    row = get_row(db, model, row_id)
    db.delete(row)
    db.commit()
