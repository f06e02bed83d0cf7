"""Module: children."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import (
    get_caregiver_role,
    get_child_for_user,
    get_current_user,
    get_db,
    require_editor,
)
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.diary_entry import DiaryEntry
from filhos.db.models.growth_record import GrowthRecord
from filhos.db.models.health_event import HealthEvent
from filhos.db.models.invite_code import InviteCode
from filhos.db.models.milestone import Milestone
from filhos.db.models.user import User
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.services.child_age import age_in_months

router = APIRouter()

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024
VALID_GENDERS = {"male", "female", "unspecified"}


class GrowthCreatePayload(BaseModel):
    measured_on: date
    weight: float | None = None
    height: float | None = None
    head_circumference: float | None = None
    notes: str | None = None


# -------------------------
# Helpers
# -------------------------
def _normalize_optional(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned if cleaned else None


def _normalize_gender(value: str | None) -> str:
    gender = (value or "unspecified").strip().lower()
    if gender not in VALID_GENDERS:
        raise HTTPException(status_code=400, detail="Gender must be male, female or unspecified")
    return gender


async def _read_image_file(photo: UploadFile | None) -> tuple[bytes | None, str | None]:
    if not photo:
        return None, None

    content_type = (photo.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Photo must be JPEG or PNG")

    data = await photo.read()
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Photo must be 5MB or smaller")

    return data, content_type


def purge_child(db: Session, child_id) -> None:
    """Delete a child with everything recorded for it. Caller commits."""
    for model in (VaccinationRecord, GrowthRecord, HealthEvent, Milestone, DiaryEntry, InviteCode, Caregiver):
        db.execute(delete(model).where(model.child_id == child_id))
    db.execute(delete(Child).where(Child.child_id == child_id))


def _child_payload(child: Child, role: str | None = None) -> dict:
    out = {
        "id": str(child.child_id),
        "name": child.name,
        "birth_date": child.birth_date,
        "gender": child.gender,
        "age_months": age_in_months(child.birth_date),
        "has_photo": bool(child.photo_mime_type),
        "created_at": child.created_at,
    }
    if role is not None:
        out["role"] = role
    return out


def _growth_payload(record: GrowthRecord) -> dict:
    return {
        "id": str(record.growth_record_id),
        "child_id": str(record.child_id),
        "measured_on": record.measured_on,
        "weight": float(record.weight) if record.weight is not None else None,
        "height": float(record.height) if record.height is not None else None,
        "head_circumference": (
            float(record.head_circumference) if record.head_circumference is not None else None
        ),
        "notes": record.notes,
    }


# -------------------------
# Endpoints
# -------------------------

@router.get("", summary="List children the user cares for")
def list_children(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = db.execute(
        select(Child, Caregiver.role)
        .join(Caregiver, Caregiver.child_id == Child.child_id)
        .where(Caregiver.user_id == user.user_id)
        .order_by(Child.created_at)
    ).all()
    return [_child_payload(child, role) for child, role in rows]


@router.post("", summary="Create child owned by the current user", status_code=201)
async def create_child(
    name: str = Form(...),
    birth_date: date = Form(...),
    gender: str | None = Form(default=None),
    relationship: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name is required")

    photo_data, photo_mime_type = await _read_image_file(photo)

    child = Child(
        name=name.strip(),
        birth_date=birth_date,
        gender=_normalize_gender(gender),
        photo_data=photo_data,
        photo_mime_type=photo_mime_type,
    )
    db.add(child)
    db.flush()

    db.add(
        Caregiver(
            child_id=child.child_id,
            user_id=user.user_id,
            relationship=_normalize_optional(relationship) or "guardian",
            role="owner",
        )
    )

    db.commit()
    db.refresh(child)
    return _child_payload(child, "owner")


@router.get("/{child_id}", summary="Get child detail")
def get_child(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    return _child_payload(child, get_caregiver_role(db, user, child))


@router.put("/{child_id}", summary="Update child details")
async def update_child(
    child_id: str,
    name: str = Form(...),
    birth_date: date = Form(...),
    gender: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    child.name = name.strip()
    child.birth_date = birth_date
    child.gender = _normalize_gender(gender)

    if photo:
        photo_data, photo_mime_type = await _read_image_file(photo)
        child.photo_data = photo_data
        child.photo_mime_type = photo_mime_type

    db.commit()
    db.refresh(child)
    return _child_payload(child)


@router.delete("/{child_id}", summary="Delete child and all its records", status_code=204)
def delete_child(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    if get_caregiver_role(db, user, child) != "owner":
        raise HTTPException(status_code=403, detail="Only the owner can delete this child")

    purge_child(db, child.child_id)
    db.commit()
    return Response(status_code=204)


@router.get("/{child_id}/photo", summary="Get child photo")
def get_child_photo(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    if not child.photo_data:
        raise HTTPException(status_code=404, detail="Child photo not found")

    return Response(content=child.photo_data, media_type=child.photo_mime_type or "image/jpeg")


@router.get("/{child_id}/growth", summary="List growth records for a child")
def list_growth(
    child_id: str,
    limit: int = 200,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    rows = db.execute(
        select(GrowthRecord)
        .where(GrowthRecord.child_id == child.child_id)
        .order_by(desc(GrowthRecord.measured_on))
        .limit(limit)
    ).scalars().all()
    return [_growth_payload(r) for r in rows]


@router.post("/{child_id}/growth", summary="Add growth record for a child", status_code=201)
def create_growth(
    child_id: str,
    payload: GrowthCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    if payload.weight is None and payload.height is None and payload.head_circumference is None:
        raise HTTPException(status_code=400, detail="At least one measurement is required")

    record = GrowthRecord(
        child_id=child.child_id,
        measured_on=payload.measured_on,
        weight=payload.weight,
        height=payload.height,
        head_circumference=payload.head_circumference,
        notes=_normalize_optional(payload.notes),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return _growth_payload(record)
