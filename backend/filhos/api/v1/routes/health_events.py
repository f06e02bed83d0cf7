"""Module: health_events."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_child_for_user, get_current_user, get_db, parse_uuid, require_editor
from filhos.db.models.health_event import HealthEvent
from filhos.db.models.user import User

router = APIRouter()


class HealthEventCreatePayload(BaseModel):
    occurred_on: date
    symptoms: str
    diagnosis: str | None = None
    medication: str | None = None
    notes: str | None = None


class HealthEventUpdatePayload(BaseModel):
    occurred_on: date | None = None
    symptoms: str | None = None
    diagnosis: str | None = None
    medication: str | None = None
    notes: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _event_payload(event: HealthEvent) -> dict:
    return {
        "id": str(event.health_event_id),
        "child_id": str(event.child_id),
        "occurred_on": event.occurred_on,
        "symptoms": event.symptoms,
        "diagnosis": event.diagnosis,
        "medication": event.medication,
        "notes": event.notes,
        "archived": event.archived,
        "created_at": event.created_at,
    }


def _get_editable_event(db: Session, user: User, event_id: str) -> HealthEvent:
    eid = parse_uuid(event_id, "health_record_id")
    event = db.execute(select(HealthEvent).where(HealthEvent.health_event_id == eid)).scalar_one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail="Health record not found")

    child = get_child_for_user(db, user, str(event.child_id))
    require_editor(db, user, child)
    return event


@router.get("/children/{child_id}/health-records", summary="List health records for a child")
def list_health_events(
    child_id: str,
    include_archived: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    stmt = select(HealthEvent).where(HealthEvent.child_id == child.child_id)
    if not include_archived:
        stmt = stmt.where(HealthEvent.archived.is_(False))
    rows = db.execute(stmt.order_by(desc(HealthEvent.occurred_on), desc(HealthEvent.created_at))).scalars().all()
    return [_event_payload(e) for e in rows]


@router.post("/children/{child_id}/health-records", summary="Log a health episode", status_code=201)
def create_health_event(
    child_id: str,
    payload: HealthEventCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    symptoms = _clean(payload.symptoms)
    if not symptoms:
        raise HTTPException(status_code=400, detail="Symptoms are required")

    event = HealthEvent(
        child_id=child.child_id,
        occurred_on=payload.occurred_on,
        symptoms=symptoms,
        diagnosis=_clean(payload.diagnosis),
        medication=_clean(payload.medication),
        notes=_clean(payload.notes),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return _event_payload(event)


@router.patch("/health-records/{event_id}", summary="Update a health record")
def update_health_event(
    event_id: str,
    payload: HealthEventUpdatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = _get_editable_event(db, user, event_id)
    changes = payload.model_dump(exclude_unset=True)

    if "symptoms" in changes:
        symptoms = _clean(changes["symptoms"])
        if not symptoms:
            raise HTTPException(status_code=400, detail="Symptoms are required")
        event.symptoms = symptoms
    if changes.get("occurred_on") is not None:
        event.occurred_on = changes["occurred_on"]
    for field in ("diagnosis", "medication", "notes"):
        if field in changes:
            setattr(event, field, _clean(changes[field]))

    db.commit()
    db.refresh(event)
    return _event_payload(event)


# Archived episodes are kept but drop out of the default listing.
@router.post("/health-records/{event_id}/archive", summary="Archive a health record")
def archive_health_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = _get_editable_event(db, user, event_id)
    event.archived = True
    db.commit()
    db.refresh(event)
    return _event_payload(event)
