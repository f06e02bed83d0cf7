"""Module: diary."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_child_for_user, get_current_user, get_db, parse_uuid, require_editor
from filhos.db.models.diary_entry import DiaryEntry
from filhos.db.models.user import User

router = APIRouter()


class DiaryCreatePayload(BaseModel):
    entry_date: date
    content: str | None = None
    photo_urls: list[str] | None = None


class DiaryUpdatePayload(BaseModel):
    entry_date: date | None = None
    content: str | None = None
    photo_urls: list[str] | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _entry_payload(entry: DiaryEntry) -> dict:
    return {
        "id": str(entry.entry_id),
        "child_id": str(entry.child_id),
        "entry_date": entry.entry_date,
        "content": entry.content,
        "photo_urls": entry.photo_urls or [],
        "created_at": entry.created_at,
    }


def _get_editable_entry(db: Session, user: User, entry_id: str) -> DiaryEntry:
    eid = parse_uuid(entry_id, "entry_id")
    entry = db.execute(select(DiaryEntry).where(DiaryEntry.entry_id == eid)).scalar_one_or_none()
    if not entry:
        raise HTTPException(status_code=404, detail="Diary entry not found")

    child = get_child_for_user(db, user, str(entry.child_id))
    require_editor(db, user, child)
    return entry


@router.get("/children/{child_id}/diary", summary="List diary entries for a child")
def list_entries(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    rows = db.execute(
        select(DiaryEntry)
        .where(DiaryEntry.child_id == child.child_id)
        .order_by(desc(DiaryEntry.entry_date), desc(DiaryEntry.created_at))
    ).scalars().all()
    return [_entry_payload(e) for e in rows]


@router.post("/children/{child_id}/diary", summary="Write a diary entry", status_code=201)
def create_entry(
    child_id: str,
    payload: DiaryCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    content = _clean(payload.content)
    photo_urls = payload.photo_urls or []
    # An entry may be text only, photos only, or both.
    if not content and not photo_urls:
        raise HTTPException(status_code=400, detail="Content or photos are required")

    entry = DiaryEntry(
        child_id=child.child_id,
        entry_date=payload.entry_date,
        content=content,
        photo_urls=photo_urls,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return _entry_payload(entry)


@router.patch("/diary/{entry_id}", summary="Update a diary entry")
def update_entry(
    entry_id: str,
    payload: DiaryUpdatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = _get_editable_entry(db, user, entry_id)
    changes = payload.model_dump(exclude_unset=True)

    content = _clean(changes["content"]) if "content" in changes else entry.content
    photo_urls = (changes["photo_urls"] or []) if "photo_urls" in changes else (entry.photo_urls or [])
    if not content and not photo_urls:
        raise HTTPException(status_code=400, detail="Content or photos are required")

    entry.content = content
    entry.photo_urls = photo_urls
    if changes.get("entry_date") is not None:
        entry.entry_date = changes["entry_date"]

    db.commit()
    db.refresh(entry)
    return _entry_payload(entry)


@router.delete("/diary/{entry_id}", summary="Delete a diary entry", status_code=204)
def delete_entry(
    entry_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = _get_editable_entry(db, user, entry_id)
    db.delete(entry)
    db.commit()
    return Response(status_code=204)
