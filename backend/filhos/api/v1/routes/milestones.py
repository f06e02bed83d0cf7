"""Module: milestones."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_child_for_user, get_current_user, get_db, parse_uuid, require_editor
from filhos.db.models.milestone import Milestone
from filhos.db.models.user import User

router = APIRouter()


class MilestoneCreatePayload(BaseModel):
    occurred_on: date
    title: str
    description: str | None = None
    photo_url: str | None = None


class MilestoneUpdatePayload(BaseModel):
    occurred_on: date | None = None
    title: str | None = None
    description: str | None = None
    photo_url: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _milestone_payload(milestone: Milestone) -> dict:
    return {
        "id": str(milestone.milestone_id),
        "child_id": str(milestone.child_id),
        "occurred_on": milestone.occurred_on,
        "title": milestone.title,
        "description": milestone.description,
        "photo_url": milestone.photo_url,
        "created_at": milestone.created_at,
    }


def _get_editable_milestone(db: Session, user: User, milestone_id: str) -> Milestone:
    mid = parse_uuid(milestone_id, "milestone_id")
    milestone = db.execute(select(Milestone).where(Milestone.milestone_id == mid)).scalar_one_or_none()
    if not milestone:
        raise HTTPException(status_code=404, detail="Milestone not found")

    child = get_child_for_user(db, user, str(milestone.child_id))
    require_editor(db, user, child)
    return milestone


@router.get("/children/{child_id}/milestones", summary="List milestones for a child")
def list_milestones(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    rows = db.execute(
        select(Milestone)
        .where(Milestone.child_id == child.child_id)
        .order_by(desc(Milestone.occurred_on), desc(Milestone.created_at))
    ).scalars().all()
    return [_milestone_payload(m) for m in rows]


@router.post("/children/{child_id}/milestones", summary="Record a milestone", status_code=201)
def create_milestone(
    child_id: str,
    payload: MilestoneCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    title = _clean(payload.title)
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    milestone = Milestone(
        child_id=child.child_id,
        occurred_on=payload.occurred_on,
        title=title,
        description=_clean(payload.description),
        photo_url=_clean(payload.photo_url),
    )
    db.add(milestone)
    db.commit()
    db.refresh(milestone)
    return _milestone_payload(milestone)


@router.patch("/milestones/{milestone_id}", summary="Update a milestone")
def update_milestone(
    milestone_id: str,
    payload: MilestoneUpdatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    milestone = _get_editable_milestone(db, user, milestone_id)
    changes = payload.model_dump(exclude_unset=True)

    if "title" in changes:
        title = _clean(changes["title"])
        if not title:
            raise HTTPException(status_code=400, detail="Title is required")
        milestone.title = title
    if changes.get("occurred_on") is not None:
        milestone.occurred_on = changes["occurred_on"]
    if "description" in changes:
        milestone.description = _clean(changes["description"])
    if "photo_url" in changes:
        milestone.photo_url = _clean(changes["photo_url"])

    db.commit()
    db.refresh(milestone)
    return _milestone_payload(milestone)


@router.delete("/milestones/{milestone_id}", summary="Delete a milestone", status_code=204)
def delete_milestone(
    milestone_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    milestone = _get_editable_milestone(db, user, milestone_id)
    db.delete(milestone)
    db.commit()
    return Response(status_code=204)
