"""
Module: invites.

Sharing a child between accounts. An owner or editor generates a short
single-use code; whoever redeems it becomes a caregiver of that child with
the role carried by the code.
"""

import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import (
    get_caregiver_role,
    get_child_for_user,
    get_current_user,
    get_db,
    parse_uuid,
    require_editor,
)
from filhos.api.v1.routes.push import get_push_sender
from filhos.core.config import settings
from filhos.db.base import utcnow
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.invite_code import InviteCode
from filhos.db.models.user import User
from filhos.services.avatar import avatar_color, initials
from filhos.services.vaccine_notifications import PushSender, notify_caregiver_joined

logger = logging.getLogger(__name__)

router = APIRouter()

# No I, O, 0 or 1: codes are read aloud and typed by hand.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "FLH-"
CODE_LENGTH = 4
INVITE_ROLES = {"editor", "viewer"}


class InviteCreatePayload(BaseModel):
    relationship: str | None = None
    role: str = "editor"


class RedeemPayload(BaseModel):
    code: str = ""
    relationship: str | None = None


# -------------------------
# Helpers
# -------------------------
def generate_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _unique_code(db: Session) -> str:
    while True:
        code = generate_code()
        taken = db.execute(select(InviteCode.invite_id).where(InviteCode.code == code)).first()
        if not taken:
            return code


def display_name(user: User) -> str:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return name or user.email or "Alguém"


def _invite_payload(invite: InviteCode) -> dict:
    return {
        "id": str(invite.invite_id),
        "code": invite.code,
        "child_id": str(invite.child_id),
        "relationship": invite.relationship,
        "role": invite.role,
        "expires_at": invite.expires_at,
        "used": invite.used_by is not None,
        "used_at": invite.used_at,
        "created_at": invite.created_at,
    }


def _caregiver_payload(link: Caregiver, user: User) -> dict:
    return {
        "id": str(link.caregiver_id),
        "user_id": str(user.user_id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "relationship": link.relationship,
        "role": link.role,
        "initials": initials(user.first_name, user.last_name, user.email),
        "avatar_color": avatar_color(display_name(user)),
        "created_at": link.created_at,
    }


# -------------------------
# Endpoints
# -------------------------
@router.post("/children/{child_id}/invites", summary="Generate an invite code", status_code=201)
def create_invite(
    child_id: str,
    payload: InviteCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    role = payload.role.strip().lower()
    if role not in INVITE_ROLES:
        raise HTTPException(status_code=400, detail="Role must be editor or viewer")

    invite = InviteCode(
        code=_unique_code(db),
        child_id=child.child_id,
        created_by=user.user_id,
        relationship=(payload.relationship or "").strip() or "caregiver",
        role=role,
        expires_at=utcnow() + timedelta(hours=settings.invite_ttl_hours),
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)

    out = _invite_payload(invite)
    out["child_name"] = child.name
    return out


@router.get("/children/{child_id}/invites", summary="List invite codes for a child")
def list_invites(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    rows = db.execute(
        select(InviteCode)
        .where(InviteCode.child_id == child.child_id)
        .order_by(InviteCode.created_at.desc())
    ).scalars().all()
    return [_invite_payload(i) for i in rows]


@router.post("/invites/redeem", summary="Redeem an invite code")
def redeem_invite(
    payload: RedeemPayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sender: PushSender = Depends(get_push_sender),
):
    code = payload.code.strip().upper()
    if not code:
        raise HTTPException(status_code=400, detail="Code is required")

    invite = db.execute(select(InviteCode).where(InviteCode.code == code)).scalar_one_or_none()
    if not invite:
        raise HTTPException(status_code=404, detail="Invite code not found")
    if invite.used_by is not None:
        raise HTTPException(status_code=409, detail="Invite code was already used")
    if utcnow() > invite.expires_at:
        raise HTTPException(status_code=400, detail="Invite code has expired")
    if invite.created_by == user.user_id:
        raise HTTPException(status_code=400, detail="You cannot redeem your own invite code")

    existing = db.execute(
        select(Caregiver.caregiver_id).where(
            Caregiver.child_id == invite.child_id,
            Caregiver.user_id == user.user_id,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="You already care for this child")

    db.add(
        Caregiver(
            child_id=invite.child_id,
            user_id=user.user_id,
            relationship=(payload.relationship or "").strip() or invite.relationship or "caregiver",
            role=invite.role,
        )
    )
    invite.used_by = user.user_id
    invite.used_at = utcnow()
    db.commit()

    child = db.execute(select(Child).where(Child.child_id == invite.child_id)).scalar_one()
    try:
        notify_caregiver_joined(db, invite.created_by, child, display_name(user), user.user_id, sender)
    except Exception:
        # The redeem already succeeded; a failed notification only gets logged.
        logger.exception("Failed to notify owner of child %s about new caregiver", child.child_id)

    return {
        "message": "Invite accepted",
        "child_id": str(child.child_id),
        "child_name": child.name,
        "role": invite.role,
    }


@router.get("/children/{child_id}/caregivers", summary="List caregivers of a child")
def list_caregivers(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    rows = db.execute(
        select(Caregiver, User)
        .join(User, User.user_id == Caregiver.user_id)
        .where(Caregiver.child_id == child.child_id)
        .order_by(Caregiver.created_at)
    ).all()
    return [_caregiver_payload(link, u) for link, u in rows]


@router.post("/children/{child_id}/leave", summary="Stop caring for a child")
def leave_child(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    if get_caregiver_role(db, user, child) == "owner":
        raise HTTPException(status_code=403, detail="The owner cannot leave; delete the child instead")

    db.execute(
        delete(Caregiver).where(
            Caregiver.child_id == child.child_id,
            Caregiver.user_id == user.user_id,
        )
    )
    db.commit()
    return {"message": "You no longer care for this child"}


@router.delete(
    "/children/{child_id}/caregivers/{caregiver_id}",
    summary="Remove a caregiver from a child",
    status_code=204,
)
def remove_caregiver(
    child_id: str,
    caregiver_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    if get_caregiver_role(db, user, child) != "owner":
        raise HTTPException(status_code=403, detail="Only the owner can remove caregivers")

    link = db.execute(
        select(Caregiver).where(
            Caregiver.caregiver_id == parse_uuid(caregiver_id, "caregiver_id"),
            Caregiver.child_id == child.child_id,
        )
    ).scalar_one_or_none()
    if not link:
        raise HTTPException(status_code=404, detail="Caregiver not found")
    if link.role == "owner":
        raise HTTPException(status_code=400, detail="The owner cannot be removed")

    db.delete(link)
    db.commit()
    return Response(status_code=204)
