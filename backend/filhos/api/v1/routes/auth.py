"""Module: auth."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.children import purge_child
from filhos.api.v1.routes.deps import get_current_user, get_db
from filhos.core.security import hash_password, issue_token, revoke_tokens_for, verify_password
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.invite_code import InviteCode
from filhos.db.models.push_subscription import PushSubscription
from filhos.db.models.user import User
from filhos.services.avatar import avatar_color, initials

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None


class UserPayload(BaseModel):
    user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    initials: str
    avatar_color: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPayload


def _normalize_email(value: str) -> str:
    return value.strip().lower()


def _as_user_payload(user: User) -> UserPayload:
    display_name = " ".join(p for p in (user.first_name, user.last_name) if p) or user.email
    return UserPayload(
        user_id=str(user.user_id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        initials=initials(user.first_name, user.last_name, user.email),
        avatar_color=avatar_color(display_name),
    )


@router.post("/register", response_model=UserPayload)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    normalized_email = _normalize_email(payload.email)
    if not normalized_email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    exists = db.execute(select(User.user_id).where(func.lower(User.email) == normalized_email)).first()
    if exists:
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=normalized_email,
        password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _as_user_payload(user)


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    normalized_email = _normalize_email(payload.email)
    user = db.execute(
        select(User).where(func.lower(User.email) == normalized_email)
    ).scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return LoginResponse(
        access_token=issue_token(str(user.user_id)),
        user=_as_user_payload(user),
    )


@router.get("/me", response_model=UserPayload)
def me(user: User = Depends(get_current_user)):
    return _as_user_payload(user)


@router.delete("/account")
def delete_account(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Remove the account and its push subscriptions.

    Children nobody else cares for are deleted with all their data. Shared
    children stay; if this account owned one, ownership passes to the
    caregiver who has been linked the longest.
    """
    user_id = user.user_id
    links = db.execute(select(Caregiver).where(Caregiver.user_id == user_id)).scalars().all()

    for link in links:
        others = db.execute(
            select(Caregiver)
            .where(Caregiver.child_id == link.child_id, Caregiver.user_id != user_id)
            .order_by(Caregiver.created_at)
        ).scalars().all()

        if not others:
            purge_child(db, link.child_id)
            continue

        if link.role == "owner" and not any(o.role == "owner" for o in others):
            others[0].role = "owner"
            logger.info("Transferred ownership of child %s to user %s", link.child_id, others[0].user_id)

    db.execute(delete(Caregiver).where(Caregiver.user_id == user_id))
    db.execute(delete(InviteCode).where(InviteCode.created_by == user_id))
    db.execute(delete(PushSubscription).where(PushSubscription.user_id == user_id))
    db.delete(user)
    db.commit()

    revoke_tokens_for(str(user_id))
    logger.info("Deleted account %s", user_id)
    return {"message": "Account deleted"}
