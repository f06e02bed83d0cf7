"""Module: deps."""

import uuid
from typing import Generator

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from filhos.core.security import resolve_token
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.user import User
from filhos.db.session import SessionLocal

# Dependency provider: one DB session per request lifecycle.
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def parse_uuid(value: str, field_name: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field_name} (must be UUID)")


def _get_token_value(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    return parts[1].strip()


# Dependency provider: the user behind the bearer token, or 401.
def get_current_user(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    token = _get_token_value(authorization)
    user_id = resolve_token(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = db.execute(select(User).where(User.user_id == uuid.UUID(user_id))).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_child_for_user(db: Session, user: User, child_id: str) -> Child:
    """Load a child the user is a caregiver of; 404 if missing, 403 if not linked."""
    cid = parse_uuid(child_id, "child_id")
    child = db.execute(select(Child).where(Child.child_id == cid)).scalar_one_or_none()
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")

    link = db.execute(
        select(Caregiver.caregiver_id).where(
            Caregiver.child_id == cid,
            Caregiver.user_id == user.user_id,
        )
    ).first()
    if not link:
        raise HTTPException(status_code=403, detail="Access denied")
    return child


EDITOR_ROLES = {"owner", "editor"}


def get_caregiver_role(db: Session, user: User, child: Child) -> str | None:
    return db.execute(
        select(Caregiver.role).where(
            Caregiver.child_id == child.child_id,
            Caregiver.user_id == user.user_id,
        )
    ).scalar_one_or_none()


# Viewers may read a child's data; only owners and editors may change it.
def require_editor(db: Session, user: User, child: Child) -> str:
    role = get_caregiver_role(db, user, child)
    if role not in EDITOR_ROLES:
        raise HTTPException(status_code=403, detail="Only owners and editors can change this child")
    return role
