"""Module: push."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_current_user, get_db
from filhos.core.config import settings
from filhos.db.models.push_subscription import PushSubscription
from filhos.db.models.user import User
from filhos.services.vaccine_notifications import PushSender, WebPushSender, send_test_notification

router = APIRouter()


class SubscriptionKeys(BaseModel):
    p256dh: str = ""
    auth: str = ""


class SubscribePayload(BaseModel):
    endpoint: str = ""
    keys: SubscriptionKeys | None = None


class UnsubscribePayload(BaseModel):
    endpoint: str = ""


# Dependency provider: swapped for a fake sender in tests.
def get_push_sender() -> PushSender:
    return WebPushSender.from_settings(settings)


@router.get("/vapid-key")
def vapid_key():
    return {"public_key": settings.vapid_public_key}


@router.post("/subscribe", status_code=201)
def subscribe(
    payload: SubscribePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.endpoint or not payload.keys or not payload.keys.p256dh or not payload.keys.auth:
        raise HTTPException(status_code=400, detail="Invalid subscription data")

    # Endpoints are unique per browser; re-subscribing moves it to this user.
    sub = db.execute(
        select(PushSubscription).where(PushSubscription.endpoint == payload.endpoint)
    ).scalar_one_or_none()
    if sub is None:
        sub = PushSubscription(endpoint=payload.endpoint)
        db.add(sub)

    sub.user_id = user.user_id
    sub.p256dh = payload.keys.p256dh
    sub.auth = payload.keys.auth
    db.commit()
    return {"message": "Notifications enabled"}


@router.post("/unsubscribe")
def unsubscribe(
    payload: UnsubscribePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.endpoint:
        raise HTTPException(status_code=400, detail="Endpoint is required")

    db.execute(
        delete(PushSubscription).where(
            PushSubscription.user_id == user.user_id,
            PushSubscription.endpoint == payload.endpoint,
        )
    )
    db.commit()
    return {"message": "Notifications disabled"}


@router.get("/status")
def status(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subs = db.execute(
        select(PushSubscription.subscription_id).where(PushSubscription.user_id == user.user_id)
    ).all()
    return {"subscribed": len(subs) > 0, "count": len(subs)}


@router.post("/test")
def send_test(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sender: PushSender = Depends(get_push_sender),
):
    if not settings.push_configured:
        raise HTTPException(status_code=500, detail="Push notifications are not configured")

    count = db.execute(
        select(PushSubscription.subscription_id).where(PushSubscription.user_id == user.user_id)
    ).all()
    if not count:
        raise HTTPException(status_code=400, detail="No push subscription found")

    sent = send_test_notification(db, user.user_id, sender)
    return {"message": "Test notification sent", "sent": sent}
