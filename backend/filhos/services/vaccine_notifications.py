"""
Module: vaccine_notifications.

Daily push reminders for vaccine doses that are due, about to be due, or
recently missed. Reminders are grouped per account: every user with at least
one push subscription gets one message covering all of their children.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Callable, Protocol
from zoneinfo import ZoneInfo

from pywebpush import WebPushException, webpush
from sqlalchemy import select
from sqlalchemy.orm import Session

from filhos.core.config import Settings, settings
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.push_subscription import PushSubscription
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.services.child_age import age_in_months
from filhos.services.vaccine_catalog import get_catalog
from filhos.services.vaccine_schedule import ReminderType, reminders_for_child

logger = logging.getLogger(__name__)

REMINDER_TAG = "vaccine-reminder"
NOTIFICATION_ICON = "/icons/icon-192x192.png"
NOTIFICATION_BADGE = "/icons/icon-72x72.png"
# Push services answer 404/410 once the browser dropped the subscription.
EXPIRED_STATUS_CODES = {404, 410}


@dataclass(frozen=True)
class VaccineReminder:
    child_name: str
    vaccine_name: str
    dose: str
    type: ReminderType


class PushDeliveryError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PushSender(Protocol):
    def send(self, subscription: PushSubscription, payload: dict) -> None: ...


class WebPushSender:
    """Delivers JSON payloads through the Web Push protocol with VAPID auth."""

    def __init__(self, private_key: str, subject: str):
        self.private_key = private_key
        self.subject = subject

    @classmethod
    def from_settings(cls, cfg: Settings) -> "WebPushSender":
        return cls(private_key=cfg.vapid_private_key, subject=cfg.vapid_subject)

    def send(self, subscription: PushSubscription, payload: dict) -> None:
        try:
            webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
                },
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                # webpush fills in aud/exp, so every call gets a fresh dict.
                vapid_claims={"sub": self.subject},
            )
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise PushDeliveryError(str(exc), status_code=status) from exc


# -------------------------
# Reminder collection
# -------------------------
def collect_reminders(
    db: Session,
    cfg: Settings = settings,
    today: date | None = None,
) -> dict[uuid.UUID, list[VaccineReminder]]:
    catalog = get_catalog(db)
    user_ids = db.execute(
        select(PushSubscription.user_id).distinct().order_by(PushSubscription.user_id)
    ).scalars().all()

    out: dict[uuid.UUID, list[VaccineReminder]] = {}
    for user_id in user_ids:
        children = db.execute(
            select(Child)
            .join(Caregiver, Caregiver.child_id == Child.child_id)
            .where(Caregiver.user_id == user_id)
            .order_by(Child.created_at)
        ).scalars().all()

        reminders: list[VaccineReminder] = []
        for child in children:
            months = age_in_months(child.birth_date, today)
            records = db.execute(
                select(VaccinationRecord).where(VaccinationRecord.child_id == child.child_id)
            ).scalars().all()

            for item in reminders_for_child(catalog, records, months, cfg.notification_max_booster_years):
                reminders.append(
                    VaccineReminder(
                        child_name=child.name,
                        vaccine_name=item.expected.vaccine_name,
                        dose=item.expected.dose,
                        type=item.type,
                    )
                )

        if reminders:
            out[user_id] = reminders
    return out


def build_notification_payload(reminders: list[VaccineReminder]) -> dict | None:
    """
    Summarise one account's reminders into a single push message.

    Overdue doses take priority over due ones, which take priority over
    upcoming ones. The message names the first reminder of the winning kind
    and counts the rest of that kind.
    """
    if not reminders:
        return None

    overdue = [r for r in reminders if r.type is ReminderType.OVERDUE]
    due = [r for r in reminders if r.type is ReminderType.DUE]
    upcoming = [r for r in reminders if r.type is ReminderType.UPCOMING]

    title = "💉 Lembrete de Vacinas"
    body = ""

    if overdue:
        first = overdue[0]
        title = "⚠️ Vacina em atraso!"
        body = f"{first.child_name}: {first.vaccine_name} ({first.dose}) está em atraso."
        if len(overdue) > 1:
            body += f" E mais {len(overdue) - 1} vacina(s) pendente(s)."
    elif due:
        first = due[0]
        title = "💉 Vacina na hora certa!"
        body = f"{first.child_name}: é hora da {first.vaccine_name} ({first.dose})."
        if len(due) > 1:
            body += f" E mais {len(due) - 1} vacina(s) para este mês."
    elif upcoming:
        first = upcoming[0]
        body = f"{first.child_name}: {first.vaccine_name} ({first.dose}) está chegando!"
        if len(upcoming) > 1:
            body += f" E mais {len(upcoming) - 1} vacina(s) próximas."

    return {
        "title": title,
        "body": body,
        "icon": NOTIFICATION_ICON,
        "badge": NOTIFICATION_BADGE,
        "tag": REMINDER_TAG,
        "data": {"url": "/"},
    }


# -------------------------
# Delivery
# -------------------------
def _deliver(db: Session, sender: PushSender, subscriptions: list[PushSubscription], payload: dict) -> int:
    sent = 0
    for sub in subscriptions:
        user_id = sub.user_id
        try:
            sender.send(sub, payload)
            sent += 1
        except PushDeliveryError as exc:
            if exc.status_code in EXPIRED_STATUS_CODES:
                db.delete(sub)
                db.commit()
                logger.info("Removed expired push subscription for user %s", user_id)
            else:
                logger.error("Failed to send push to user %s: %s", user_id, exc)
        except Exception:
            # Transport errors and malformed keys must not stop the other subscriptions.
            logger.exception("Unexpected error sending push to user %s", user_id)
    return sent


def send_vaccine_notifications(
    db: Session,
    sender: PushSender | None = None,
    cfg: Settings = settings,
    today: date | None = None,
) -> int:
    if not cfg.push_configured:
        logger.info("VAPID keys not configured, skipping vaccine notifications")
        return 0

    sender = sender or WebPushSender.from_settings(cfg)
    sent = 0
    for user_id, reminders in collect_reminders(db, cfg, today).items():
        payload = build_notification_payload(reminders)
        if payload is None:
            continue

        subscriptions = list(
            db.execute(select(PushSubscription).where(PushSubscription.user_id == user_id)).scalars().all()
        )
        sent += _deliver(db, sender, subscriptions, payload)

    logger.info("Sent %d vaccine reminders", sent)
    return sent


def send_test_notification(db: Session, user_id: uuid.UUID, sender: PushSender) -> int:
    subscriptions = list(
        db.execute(select(PushSubscription).where(PushSubscription.user_id == user_id)).scalars().all()
    )
    payload = {
        "title": "💉 Teste de Notificação",
        "body": "As notificações de vacinas estão funcionando!",
        "icon": NOTIFICATION_ICON,
        "badge": NOTIFICATION_BADGE,
        "tag": "test",
        "data": {"url": "/"},
    }
    return _deliver(db, sender, subscriptions, payload)


def notify_caregiver_joined(
    db: Session,
    owner_id: uuid.UUID,
    child: Child,
    caregiver_name: str,
    new_user_id: uuid.UUID,
    sender: PushSender | None = None,
    cfg: Settings = settings,
) -> int:
    """Tell a child's owner that someone redeemed their invite."""
    if not cfg.push_configured:
        return 0

    sender = sender or WebPushSender.from_settings(cfg)
    subscriptions = list(
        db.execute(select(PushSubscription).where(PushSubscription.user_id == owner_id)).scalars().all()
    )
    payload = {
        "title": f"👶 Novo cuidador de {child.name}!",
        "body": f"{caregiver_name} aceitou seu convite e agora também cuida de {child.name}.",
        "icon": NOTIFICATION_ICON,
        "badge": NOTIFICATION_BADGE,
        "tag": f"caregiver-accepted-{child.child_id}-{new_user_id}",
        "data": {"url": "/settings"},
    }
    return _deliver(db, sender, subscriptions, payload)


# -------------------------
# Scheduler
# -------------------------
class VaccineNotificationScheduler:
    """
    Periodic check that fires the reminder run once per local day.

    The check runs every ``notification_check_interval_seconds`` and fires
    when the local hour equals ``notification_hour`` and the minute is inside
    the first ``notification_window_minutes`` of that hour.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        cfg: Settings = settings,
        sender: PushSender | None = None,
    ):
        self._session_factory = session_factory
        self._settings = cfg
        self._sender = sender
        self._tz = ZoneInfo(cfg.notification_timezone)
        self._task: asyncio.Task | None = None
        self._last_run_on: date | None = None

    def should_send(self, now: datetime) -> bool:
        local = now.astimezone(self._tz)
        if local.hour != self._settings.notification_hour:
            return False
        if local.minute >= self._settings.notification_window_minutes:
            return False
        return self._last_run_on != local.date()

    def run_once(self) -> int:
        db = self._session_factory()
        try:
            return send_vaccine_notifications(db, self._sender, self._settings)
        finally:
            db.close()

    async def tick(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        if not self.should_send(now):
            return False

        self._last_run_on = now.astimezone(self._tz).date()
        try:
            await asyncio.to_thread(self.run_once)
        except Exception:
            logger.exception("Vaccine notification run failed")
        return True

    async def _loop(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self._settings.notification_check_interval_seconds)

    def start(self) -> bool:
        if not self._settings.push_configured:
            logger.info("VAPID keys not configured, notification scheduler not started")
            return False

        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Vaccine notification scheduler started (daily at %02d:00 %s)",
            self._settings.notification_hour,
            self._settings.notification_timezone,
        )
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
