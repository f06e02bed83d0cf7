import asyncio
import json
from datetime import UTC, date, datetime
from types import SimpleNamespace

import pytest
import requests
from pywebpush import WebPushException
from sqlalchemy import select

from filhos.core.config import Settings
from filhos.core.security import hash_password
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.push_subscription import PushSubscription
from filhos.db.models.user import User
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.services import vaccine_notifications
from filhos.services.vaccine_catalog import get_catalog
from filhos.services.vaccine_notifications import (
    PushDeliveryError,
    VaccineNotificationScheduler,
    VaccineReminder,
    WebPushSender,
    build_notification_payload,
    collect_reminders,
    send_test_notification,
    send_vaccine_notifications,
)
from filhos.services.vaccine_schedule import ReminderType

TODAY = date(2024, 7, 15)
PUSH_SETTINGS = Settings(vapid_public_key="pub", vapid_private_key="priv")


class FakeSender:
    def __init__(self, failures=None):
        self.failures = failures or {}
        self.sent = []

    def send(self, subscription, payload):
        status = self.failures.get(subscription.endpoint)
        if status is not None:
            raise PushDeliveryError("push failed", status_code=status)
        self.sent.append((subscription.endpoint, payload))


def _user(db, email="ana@example.com"):
    user = User(email=email, password=hash_password("x"), first_name="Ana", last_name="Souza")
    db.add(user)
    db.flush()
    return user


def _child(db, user, name="Lia", birth_date=date(2024, 7, 1)):
    child = Child(name=name, birth_date=birth_date)
    db.add(child)
    db.flush()
    db.add(Caregiver(child_id=child.child_id, user_id=user.user_id, relationship="mother", role="owner"))
    return child


def _subscribe(db, user, endpoint):
    db.add(PushSubscription(user_id=user.user_id, endpoint=endpoint, p256dh="key", auth="secret"))


def _reminder(child, vaccine, dose, kind):
    return VaccineReminder(child_name=child, vaccine_name=vaccine, dose=dose, type=kind)


class TestPayload:
    def test_empty(self):
        assert build_notification_payload([]) is None

    def test_overdue_takes_priority(self):
        payload = build_notification_payload(
            [
                _reminder("Lia", "COVID-19", "1ª dose", ReminderType.UPCOMING),
                _reminder("Lia", "Pentavalente", "1ª dose", ReminderType.DUE),
                _reminder("Lia", "BCG", "Dose única", ReminderType.OVERDUE),
                _reminder("Théo", "Hepatite B", "Dose ao nascer", ReminderType.OVERDUE),
            ]
        )
        assert payload["title"] == "⚠️ Vacina em atraso!"
        assert payload["body"] == "Lia: BCG (Dose única) está em atraso. E mais 1 vacina(s) pendente(s)."
        assert payload["tag"] == "vaccine-reminder"
        assert payload["data"] == {"url": "/"}

    def test_due(self):
        payload = build_notification_payload(
            [
                _reminder("Lia", "COVID-19", "1ª dose", ReminderType.UPCOMING),
                _reminder("Lia", "Pentavalente", "1ª dose", ReminderType.DUE),
            ]
        )
        assert payload["title"] == "💉 Vacina na hora certa!"
        assert payload["body"] == "Lia: é hora da Pentavalente (1ª dose)."

    def test_upcoming(self):
        payload = build_notification_payload(
            [
                _reminder("Lia", "COVID-19", "1ª dose", ReminderType.UPCOMING),
                _reminder("Lia", "Influenza", "Dose anual", ReminderType.UPCOMING),
            ]
        )
        assert payload["title"] == "💉 Lembrete de Vacinas"
        assert payload["body"] == "Lia: COVID-19 (1ª dose) está chegando! E mais 1 vacina(s) próximas."


class TestCollectReminders:
    def test_newborn_without_records(self, db):
        user = _user(db)
        _child(db, user)
        _subscribe(db, user, "https://push.example/a")
        db.commit()

        reminders = collect_reminders(db, PUSH_SETTINGS, TODAY)[user.user_id]
        assert [(r.vaccine_name, r.dose, r.type) for r in reminders] == [
            ("BCG", "Dose única", ReminderType.DUE),
            ("Hepatite B", "Dose ao nascer", ReminderType.DUE),
        ]

    def test_recorded_doses_are_skipped(self, db):
        user = _user(db)
        child = _child(db, user)
        _subscribe(db, user, "https://push.example/a")
        bcg = next(v for v in get_catalog(db) if v.name == "BCG")
        db.add(
            VaccinationRecord(
                child_id=child.child_id,
                sus_vaccine_id=bcg.id,
                dose="Dose única",
                application_date=date(2024, 7, 1),
            )
        )
        db.commit()

        reminders = collect_reminders(db, PUSH_SETTINGS, TODAY)[user.user_id]
        assert [r.vaccine_name for r in reminders] == ["Hepatite B"]

    def test_shared_child_reaches_every_subscribed_caregiver(self, db):
        owner = _user(db)
        viewer = _user(db, "bruno@example.com")
        child = _child(db, owner)
        db.add(Caregiver(child_id=child.child_id, user_id=viewer.user_id, relationship="father", role="viewer"))
        _subscribe(db, owner, "https://push.example/a")
        _subscribe(db, viewer, "https://push.example/b")
        db.commit()

        reminders = collect_reminders(db, PUSH_SETTINGS, TODAY)
        assert set(reminders) == {owner.user_id, viewer.user_id}
        assert {r.child_name for r in reminders[viewer.user_id]} == {"Lia"}

    def test_users_without_subscription_are_ignored(self, db):
        user = _user(db)
        _child(db, user)
        db.commit()
        assert collect_reminders(db, PUSH_SETTINGS, TODAY) == {}


class TestSend:
    def test_skips_when_keys_missing(self, db):
        user = _user(db)
        _child(db, user)
        _subscribe(db, user, "https://push.example/a")
        db.commit()

        sender = FakeSender()
        assert send_vaccine_notifications(db, sender, Settings(), TODAY) == 0
        assert sender.sent == []

    def test_one_message_per_subscription(self, db):
        user = _user(db)
        _child(db, user)
        _child(db, user, name="Théo")
        _subscribe(db, user, "https://push.example/a")
        _subscribe(db, user, "https://push.example/b")
        db.commit()

        sender = FakeSender()
        assert send_vaccine_notifications(db, sender, PUSH_SETTINGS, TODAY) == 2
        assert {endpoint for endpoint, _ in sender.sent} == {"https://push.example/a", "https://push.example/b"}
        payload = sender.sent[0][1]
        assert payload["body"] == "Lia: é hora da BCG (Dose única). E mais 3 vacina(s) para este mês."

    @pytest.mark.parametrize("status", [404, 410])
    def test_expired_subscriptions_are_removed(self, db, status):
        user = _user(db)
        _child(db, user)
        _subscribe(db, user, "https://push.example/gone")
        _subscribe(db, user, "https://push.example/ok")
        db.commit()

        sender = FakeSender({"https://push.example/gone": status})
        assert send_vaccine_notifications(db, sender, PUSH_SETTINGS, TODAY) == 1

        endpoints = db.execute(select(PushSubscription.endpoint)).scalars().all()
        assert endpoints == ["https://push.example/ok"]

    def test_other_failures_keep_subscription(self, db):
        user = _user(db)
        _child(db, user)
        _subscribe(db, user, "https://push.example/flaky")
        _subscribe(db, user, "https://push.example/ok")
        db.commit()

        sender = FakeSender({"https://push.example/flaky": 500})
        assert send_vaccine_notifications(db, sender, PUSH_SETTINGS, TODAY) == 1
        assert len(db.execute(select(PushSubscription)).scalars().all()) == 2

    @pytest.mark.parametrize(
        "error",
        [requests.exceptions.ConnectionError("connection reset"), ValueError("Could not deserialize key data")],
    )
    def test_transport_errors_do_not_stop_the_run(self, db, monkeypatch, error):
        user = _user(db)
        _child(db, user)
        _subscribe(db, user, "https://push.example/bad")
        _subscribe(db, user, "https://push.example/ok")
        db.commit()

        delivered = []

        def fake_webpush(subscription_info, **kwargs):
            if subscription_info["endpoint"] == "https://push.example/bad":
                raise error
            delivered.append(subscription_info["endpoint"])

        monkeypatch.setattr(vaccine_notifications, "webpush", fake_webpush)

        assert send_vaccine_notifications(db, None, PUSH_SETTINGS, TODAY) == 1
        assert delivered == ["https://push.example/ok"]
        assert len(db.execute(select(PushSubscription)).scalars().all()) == 2

    def test_test_notification(self, db):
        user = _user(db)
        _subscribe(db, user, "https://push.example/a")
        db.commit()

        sender = FakeSender()
        assert send_test_notification(db, user.user_id, sender) == 1
        assert sender.sent[0][1]["title"] == "💉 Teste de Notificação"
        assert sender.sent[0][1]["tag"] == "test"


class TestWebPushSender:
    def test_sends_json_with_vapid_claims(self, monkeypatch):
        calls = []
        monkeypatch.setattr(vaccine_notifications, "webpush", lambda **kwargs: calls.append(kwargs))

        sub = PushSubscription(endpoint="https://push.example/a", p256dh="key", auth="secret")
        WebPushSender("priv", "mailto:ops@example.com").send(sub, {"title": "Oi"})

        assert calls[0]["subscription_info"] == {
            "endpoint": "https://push.example/a",
            "keys": {"p256dh": "key", "auth": "secret"},
        }
        assert json.loads(calls[0]["data"]) == {"title": "Oi"}
        assert calls[0]["vapid_private_key"] == "priv"
        assert calls[0]["vapid_claims"] == {"sub": "mailto:ops@example.com"}

    def test_wraps_push_errors(self, monkeypatch):
        def fail(**kwargs):
            raise WebPushException("Push failed: 410 Gone", response=SimpleNamespace(status_code=410))

        monkeypatch.setattr(vaccine_notifications, "webpush", fail)
        sub = PushSubscription(endpoint="https://push.example/a", p256dh="key", auth="secret")

        with pytest.raises(PushDeliveryError) as excinfo:
            WebPushSender("priv", "mailto:ops@example.com").send(sub, {})
        assert excinfo.value.status_code == 410


class TestScheduler:
    @pytest.mark.parametrize(
        "now, expected",
        [
            (datetime(2024, 7, 15, 12, 0, tzinfo=UTC), True),
            (datetime(2024, 7, 15, 12, 4, tzinfo=UTC), True),
            (datetime(2024, 7, 15, 12, 5, tzinfo=UTC), False),
            (datetime(2024, 7, 15, 9, 0, tzinfo=UTC), False),
            (datetime(2024, 7, 15, 13, 0, tzinfo=UTC), False),
        ],
    )
    def test_window(self, session_factory, now, expected):
        scheduler = VaccineNotificationScheduler(session_factory, PUSH_SETTINGS, FakeSender())
        assert scheduler.should_send(now) is expected

    def test_runs_once_per_day(self, session_factory):
        with session_factory() as db:
            user = _user(db)
            _child(db, user, birth_date=date.today())
            _subscribe(db, user, "https://push.example/a")
            db.commit()

        sender = FakeSender()
        scheduler = VaccineNotificationScheduler(session_factory, PUSH_SETTINGS, sender)

        first = datetime(2024, 7, 15, 12, 0, tzinfo=UTC)
        assert asyncio.run(scheduler.tick(first)) is True
        assert len(sender.sent) == 1

        assert asyncio.run(scheduler.tick(datetime(2024, 7, 15, 12, 3, tzinfo=UTC))) is False
        assert scheduler.should_send(datetime(2024, 7, 16, 12, 1, tzinfo=UTC)) is True

    def test_failed_run_is_logged(self, session_factory, monkeypatch, caplog):
        scheduler = VaccineNotificationScheduler(session_factory, PUSH_SETTINGS, FakeSender())

        def boom():
            raise RuntimeError("database down")

        monkeypatch.setattr(scheduler, "run_once", boom)
        assert asyncio.run(scheduler.tick(datetime(2024, 7, 15, 12, 0, tzinfo=UTC))) is True
        assert "Vaccine notification run failed" in caplog.text

    def test_not_started_without_keys(self, session_factory):
        scheduler = VaccineNotificationScheduler(session_factory, Settings(), FakeSender())
        assert scheduler.start() is False
