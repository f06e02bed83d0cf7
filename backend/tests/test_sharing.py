import re
import uuid

import pytest
from sqlalchemy import select

from filhos.api.v1.routes.invites import CODE_ALPHABET, generate_code
from filhos.api.v1.routes.push import get_push_sender
from filhos.core.config import settings
from filhos.db.models.invite_code import InviteCode
from filhos.main import app
from filhos.services.avatar import AVATAR_PALETTE

API = "/api/v1"
SUBSCRIPTION = {"endpoint": "https://push.example/owner", "keys": {"p256dh": "p", "auth": "a"}}


class RecordingSender:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def send(self, subscription, payload):
        if self.error:
            raise self.error
        self.sent.append((subscription.endpoint, payload))


def register(client, email, first_name, last_name):
    client.post(
        f"{API}/auth/register",
        json={"email": email, "password": "secret123", "first_name": first_name, "last_name": last_name},
    )
    r = client.post(f"{API}/auth/login", json={"email": email, "password": "secret123"})
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def create_child(client, headers, name="Lia"):
    r = client.post(f"{API}/children", data={"name": name, "birth_date": "2024-01-10"}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def invite(client, headers, child_id, **body):
    r = client.post(f"{API}/children/{child_id}/invites", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def share(client, owner_headers, headers, child_id, role="editor"):
    code = invite(client, owner_headers, child_id, role=role)["code"]
    r = client.post(f"{API}/invites/redeem", json={"code": code}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture
def push_keys(monkeypatch):
    monkeypatch.setattr(settings, "vapid_public_key", "public-key")
    monkeypatch.setattr(settings, "vapid_private_key", "private-key")


# -------------------------
# Codes
# -------------------------
def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(50):
        code = generate_code()
        assert re.fullmatch(r"FLH-[A-Z2-9]{4}", code)
        assert all(ch in CODE_ALPHABET for ch in code[4:])
    assert not set("IO01") & set(CODE_ALPHABET)


def test_invite_defaults_and_expiry(client, auth_headers, session_factory):
    child = create_child(client, auth_headers)
    created = invite(client, auth_headers, child["id"])

    assert created["role"] == "editor"
    assert created["relationship"] == "caregiver"
    assert created["child_name"] == "Lia"
    assert created["used"] is False

    with session_factory() as db:
        stored = db.execute(select(InviteCode).where(InviteCode.code == created["code"])).scalar_one()
        hours = (stored.expires_at - stored.created_at).total_seconds() / 3600
    assert round(hours) == settings.invite_ttl_hours


def test_invite_rejects_unknown_role(client, auth_headers):
    child = create_child(client, auth_headers)
    r = client.post(f"{API}/children/{child['id']}/invites", json={"role": "owner"}, headers=auth_headers)
    assert r.status_code == 400


def test_invite_requires_access(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    r = client.post(f"{API}/children/{child['id']}/invites", json={}, headers=other_headers)
    assert r.status_code == 403


# -------------------------
# Redeem
# -------------------------
def test_redeem_links_caregiver(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    code = invite(client, auth_headers, child["id"], relationship="father")["code"]

    # Codes are matched case-insensitively and trimmed.
    r = client.post(f"{API}/invites/redeem", json={"code": f"  {code.lower()} "}, headers=other_headers)
    assert r.status_code == 200
    assert r.json()["child_id"] == child["id"]
    assert r.json()["child_name"] == "Lia"
    assert r.json()["role"] == "editor"

    children = client.get(f"{API}/children", headers=other_headers).json()
    assert [(c["id"], c["role"]) for c in children] == [(child["id"], "editor")]

    invites = client.get(f"{API}/children/{child['id']}/invites", headers=auth_headers).json()
    assert invites[0]["code"] == code
    assert invites[0]["used"] is True
    assert invites[0]["used_at"] is not None


def test_redeem_errors(client, auth_headers, other_headers, monkeypatch):
    third_headers = register(client, "carla@example.com", "Carla", "Dias")
    child = create_child(client, auth_headers)

    def redeem(code, headers=other_headers):
        return client.post(f"{API}/invites/redeem", json={"code": code}, headers=headers)

    assert redeem("   ").status_code == 400
    # "0" never appears in generated codes.
    assert redeem("FLH-0000").status_code == 404

    own = invite(client, auth_headers, child["id"])["code"]
    assert redeem(own, auth_headers).status_code == 400

    used = invite(client, auth_headers, child["id"])["code"]
    assert redeem(used).status_code == 200
    assert redeem(used, third_headers).status_code == 409

    second = invite(client, auth_headers, child["id"])["code"]
    r = redeem(second)
    assert r.status_code == 409
    assert r.json()["detail"] == "You already care for this child"

    monkeypatch.setattr(settings, "invite_ttl_hours", -1)
    expired = invite(client, auth_headers, child["id"])["code"]
    r = redeem(expired, third_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Invite code has expired"


def test_redeem_notifies_the_inviter(client, auth_headers, other_headers, push_keys):
    sender = RecordingSender()
    app.dependency_overrides[get_push_sender] = lambda: sender
    child = create_child(client, auth_headers)
    client.post(f"{API}/push/subscribe", json=SUBSCRIPTION, headers=auth_headers)

    share(client, auth_headers, other_headers, child["id"])

    assert len(sender.sent) == 1
    endpoint, payload = sender.sent[0]
    assert endpoint == SUBSCRIPTION["endpoint"]
    assert payload["title"] == "👶 Novo cuidador de Lia!"
    assert payload["body"] == "Bruno Lima aceitou seu convite e agora também cuida de Lia."
    assert payload["tag"].startswith(f"caregiver-accepted-{child['id']}-")
    assert payload["data"] == {"url": "/settings"}


def test_redeem_succeeds_when_notification_fails(client, auth_headers, other_headers, push_keys):
    app.dependency_overrides[get_push_sender] = lambda: RecordingSender(error=RuntimeError("push down"))
    child = create_child(client, auth_headers)
    client.post(f"{API}/push/subscribe", json=SUBSCRIPTION, headers=auth_headers)

    share(client, auth_headers, other_headers, child["id"])
    assert client.get(f"{API}/children/{child['id']}", headers=other_headers).status_code == 200


def test_redeem_without_push_keys_sends_nothing(client, auth_headers, other_headers, monkeypatch):
    monkeypatch.setattr(settings, "vapid_private_key", "")
    sender = RecordingSender()
    app.dependency_overrides[get_push_sender] = lambda: sender
    child = create_child(client, auth_headers)
    client.post(f"{API}/push/subscribe", json=SUBSCRIPTION, headers=auth_headers)

    share(client, auth_headers, other_headers, child["id"])
    assert sender.sent == []


# -------------------------
# Roles
# -------------------------
def test_viewer_can_read_but_not_write(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    share(client, auth_headers, other_headers, child["id"], role="viewer")
    cid = child["id"]

    r = client.get(f"{API}/children/{cid}", headers=other_headers)
    assert r.status_code == 200
    assert r.json()["role"] == "viewer"
    assert client.get(f"{API}/children/{cid}/growth", headers=other_headers).status_code == 200
    assert client.get(f"{API}/children/{cid}/vaccine-records", headers=other_headers).status_code == 200

    r = client.put(
        f"{API}/children/{cid}",
        data={"name": "Outra", "birth_date": "2024-01-10"},
        headers=other_headers,
    )
    assert r.status_code == 403
    r = client.post(
        f"{API}/children/{cid}/growth",
        json={"measured_on": "2024-06-01", "weight": 7.0},
        headers=other_headers,
    )
    assert r.status_code == 403

    bcg = next(v["id"] for v in client.get(f"{API}/vaccines/catalog").json() if v["name"] == "BCG")
    r = client.post(
        f"{API}/children/{cid}/vaccine-records",
        json={"sus_vaccine_id": bcg, "dose": "Dose única", "application_date": "2024-01-10"},
        headers=auth_headers,
    )
    record_id = r.json()["id"]
    assert client.delete(f"{API}/vaccine-records/{record_id}", headers=other_headers).status_code == 403
    assert client.post(f"{API}/children/{cid}/invites", json={}, headers=other_headers).status_code == 403
    assert client.delete(f"{API}/children/{cid}", headers=other_headers).status_code == 403


def test_editor_can_write_but_not_delete_child(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    share(client, auth_headers, other_headers, child["id"])
    cid = child["id"]

    r = client.put(
        f"{API}/children/{cid}",
        data={"name": "Lia Maria", "birth_date": "2024-01-10"},
        headers=other_headers,
    )
    assert r.status_code == 200
    r = client.post(
        f"{API}/children/{cid}/growth",
        json={"measured_on": "2024-06-01", "weight": 7.0},
        headers=other_headers,
    )
    assert r.status_code == 201
    assert client.post(f"{API}/children/{cid}/invites", json={"role": "viewer"}, headers=other_headers).status_code == 201

    r = client.delete(f"{API}/children/{cid}", headers=other_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Only the owner can delete this child"


# -------------------------
# Caregivers
# -------------------------
def test_list_caregivers(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    share(client, auth_headers, other_headers, child["id"], role="viewer")

    caregivers = client.get(f"{API}/children/{child['id']}/caregivers", headers=other_headers).json()
    assert [(c["email"], c["role"], c["initials"]) for c in caregivers] == [
        ("ana@example.com", "owner", "AS"),
        ("bruno@example.com", "viewer", "BL"),
    ]
    assert all(c["avatar_color"] in AVATAR_PALETTE for c in caregivers)


def test_leave_child(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    share(client, auth_headers, other_headers, child["id"])

    assert client.post(f"{API}/children/{child['id']}/leave", headers=auth_headers).status_code == 403

    assert client.post(f"{API}/children/{child['id']}/leave", headers=other_headers).status_code == 200
    assert client.get(f"{API}/children/{child['id']}", headers=other_headers).status_code == 403
    assert client.get(f"{API}/children/{child['id']}", headers=auth_headers).status_code == 200


def test_remove_caregiver(client, auth_headers, other_headers):
    child = create_child(client, auth_headers)
    share(client, auth_headers, other_headers, child["id"])
    cid = child["id"]

    caregivers = client.get(f"{API}/children/{cid}/caregivers", headers=auth_headers).json()
    owner_link = next(c["id"] for c in caregivers if c["role"] == "owner")
    editor_link = next(c["id"] for c in caregivers if c["role"] == "editor")

    assert client.delete(f"{API}/children/{cid}/caregivers/{owner_link}", headers=other_headers).status_code == 403
    assert client.delete(f"{API}/children/{cid}/caregivers/{owner_link}", headers=auth_headers).status_code == 400
    assert client.delete(f"{API}/children/{cid}/caregivers/{uuid.uuid4()}", headers=auth_headers).status_code == 404
    assert client.delete(f"{API}/children/{cid}/caregivers/not-a-uuid", headers=auth_headers).status_code == 400

    assert client.delete(f"{API}/children/{cid}/caregivers/{editor_link}", headers=auth_headers).status_code == 204
    assert client.get(f"{API}/children/{cid}", headers=other_headers).status_code == 403


def test_deleting_child_removes_its_invites(client, auth_headers, session_factory):
    child = create_child(client, auth_headers)
    invite(client, auth_headers, child["id"])

    assert client.delete(f"{API}/children/{child['id']}", headers=auth_headers).status_code == 204
    with session_factory() as db:
        assert db.execute(select(InviteCode)).scalars().all() == []


def test_delete_account_hands_ownership_to_oldest_caregiver(client, auth_headers, other_headers):
    third_headers = register(client, "carla@example.com", "Carla", "Dias")
    child = create_child(client, auth_headers, name="Théo")
    share(client, auth_headers, other_headers, child["id"])
    share(client, auth_headers, third_headers, child["id"], role="viewer")

    assert client.delete(f"{API}/auth/account", headers=auth_headers).status_code == 200

    caregivers = client.get(f"{API}/children/{child['id']}/caregivers", headers=third_headers).json()
    assert [(c["email"], c["role"]) for c in caregivers] == [
        ("bruno@example.com", "owner"),
        ("carla@example.com", "viewer"),
    ]
    assert client.delete(f"{API}/children/{child['id']}", headers=other_headers).status_code == 204

