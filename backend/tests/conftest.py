import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filhos.api.v1.routes.deps import get_db
from filhos.core.security import TOKENS
from filhos.db.init_db import init_db
from filhos.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    TOKENS.clear()


def _register_and_login(client, email, first_name="Ana", last_name="Souza"):
    client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "secret123", "first_name": first_name, "last_name": last_name},
    )
    r = client.post("/api/v1/auth/login", json={"email": email, "password": "secret123"})
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return _register_and_login(client, "ana@example.com")


@pytest.fixture
def other_headers(client):
    return _register_and_login(client, "bruno@example.com", "Bruno", "Lima")
