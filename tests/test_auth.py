"""
Tests for registration, login and the bearer-token middleware.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from conftest import register
from core.config import settings
from core.security import Tokener, hash_login, verify_password
from models.items import Bank, File, Password, Text
from models.user import User


def test_register_returns_token(client: TestClient):
    response = client.post("/auth/register", json={"login": "alice", "password": "s3cret"})

    assert response.status_code == 200
    assert response.json()["token"]


def test_register_stores_only_derived_secrets(client: TestClient, db_session):
    register(client, "alice", "s3cret")

    user = db_session.scalars(select(User)).one()
    assert user.login_hash == hash_login("alice")
    assert len(user.salt) == 2 * settings.salt_length
    assert "s3cret" not in user.password_verifier
    assert verify_password("s3cret", user.salt, user.password_verifier)
    assert not verify_password("wrong", user.salt, user.password_verifier)


def test_register_duplicate(client: TestClient):
    register(client, "alice")

    response = client.post("/auth/register", json={"login": "alice", "password": "other"})

    assert response.status_code == 409
    assert response.json() == {"code": "AlreadyExists", "detail": "user alice already exists"}


@pytest.mark.parametrize(
    "body",
    [
        {"login": "", "password": "s3cret"},
        {"login": "alice", "password": "   "},
        {"login": " ", "password": ""},
    ],
)
def test_register_rejects_empty_credentials(client: TestClient, body):
    response = client.post("/auth/register", json=body)

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidArgument"


def test_malformed_body_is_invalid_argument(client: TestClient):
    response = client.post("/auth/register", json={"login": "alice"})

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidArgument"


def test_login(client: TestClient):
    register(client, "alice", "s3cret")

    response = client.post("/auth/login", json={"login": " alice ", "password": "s3cret"})

    assert response.status_code == 200
    headers = {"Authorization": f"Bearer {response.json()['token']}"}
    assert client.get("/passwords", headers=headers).status_code == 200


def test_login_wrong_password(client: TestClient):
    register(client, "alice", "s3cret")

    response = client.post("/auth/login", json={"login": "alice", "password": "hunter2"})

    assert response.status_code == 403
    assert response.json() == {"code": "PermissionDenied", "detail": "invalid password"}


def test_login_unknown_user(client: TestClient):
    response = client.post("/auth/login", json={"login": "nobody", "password": "s3cret"})

    assert response.status_code == 404
    assert response.json()["code"] == "Unknown"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

PROTECTED = [
    ("GET", "/files/chunk-size"),
    ("POST", "/passwords"),
    ("PUT", "/passwords/some-id"),
    ("GET", "/passwords/some-id"),
    ("GET", "/passwords"),
    ("DELETE", "/passwords/some-id"),
    ("POST", "/banks"),
    ("PUT", "/banks/some-id"),
    ("GET", "/banks/some-id"),
    ("GET", "/banks"),
    ("DELETE", "/banks/some-id"),
    ("POST", "/texts"),
    ("PUT", "/texts/some-id"),
    ("GET", "/texts/some-id"),
    ("GET", "/texts"),
    ("DELETE", "/texts/some-id"),
    ("POST", "/files"),
    ("PUT", "/files"),
    ("GET", "/files/some-id"),
    ("GET", "/files"),
    ("DELETE", "/files/some-id"),
]


@pytest.mark.parametrize("method, path", PROTECTED)
def test_every_route_requires_a_token(client: TestClient, db_session, method, path):
    response = client.request(method, path, json={"name": "sneaky"})

    assert response.status_code == 401
    assert response.json()["code"] == "Unauthenticated"
    for model in (User, Password, Bank, Text, File):
        assert db_session.scalar(select(func.count()).select_from(model)) == 0


@pytest.mark.parametrize("header", ["Basic abc", "bearer abc", "Bearer", "Token"])
def test_wrong_scheme_is_unauthenticated(client: TestClient, header):
    response = client.get("/passwords", headers={"Authorization": header})

    assert response.status_code == 401
    assert response.json()["code"] == "Unauthenticated"


def test_garbage_token_is_permission_denied(client: TestClient):
    response = client.get("/passwords", headers={"Authorization": "Bearer not.a.jwt"})

    assert response.status_code == 403
    assert response.json() == {"code": "PermissionDenied", "detail": "invalid auth token"}


def test_expired_token_is_permission_denied(client: TestClient):
    token = Tokener(settings.secret_key, timedelta(minutes=-5)).get_token("someone")

    response = client.get("/passwords", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json()["detail"] == "invalid auth token"


def test_foreign_secret_is_permission_denied(client: TestClient):
    token = Tokener("some-other-secret", timedelta(minutes=5)).get_token("someone")

    response = client.get("/passwords", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_user_id_header_cannot_be_spoofed(client: TestClient, db_session):
    alice = register(client, "alice")
    bob = register(client, "bob")
    client.post("/texts", json={"name": "bob's note"}, headers=bob)
    bob_id = db_session.scalars(select(User.id).where(User.login == "bob")).one()

    response = client.get("/texts", headers={**alice, "user_id": bob_id})

    assert response.status_code == 200
    assert response.json() == {"texts": []}


def test_health_is_public(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}
