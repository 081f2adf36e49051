from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration

from bookkeeper.core.auth.events import AUTH_USER_REGISTERED
from bookkeeper.core.auth.models import RevokedToken
from bookkeeper.core.auth.password import password_problem
from bookkeeper.core.users.models import User
from bookkeeper.extensions import db
from bookkeeper.platform.outbox.models import OutboxMessage


def _register(client, email="new@example.com", password="secret123", name="New User"):
    return client.post("/auth/register", json={"email": email, "password": password, "name": name})


def _login(client, email, password="secret123"):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_register_creates_base_role_user_and_outbox_event(app, client):
    resp = _register(client, email="Owner@Example.com")
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["ok"] is True
    assert body["user"]["email"] == "owner@example.com"
    assert body["user"]["role"] == "user"
    assert "access_token" not in body

    user = User.query.filter_by(email="owner@example.com").one()
    assert user.password_hash != "secret123"
    event = OutboxMessage.query.filter_by(event_type=AUTH_USER_REGISTERED).one()
    assert event.payload["user_id"] == user.id


def test_register_rejects_duplicate_email(client):
    assert _register(client).status_code == 201
    resp = _register(client, email="NEW@example.com")
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "email_already_exists"


def test_register_rejects_weak_password(client):
    resp = _register(client, password="lettersonly")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_register_auto_login_returns_tokens(app, client):
    app.config["AUTO_LOGIN_ON_REGISTER"] = True
    resp = _register(client)
    body = resp.get_json()
    assert resp.status_code == 201
    assert body["access_token"]
    assert body["refresh_token"]
    assert body["csrf_token"]


def test_login_and_me(client, make_user):
    user = make_user("accountant", email="books@example.com")
    resp = _login(client, "books@example.com")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["id"] == user.id

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["role"] == "accountant"


def test_login_rejects_bad_password(client, make_user):
    make_user(email="books@example.com")
    resp = _login(client, "books@example.com", password="wrong-pass1")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_credentials"


def test_login_rejects_inactive_user(client, make_user):
    user = make_user(email="gone@example.com")
    user.is_active = False
    db.session.commit()
    assert _login(client, "gone@example.com").status_code == 401


def test_protected_route_without_token_is_unauthorized(client):
    resp = client.get("/api/ledger/accounts")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_refresh_picks_up_role_changes(client, make_user):
    user = make_user("user", email="promote@example.com")
    tokens = _login(client, "promote@example.com").get_json()
    user.role = "accountant"
    db.session.commit()

    resp = client.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert resp.status_code == 200
    new_access = resp.get_json()["access_token"]
    created = client.post(
        "/api/ledger/account-types",
        json={"name": "Contra Asset", "normal_balance": "credit"},
        headers={"Authorization": f"Bearer {new_access}"},
    )
    assert created.status_code == 201


def test_logout_revokes_refresh_token(client, make_user):
    user = make_user(email="bye@example.com")
    tokens = _login(client, "bye@example.com").get_json()
    headers = {"Authorization": f"Bearer {tokens['refresh_token']}"}

    assert client.post("/auth/logout", headers=headers).status_code == 200
    resp = client.post("/auth/refresh", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"

    revoked = RevokedToken.query.one()
    assert revoked.user_id == user.id
    assert revoked.token_type == "refresh"
    assert revoked.expires_at is not None

    # Logging out again with the same token is rejected before it reaches the blocklist.
    assert client.post("/auth/logout", headers=headers).status_code == 401
    assert RevokedToken.query.count() == 1


@pytest.mark.unit
@pytest.mark.parametrize(
    "password, problem",
    [
        ("secret123", None),
        ("abc12", "password must be at least 8 characters"),
        ("lettersonly", "password must include letters and numbers"),
        ("12345678", "password must include letters and numbers"),
    ],
)
def test_password_strength_rule(password, problem):
    assert password_problem(password) == problem
