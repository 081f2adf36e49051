from __future__ import annotations

import pytest
from flask import Blueprint
from flask_jwt_extended import create_access_token, jwt_required

pytestmark = pytest.mark.integration

from bookkeeper.core.auth.events import AUTH_USER_ROLE_CHANGED
from bookkeeper.core.utils.decorators import require_role, role_rank
from bookkeeper.platform.outbox.models import OutboxMessage


def _bearer(user, role=None) -> dict[str, str]:
    token = create_access_token(identity=str(user.id), additional_claims={"roles": [role or user.role]})
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.unit
def test_role_rank_uses_highest_role():
    assert role_rank(["user", "admin"]) == 3
    assert role_rank(["unknown"]) == 0
    assert role_rank(None) == 0


def test_require_role_honours_hierarchy(app, client):
    bp = Blueprint("role_gate", __name__)

    @bp.get("/gated")
    @jwt_required()
    @require_role("accountant")
    def gated():
        return {"ok": True}

    app.register_blueprint(bp)
    for role, expected in (("user", 403), ("accountant", 200), ("admin", 200)):
        token = create_access_token(identity="1", additional_claims={"roles": [role]})
        resp = client.get("/gated", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == expected, role


def test_profile_update(client, make_user):
    user = make_user()
    resp = client.patch("/api/users/me", json={"name": "Renamed"}, headers=_bearer(user))
    assert resp.status_code == 200
    assert resp.get_json()["user"]["name"] == "Renamed"


def test_list_users_requires_admin(client, make_user):
    accountant = make_user("accountant")
    admin = make_user("admin")

    assert client.get("/api/users", headers=_bearer(accountant)).status_code == 403
    resp = client.get("/api/users", headers=_bearer(admin))
    assert resp.status_code == 200
    emails = {u["email"] for u in resp.get_json()["users"]}
    assert {accountant.email, admin.email} <= emails


def test_admin_changes_role_and_event_is_staged(client, make_user):
    admin = make_user("admin")
    target = make_user("user")

    resp = client.patch(f"/api/users/{target.id}/role", json={"role": "accountant"}, headers=_bearer(admin))
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "accountant"

    event = OutboxMessage.query.filter_by(event_type=AUTH_USER_ROLE_CHANGED).one()
    assert event.payload == {
        "user_id": target.id,
        "previous_role": "user",
        "role": "accountant",
        "changed_by": admin.id,
    }


def test_change_role_validation(client, make_user):
    admin = make_user("admin")
    target = make_user("user")

    bad = client.patch(f"/api/users/{target.id}/role", json={"role": "owner"}, headers=_bearer(admin))
    assert bad.status_code == 400
    missing = client.patch("/api/users/999999/role", json={"role": "admin"}, headers=_bearer(admin))
    assert missing.status_code == 404
    forbidden = client.patch(f"/api/users/{target.id}/role", json={"role": "admin"}, headers=_bearer(target))
    assert forbidden.status_code == 403
