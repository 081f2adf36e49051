from __future__ import annotations

import pytest

from flask import session

from bookkeeper.config import REMEDIATION_STEPS, find_configuration_problems
from bookkeeper.core.auth.csrf import CSRF_HEADER, generate_csrf_token, request_passes_csrf


@pytest.mark.unit
def test_missing_settings_are_reported():
    problems = find_configuration_problems({"DATABASE_URL": "", "SECRET_KEY": None})
    assert "DATABASE_URL is not configured" in problems
    assert "SECRET_KEY is not configured" in problems


@pytest.mark.unit
def test_placeholder_values_are_reported():
    problems = find_configuration_problems(
        {"DATABASE_URL": "postgresql://your_user@localhost/db", "SECRET_KEY": "change-me"}
    )
    assert problems == [
        "DATABASE_URL still holds a placeholder value",
        "SECRET_KEY still holds a placeholder value",
    ]


@pytest.mark.unit
def test_production_requires_secure_cookies():
    config = {
        "DATABASE_URL": "postgresql://ledger@db/ledger",
        "SECRET_KEY": "a-real-secret-value",
        "ENV": "production",
        "SESSION_COOKIE_SECURE": False,
    }
    assert any("SESSION_COOKIE_SECURE" in p for p in find_configuration_problems(config))
    config["SESSION_COOKIE_SECURE"] = True
    assert find_configuration_problems(config) == []


@pytest.mark.integration
def test_testing_app_is_configured(app, client):
    assert app.config["CONFIGURATION_PROBLEMS"] == []
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "configured": True}


@pytest.mark.integration
def test_configuration_problems_block_api_but_not_health(app, client, auth_headers):
    app.config["CONFIGURATION_PROBLEMS"] = ["SECRET_KEY is not configured"]

    resp = client.get("/api/ledger/accounts", headers=auth_headers("user"))
    assert resp.status_code == 503
    body = resp.get_json()
    assert body["error"] == "configuration_error"
    assert body["problems"] == ["SECRET_KEY is not configured"]
    assert body["remediation"] == REMEDIATION_STEPS

    health = client.get("/health")
    assert health.status_code == 200
    assert health.get_json()["configured"] is False


@pytest.mark.integration
def test_unknown_route_returns_json_error(client):
    resp = client.get("/api/ledger/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False


def test_csrf_required_for_cookie_requests_only(app):
    app.config["WTF_CSRF_ENABLED"] = True
    try:
        with app.test_request_context("/api/ledger/accounts", method="POST"):
            token = generate_csrf_token()
            assert session["_csrf_token"] == token
            assert request_passes_csrf() is False

        with app.test_request_context("/api/ledger/accounts", method="POST", headers={CSRF_HEADER: "forged"}):
            generate_csrf_token()
            assert request_passes_csrf() is False

        with app.test_request_context(
            "/api/ledger/accounts", method="POST", headers={"Authorization": "Bearer abc"}
        ):
            assert request_passes_csrf() is True
    finally:
        app.config["WTF_CSRF_ENABLED"] = False
