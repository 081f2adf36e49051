"""CSRF tokens for clients that authenticate through the Flask session cookie."""

from __future__ import annotations

import secrets

from flask import current_app, request, session

CSRF_TOKEN_SESSION_KEY = "_csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def generate_csrf_token() -> str:
    token = session.get(CSRF_TOKEN_SESSION_KEY)
    if not token:
        token = secrets.token_hex(32)
        session[CSRF_TOKEN_SESSION_KEY] = token
    return token


def validate_csrf_token(token: str) -> bool:
    expected = session.get(CSRF_TOKEN_SESSION_KEY)
    if not token or not expected:
        return False
    return secrets.compare_digest(token, expected)


def csrf_exempt_request() -> bool:
    """True when the current request cannot be forged by a third-party page.

    Bearer tokens are attached explicitly by the client, never ambiently by
    the browser, so only cookie-authenticated calls need the header.
    """
    if not current_app.config.get("WTF_CSRF_ENABLED", True):
        return True
    return request.headers.get("Authorization", "").startswith("Bearer ")


def request_passes_csrf() -> bool:
    if csrf_exempt_request():
        return True
    return validate_csrf_token(request.headers.get(CSRF_HEADER, ""))
