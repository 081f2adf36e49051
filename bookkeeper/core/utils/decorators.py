"""Reusable decorators for controllers."""

from __future__ import annotations

from functools import wraps
from typing import Callable, TypeVar

from flask import jsonify
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from bookkeeper.core.auth.csrf import request_passes_csrf
from bookkeeper.core.users.models import ROLE_HIERARCHY

F = TypeVar("F", bound=Callable)


def role_rank(roles) -> int:
    return max((ROLE_HIERARCHY.get(role, 0) for role in roles or []), default=0)


def require_role(required_role: str):
    """Enforce that the JWT role claim ranks at least ``required_role``."""
    required_rank = ROLE_HIERARCHY[required_role]

    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args, **kwargs):  # type: ignore[misc]
            try:
                verify_jwt_in_request()
            except (JWTExtendedException, PyJWTError):
                return jsonify({"ok": False, "error": "unauthorized"}), 401
            claims = get_jwt() or {}
            if role_rank(claims.get("roles")) < required_rank:
                return jsonify({"ok": False, "error": "forbidden"}), 403
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def csrf_protected(fn: F) -> F:
    """Validate the X-CSRF-Token header for cookie/session authenticated calls."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[misc]
        if not request_passes_csrf():
            return jsonify({"ok": False, "error": "csrf_failed"}), 403
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
