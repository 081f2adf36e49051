"""Auth HTTP controllers (API only)."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, session
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required
from pydantic import ValidationError

from bookkeeper.core.auth.auth_service import (
    authenticate_user,
    issue_access_token,
    issue_tokens,
    register_user,
    revoke_token,
)
from bookkeeper.core.auth.csrf import generate_csrf_token
from bookkeeper.core.auth.schemas import LoginRequest, RegisterRequest
from bookkeeper.core.users.schemas import serialize_user
from bookkeeper.core.users.services import get_user
from bookkeeper.core.utils.decorators import csrf_protected
from bookkeeper.core.utils.validation import jsonable_errors
from bookkeeper.extensions import limiter

auth_bp = Blueprint("auth_api", __name__)


@auth_bp.post("/register")
@limiter.limit("5/minute")
def register():
    payload = request.get_json(silent=True) or {}
    try:
        data = RegisterRequest.model_validate(payload)
    except ValidationError as exc:
        return (
            jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}),
            400,
        )
    try:
        result = register_user(
            data,
            auto_issue_tokens=current_app.config.get("AUTO_LOGIN_ON_REGISTER", False),
        )
    except ValueError as exc:
        code = str(exc)
        if code == "email_already_exists":
            return jsonify({"ok": False, "error": code}), 409
        return jsonify({"ok": False, "error": "registration_failed"}), 400

    resp = {"ok": True, "user": serialize_user(result["user"]).model_dump(mode="json")}
    if "access_token" in result:
        resp.update(
            {
                "access_token": result["access_token"],
                "refresh_token": result.get("refresh_token"),
                "csrf_token": generate_csrf_token(),
            }
        )
    return jsonify(resp), 201


@auth_bp.post("/login")
@limiter.limit("10/minute")
def login():
    # Ensure login is stateless even if a stale Flask session cookie is present.
    session.clear()
    payload = request.get_json(silent=True) or {}
    try:
        data = LoginRequest.model_validate(payload)
    except ValidationError as exc:
        return (
            jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}),
            400,
        )
    user = authenticate_user(data.email, data.password)
    if not user:
        return jsonify({"ok": False, "error": "invalid_credentials"}), 401
    tokens = issue_tokens(user)
    return jsonify(
        {
            "ok": True,
            **tokens,
            "csrf_token": generate_csrf_token(),
            "user": serialize_user(user).model_dump(mode="json"),
        }
    )


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
@limiter.limit("30/minute")
def refresh():
    user = get_user(get_jwt_identity())
    if not user or not user.is_active:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    # Re-read the role so promotions take effect on the next access token.
    return jsonify({"ok": True, "access_token": issue_access_token(user)})


@auth_bp.post("/logout")
@jwt_required(refresh=True)
@csrf_protected
def logout():
    revoke_token(get_jwt())
    return jsonify({"ok": True})


@auth_bp.get("/me")
@jwt_required()
def me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "user": serialize_user(user).model_dump(mode="json")})
