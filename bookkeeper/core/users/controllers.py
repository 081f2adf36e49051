"""User profile and admin user-management API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from bookkeeper.core.users.schemas import ProfileUpdateRequest, RoleChangeRequest, serialize_user
from bookkeeper.core.users.services import change_role, get_user, list_users, update_profile
from bookkeeper.core.utils.decorators import csrf_protected, require_role
from bookkeeper.core.utils.validation import jsonable_errors

user_api_bp = Blueprint("user_api", __name__)


@user_api_bp.get("/me")
@jwt_required()
@require_role("user")
def api_me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "user": serialize_user(user).model_dump(mode="json")})


@user_api_bp.patch("/me")
@jwt_required()
@csrf_protected
@require_role("user")
def api_update_me():
    user = get_user(get_jwt_identity())
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    try:
        data = ProfileUpdateRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    user = update_profile(user, data)
    return jsonify({"ok": True, "user": serialize_user(user).model_dump(mode="json")})


@user_api_bp.get("")
@jwt_required()
@require_role("admin")
def api_list_users():
    users = [serialize_user(u).model_dump(mode="json") for u in list_users()]
    return jsonify({"ok": True, "users": users})


@user_api_bp.patch("/<int:user_id>/role")
@jwt_required()
@csrf_protected
@require_role("admin")
def api_change_role(user_id: int):
    try:
        data = RoleChangeRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    try:
        user = change_role(user_id, data.role, changed_by=int(get_jwt_identity()))
    except ValueError as exc:
        code = str(exc)
        status = 404 if code == "not_found" else 400
        return jsonify({"ok": False, "error": code}), status
    return jsonify({"ok": True, "user": serialize_user(user).model_dump(mode="json")})
