"""Chart of accounts and account type API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from bookkeeper.core.utils.decorators import csrf_protected, require_role
from bookkeeper.core.utils.responses import service_error
from bookkeeper.core.utils.validation import jsonable_errors
from bookkeeper.domains.ledger.mappers import (
    map_account,
    map_account_tree,
    map_account_type,
    map_opening_balance,
)
from bookkeeper.domains.ledger.schemas.ledger_schemas import (
    AccountCodeQuery,
    AccountCreate,
    AccountTypeCreate,
    AccountTypeUpdate,
    AccountUpdate,
    OpeningBalanceSet,
)
from bookkeeper.domains.ledger.services import account_service
from bookkeeper.extensions import limiter

accounts_api_bp = Blueprint("ledger_accounts_api", __name__)


def _validation_failed(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400


def _include_inactive() -> bool:
    return request.args.get("include_inactive", "").lower() in ("1", "true", "yes")


# ==================== Account Types ====================


@accounts_api_bp.get("/account-types")
@jwt_required()
@require_role("user")
def list_account_types():
    types = account_service.list_account_types(include_inactive=_include_inactive())
    return jsonify({"ok": True, "account_types": [map_account_type(t) for t in types]})


@accounts_api_bp.post("/account-types")
@jwt_required()
@csrf_protected
@require_role("accountant")
@limiter.limit("60/minute")
def create_account_type():
    try:
        data = AccountTypeCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        account_type = account_service.create_account_type(
            name=data.name, normal_balance=data.normal_balance, description=data.description
        )
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account_type": map_account_type(account_type)}), 201


@accounts_api_bp.patch("/account-types/<int:type_id>")
@jwt_required()
@csrf_protected
@require_role("accountant")
def update_account_type(type_id: int):
    try:
        data = AccountTypeUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        account_type = account_service.update_account_type(type_id, data.model_dump(exclude_unset=True))
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account_type": map_account_type(account_type)})


@accounts_api_bp.delete("/account-types/<int:type_id>")
@jwt_required()
@csrf_protected
@require_role("accountant")
def delete_account_type(type_id: int):
    try:
        account_service.delete_account_type(type_id)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True})


# ==================== Accounts ====================


@accounts_api_bp.get("/accounts")
@jwt_required()
@require_role("user")
def list_accounts():
    accounts = account_service.get_chart_of_accounts(include_inactive=_include_inactive())
    return jsonify({"ok": True, "accounts": [map_account(a) for a in accounts]})


@accounts_api_bp.get("/accounts/tree")
@jwt_required()
@require_role("user")
def account_tree():
    roots = account_service.get_account_tree()
    return jsonify({"ok": True, "accounts": [map_account_tree(a) for a in roots]})


@accounts_api_bp.get("/accounts/next-code")
@jwt_required()
@require_role("accountant")
def next_account_code():
    try:
        data = AccountCodeQuery.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        code = account_service.generate_account_code(data.account_type_id, data.parent_id)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "code": code})


@accounts_api_bp.get("/accounts/<int:account_id>")
@jwt_required()
@require_role("user")
def get_account(account_id: int):
    try:
        account = account_service.get_account(account_id)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account": map_account(account)})


@accounts_api_bp.post("/accounts")
@jwt_required()
@csrf_protected
@require_role("accountant")
@limiter.limit("120/minute")
def create_account():
    """
    Create an account. ``code`` is optional; when omitted the next free code
    under the type prefix (or the parent's code) is assigned.

    Request Body:
    {"name": "Petty Cash", "account_type_id": 1, "parent_id": 3, "is_header": false}
    """
    try:
        data = AccountCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        account = account_service.create_account(
            name=data.name,
            account_type_id=data.account_type_id,
            code=data.code,
            parent_id=data.parent_id,
            description=data.description,
            is_header=data.is_header,
        )
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account": map_account(account)}), 201


@accounts_api_bp.patch("/accounts/<int:account_id>")
@jwt_required()
@csrf_protected
@require_role("accountant")
def update_account(account_id: int):
    try:
        data = AccountUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        account = account_service.update_account(account_id, data.model_dump(exclude_unset=True))
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account": map_account(account)})


@accounts_api_bp.get("/accounts/<int:account_id>/can-delete")
@jwt_required()
@require_role("user")
def can_delete_account(account_id: int):
    try:
        account = account_service.get_account(account_id)
    except ValueError as exc:
        return service_error(exc)
    blocker = account_service.deletion_blocker(account)
    return jsonify({"ok": True, "can_delete": blocker is None, "reason": blocker})


@accounts_api_bp.delete("/accounts/<int:account_id>")
@jwt_required()
@csrf_protected
@require_role("accountant")
def delete_account(account_id: int):
    try:
        account = account_service.delete_account(account_id)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "account": map_account(account)})


@accounts_api_bp.put("/accounts/<int:account_id>/opening-balance")
@jwt_required()
@csrf_protected
@require_role("accountant")
def set_opening_balance(account_id: int):
    try:
        data = OpeningBalanceSet.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_failed(exc)
    try:
        opening = account_service.set_opening_balance(account_id, data.balance, data.as_of)
    except ValueError as exc:
        return service_error(exc, overrides={"header_account": 400})
    return jsonify({"ok": True, "opening_balance": map_opening_balance(opening)})
