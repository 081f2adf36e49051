"""Trial balance API (read-only)."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from bookkeeper.core.utils.decorators import require_role
from bookkeeper.core.utils.validation import jsonable_errors
from bookkeeper.domains.ledger.schemas.ledger_schemas import TrialBalanceFilter
from bookkeeper.domains.ledger.services import trial_balance_service

trial_balance_api_bp = Blueprint("ledger_trial_balance_api", __name__)


@trial_balance_api_bp.get("/trial-balance")
@jwt_required()
@require_role("user")
def trial_balance():
    try:
        data = TrialBalanceFilter.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    result = trial_balance_service.trial_balance_view(
        start_date=data.start_date, end_date=data.end_date, include_opening=data.include_opening
    )
    return jsonify({"ok": True, **result})


@trial_balance_api_bp.get("/trial-balance/export")
@jwt_required()
@require_role("user")
def trial_balance_export():
    try:
        data = TrialBalanceFilter.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    body = trial_balance_service.trial_balance_csv(
        start_date=data.start_date, end_date=data.end_date, include_opening=data.include_opening
    )
    suffix = data.end_date.isoformat() if data.end_date else "all"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=trial-balance-{suffix}.csv"},
    )
