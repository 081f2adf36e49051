"""Financial statement and account report API (read-only)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import BaseModel, ValidationError

from bookkeeper.core.utils.decorators import require_role
from bookkeeper.core.utils.responses import service_error
from bookkeeper.core.utils.validation import jsonable_errors
from bookkeeper.domains.ledger.schemas.ledger_schemas import (
    AccountDetailFilter,
    BalanceSheetFilter,
    PeriodFilter,
    TrialBalanceFilter,
)
from bookkeeper.domains.ledger.services import report_service

reports_api_bp = Blueprint("ledger_reports_api", __name__)


def _parse(schema: type[BaseModel]):
    """Validate query args; returns (data, None) or (None, error_response)."""
    try:
        return schema.model_validate(request.args.to_dict()), None
    except ValidationError as exc:
        return None, (
            jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}),
            400,
        )


@reports_api_bp.get("/reports/balance-sheet")
@jwt_required()
@require_role("user")
def balance_sheet():
    data, error = _parse(BalanceSheetFilter)
    if error:
        return error
    return jsonify({"ok": True, "report": report_service.balance_sheet(data.as_of)})


@reports_api_bp.get("/reports/income-statement")
@jwt_required()
@require_role("user")
def income_statement():
    data, error = _parse(PeriodFilter)
    if error:
        return error
    return jsonify({"ok": True, "report": report_service.income_statement(data.start_date, data.end_date)})


@reports_api_bp.get("/reports/cash-flow")
@jwt_required()
@require_role("user")
def cash_flow():
    data, error = _parse(PeriodFilter)
    if error:
        return error
    return jsonify({"ok": True, "report": report_service.cash_flow_statement(data.start_date, data.end_date)})


@reports_api_bp.get("/reports/accounts/<int:account_id>")
@jwt_required()
@require_role("user")
def account_detail(account_id: int):
    data, error = _parse(AccountDetailFilter)
    if error:
        return error
    try:
        report = report_service.account_detail_report(
            account_id,
            start_date=data.start_date,
            end_date=data.end_date,
            include_opening=data.include_opening,
            include_sub_accounts=data.include_sub_accounts,
        )
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "report": report})


@reports_api_bp.get("/reports/account-summary")
@jwt_required()
@require_role("user")
def account_summary():
    data, error = _parse(TrialBalanceFilter)
    if error:
        return error
    summaries = report_service.account_summary_report(data.start_date, data.end_date, data.include_opening)
    return jsonify({"ok": True, "accounts": summaries})


@reports_api_bp.get("/reports/account-hierarchy")
@jwt_required()
@require_role("user")
def account_hierarchy():
    data, error = _parse(TrialBalanceFilter)
    if error:
        return error
    tree = report_service.hierarchical_account_report(data.start_date, data.end_date, data.include_opening)
    return jsonify({"ok": True, "accounts": tree})


@reports_api_bp.get("/reports/general-ledger/<int:account_id>")
@jwt_required()
@require_role("user")
def general_ledger(account_id: int):
    data, error = _parse(TrialBalanceFilter)
    if error:
        return error
    try:
        lines = report_service.general_ledger(account_id, data.start_date, data.end_date)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "lines": lines})


@reports_api_bp.get("/dashboard")
@jwt_required()
@require_role("user")
def dashboard():
    return jsonify({"ok": True, "stats": report_service.dashboard_stats()})
