"""Journal entry API: post, list, inspect and reverse entries."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from bookkeeper.core.utils.decorators import csrf_protected, require_role
from bookkeeper.core.utils.responses import service_error
from bookkeeper.core.utils.validation import jsonable_errors
from bookkeeper.domains.ledger.mappers import map_journal_entry, map_journal_entry_request
from bookkeeper.domains.ledger.schemas.ledger_schemas import JournalEntryCreateRequest, JournalEntryFilter
from bookkeeper.domains.ledger.services import journal_service
from bookkeeper.extensions import limiter

journal_api_bp = Blueprint("ledger_journal_api", __name__)

# Posting problems on referenced accounts are request errors, not conflicts.
_POSTING_STATUS = {"not_found": 400, "header_account": 400, "inactive_account": 400}


@journal_api_bp.get("/journal-entries")
@jwt_required()
@require_role("user")
def list_entries():
    try:
        filters = JournalEntryFilter.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400
    entries = journal_service.list_journal_entries(
        start_date=filters.start_date,
        end_date=filters.end_date,
        account_type=filters.account_type,
        search_term=filters.search_term,
    )
    return jsonify({"ok": True, "entries": [map_journal_entry(e, include_images=False) for e in entries]})


@journal_api_bp.get("/journal-entries/<int:entry_id>")
@jwt_required()
@require_role("user")
def get_entry(entry_id: int):
    try:
        entry = journal_service.get_journal_entry(entry_id)
    except ValueError as exc:
        return service_error(exc)
    return jsonify({"ok": True, "entry": map_journal_entry(entry)})


@journal_api_bp.post("/journal-entries")
@jwt_required()
@csrf_protected
@require_role("accountant")
@limiter.limit("120/minute")
def create_entry():
    """
    Post a balanced journal entry.

    Request Body:
    {
      "entry_date": "2024-01-31",
      "description": "Office rent",
      "reference": "INV-42",
      "lines": [
        {"account_id": 7, "debit_amount": "1200.00"},
        {"account_id": 2, "credit_amount": "1200.00", "description": "Paid from bank"}
      ]
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        data = JournalEntryCreateRequest.model_validate(payload)
    except ValidationError as exc:
        return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400

    try:
        entry = journal_service.create_journal_entry(
            entry_date=data.entry_date,
            description=data.description,
            reference=data.reference,
            lines=map_journal_entry_request(data),
            created_by=int(get_jwt_identity()),
            max_image_bytes=current_app.config.get("MAX_LINE_IMAGE_BYTES"),
        )
    except ValueError as exc:
        return service_error(exc, overrides=_POSTING_STATUS)
    return jsonify({"ok": True, "entry": map_journal_entry(entry)}), 201


@journal_api_bp.post("/journal-entries/<int:entry_id>/reverse")
@jwt_required()
@csrf_protected
@require_role("accountant")
def reverse_entry(entry_id: int):
    try:
        reversal = journal_service.reverse_journal_entry(entry_id, created_by=int(get_jwt_identity()))
    except ValueError as exc:
        return service_error(exc, overrides={"cannot_reverse_reversal": 409})
    return jsonify({"ok": True, "entry": map_journal_entry(reversal)}), 201


@journal_api_bp.post("/journal-entries/samples")
@jwt_required()
@csrf_protected
@require_role("accountant")
def create_samples():
    if journal_service.has_journal_entries():
        return jsonify({"ok": False, "error": "entries_exist"}), 409
    try:
        entries = journal_service.create_sample_journal_entries(created_by=int(get_jwt_identity()))
    except ValueError as exc:
        return service_error(exc)
    if not entries:
        return jsonify({"ok": False, "error": "missing_sample_accounts"}), 400
    return jsonify({"ok": True, "entries": [map_journal_entry(e) for e in entries]}), 201
