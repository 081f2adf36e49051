"""JSON error responses for service error codes."""

from __future__ import annotations

from typing import Dict, Optional

from flask import jsonify

# Service codes that are not plain 400 validation failures.
STATUS_BY_CODE: Dict[str, int] = {
    "not_found": 404,
    "duplicate_code": 409,
    "duplicate_name": 409,
    "duplicate_entry_number": 409,
    "already_reversed": 409,
    "has_children": 409,
    "has_postings": 409,
    "header_account": 409,
    "system_type": 409,
    "account_type_in_use": 409,
    "code_space_exhausted": 409,
    "image_too_large": 413,
}


def service_error(exc: ValueError, overrides: Optional[Dict[str, int]] = None):
    code = str(exc) or "validation_error"
    status = (overrides or {}).get(code) or STATUS_BY_CODE.get(code, 400)
    return jsonify({"ok": False, "error": code}), status
