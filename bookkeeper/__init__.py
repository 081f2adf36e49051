"""Bookkeeper application factory and bootstrap."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

from bookkeeper.config import REMEDIATION_STEPS, config_by_name, find_configuration_problems
from bookkeeper.core.events.event_bus import event_bus
from bookkeeper.extensions import init_extensions, jwt

# Paths that stay reachable while the configuration is broken.
CONFIG_EXEMPT_PATHS = ("/health",)


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the Bookkeeper Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    instance_root.mkdir(parents=True, exist_ok=True)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///"):
        db_path = Path(db_uri.replace("sqlite:///", "", 1))
        abs_path = db_path if db_path.is_absolute() else project_root / db_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    logging.getLogger("bookkeeper").setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.config["CONFIGURATION_PROBLEMS"] = find_configuration_problems(app.config)
    for problem in app.config["CONFIGURATION_PROBLEMS"]:
        app.logger.error("Configuration problem: %s", problem)

    init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_auth_handlers(app)
    _register_configuration_guard(app)

    app.extensions["event_bus"] = event_bus

    @app.get("/health")
    def health():
        problems = app.config.get("CONFIGURATION_PROBLEMS") or []
        return {"ok": not problems, "configured": not problems}, 200

    from bookkeeper.scripts.seed_demo import register_commands

    register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from bookkeeper.core.auth.controllers import auth_bp  # local import to avoid circulars
    from bookkeeper.core.users.controllers import user_api_bp
    from bookkeeper.domains.ledger.controllers.accounts_api import accounts_api_bp
    from bookkeeper.domains.ledger.controllers.journal_api import journal_api_bp
    from bookkeeper.domains.ledger.controllers.reports_api import reports_api_bp
    from bookkeeper.domains.ledger.controllers.trial_balance_api import trial_balance_api_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(user_api_bp, url_prefix="/api/users")
    app.register_blueprint(accounts_api_bp, url_prefix="/api/ledger")
    app.register_blueprint(journal_api_bp, url_prefix="/api/ledger")
    app.register_blueprint(reports_api_bp, url_prefix="/api/ledger")
    app.register_blueprint(trial_balance_api_bp, url_prefix="/api/ledger")


def _register_error_handlers(app: Flask) -> None:
    """JSON error responses."""
    from sqlalchemy.exc import OperationalError
    from werkzeug.exceptions import HTTPException

    from bookkeeper.extensions import db

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(OperationalError)
    def _backend_unavailable(exc: OperationalError):
        app.logger.error("Database unavailable: %s", exc)
        db.session.rollback()
        return {
            "ok": False,
            "error": "backend_unavailable",
            "remediation": [
                "Check that DATABASE_URL points at a reachable database.",
                "Run `flask --app bookkeeper.wsgi db upgrade` if the schema is missing.",
            ],
        }, 503

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500


def _register_auth_handlers(app: Flask) -> None:
    """JWT revocation lookups and uniform 401 payloads."""

    @jwt.token_in_blocklist_loader
    def _token_revoked(_jwt_header, jwt_payload) -> bool:
        from bookkeeper.core.auth.auth_service import is_token_revoked

        jti = jwt_payload.get("jti")
        return bool(jti) and is_token_revoked(jti)

    def _unauthorized(reason: str):
        return jsonify({"ok": False, "error": "unauthorized", "reason": reason}), 401

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _unauthorized(reason)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _unauthorized(reason)

    @jwt.expired_token_loader
    def _expired_token(_jwt_header, _jwt_payload):
        return _unauthorized("token_expired")

    @jwt.revoked_token_loader
    def _revoked_token(_jwt_header, _jwt_payload):
        return _unauthorized("token_revoked")


def _register_configuration_guard(app: Flask) -> None:
    """Block every request except health checks while settings are missing."""

    @app.before_request
    def _require_configuration():
        problems = app.config.get("CONFIGURATION_PROBLEMS") or []
        if not problems or request.path in CONFIG_EXEMPT_PATHS:
            return None
        return (
            jsonify(
                {
                    "ok": False,
                    "error": "configuration_error",
                    "problems": problems,
                    "remediation": REMEDIATION_STEPS,
                }
            ),
            503,
        )
