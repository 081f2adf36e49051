"""Application configuration for Bookkeeper."""

from __future__ import annotations

import os
from datetime import timedelta
from typing import Dict, List, Mapping, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()

# Settings the app cannot serve without; checked at startup.
REQUIRED_SETTINGS = ("DATABASE_URL", "SECRET_KEY")
PLACEHOLDER_MARKERS = ("your_", "change-me", "changeme")
# Lets the factory boot far enough to show the configuration notice.
UNCONFIGURED_DATABASE_URI = "sqlite://"

REMEDIATION_STEPS = [
    "Create a .env file next to the project root (see .env.example).",
    "Set DATABASE_URL to the connection string of the ledger database.",
    "Set SECRET_KEY to a long random value used to sign sessions and tokens.",
    "Run `flask --app bookkeeper.wsgi db upgrade` to apply migrations.",
    "Restart the server so the new settings are loaded.",
]


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def _engine_options_from_uri(uri: str) -> dict:
    url = make_url(uri)
    # Always keep pool_pre_ping, vary connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        return {
            "pool_pre_ping": True,
            "connect_args": {"detect_types": 0, "timeout": 30},
        }
    if url.get_backend_name() in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


def find_configuration_problems(config: Mapping) -> List[str]:
    """Return human readable problems with the loaded configuration."""
    problems: List[str] = []
    for key in REQUIRED_SETTINGS:
        value = str(config.get(key) or "").strip()
        if not value:
            problems.append(f"{key} is not configured")
        elif any(marker in value.lower() for marker in PLACEHOLDER_MARKERS):
            problems.append(f"{key} still holds a placeholder value")
    env = str(config.get("ENV") or "").lower()
    if env == "production" and not config.get("SESSION_COOKIE_SECURE"):
        problems.append("SESSION_COOKIE_SECURE must be enabled (HTTPS) in production")
    return problems


class BaseConfig:
    """Base configuration loaded for all environments."""

    DATABASE_URL = os.environ.get("DATABASE_URL", "")
    SECRET_KEY = os.environ.get("SECRET_KEY", "")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or UNCONFIGURED_DATABASE_URI
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "false")
    WTF_CSRF_ENABLED = True

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY") or SECRET_KEY or "unconfigured"
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_COOKIE_SECURE = SESSION_COOKIE_SECURE
    JWT_COOKIE_SAMESITE = SESSION_COOKIE_SAMESITE
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "30")))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.environ.get("JWT_REFRESH_DAYS", "14")))

    RATELIMIT_DEFAULT = "200/hour"
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "true")

    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(10 * 1024 * 1024)))
    # Supporting documents are stored inline on journal lines as data URLs.
    MAX_LINE_IMAGE_BYTES = int(os.environ.get("MAX_LINE_IMAGE_BYTES", str(2 * 1024 * 1024)))

    AUTO_LOGIN_ON_REGISTER = _env_flag("AUTO_LOGIN_ON_REGISTER", "false")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    ENV = "testing"
    # Use file-backed SQLite so Alembic migrations and app share the same DB.
    DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite:///instance/test.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    SECRET_KEY = "testing-secret-key-with-enough-entropy-0123456789"
    JWT_SECRET_KEY = SECRET_KEY
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
