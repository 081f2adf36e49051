"""Flask extension singletons shared by the Bookkeeper blueprints and services."""

import sqlite3
from pathlib import Path

from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# Services keep using posted entries after commit, so attributes are not expired.
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
jwt = JWTManager()
bcrypt = Bcrypt()
limiter = Limiter(key_func=get_remote_address, default_limits=["200 per hour"])


@event.listens_for(Engine, "connect")
def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _configure_limiter(app) -> None:
    limiter.enabled = app.config.get("RATELIMIT_ENABLED", True)
    limiter.default_limits = [app.config.get("RATELIMIT_DEFAULT", "200 per hour")]
    limiter.storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    limiter.init_app(app)


def init_extensions(app) -> None:
    """Bind persistence, migrations, token auth, hashing and rate limiting to ``app``."""
    db.init_app(app)
    migrate.init_app(app, db, directory=str(MIGRATIONS_DIR), render_as_batch=True)
    jwt.init_app(app)
    bcrypt.init_app(app)
    _configure_limiter(app)
