import sys
from pathlib import Path
from uuid import uuid4

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from flask_jwt_extended import create_access_token

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bookkeeper import create_app
from bookkeeper.core.auth.password import hash_password
from bookkeeper.core.users.models import User
from bookkeeper.domains.ledger.services.account_service import ensure_default_account_types
from bookkeeper.extensions import db
from bookkeeper.scripts.seed_demo import seed_chart_of_accounts


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no database)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "smoke: Quick smoke tests for CI")


def _alembic_config() -> AlembicConfig:
    migrations_dir = ROOT / "bookkeeper" / "migrations"
    cfg = AlembicConfig(str(migrations_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(migrations_dir))
    # env.py resolves the URL through the testing app config.
    cfg.set_main_option("bookkeeper_env", "testing")
    return cfg


@pytest.fixture(scope="session", autouse=True)
def migrated_db():
    """Apply migrations once per session to mirror production schema."""
    cfg = _alembic_config()
    command.upgrade(cfg, "head")
    yield
    command.downgrade(cfg, "base")


@pytest.fixture()
def app(migrated_db):
    """Per-test app; every table is emptied afterwards so tests stay independent."""
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    ensure_default_account_types()
    try:
        yield app
    finally:
        db.session.remove()
        with db.engine.begin() as conn:
            for table in reversed(db.metadata.sorted_tables):
                conn.execute(table.delete())
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make(role: str = "user", email: str | None = None, password: str = "secret123") -> User:
        user = User(
            email=email or f"{role}-{uuid4().hex[:8]}@example.com",
            password_hash=hash_password(password),
            name=role.title(),
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_headers(app, make_user):
    """Bearer headers for a fresh user holding ``role``."""

    def _headers(role: str = "accountant") -> dict[str, str]:
        user = make_user(role)
        token = create_access_token(identity=str(user.id), additional_claims={"roles": [role]})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def chart(app):
    """Starter chart of accounts keyed by account name."""
    return seed_chart_of_accounts()
