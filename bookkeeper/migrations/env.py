"""Alembic environment for Bookkeeper."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from flask import current_app, has_app_context
from sqlalchemy import engine_from_config, pool

sys.path.append(str(Path(__file__).resolve().parents[2]))

from bookkeeper import create_app
from bookkeeper.extensions import db

# Import models so their tables are registered on db.metadata.
from bookkeeper.core.auth import models as auth_models  # noqa: F401
from bookkeeper.core.users import models as user_models  # noqa: F401
from bookkeeper.domains.ledger.models import ledger_models  # noqa: F401
from bookkeeper.platform.outbox import models as outbox_models  # noqa: F401

config = context.config

if config.config_file_name and Path(config.config_file_name).exists():
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = db.metadata


def get_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    if has_app_context():
        return current_app.config["SQLALCHEMY_DATABASE_URI"]
    app = create_app(config.get_main_option("bookkeeper_env", "development"))
    return app.config["SQLALCHEMY_DATABASE_URI"]


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        # Batch mode lets later revisions alter tables on SQLite.
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
