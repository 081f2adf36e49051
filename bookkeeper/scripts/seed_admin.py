"""Create or promote an administrator account.

Usage:
    flask --app bookkeeper.wsgi seed-admin --email admin@example.com --password secret123
    python -m bookkeeper.scripts.seed_admin --email admin@example.com --password secret123
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from bookkeeper import create_app
from bookkeeper.core.auth.password import hash_password, password_problem
from bookkeeper.core.users.models import ROLE_ADMIN, User
from bookkeeper.extensions import db


def seed_admin_user(email: str, password: str, name: str | None = None) -> User:
    normalized = email.strip().lower()
    user = User.query.filter(func.lower(User.email) == normalized).first()
    if not user:
        user = User(email=normalized, name=name or "Admin", password_hash=hash_password(password))
        db.session.add(user)
    user.role = ROLE_ADMIN
    user.is_active = True
    db.session.commit()
    return user


@click.command("seed-admin")
@click.option("--email", required=True, help="Admin email")
@click.option("--password", required=True, help="Admin password")
@click.option("--name", default="Admin", help="Admin display name")
@with_appcontext
def seed_admin_command(email: str, password: str, name: str) -> None:
    problem = password_problem(password)
    if problem:
        raise click.BadParameter(problem, param_hint="--password")
    user = seed_admin_user(email, password, name)
    click.echo(f"Seeded admin user {user.email} with role {user.role}")


@click.command()
@click.option("--email", required=True, help="Admin email")
@click.option("--password", required=True, help="Admin password")
@click.option("--name", default="Admin", help="Admin display name")
def main(email: str, password: str, name: str) -> None:
    problem = password_problem(password)
    if problem:
        raise click.BadParameter(problem, param_hint="--password")
    app = create_app()
    with app.app_context():
        user = seed_admin_user(email, password, name)
        click.echo(f"Seeded admin user {user.email} with role {user.role}")


if __name__ == "__main__":
    main()
