"""Seed a starter chart of accounts and sample journal entries.

Usage:
    flask --app bookkeeper.wsgi seed-demo
    python -m bookkeeper.scripts.seed_demo
"""

from __future__ import annotations

from typing import Dict, Optional

import click
from flask.cli import with_appcontext

from bookkeeper import create_app
from bookkeeper.core.auth.password import hash_password
from bookkeeper.core.users.models import ROLE_ACCOUNTANT, User
from bookkeeper.domains.ledger.models.ledger_models import Account, AccountType
from bookkeeper.domains.ledger.services import account_service, journal_service
from bookkeeper.extensions import db
from bookkeeper.platform.outbox import dispatch_ready

DEMO_EMAIL = "demo@bookkeeper.test"

# (name, type, parent name, is_header); codes are generated from the type prefix.
STARTER_CHART = (
    ("Current Assets", "Asset", None, True),
    ("Cash", "Asset", "Current Assets", False),
    ("Bank Account", "Asset", "Current Assets", False),
    ("Accounts Receivable", "Asset", "Current Assets", False),
    ("Office Equipment", "Asset", None, False),
    ("Accounts Payable", "Liability", None, False),
    ("Bank Loan", "Liability", None, False),
    ("Owner's Equity", "Equity", None, False),
    ("Sales Revenue", "Revenue", None, False),
    ("Office Expense", "Expense", None, False),
    ("Rent Expense", "Expense", None, False),
)


def seed_demo_user() -> User:
    user = User.query.filter_by(email=DEMO_EMAIL).first()
    if not user:
        user = User(
            email=DEMO_EMAIL,
            name="Demo Accountant",
            role=ROLE_ACCOUNTANT,
            password_hash=hash_password("demo12345"),
        )
        db.session.add(user)
        db.session.commit()
    return user


def seed_chart_of_accounts() -> Dict[str, Account]:
    account_service.ensure_default_account_types()
    types = {t.name: t for t in AccountType.query.all()}
    accounts: Dict[str, Account] = {a.name: a for a in Account.query.all()}
    for name, type_name, parent_name, is_header in STARTER_CHART:
        if name in accounts:
            continue
        parent: Optional[Account] = accounts.get(parent_name) if parent_name else None
        accounts[name] = account_service.create_account(
            name=name,
            account_type_id=types[type_name].id,
            parent_id=parent.id if parent else None,
            is_header=is_header,
        )
    return accounts


@click.command("seed-demo")
@with_appcontext
def seed_demo_command() -> None:
    """Create the demo user, starter chart and sample entries."""
    user = seed_demo_user()
    accounts = seed_chart_of_accounts()
    click.echo(f"Chart of accounts ready ({len(accounts)} accounts)")
    if journal_service.has_journal_entries():
        click.echo("Journal already has entries; samples skipped")
        return
    entries = journal_service.create_sample_journal_entries(created_by=user.id)
    click.echo(f"Posted {len(entries)} sample journal entries")


@click.command("dispatch-outbox")
@click.option("--limit", default=50, show_default=True, help="Maximum messages per batch")
@with_appcontext
def dispatch_outbox_command(limit: int) -> None:
    """Publish pending outbox messages to the in-process event bus."""
    sent = dispatch_ready(limit=limit)
    click.echo(f"Dispatched {len(sent)} outbox messages")


def register_commands(app) -> None:
    from bookkeeper.scripts.seed_admin import seed_admin_command

    app.cli.add_command(seed_demo_command)
    app.cli.add_command(dispatch_outbox_command)
    app.cli.add_command(seed_admin_command)


@click.command()
def main() -> None:
    app = create_app()
    with app.app_context():
        user = seed_demo_user()
        seed_chart_of_accounts()
        if not journal_service.has_journal_entries():
            journal_service.create_sample_journal_entries(created_by=user.id)
        click.echo(f"Seeded demo data for {user.email}")


if __name__ == "__main__":
    main()
