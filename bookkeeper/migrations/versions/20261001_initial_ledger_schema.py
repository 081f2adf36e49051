"""Initial schema: users, auth tokens, outbox and the double-entry ledger.

Revision ID: 20261001_initial_ledger_schema
Revises:
Create Date: 2026-10-01
"""

from __future__ import annotations

from datetime import datetime

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001_initial_ledger_schema"
down_revision = None
branch_labels = None
depends_on = None

SYSTEM_ACCOUNT_TYPES = (
    ("Asset", "Resources owned by the company", "debit"),
    ("Liability", "Debts and obligations owed by the company", "credit"),
    ("Equity", "Owner's interest in the company", "credit"),
    ("Revenue", "Income earned from business operations", "credit"),
    ("Expense", "Costs incurred in business operations", "debit"),
)


def _timestamps(with_updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now())]
    if with_updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()))
    return columns


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=512), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "revoked_token",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("jti", sa.String(length=64), nullable=False),
        sa.Column("token_type", sa.String(length=16), nullable=False, server_default="refresh"),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("revoked_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("jti", name="uq_revoked_token_jti"),
    )

    op.create_table(
        "platform_outbox",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_platform_outbox_user_id", "platform_outbox", ["user_id"])
    op.create_index("ix_platform_outbox_event_type", "platform_outbox", ["event_type"])
    op.create_index(
        "ix_platform_outbox_status_available_at", "platform_outbox", ["status", "available_at"]
    )

    account_type = op.create_table(
        "account_type",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("normal_balance", sa.String(length=8), nullable=False, server_default="debit"),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_account_type_name"),
    )

    op.create_table(
        "account",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("account.id"), nullable=True),
        sa.Column("account_type_id", sa.Integer(), sa.ForeignKey("account_type.id"), nullable=False),
        sa.Column("is_header", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_account_code"),
    )
    op.create_index("ix_account_type_active", "account", ["account_type_id", "is_active"])
    op.create_index("ix_account_parent_active", "account", ["parent_id", "is_active"])

    op.create_table(
        "journal_entry",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_number", sa.String(length=32), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("reference", sa.String(length=128), nullable=True),
        sa.Column("total_debit", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("total_credit", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("is_balanced", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("reversal_of_id", sa.Integer(), sa.ForeignKey("journal_entry.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("entry_number", name="uq_journal_entry_entry_number"),
        sa.UniqueConstraint("reversal_of_id", name="uq_journal_entry_reversal_of_id"),
    )
    op.create_index("ix_journal_entry_entry_date", "journal_entry", ["entry_date"])

    op.create_table(
        "journal_entry_line",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("journal_entry_id", sa.Integer(), sa.ForeignKey("journal_entry.id"), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("account.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("debit_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("credit_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("image_data", sa.Text(), nullable=True),
        sa.Column("line_number", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(with_updated=False),
        sa.CheckConstraint("debit_amount >= 0", name="ck_journal_entry_line_debit_non_negative"),
        sa.CheckConstraint("credit_amount >= 0", name="ck_journal_entry_line_credit_non_negative"),
    )
    op.create_index("ix_journal_entry_line_journal_entry_id", "journal_entry_line", ["journal_entry_id"])
    op.create_index("ix_journal_entry_line_account", "journal_entry_line", ["account_id"])

    op.create_table(
        "opening_balance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("account.id"), nullable=False),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("as_of", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("account_id", name="uq_opening_balance_account_id"),
    )

    now = datetime.utcnow()
    op.bulk_insert(
        account_type,
        [
            {
                "name": name,
                "description": description,
                "normal_balance": normal,
                "is_system": True,
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            }
            for name, description, normal in SYSTEM_ACCOUNT_TYPES
        ],
    )


def downgrade():
    op.drop_table("opening_balance")
    op.drop_index("ix_journal_entry_line_account", table_name="journal_entry_line")
    op.drop_index("ix_journal_entry_line_journal_entry_id", table_name="journal_entry_line")
    op.drop_table("journal_entry_line")
    op.drop_index("ix_journal_entry_entry_date", table_name="journal_entry")
    op.drop_table("journal_entry")
    op.drop_index("ix_account_parent_active", table_name="account")
    op.drop_index("ix_account_type_active", table_name="account")
    op.drop_table("account")
    op.drop_table("account_type")
    op.drop_index("ix_platform_outbox_status_available_at", table_name="platform_outbox")
    op.drop_index("ix_platform_outbox_event_type", table_name="platform_outbox")
    op.drop_index("ix_platform_outbox_user_id", table_name="platform_outbox")
    op.drop_table("platform_outbox")
    op.drop_table("revoked_token")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
