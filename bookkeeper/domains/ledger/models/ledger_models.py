"""Ledger models (chart of accounts and double-entry journal)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookkeeper.extensions import db

NORMAL_BALANCE_DEBIT = "debit"
NORMAL_BALANCE_CREDIT = "credit"
# Type names that are debit-normal regardless of the stored normal_balance.
DEBIT_NORMAL_TYPE_NAMES = {"Asset", "Expense"}
# Largest magnitude a Numeric(18, 2) money column holds.
MAX_AMOUNT = Decimal("9999999999999999.99")


class AccountType(db.Model):
    __tablename__ = "account_type"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    normal_balance: Mapped[str] = mapped_column(db.String(8), nullable=False, default=NORMAL_BALANCE_DEBIT)
    is_system: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    accounts: Mapped[list["Account"]] = relationship("Account", back_populates="account_type")


class Account(db.Model):
    __tablename__ = "account"
    __table_args__ = (
        db.Index("ix_account_type_active", "account_type_id", "is_active"),
        db.Index("ix_account_parent_active", "parent_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(db.String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    parent_id: Mapped[int | None] = mapped_column(db.ForeignKey("account.id"), nullable=True)
    account_type_id: Mapped[int] = mapped_column(db.ForeignKey("account_type.id"), nullable=False)
    is_header: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    level: Mapped[int] = mapped_column(default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    account_type: Mapped[AccountType] = relationship(AccountType, back_populates="accounts", lazy="joined")
    parent: Mapped[Optional["Account"]] = relationship(
        "Account", remote_side="Account.id", back_populates="children"
    )
    children: Mapped[list["Account"]] = relationship("Account", back_populates="parent", order_by="Account.code")
    lines: Mapped[list["JournalEntryLine"]] = relationship("JournalEntryLine", back_populates="account")

    @property
    def type_name(self) -> str:
        return self.account_type.name if self.account_type else ""

    @property
    def is_debit_normal(self) -> bool:
        normal = self.account_type.normal_balance if self.account_type else None
        return normal == NORMAL_BALANCE_DEBIT or self.type_name in DEBIT_NORMAL_TYPE_NAMES


class JournalEntry(db.Model):
    __tablename__ = "journal_entry"
    __table_args__ = (db.Index("ix_journal_entry_entry_date", "entry_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_number: Mapped[str] = mapped_column(db.String(32), unique=True, nullable=False)
    entry_date: Mapped[date] = mapped_column(db.Date, nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    reference: Mapped[str | None] = mapped_column(db.String(128))
    total_debit: Mapped[Decimal] = mapped_column(db.Numeric(18, 2), nullable=False, default=0)
    total_credit: Mapped[Decimal] = mapped_column(db.Numeric(18, 2), nullable=False, default=0)
    is_balanced: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(db.ForeignKey("user.id"), nullable=True)
    # One reversal per entry; NULLs do not collide.
    reversal_of_id: Mapped[int | None] = mapped_column(
        db.ForeignKey("journal_entry.id"), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
    )
    reversal_of: Mapped[Optional["JournalEntry"]] = relationship(
        "JournalEntry", remote_side="JournalEntry.id", back_populates="reversed_by"
    )
    reversed_by: Mapped[Optional["JournalEntry"]] = relationship(
        "JournalEntry", back_populates="reversal_of", uselist=False
    )


class JournalEntryLine(db.Model):
    __tablename__ = "journal_entry_line"
    __table_args__ = (
        db.CheckConstraint("debit_amount >= 0", name="ck_journal_entry_line_debit_non_negative"),
        db.CheckConstraint("credit_amount >= 0", name="ck_journal_entry_line_credit_non_negative"),
        db.Index("ix_journal_entry_line_account", "account_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(db.ForeignKey("journal_entry.id"), index=True, nullable=False)
    account_id: Mapped[int] = mapped_column(db.ForeignKey("account.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    debit_amount: Mapped[Decimal] = mapped_column(db.Numeric(18, 2), nullable=False, default=0)
    credit_amount: Mapped[Decimal] = mapped_column(db.Numeric(18, 2), nullable=False, default=0)
    image_data: Mapped[str | None] = mapped_column(db.Text)  # data URL of a supporting document
    line_number: Mapped[int] = mapped_column(nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    entry: Mapped[JournalEntry] = relationship(JournalEntry, back_populates="lines")
    account: Mapped[Account] = relationship(Account, back_populates="lines")


class OpeningBalance(db.Model):
    __tablename__ = "opening_balance"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(db.ForeignKey("account.id"), unique=True, nullable=False)
    # Signed in the account's normal-balance direction.
    balance: Mapped[Decimal] = mapped_column(db.Numeric(18, 2), nullable=False, default=0)
    as_of: Mapped[date | None] = mapped_column(db.Date)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    account: Mapped[Account] = relationship(Account)
