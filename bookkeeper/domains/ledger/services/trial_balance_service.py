"""Trial balance and per-account balance calculations."""

from __future__ import annotations

import csv
import datetime as dt
import io
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func

from bookkeeper.domains.ledger.models.ledger_models import (
    Account,
    JournalEntry,
    JournalEntryLine,
    OpeningBalance,
)
from bookkeeper.extensions import db

ZERO = Decimal("0")
BALANCED_TOLERANCE = Decimal("0.01")
CSV_HEADERS = [
    "Account Code",
    "Account Name",
    "Type",
    "Opening Balance",
    "Debits",
    "Credits",
    "Closing Balance",
]


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def account_totals(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    account_ids: Optional[Iterable[int]] = None,
) -> Dict[int, Dict[str, Decimal]]:
    """Return debit/credit totals and line counts per account within the inclusive range."""
    totals: Dict[int, Dict[str, Decimal]] = defaultdict(lambda: {"debit": ZERO, "credit": ZERO, "count": 0})
    query = db.session.query(
        JournalEntryLine.account_id,
        func.sum(JournalEntryLine.debit_amount),
        func.sum(JournalEntryLine.credit_amount),
        func.count(JournalEntryLine.id),
    ).join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if account_ids is not None:
        query = query.filter(JournalEntryLine.account_id.in_(list(account_ids)))
    for account_id, debit_sum, credit_sum, count in query.group_by(JournalEntryLine.account_id).all():
        totals[account_id] = {"debit": _dec(debit_sum), "credit": _dec(credit_sum), "count": int(count or 0)}
    return totals


def opening_balances(account_ids: Optional[Iterable[int]] = None) -> Dict[int, Decimal]:
    query = db.session.query(OpeningBalance.account_id, OpeningBalance.balance)
    if account_ids is not None:
        query = query.filter(OpeningBalance.account_id.in_(list(account_ids)))
    return {account_id: _dec(balance) for account_id, balance in query.all()}


def closing_balance(is_debit_normal: bool, opening: Decimal, debits: Decimal, credits: Decimal) -> Decimal:
    """Debit-normal: opening + debits - credits. Credit-normal: opening + credits - debits."""
    if is_debit_normal:
        return opening + debits - credits
    return opening + credits - debits


def account_balance(account: Account, as_of: dt.date, include_opening: bool = True) -> Decimal:
    """Balance of one account from all lines dated on or before ``as_of``."""
    totals = account_totals(end_date=as_of, account_ids=[account.id]).get(account.id)
    opening = opening_balances([account.id]).get(account.id, ZERO) if include_opening else ZERO
    debits = totals["debit"] if totals else ZERO
    credits = totals["credit"] if totals else ZERO
    return closing_balance(account.is_debit_normal, opening, debits, credits)


def calculate_trial_balance(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
) -> List[dict]:
    """One row per active account, sorted by account code."""
    accounts = Account.query.filter(Account.is_active.is_(True)).order_by(Account.code).all()
    totals = account_totals(start_date, end_date)
    openings = opening_balances() if include_opening else {}
    rows: List[dict] = []
    for account in accounts:
        total = totals.get(account.id, {"debit": ZERO, "credit": ZERO})
        opening = openings.get(account.id, ZERO)
        rows.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.type_name,
                "opening_balance": opening,
                "debit_total": total["debit"],
                "credit_total": total["credit"],
                "closing_balance": closing_balance(account.is_debit_normal, opening, total["debit"], total["credit"]),
            }
        )
    rows.sort(key=lambda row: row["account_code"])
    return rows


def trial_balance_view(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
) -> dict:
    """Trial balance rows plus grand totals, JSON-ready."""
    rows = calculate_trial_balance(start_date, end_date, include_opening)
    total_debits = sum((row["debit_total"] for row in rows), ZERO)
    total_credits = sum((row["credit_total"] for row in rows), ZERO)
    return {
        "accounts": [
            {key: float(value) if isinstance(value, Decimal) else value for key, value in row.items()}
            for row in rows
        ],
        "total_debits": float(total_debits),
        "total_credits": float(total_credits),
        "is_balanced": (total_debits - total_credits).copy_abs() <= BALANCED_TOLERANCE,
    }


def trial_balance_csv(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
) -> str:
    rows = calculate_trial_balance(start_date, end_date, include_opening)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row["account_code"],
                row["account_name"],
                row["account_type"],
                f"{row['opening_balance']:.2f}",
                f"{row['debit_total']:.2f}",
                f"{row['credit_total']:.2f}",
                f"{row['closing_balance']:.2f}",
            ]
        )
    return buffer.getvalue()
