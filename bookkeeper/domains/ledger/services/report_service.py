"""Financial statements and account reports built from ledger rows."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from bookkeeper.domains.ledger.mappers import map_account, money
from bookkeeper.domains.ledger.models.ledger_models import Account, JournalEntry, JournalEntryLine
from bookkeeper.domains.ledger.services.account_service import get_account
from bookkeeper.domains.ledger.services.trial_balance_service import (
    ZERO,
    account_balance,
    account_totals,
    closing_balance,
    opening_balances,
)
from bookkeeper.extensions import db

logger = logging.getLogger(__name__)

OPERATING = "operating"
INVESTING = "investing"
FINANCING = "financing"

_OPERATING_NAME_HINTS = ("cash", "bank", "receivable", "payable", "inventory")
_INVESTING_NAME_HINTS = ("equipment", "vehicle", "building", "investment")
_FINANCING_NAME_HINTS = ("loan", "debt")
_CASH_NAME_HINTS = ("cash", "bank")
_CASH_CODE_PREFIXES = ("111", "112")


def _active_accounts() -> List[Account]:
    return Account.query.filter(Account.is_active.is_(True)).order_by(Account.code).all()


# ==================== Balance sheet / income statement ====================


def balance_sheet(as_of: dt.date) -> dict:
    """Asset, liability and equity balances from all lines up to ``as_of``.

    Liability and equity amounts are shown as absolute values. Nothing forces
    the two sides to agree; ``difference`` reports the gap.
    """
    totals = account_totals(end_date=as_of)
    sections: Dict[str, List[dict]] = {"Asset": [], "Liability": [], "Equity": []}
    for account in _active_accounts():
        type_name = account.type_name
        if type_name in ("Revenue", "Expense"):
            continue
        if type_name not in sections:
            logger.warning("Balance sheet skipped account %s with type %r", account.code, type_name)
            continue
        total = totals.get(account.id, {"debit": ZERO, "credit": ZERO})
        balance = closing_balance(account.is_debit_normal, ZERO, total["debit"], total["credit"])
        amount = balance.copy_abs() if type_name in ("Liability", "Equity") else balance
        sections[type_name].append(
            {
                "account_id": account.id,
                "name": account.name,
                "code": account.code,
                "amount": money(amount),
                "actualBalance": money(balance),
            }
        )

    total_assets = sum(item["amount"] for item in sections["Asset"])
    total_liabilities = sum(item["amount"] for item in sections["Liability"])
    total_equity = sum(item["amount"] for item in sections["Equity"])
    return {
        "asOf": as_of.isoformat(),
        "assets": sections["Asset"],
        "liabilities": sections["Liability"],
        "equity": sections["Equity"],
        "totalAssets": round(total_assets, 2),
        "totalLiabilities": round(total_liabilities, 2),
        "totalEquity": round(total_equity, 2),
        "difference": round(total_assets - (total_liabilities + total_equity), 2),
    }


def income_statement(start_date: dt.date, end_date: dt.date) -> dict:
    """Revenue (credits - debits) and expense (debits - credits) activity for the period."""
    totals = account_totals(start_date, end_date)
    revenue: List[dict] = []
    expenses: List[dict] = []
    for account in _active_accounts():
        type_name = account.type_name
        if type_name not in ("Revenue", "Expense"):
            continue
        total = totals.get(account.id)
        if not total:
            continue
        if type_name == "Revenue":
            activity = total["credit"] - total["debit"]
        else:
            activity = total["debit"] - total["credit"]
        if activity == 0:
            continue
        item = {"account_id": account.id, "name": account.name, "code": account.code, "amount": money(activity.copy_abs())}
        (revenue if type_name == "Revenue" else expenses).append(item)

    total_revenue = round(sum(item["amount"] for item in revenue), 2)
    total_expenses = round(sum(item["amount"] for item in expenses), 2)
    return {
        "startDate": start_date.isoformat(),
        "endDate": end_date.isoformat(),
        "revenue": revenue,
        "expenses": expenses,
        "totalRevenue": total_revenue,
        "totalExpenses": total_expenses,
        "netIncome": round(total_revenue - total_expenses, 2),
    }


# ==================== Cash flow ====================


def categorize_cash_flow(type_name: str, account_name: str) -> str:
    """Classify a line as operating/investing/financing from its account.

    Name-substring heuristic; accounts without a recognised keyword fall back
    to operating.
    """
    name = (account_name or "").lower()
    if type_name in ("Revenue", "Expense"):
        return OPERATING
    if any(hint in name for hint in _OPERATING_NAME_HINTS):
        return OPERATING
    if type_name == "Asset" and any(hint in name for hint in _INVESTING_NAME_HINTS):
        return INVESTING
    if type_name == "Liability" and any(hint in name for hint in _FINANCING_NAME_HINTS):
        return FINANCING
    if type_name == "Equity":
        return FINANCING
    return OPERATING


def cash_flow_category(type_name: str, account_name: str) -> str:
    name = (account_name or "").lower()
    if type_name == "Revenue":
        return "Revenue"
    if type_name == "Expense":
        return "Expenses"
    if type_name == "Asset":
        if "cash" in name or "bank" in name:
            return "Cash & Cash Equivalents"
        if "receivable" in name:
            return "Accounts Receivable"
        if "inventory" in name:
            return "Inventory"
        return "Other Assets"
    if type_name == "Liability":
        if "payable" in name:
            return "Accounts Payable"
        if "loan" in name:
            return "Loans & Debt"
        return "Other Liabilities"
    if type_name == "Equity":
        return "Equity"
    return "Other"


def cash_accounts() -> List[Account]:
    """Active asset accounts that look like cash by name or code."""
    clauses = [func.lower(Account.name).like(f"%{hint}%") for hint in _CASH_NAME_HINTS]
    clauses += [Account.code.like(f"{prefix}%") for prefix in _CASH_CODE_PREFIXES]
    candidates = Account.query.filter(Account.is_active.is_(True), or_(*clauses)).order_by(Account.code).all()
    # "Bank Loan" matches by name but is not cash.
    return [account for account in candidates if account.type_name == "Asset"]


def cash_flow_statement(start_date: dt.date, end_date: dt.date) -> dict:
    entries = (
        JournalEntry.query.options(selectinload(JournalEntry.lines).joinedload(JournalEntryLine.account))
        .filter(JournalEntry.entry_date >= start_date, JournalEntry.entry_date <= end_date)
        .order_by(JournalEntry.entry_date, JournalEntry.id)
        .all()
    )
    activities: Dict[str, List[dict]] = {OPERATING: [], INVESTING: [], FINANCING: []}
    for entry in entries:
        for line in entry.lines:
            account = line.account
            amount = (line.debit_amount or ZERO) - (line.credit_amount or ZERO)
            if amount == 0:
                continue
            flow_type = categorize_cash_flow(account.type_name, account.name)
            activities[flow_type].append(
                {
                    "category": cash_flow_category(account.type_name, account.name),
                    "description": line.description or entry.description,
                    "amount": money(amount.copy_abs()),
                    "type": flow_type,
                    "entry_number": entry.entry_number,
                    "entry_date": entry.entry_date.isoformat(),
                }
            )

    net = {flow_type: round(sum(item["amount"] for item in items), 2) for flow_type, items in activities.items()}
    # Cash positions always include opening balances and postings dated on the bound.
    cash = cash_accounts()
    cash_at_beginning = sum((account_balance(acct, start_date) for acct in cash), ZERO)
    cash_at_end = sum((account_balance(acct, end_date) for acct in cash), ZERO)
    return {
        "operating_activities": activities[OPERATING],
        "investing_activities": activities[INVESTING],
        "financing_activities": activities[FINANCING],
        "net_cash_flow": {
            "operating": net[OPERATING],
            "investing": net[INVESTING],
            "financing": net[FINANCING],
            "total": round(net[OPERATING] + net[INVESTING] + net[FINANCING], 2),
        },
        "cash_at_beginning": money(cash_at_beginning),
        "cash_at_end": money(cash_at_end),
    }


# ==================== Account reports ====================


def _account_lines(account_id: int, start_date: Optional[dt.date], end_date: Optional[dt.date]):
    query = (
        db.session.query(JournalEntryLine, JournalEntry)
        .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
        .filter(JournalEntryLine.account_id == account_id)
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    return query.order_by(JournalEntry.entry_date, JournalEntry.id, JournalEntryLine.line_number).all()


def account_detail_report(
    account_id: int,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
    include_sub_accounts: bool = True,
) -> dict:
    """Chronological lines with a running balance, plus optional sub-account reports."""
    account = get_account(account_id)
    opening = opening_balances([account.id]).get(account.id, ZERO) if include_opening else ZERO
    debit_normal = account.is_debit_normal

    running = opening
    total_debits = ZERO
    total_credits = ZERO
    transactions: List[dict] = []
    for line, entry in _account_lines(account.id, start_date, end_date):
        debit = line.debit_amount or ZERO
        credit = line.credit_amount or ZERO
        running = closing_balance(debit_normal, running, debit, credit)
        total_debits += debit
        total_credits += credit
        transactions.append(
            {
                "id": line.id,
                "entry_id": entry.id,
                "entry_date": entry.entry_date.isoformat(),
                "entry_number": entry.entry_number,
                "description": line.description or entry.description,
                "reference": entry.reference,
                "debit_amount": money(debit),
                "credit_amount": money(credit),
                "running_balance": money(running),
            }
        )

    sub_accounts: List[dict] = []
    if include_sub_accounts:
        children = (
            Account.query.filter(Account.parent_id == account.id, Account.is_active.is_(True))
            .order_by(Account.code)
            .all()
        )
        sub_accounts = [
            account_detail_report(child.id, start_date, end_date, include_opening, include_sub_accounts)
            for child in children
        ]

    net_change = closing_balance(debit_normal, ZERO, total_debits, total_credits)
    return {
        "account": map_account(account),
        "opening_balance": money(opening),
        "current_balance": money(running),
        "transactions": transactions,
        "summary": {
            "total_debits": money(total_debits),
            "total_credits": money(total_credits),
            "net_change": money(net_change),
            "transaction_count": len(transactions),
        },
        "sub_accounts": sub_accounts,
    }


def account_summary_report(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
) -> List[dict]:
    accounts = _active_accounts()
    totals = account_totals(start_date, end_date)
    openings = opening_balances() if include_opening else {}
    parents_with_children = {a.parent_id for a in accounts if a.parent_id is not None}

    summaries: List[dict] = []
    for account in accounts:
        total = totals.get(account.id, {"debit": ZERO, "credit": ZERO, "count": 0})
        opening = openings.get(account.id, ZERO)
        net_change = closing_balance(account.is_debit_normal, ZERO, total["debit"], total["credit"])
        summaries.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.type_name,
                "parent_account_id": account.parent_id,
                "opening_balance": money(opening),
                "current_balance": money(opening + net_change),
                "total_debits": money(total["debit"]),
                "total_credits": money(total["credit"]),
                "net_change": money(net_change),
                "transaction_count": total["count"],
                "has_sub_accounts": account.id in parents_with_children,
            }
        )
    return summaries


def hierarchical_account_report(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    include_opening: bool = False,
) -> List[dict]:
    """Account summaries nested under their parents."""
    summaries = account_summary_report(start_date, end_date, include_opening)
    by_parent: Dict[Optional[int], List[dict]] = {}
    known_ids = {item["account_id"] for item in summaries}
    for item in summaries:
        parent_id = item["parent_account_id"]
        # Children of inactive parents surface at the top level.
        key = parent_id if parent_id in known_ids else None
        by_parent.setdefault(key, []).append(item)

    def build(parent_id: Optional[int]) -> List[dict]:
        return [{**item, "sub_accounts": build(item["account_id"])} for item in by_parent.get(parent_id, [])]

    return build(None)


def general_ledger(
    account_id: int, start_date: Optional[dt.date] = None, end_date: Optional[dt.date] = None
) -> List[dict]:
    get_account(account_id)
    return [
        {
            "id": line.id,
            "journal_entry_id": entry.id,
            "entry_number": entry.entry_number,
            "entry_date": entry.entry_date.isoformat(),
            "entry_description": entry.description,
            "reference": entry.reference,
            "line_number": line.line_number,
            "description": line.description,
            "debit_amount": money(line.debit_amount),
            "credit_amount": money(line.credit_amount),
        }
        for line, entry in _account_lines(account_id, start_date, end_date)
    ]


def dashboard_stats(today: Optional[dt.date] = None) -> dict:
    today = today or dt.date.today()
    sheet = balance_sheet(today)
    income = income_statement(dt.date(today.year, 1, 1), today)
    return {
        "totalAssets": sheet["totalAssets"],
        "netIncome": income["netIncome"],
        "journalEntriesCount": db.session.query(func.count(JournalEntry.id)).scalar() or 0,
        "activeAccountsCount": db.session.query(func.count(Account.id))
        .filter(Account.is_active.is_(True))
        .scalar()
        or 0,
    }
