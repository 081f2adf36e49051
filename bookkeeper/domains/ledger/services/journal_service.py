"""Journal service: double-entry posting, listing and reversal."""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from bookkeeper.domains.ledger.events import LEDGER_JOURNAL_POSTED, LEDGER_JOURNAL_REVERSED
from bookkeeper.domains.ledger.models.ledger_models import (
    MAX_AMOUNT,
    Account,
    AccountType,
    JournalEntry,
    JournalEntryLine,
)
from bookkeeper.extensions import db
from bookkeeper.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 512
MAX_JOURNAL_LINES = 100
BALANCE_TOLERANCE = Decimal("0.01")
TWO_PLACES = Decimal(".01")
LIKE_ESCAPE = "\\"
ENTRY_NUMBER_PREFIX = "JE-"
_ENTRY_NUMBER_RE = re.compile(r"JE-(\d+)")


def _to_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value if value is not None else 0)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except ArithmeticError:
        raise ValueError("validation_error")
    if not amount.is_finite() or amount.copy_abs() > MAX_AMOUNT:
        raise ValueError("validation_error")
    return amount


def normalize_lines(lines: List[dict]) -> Tuple[List[dict], Decimal, Decimal]:
    """Validate raw lines and return them with debit/credit totals.

    Each line carries exactly one positive side. Totals must agree within
    one cent.
    """
    if not lines or len(lines) < 2 or len(lines) > MAX_JOURNAL_LINES:
        raise ValueError("validation_error")

    normalized: List[dict] = []
    debit_total = Decimal("0")
    credit_total = Decimal("0")
    for raw in lines:
        try:
            account_id = int(raw.get("account_id"))
        except (TypeError, ValueError):
            raise ValueError("validation_error")
        debit = _to_amount(raw.get("debit_amount"))
        credit = _to_amount(raw.get("credit_amount"))
        if debit < 0 or credit < 0:
            raise ValueError("validation_error")
        if (debit > 0) == (credit > 0):
            raise ValueError("validation_error")
        debit_total += debit
        credit_total += credit
        normalized.append(
            {
                "account_id": account_id,
                "description": (raw.get("description") or "").strip() or None,
                "debit_amount": debit,
                "credit_amount": credit,
                "image_data": raw.get("image_data") or None,
            }
        )

    if (debit_total - credit_total).copy_abs() > BALANCE_TOLERANCE:
        raise ValueError("unbalanced_entry")
    return normalized, debit_total, credit_total


def _validate_accounts(account_ids: List[int]) -> None:
    accounts = Account.query.filter(Account.id.in_(account_ids)).all()
    if len(accounts) != len(set(account_ids)):
        raise ValueError("not_found")
    if any(not acct.is_active for acct in accounts):
        raise ValueError("inactive_account")
    if any(acct.is_header for acct in accounts):
        raise ValueError("header_account")


def _next_number(number: Optional[str]) -> str:
    match = _ENTRY_NUMBER_RE.search(number or "")
    next_value = int(match.group(1)) + 1 if match else 1
    return f"{ENTRY_NUMBER_PREFIX}{next_value:03d}"


def generate_entry_number() -> str:
    """Increment the latest entry number, stepping past any taken number.

    Not atomic: a concurrent insert of the same number is rejected by the
    unique constraint and surfaces as ``duplicate_entry_number``.
    """
    latest = (
        db.session.query(JournalEntry.entry_number)
        .order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
        .first()
    )
    candidate = _next_number(latest[0] if latest else None)
    while db.session.query(JournalEntry.id).filter(JournalEntry.entry_number == candidate).first():
        candidate = _next_number(candidate)
    return candidate


def create_journal_entry(
    entry_date: date,
    description: str,
    lines: List[dict],
    reference: Optional[str] = None,
    created_by: Optional[int] = None,
    max_image_bytes: Optional[int] = None,
) -> JournalEntry:
    """Validate and post a balanced entry with its lines in one transaction."""
    desc = (description or "").strip()
    if not desc or len(desc) > MAX_DESCRIPTION_LENGTH:
        raise ValueError("validation_error")
    if not isinstance(entry_date, date):
        raise ValueError("validation_error")

    normalized, debit_total, credit_total = normalize_lines(lines)
    if max_image_bytes is not None:
        for line in normalized:
            if line["image_data"] and len(line["image_data"]) > max_image_bytes:
                raise ValueError("image_too_large")
    _validate_accounts([line["account_id"] for line in normalized])

    entry = JournalEntry(
        entry_number=generate_entry_number(),
        entry_date=entry_date,
        description=desc,
        reference=(reference or "").strip() or None,
        total_debit=debit_total,
        total_credit=credit_total,
        is_balanced=True,
        created_by=created_by,
    )
    for idx, line in enumerate(normalized, start=1):
        entry.lines.append(
            JournalEntryLine(
                account_id=line["account_id"],
                description=line["description"] or desc,
                debit_amount=line["debit_amount"],
                credit_amount=line["credit_amount"],
                image_data=line["image_data"],
                line_number=idx,
            )
        )
    return _persist_entry(entry, created_by)


def _persist_entry(entry: JournalEntry, created_by: Optional[int], reversal_event: bool = False) -> JournalEntry:
    db.session.add(entry)
    try:
        db.session.flush()
        enqueue_outbox(
            LEDGER_JOURNAL_POSTED,
            {
                "entry_id": entry.id,
                "entry_number": entry.entry_number,
                "entry_date": entry.entry_date.isoformat(),
                "total_debit": float(entry.total_debit),
                "total_credit": float(entry.total_credit),
                "line_count": len(entry.lines),
                "created_by": created_by,
            },
            user_id=created_by,
        )
        if reversal_event:
            enqueue_outbox(
                LEDGER_JOURNAL_REVERSED,
                {
                    "entry_id": entry.reversal_of_id,
                    "reversal_entry_id": entry.id,
                    "reversal_entry_number": entry.entry_number,
                    "created_by": created_by,
                },
                user_id=created_by,
            )
        db.session.commit()
    except IntegrityError as exc:
        # Header and lines share the transaction; nothing is kept.
        db.session.rollback()
        message = str(getattr(exc, "orig", exc)).lower()
        if "reversal_of" in message:
            raise ValueError("already_reversed")
        raise ValueError("duplicate_entry_number")
    logger.info("Posted journal entry %s (%s lines)", entry.entry_number, len(entry.lines))
    return entry


def get_journal_entry(entry_id: int) -> JournalEntry:
    entry = db.session.get(JournalEntry, entry_id)
    if not entry:
        raise ValueError("not_found")
    return entry


def _contains_pattern(term: str) -> str:
    escaped = term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
    for wildcard in ("%", "_"):
        escaped = escaped.replace(wildcard, LIKE_ESCAPE + wildcard)
    return f"%{escaped}%"


def list_journal_entries(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_type: Optional[str] = None,
    search_term: Optional[str] = None,
) -> List[JournalEntry]:
    query = JournalEntry.query.options(
        selectinload(JournalEntry.lines).joinedload(JournalEntryLine.account)
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if account_type and account_type != "All Types":
        typed_entries = (
            db.session.query(JournalEntryLine.journal_entry_id)
            .join(Account, Account.id == JournalEntryLine.account_id)
            .join(AccountType, AccountType.id == Account.account_type_id)
            .filter(func.lower(AccountType.name) == account_type.strip().lower())
        )
        query = query.filter(JournalEntry.id.in_(typed_entries))
    term = (search_term or "").strip().lower()
    if term:
        pattern = _contains_pattern(term)
        matching_lines = (
            db.session.query(JournalEntryLine.journal_entry_id)
            .join(Account, Account.id == JournalEntryLine.account_id)
            .filter(
                or_(
                    func.lower(Account.name).like(pattern, escape=LIKE_ESCAPE),
                    func.lower(Account.code).like(pattern, escape=LIKE_ESCAPE),
                )
            )
        )
        query = query.filter(
            or_(
                func.lower(JournalEntry.description).like(pattern, escape=LIKE_ESCAPE),
                func.lower(JournalEntry.entry_number).like(pattern, escape=LIKE_ESCAPE),
                func.lower(func.coalesce(JournalEntry.reference, "")).like(pattern, escape=LIKE_ESCAPE),
                JournalEntry.id.in_(matching_lines),
            )
        )
    return query.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc()).all()


def has_journal_entries() -> bool:
    return db.session.query(JournalEntry.id).first() is not None


def reverse_journal_entry(
    entry_id: int, created_by: Optional[int] = None, entry_date: Optional[date] = None
) -> JournalEntry:
    """Post an offsetting entry; the original entry is never modified."""
    original = get_journal_entry(entry_id)
    if original.reversed_by is not None:
        raise ValueError("already_reversed")
    if original.reversal_of_id is not None:
        raise ValueError("cannot_reverse_reversal")
    if not original.lines:
        raise ValueError("validation_error")

    reversal = JournalEntry(
        entry_number=generate_entry_number(),
        entry_date=entry_date or date.today(),
        description=f"Reversal of {original.entry_number}: {original.description}"[:MAX_DESCRIPTION_LENGTH],
        reference=original.entry_number,
        total_debit=original.total_credit,
        total_credit=original.total_debit,
        is_balanced=original.is_balanced,
        created_by=created_by,
        reversal_of=original,
    )
    for line in original.lines:
        reversal.lines.append(
            JournalEntryLine(
                account_id=line.account_id,
                description=line.description,
                debit_amount=line.credit_amount,
                credit_amount=line.debit_amount,
                line_number=line.line_number,
            )
        )
    entry = _persist_entry(reversal, created_by, reversal_event=True)
    logger.info("Reversed journal entry %s with %s", original.entry_number, entry.entry_number)
    return entry


def create_sample_journal_entries(created_by: Optional[int] = None, today: Optional[date] = None) -> List[JournalEntry]:
    """Post a cash sale, an expense and a credit sale against the starter chart."""
    accounts = Account.query.filter(Account.is_active.is_(True), Account.is_header.is_(False)).order_by(Account.code).all()

    def find(*needles: str) -> Optional[Account]:
        for account in accounts:
            name = account.name.lower()
            if any(needle in name for needle in needles):
                return account
        return None

    cash = find("cash")
    sales = find("sales", "revenue")
    expense = find("expense", "cost")
    receivable = find("receivable")
    if not cash or not sales or not expense:
        logger.warning("Sample entries skipped: need cash, sales and expense accounts")
        return []

    today = today or date.today()
    credit_side = receivable or cash
    samples = [
        (today, "Sample Sales Transaction", "SAMPLE-001", cash, sales, Decimal("1000.00"),
         ("Cash received from customer", "Sales revenue")),
        (today - timedelta(days=7), "Sample Expense Transaction", "SAMPLE-002", expense, cash, Decimal("250.00"),
         ("Office supplies expense", "Cash paid for supplies")),
        (today - timedelta(days=14), "Sample Credit Sale", "SAMPLE-003", credit_side, sales, Decimal("500.00"),
         ("Accounts receivable" if receivable else "Cash received", "Credit sales revenue")),
    ]
    created: List[JournalEntry] = []
    for entry_date, description, reference, debit_account, credit_account, amount, memos in samples:
        created.append(
            create_journal_entry(
                entry_date=entry_date,
                description=description,
                reference=reference,
                created_by=created_by,
                lines=[
                    {"account_id": debit_account.id, "description": memos[0], "debit_amount": amount},
                    {"account_id": credit_account.id, "description": memos[1], "credit_amount": amount},
                ],
            )
        )
    return created
