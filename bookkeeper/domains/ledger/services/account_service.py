"""Chart of accounts service: account types, accounts and code generation."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from bookkeeper.domains.ledger.events import (
    LEDGER_ACCOUNT_CREATED,
    LEDGER_ACCOUNT_DEACTIVATED,
    LEDGER_ACCOUNT_UPDATED,
)
from bookkeeper.domains.ledger.models.ledger_models import (
    MAX_AMOUNT,
    Account,
    AccountType,
    JournalEntryLine,
    OpeningBalance,
)
from bookkeeper.extensions import db
from bookkeeper.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_TYPES = (
    ("Asset", "Resources owned by the company", "debit"),
    ("Liability", "Debts and obligations owed by the company", "credit"),
    ("Equity", "Owner's interest in the company", "credit"),
    ("Revenue", "Income earned from business operations", "credit"),
    ("Expense", "Costs incurred in business operations", "debit"),
)

# Base code prefix per type identifier; unknown types share "9".
CODE_PREFIXES: Dict[str, str] = {
    "asset": "1",
    "liability": "2",
    "equity": "3",
    "revenue": "4",
    "expense": "5",
}
FALLBACK_CODE_PREFIX = "9"
MAX_CODE_SUFFIX = 99


# ==================== Account Types ====================


def list_account_types(include_inactive: bool = False) -> List[AccountType]:
    query = AccountType.query
    if not include_inactive:
        query = query.filter(AccountType.is_active.is_(True))
    return query.order_by(AccountType.name).all()


def get_account_type(type_id: int) -> AccountType:
    account_type = db.session.get(AccountType, type_id)
    if not account_type:
        raise ValueError("not_found")
    return account_type


def ensure_default_account_types() -> List[AccountType]:
    """Create any missing system account types. Idempotent."""
    existing = {t.name for t in AccountType.query.all()}
    created = []
    for name, description, normal in DEFAULT_ACCOUNT_TYPES:
        if name in existing:
            continue
        account_type = AccountType(
            name=name,
            description=description,
            normal_balance=normal,
            is_system=True,
            is_active=True,
        )
        db.session.add(account_type)
        created.append(account_type)
    if created:
        db.session.commit()
    return created


def create_account_type(name: str, normal_balance: str, description: Optional[str] = None) -> AccountType:
    clean_name = (name or "").strip()
    if not clean_name or normal_balance not in ("debit", "credit"):
        raise ValueError("validation_error")
    if _account_type_name_taken(clean_name):
        raise ValueError("duplicate_name")
    # User-defined types are never system types.
    account_type = AccountType(
        name=clean_name,
        description=description,
        normal_balance=normal_balance,
        is_system=False,
        is_active=True,
    )
    db.session.add(account_type)
    _commit_or_conflict("duplicate_name")
    return account_type


def update_account_type(type_id: int, fields: dict) -> AccountType:
    """Update name/description/normal_balance/is_active. System types are editable."""
    account_type = get_account_type(type_id)
    if "name" in fields and fields["name"] is not None:
        clean_name = fields["name"].strip()
        if not clean_name:
            raise ValueError("validation_error")
        if clean_name != account_type.name and _account_type_name_taken(clean_name):
            raise ValueError("duplicate_name")
        account_type.name = clean_name
    if "description" in fields:
        account_type.description = fields["description"]
    if fields.get("normal_balance") is not None:
        if fields["normal_balance"] not in ("debit", "credit"):
            raise ValueError("validation_error")
        account_type.normal_balance = fields["normal_balance"]
    if fields.get("is_active") is not None:
        account_type.is_active = bool(fields["is_active"])
    _commit_or_conflict("duplicate_name")
    return account_type


def delete_account_type(type_id: int) -> None:
    account_type = get_account_type(type_id)
    if account_type.is_system:
        raise ValueError("system_type")
    in_use = db.session.query(Account.id).filter(Account.account_type_id == type_id).first()
    if in_use:
        raise ValueError("account_type_in_use")
    db.session.delete(account_type)
    db.session.commit()
    logger.info("Deleted account type %s", type_id)


def _account_type_name_taken(name: str) -> bool:
    return (
        db.session.query(AccountType.id).filter(func.lower(AccountType.name) == name.lower()).first()
        is not None
    )


# ==================== Accounts ====================


def get_chart_of_accounts(include_inactive: bool = False) -> List[Account]:
    query = Account.query
    if not include_inactive:
        query = query.filter(Account.is_active.is_(True))
    return query.order_by(Account.code).all()


def get_account_tree() -> List[Account]:
    """Active root accounts; children hang off ``Account.children``."""
    accounts = get_chart_of_accounts()
    active_ids = {a.id for a in accounts}
    return [a for a in accounts if a.parent_id is None or a.parent_id not in active_ids]


def get_account(account_id: int) -> Account:
    account = db.session.get(Account, account_id)
    if not account:
        raise ValueError("not_found")
    return account


def generate_account_code(account_type_id: int, parent_id: Optional[int] = None) -> str:
    """Return the next free code under the type prefix or the parent's code.

    Read-only: two calls without an insert in between return the same code,
    the unique constraint on ``account.code`` rejects the second insert.
    """
    if parent_id:
        prefix = get_account(parent_id).code
    else:
        account_type = get_account_type(account_type_id)
        prefix = CODE_PREFIXES.get(account_type.name.strip().lower(), FALLBACK_CODE_PREFIX)

    code_len = len(prefix) + 2
    taken = {
        code
        for (code,) in db.session.query(Account.code)
        .filter(Account.code.like(f"{prefix}%"), func.length(Account.code) == code_len)
        .all()
    }
    for suffix in range(1, MAX_CODE_SUFFIX + 1):
        candidate = f"{prefix}{suffix:02d}"
        if candidate not in taken:
            return candidate
    raise ValueError("code_space_exhausted")


def create_account(
    name: str,
    account_type_id: int,
    code: Optional[str] = None,
    parent_id: Optional[int] = None,
    description: Optional[str] = None,
    is_header: bool = False,
) -> Account:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValueError("validation_error")
    account_type = get_account_type(account_type_id)
    if not account_type.is_active:
        raise ValueError("inactive_account_type")

    parent = None
    if parent_id:
        parent = get_account(parent_id)
        if not parent.is_active:
            raise ValueError("inactive_account")

    clean_code = (code or "").strip() or generate_account_code(account_type_id, parent_id)
    if db.session.query(Account.id).filter(Account.code == clean_code).first():
        raise ValueError("duplicate_code")

    account = Account(
        code=clean_code,
        name=clean_name,
        description=description,
        account_type_id=account_type.id,
        parent_id=parent.id if parent else None,
        is_header=bool(is_header),
        is_active=True,
        level=(parent.level + 1) if parent else 1,
    )
    db.session.add(account)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ValueError("duplicate_code")

    enqueue_outbox(
        LEDGER_ACCOUNT_CREATED,
        {
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "account_type": account_type.name,
            "parent_id": account.parent_id,
            "is_header": account.is_header,
        },
        user_id=None,
    )
    _commit_or_conflict("duplicate_code")
    logger.info("Created account %s %s", account.code, account.name)
    return account


def update_account(account_id: int, fields: dict) -> Account:
    """Apply a partial update. ``fields`` holds only keys the caller sent."""
    account = get_account(account_id)
    changed: List[str] = []

    if fields.get("name") is not None:
        clean_name = fields["name"].strip()
        if not clean_name:
            raise ValueError("validation_error")
        account.name = clean_name
        changed.append("name")
    if "description" in fields:
        account.description = fields["description"]
        changed.append("description")
    if fields.get("code") is not None:
        clean_code = fields["code"].strip()
        if not clean_code:
            raise ValueError("validation_error")
        if clean_code != account.code:
            clash = db.session.query(Account.id).filter(Account.code == clean_code).first()
            if clash:
                raise ValueError("duplicate_code")
            account.code = clean_code
            changed.append("code")
    if fields.get("account_type_id") is not None:
        account.account_type = get_account_type(fields["account_type_id"])
        changed.append("account_type_id")
    if "parent_id" in fields:
        _set_parent(account, fields["parent_id"])
        changed.append("parent_id")
    if fields.get("is_header") is not None:
        if fields["is_header"] and not account.is_header and has_postings(account.id):
            raise ValueError("has_postings")
        account.is_header = bool(fields["is_header"])
        changed.append("is_header")

    if changed:
        enqueue_outbox(
            LEDGER_ACCOUNT_UPDATED,
            {"account_id": account.id, "changed": changed},
            user_id=None,
        )
    _commit_or_conflict("duplicate_code")
    return account


def _set_parent(account: Account, parent_id: Optional[int]) -> None:
    if not parent_id:
        account.parent = None
        _relevel(account, 1)
        return
    parent = get_account(parent_id)
    # Walk up from the new parent; finding ourselves means a cycle.
    node = parent
    while node is not None:
        if node.id == account.id:
            raise ValueError("invalid_parent")
        node = node.parent
    if not parent.is_active:
        raise ValueError("inactive_account")
    account.parent = parent
    _relevel(account, parent.level + 1)


def _relevel(account: Account, level: int) -> None:
    account.level = level
    for child in account.children:
        _relevel(child, level + 1)


def has_postings(account_id: int) -> bool:
    return (
        db.session.query(JournalEntryLine.id).filter(JournalEntryLine.account_id == account_id).first()
        is not None
    )


def has_active_children(account_id: int) -> bool:
    return (
        db.session.query(Account.id)
        .filter(Account.parent_id == account_id, Account.is_active.is_(True))
        .first()
        is not None
    )


def deletion_blocker(account: Account) -> Optional[str]:
    """Return the error code that blocks deletion, or None."""
    if account.is_header:
        return "header_account"
    if has_active_children(account.id):
        return "has_children"
    if has_postings(account.id):
        return "has_postings"
    return None


def can_delete_account(account_id: int) -> bool:
    return deletion_blocker(get_account(account_id)) is None


def delete_account(account_id: int) -> Account:
    """Soft-delete: the row stays, ``is_active`` flips off."""
    account = get_account(account_id)
    if not account.is_active:
        return account
    blocker = deletion_blocker(account)
    if blocker:
        raise ValueError(blocker)
    account.is_active = False
    enqueue_outbox(
        LEDGER_ACCOUNT_DEACTIVATED,
        {"account_id": account.id, "code": account.code},
        user_id=None,
    )
    db.session.commit()
    logger.info("Deactivated account %s", account.code)
    return account


# ==================== Opening balances ====================


def set_opening_balance(account_id: int, balance: Decimal, as_of: Optional[date] = None) -> OpeningBalance:
    try:
        amount = Decimal(str(balance)).quantize(Decimal(".01"))
    except ArithmeticError:
        raise ValueError("validation_error")
    if not amount.is_finite() or amount.copy_abs() > MAX_AMOUNT:
        raise ValueError("validation_error")
    account = get_account(account_id)
    if account.is_header:
        raise ValueError("header_account")
    opening = OpeningBalance.query.filter_by(account_id=account.id).first()
    if not opening:
        opening = OpeningBalance(account_id=account.id)
        db.session.add(opening)
    opening.balance = amount
    opening.as_of = as_of
    db.session.commit()
    return opening


def _commit_or_conflict(code: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValueError(code)
