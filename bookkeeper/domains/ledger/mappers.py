"""Model to JSON mappers for the ledger domain."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from bookkeeper.domains.ledger.models.ledger_models import (
    Account,
    AccountType,
    JournalEntry,
    JournalEntryLine,
    OpeningBalance,
)
from bookkeeper.domains.ledger.schemas.ledger_schemas import JournalEntryCreateRequest


def money(value: Optional[Decimal]) -> float:
    return float(value or 0)


def map_journal_entry_request(payload: JournalEntryCreateRequest) -> List[dict]:
    """Convert a journal entry request into service-ready line dicts."""
    return [
        {
            "account_id": line.account_id,
            "description": line.description,
            "debit_amount": line.debit_amount,
            "credit_amount": line.credit_amount,
            "image_data": line.image_data,
        }
        for line in payload.lines
    ]


def map_account_type(account_type: AccountType) -> dict:
    return {
        "id": account_type.id,
        "name": account_type.name,
        "description": account_type.description,
        "normal_balance": account_type.normal_balance,
        "is_system": account_type.is_system,
        "is_active": account_type.is_active,
    }


def map_account(account: Account) -> dict:
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "description": account.description,
        "parent_id": account.parent_id,
        "account_type_id": account.account_type_id,
        "account_type": account.type_name,
        "normal_balance": "debit" if account.is_debit_normal else "credit",
        "is_header": account.is_header,
        "is_active": account.is_active,
        "level": account.level,
    }


def map_account_tree(account: Account, active_only: bool = True) -> dict:
    node = map_account(account)
    node["children"] = [
        map_account_tree(child, active_only)
        for child in account.children
        if child.is_active or not active_only
    ]
    return node


def map_line(line: JournalEntryLine, include_image: bool = True) -> dict:
    data = {
        "id": line.id,
        "line_number": line.line_number,
        "account_id": line.account_id,
        "account_code": line.account.code if line.account else None,
        "account_name": line.account.name if line.account else None,
        "description": line.description,
        "debit_amount": money(line.debit_amount),
        "credit_amount": money(line.credit_amount),
    }
    if include_image:
        data["image_data"] = line.image_data
    else:
        data["has_image"] = bool(line.image_data)
    return data


def map_journal_entry(entry: JournalEntry, include_images: bool = True) -> dict:
    return {
        "id": entry.id,
        "entry_number": entry.entry_number,
        "entry_date": entry.entry_date.isoformat(),
        "description": entry.description,
        "reference": entry.reference,
        "total_debit": money(entry.total_debit),
        "total_credit": money(entry.total_credit),
        "is_balanced": entry.is_balanced,
        "created_by": entry.created_by,
        "reversal_of_id": entry.reversal_of_id,
        "reversed_by_id": entry.reversed_by.id if entry.reversed_by else None,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "lines": [map_line(line, include_image=include_images) for line in entry.lines],
    }


def map_opening_balance(opening: OpeningBalance) -> dict:
    return {
        "account_id": opening.account_id,
        "balance": money(opening.balance),
        "as_of": opening.as_of.isoformat() if opening.as_of else None,
    }
