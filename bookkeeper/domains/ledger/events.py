"""Ledger domain event catalog."""

from __future__ import annotations

LEDGER_ACCOUNT_CREATED = "ledger.account.created"
LEDGER_ACCOUNT_UPDATED = "ledger.account.updated"
LEDGER_ACCOUNT_DEACTIVATED = "ledger.account.deactivated"
LEDGER_JOURNAL_POSTED = "ledger.journal.posted"
LEDGER_JOURNAL_REVERSED = "ledger.journal.reversed"

EVENT_CATALOG = {
    LEDGER_ACCOUNT_CREATED: {
        "version": "v1",
        "payload": {
            "account_id": "int",
            "code": "str",
            "name": "str",
            "account_type": "str",
            "parent_id": "int?",
            "is_header": "bool",
        },
    },
    LEDGER_ACCOUNT_UPDATED: {
        "version": "v1",
        "payload": {
            "account_id": "int",
            "changed": "list[str]",
        },
    },
    LEDGER_ACCOUNT_DEACTIVATED: {
        "version": "v1",
        "payload": {
            "account_id": "int",
            "code": "str",
        },
    },
    LEDGER_JOURNAL_POSTED: {
        "version": "v1",
        "payload": {
            "entry_id": "int",
            "entry_number": "str",
            "entry_date": "date",
            "total_debit": "decimal",
            "total_credit": "decimal",
            "line_count": "int",
            "created_by": "int?",
        },
    },
    LEDGER_JOURNAL_REVERSED: {
        "version": "v1",
        "payload": {
            "entry_id": "int",
            "reversal_entry_id": "int",
            "reversal_entry_number": "str",
            "created_by": "int?",
        },
    },
}

__all__ = [
    "LEDGER_ACCOUNT_CREATED",
    "LEDGER_ACCOUNT_UPDATED",
    "LEDGER_ACCOUNT_DEACTIVATED",
    "LEDGER_JOURNAL_POSTED",
    "LEDGER_JOURNAL_REVERSED",
    "EVENT_CATALOG",
]
