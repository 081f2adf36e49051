from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

pytestmark = pytest.mark.integration

from bookkeeper.domains.ledger.events import LEDGER_JOURNAL_POSTED, LEDGER_JOURNAL_REVERSED
from bookkeeper.domains.ledger.models.ledger_models import JournalEntry, JournalEntryLine
from bookkeeper.domains.ledger.services import account_service, journal_service
from bookkeeper.extensions import db
from bookkeeper.platform.outbox.models import OutboxMessage


def _post(chart, debit, credit, amount="100.00", on=date(2024, 3, 1), description="Entry", **kwargs):
    return journal_service.create_journal_entry(
        entry_date=on,
        description=description,
        lines=[
            {"account_id": chart[debit].id, "debit_amount": amount},
            {"account_id": chart[credit].id, "credit_amount": amount},
        ],
        **kwargs,
    )


@pytest.mark.unit
def test_normalize_lines_totals_and_tolerance():
    lines, debit, credit = journal_service.normalize_lines(
        [
            {"account_id": 1, "debit_amount": "10.005"},
            {"account_id": 2, "credit_amount": "5.00"},
            {"account_id": 3, "credit_amount": "5.00"},
        ]
    )
    assert debit == Decimal("10.01")
    assert credit == Decimal("10.00")
    assert [line["account_id"] for line in lines] == [1, 2, 3]


@pytest.mark.unit
@pytest.mark.parametrize(
    "lines, code",
    [
        (
            [{"account_id": 1, "debit_amount": "1e30"}, {"account_id": 2, "credit_amount": "1e30"}],
            "validation_error",
        ),
        (
            [{"account_id": 1, "debit_amount": "1e17"}, {"account_id": 2, "credit_amount": "1e17"}],
            "validation_error",
        ),
        ([{"account_id": 1, "debit_amount": "10"}], "validation_error"),
        (
            [{"account_id": 1, "debit_amount": "10", "credit_amount": "10"}, {"account_id": 2, "credit_amount": "0"}],
            "validation_error",
        ),
        ([{"account_id": 1, "debit_amount": "0"}, {"account_id": 2, "credit_amount": "0"}], "validation_error"),
        ([{"account_id": 1, "debit_amount": "-5"}, {"account_id": 2, "credit_amount": "-5"}], "validation_error"),
        ([{"account_id": 1, "debit_amount": "10"}, {"account_id": 2, "credit_amount": "9.98"}], "unbalanced_entry"),
    ],
)
def test_normalize_lines_rejects_bad_input(lines, code):
    with pytest.raises(ValueError, match=code):
        journal_service.normalize_lines(lines)


def test_post_entry_persists_header_lines_and_event(chart, make_user):
    user = make_user("accountant")
    entry = _post(chart, "Cash", "Sales Revenue", "250.00", reference="INV-1", created_by=user.id)

    assert entry.entry_number == "JE-001"
    assert entry.total_debit == Decimal("250.00")
    assert entry.total_credit == Decimal("250.00")
    assert entry.is_balanced is True
    assert [line.line_number for line in entry.lines] == [1, 2]
    assert entry.lines[0].description == "Entry"

    event = OutboxMessage.query.filter_by(event_type=LEDGER_JOURNAL_POSTED).one()
    assert event.payload["entry_number"] == "JE-001"
    assert event.user_id == user.id


def test_entry_numbers_increment(chart):
    numbers = [_post(chart, "Cash", "Sales Revenue").entry_number for _ in range(3)]
    assert numbers == ["JE-001", "JE-002", "JE-003"]
    assert journal_service.generate_entry_number() == "JE-004"


def test_entry_number_steps_past_taken_numbers(chart):
    first = _post(chart, "Cash", "Sales Revenue")
    first.entry_number = "JE-010"
    db.session.commit()
    second = _post(chart, "Cash", "Sales Revenue")
    second.entry_number = "JE-005"
    db.session.commit()
    # Latest is JE-005; JE-006 is free.
    assert journal_service.generate_entry_number() == "JE-006"


def test_unbalanced_entry_is_not_persisted(chart):
    with pytest.raises(ValueError, match="unbalanced_entry"):
        journal_service.create_journal_entry(
            date(2024, 3, 1),
            "Broken",
            [
                {"account_id": chart["Cash"].id, "debit_amount": "100"},
                {"account_id": chart["Sales Revenue"].id, "credit_amount": "90"},
            ],
        )
    assert JournalEntry.query.count() == 0
    assert JournalEntryLine.query.count() == 0


def test_entry_against_header_inactive_or_missing_account_is_rejected(chart):
    with pytest.raises(ValueError, match="header_account"):
        _post(chart, "Current Assets", "Sales Revenue")

    account_service.delete_account(chart["Rent Expense"].id)
    with pytest.raises(ValueError, match="inactive_account"):
        _post(chart, "Rent Expense", "Cash")

    with pytest.raises(ValueError, match="not_found"):
        journal_service.create_journal_entry(
            date(2024, 3, 1),
            "Ghost",
            [
                {"account_id": 999999, "debit_amount": "1"},
                {"account_id": chart["Cash"].id, "credit_amount": "1"},
            ],
        )
    assert JournalEntry.query.count() == 0


def test_entry_requires_description(chart):
    with pytest.raises(ValueError, match="validation_error"):
        _post(chart, "Cash", "Sales Revenue", description="  ")


def test_oversized_image_is_rejected(chart):
    with pytest.raises(ValueError, match="image_too_large"):
        journal_service.create_journal_entry(
            date(2024, 3, 1),
            "Receipt",
            [
                {"account_id": chart["Office Expense"].id, "debit_amount": "5", "image_data": "data:image/png;base64," + "A" * 64},
                {"account_id": chart["Cash"].id, "credit_amount": "5"},
            ],
            max_image_bytes=32,
        )


def test_reverse_entry_posts_offsetting_entry(chart, make_user):
    user = make_user("accountant")
    original = _post(chart, "Office Expense", "Bank Account", "75.50", description="Supplies")
    reversal = journal_service.reverse_journal_entry(original.id, created_by=user.id, entry_date=date(2024, 3, 2))

    assert reversal.reversal_of_id == original.id
    assert original.reversed_by is reversal
    assert reversal.reference == original.entry_number
    assert reversal.description.startswith(f"Reversal of {original.entry_number}")
    assert [(l.account_id, l.debit_amount, l.credit_amount) for l in reversal.lines] == [
        (chart["Office Expense"].id, Decimal("0.00"), Decimal("75.50")),
        (chart["Bank Account"].id, Decimal("75.50"), Decimal("0.00")),
    ]
    # The original is untouched.
    assert original.total_debit == Decimal("75.50")
    assert [l.debit_amount for l in original.lines] == [Decimal("75.50"), Decimal("0.00")]

    event = OutboxMessage.query.filter_by(event_type=LEDGER_JOURNAL_REVERSED).one()
    assert event.payload["entry_id"] == original.id
    assert event.payload["reversal_entry_id"] == reversal.id


def test_entry_cannot_be_reversed_twice_and_reversals_cannot_be_reversed(chart):
    original = _post(chart, "Cash", "Sales Revenue")
    reversal = journal_service.reverse_journal_entry(original.id)

    with pytest.raises(ValueError, match="already_reversed"):
        journal_service.reverse_journal_entry(original.id)
    with pytest.raises(ValueError, match="cannot_reverse_reversal"):
        journal_service.reverse_journal_entry(reversal.id)
    with pytest.raises(ValueError, match="not_found"):
        journal_service.reverse_journal_entry(999999)
    assert JournalEntry.query.count() == 2


def test_list_entries_filters(chart):
    _post(chart, "Cash", "Sales Revenue", on=date(2024, 1, 10), description="January sale", reference="INV-7")
    _post(chart, "Office Expense", "Cash", on=date(2024, 2, 10), description="Paper")
    _post(chart, "Bank Account", "Bank Loan", on=date(2024, 3, 10), description="Loan drawdown")

    all_entries = journal_service.list_journal_entries()
    assert [e.description for e in all_entries] == ["Loan drawdown", "Paper", "January sale"]

    # Each bound applies on its own.
    assert len(journal_service.list_journal_entries(start_date=date(2024, 2, 1))) == 2
    assert len(journal_service.list_journal_entries(end_date=date(2024, 2, 10))) == 2
    assert len(journal_service.list_journal_entries(date(2024, 2, 1), date(2024, 2, 28))) == 1

    assert [e.description for e in journal_service.list_journal_entries(account_type="liability")] == ["Loan drawdown"]
    assert len(journal_service.list_journal_entries(account_type="All Types")) == 3
    assert [e.description for e in journal_service.list_journal_entries(search_term="inv-7")] == ["January sale"]
    assert [e.description for e in journal_service.list_journal_entries(search_term="office")] == ["Paper"]


def test_search_treats_like_wildcards_literally(chart):
    _post(chart, "Cash", "Sales Revenue", description="Plain sale")
    _post(chart, "Cash", "Sales Revenue", description="Promo 10% off")

    assert journal_service.list_journal_entries(search_term="_") == []
    assert [e.description for e in journal_service.list_journal_entries(search_term="%")] == ["Promo 10% off"]
    assert [e.description for e in journal_service.list_journal_entries(search_term="10%")] == ["Promo 10% off"]
    assert len(journal_service.list_journal_entries(search_term="sale")) == 1


def test_sample_entries_use_starter_chart(chart):
    today = date(2024, 6, 30)
    entries = journal_service.create_sample_journal_entries(today=today)
    assert [e.reference for e in entries] == ["SAMPLE-001", "SAMPLE-002", "SAMPLE-003"]
    assert entries[2].lines[0].account_id == chart["Accounts Receivable"].id
    assert entries[1].entry_date == date(2024, 6, 23)
    assert journal_service.has_journal_entries()


def test_sample_entries_skip_without_required_accounts(app):
    assert journal_service.create_sample_journal_entries() == []
