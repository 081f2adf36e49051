from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

pytestmark = pytest.mark.integration

from bookkeeper.domains.ledger.models.ledger_models import AccountType
from bookkeeper.domains.ledger.services import (
    account_service,
    journal_service,
    report_service,
    trial_balance_service,
)
from bookkeeper.extensions import db


def _post(chart, on, debit, credit, amount, description):
    return journal_service.create_journal_entry(
        entry_date=on,
        description=description,
        lines=[
            {"account_id": chart[debit].id, "debit_amount": amount},
            {"account_id": chart[credit].id, "credit_amount": amount},
        ],
    )


@pytest.fixture()
def activity(chart):
    """Cash opens at 100; a January sale then three February movements."""
    account_service.set_opening_balance(chart["Cash"].id, Decimal("100"))
    _post(chart, date(2024, 1, 10), "Cash", "Sales Revenue", "1000", "Cash sale")
    _post(chart, date(2024, 2, 5), "Office Equipment", "Cash", "300", "Printer")
    _post(chart, date(2024, 2, 10), "Cash", "Owner's Equity", "200", "Owner contribution")
    _post(chart, date(2024, 2, 20), "Office Expense", "Cash", "150", "Stationery")
    return chart


# ==================== Trial balance ====================


def test_trial_balance_totals_and_closing_balances(activity):
    view = trial_balance_service.trial_balance_view()
    assert view["total_debits"] == 1650.0
    assert view["total_credits"] == 1650.0
    assert view["is_balanced"] is True

    codes = [row["account_code"] for row in view["accounts"]]
    assert codes == sorted(codes)
    by_name = {row["account_name"]: row for row in view["accounts"]}
    assert by_name["Cash"]["debit_total"] == 1200.0
    assert by_name["Cash"]["credit_total"] == 450.0
    assert by_name["Cash"]["closing_balance"] == 750.0
    assert by_name["Sales Revenue"]["closing_balance"] == 1000.0
    assert by_name["Rent Expense"]["closing_balance"] == 0.0


def test_trial_balance_date_range_and_opening_balances(activity):
    rows = trial_balance_service.calculate_trial_balance(start_date=date(2024, 2, 1), include_opening=True)
    cash = next(row for row in rows if row["account_name"] == "Cash")
    assert cash["opening_balance"] == Decimal("100.00")
    assert cash["debit_total"] == Decimal("200.00")
    assert cash["credit_total"] == Decimal("450.00")
    assert cash["closing_balance"] == Decimal("-150.00")


def test_trial_balance_skips_inactive_accounts(activity):
    account_service.delete_account(activity["Rent Expense"].id)
    names = {row["account_name"] for row in trial_balance_service.calculate_trial_balance()}
    assert "Rent Expense" not in names


def test_trial_balance_csv(activity):
    body = trial_balance_service.trial_balance_csv(include_opening=True)
    rows = list(csv.reader(io.StringIO(body)))
    assert rows[0] == trial_balance_service.CSV_HEADERS
    assert ["10101", "Cash", "Asset", "100.00", "1200.00", "450.00", "850.00"] in rows


def test_trial_balance_is_balanced_at_exactly_one_cent(chart):
    journal_service.create_journal_entry(
        date(2024, 1, 5),
        "Rounding difference",
        [
            {"account_id": chart["Cash"].id, "debit_amount": "100.00"},
            {"account_id": chart["Sales Revenue"].id, "credit_amount": "99.99"},
        ],
    )
    view = trial_balance_service.trial_balance_view()
    assert (view["total_debits"], view["total_credits"]) == (100.0, 99.99)
    assert view["is_balanced"] is True


def test_trial_balance_beyond_one_cent_is_unbalanced(chart):
    entry = journal_service.create_journal_entry(
        date(2024, 1, 5),
        "Sale",
        [
            {"account_id": chart["Cash"].id, "debit_amount": "100.00"},
            {"account_id": chart["Sales Revenue"].id, "credit_amount": "100.00"},
        ],
    )
    # Posting refuses such a gap, so widen it directly in storage.
    entry.lines[0].debit_amount = Decimal("100.02")
    db.session.commit()
    assert trial_balance_service.trial_balance_view()["is_balanced"] is False


@pytest.mark.unit
def test_closing_balance_sign_conventions():
    closing = trial_balance_service.closing_balance
    assert closing(True, Decimal("10"), Decimal("5"), Decimal("3")) == Decimal("12")
    assert closing(False, Decimal("10"), Decimal("5"), Decimal("3")) == Decimal("8")


# ==================== Statements ====================


def test_balance_sheet_reports_gap_instead_of_forcing_balance(activity):
    sheet = report_service.balance_sheet(date(2024, 2, 29))
    assets = {item["name"]: item["amount"] for item in sheet["assets"]}
    assert assets["Cash"] == 750.0
    assert assets["Office Equipment"] == 300.0
    assert sheet["totalAssets"] == 1050.0
    assert sheet["totalEquity"] == 200.0
    assert sheet["totalLiabilities"] == 0.0
    # Undistributed income is not closed into equity.
    assert sheet["difference"] == 850.0
    assert sheet["asOf"] == "2024-02-29"


def test_balance_sheet_as_of_excludes_later_lines(activity):
    sheet = report_service.balance_sheet(date(2024, 1, 31))
    assets = {item["name"]: item["amount"] for item in sheet["assets"]}
    assert assets["Cash"] == 1000.0
    assert assets["Office Equipment"] == 0.0


def test_balance_sheet_liabilities_shown_as_absolute_values(chart):
    _post(chart, date(2024, 1, 1), "Accounts Payable", "Cash", "40", "Overpaid supplier")
    sheet = report_service.balance_sheet(date(2024, 1, 31))
    payable = next(item for item in sheet["liabilities"] if item["name"] == "Accounts Payable")
    assert payable["amount"] == 40.0
    assert payable["actualBalance"] == -40.0


def test_balance_sheet_skips_unknown_account_types(chart):
    custom = account_service.create_account_type("Memo", "debit")
    account_service.create_account("Memo Account", custom.id)
    sheet = report_service.balance_sheet(date(2024, 1, 31))
    names = {item["name"] for section in ("assets", "liabilities", "equity") for item in sheet[section]}
    assert "Memo Account" not in names


def test_income_statement(activity):
    statement = report_service.income_statement(date(2024, 1, 1), date(2024, 2, 29))
    assert [item["name"] for item in statement["revenue"]] == ["Sales Revenue"]
    assert statement["totalRevenue"] == 1000.0
    assert statement["totalExpenses"] == 150.0
    assert statement["netIncome"] == 850.0

    february = report_service.income_statement(date(2024, 2, 1), date(2024, 2, 29))
    assert february["revenue"] == []
    assert february["netIncome"] == -150.0


@pytest.mark.unit
@pytest.mark.parametrize(
    "type_name, account_name, expected",
    [
        ("Revenue", "Consulting Fees", "operating"),
        ("Expense", "Loan Interest", "operating"),
        ("Asset", "Petty Cash", "operating"),
        ("Asset", "Delivery Vehicle", "investing"),
        ("Asset", "Prepaid Rent", "operating"),
        ("Liability", "Mortgage Loan", "financing"),
        ("Liability", "Accounts Payable", "operating"),
        ("Equity", "Owner's Capital", "financing"),
    ],
)
def test_cash_flow_categorization(type_name, account_name, expected):
    assert report_service.categorize_cash_flow(type_name, account_name) == expected


def test_cash_flow_statement(activity):
    statement = report_service.cash_flow_statement(date(2024, 2, 1), date(2024, 2, 29))
    assert statement["net_cash_flow"] == {
        "operating": 800.0,
        "investing": 300.0,
        "financing": 200.0,
        "total": 1300.0,
    }
    assert [item["category"] for item in statement["investing_activities"]] == ["Other Assets"]
    assert statement["financing_activities"][0]["category"] == "Equity"
    # No postings fall on Feb 1, so beginning cash is the January closing position.
    assert statement["cash_at_beginning"] == 1100.0
    assert statement["cash_at_end"] == 850.0


def test_cash_at_beginning_includes_postings_on_start_date(chart):
    _post(chart, date(2024, 3, 1), "Cash", "Sales Revenue", "500", "Opening-day sale")
    statement = report_service.cash_flow_statement(date(2024, 3, 1), date(2024, 3, 31))
    assert statement["cash_at_beginning"] == 500.0
    assert statement["cash_at_end"] == 500.0


def test_cash_accounts_exclude_liabilities_named_bank(chart):
    names = [account.name for account in report_service.cash_accounts()]
    assert names == ["Cash", "Bank Account"]


# ==================== Account reports ====================


def test_account_detail_running_balance_and_sub_accounts(activity):
    report = report_service.account_detail_report(activity["Current Assets"].id, include_opening=True)
    assert report["transactions"] == []
    cash = next(sub for sub in report["sub_accounts"] if sub["account"]["name"] == "Cash")
    assert cash["opening_balance"] == 100.0
    assert [t["running_balance"] for t in cash["transactions"]] == [1100.0, 800.0, 1000.0, 850.0]
    assert cash["current_balance"] == 850.0
    assert cash["summary"] == {
        "total_debits": 1200.0,
        "total_credits": 450.0,
        "net_change": 750.0,
        "transaction_count": 4,
    }


def test_account_detail_without_sub_accounts_and_date_range(activity):
    report = report_service.account_detail_report(
        activity["Cash"].id,
        start_date=date(2024, 2, 1),
        end_date=date(2024, 2, 15),
        include_sub_accounts=False,
    )
    assert report["sub_accounts"] == []
    assert [t["description"] for t in report["transactions"]] == ["Printer", "Owner contribution"]
    assert report["current_balance"] == -100.0


def test_account_detail_unknown_account(app):
    with pytest.raises(ValueError, match="not_found"):
        report_service.account_detail_report(999999)


def test_account_summary_and_hierarchy(activity):
    summaries = {row["account_name"]: row for row in report_service.account_summary_report(include_opening=True)}
    assert summaries["Cash"]["current_balance"] == 850.0
    assert summaries["Cash"]["transaction_count"] == 4
    assert summaries["Current Assets"]["has_sub_accounts"] is True

    tree = report_service.hierarchical_account_report()
    roots = {node["account_name"]: node for node in tree}
    assert "Cash" not in roots
    assert [child["account_name"] for child in roots["Current Assets"]["sub_accounts"]] == [
        "Cash",
        "Bank Account",
        "Accounts Receivable",
    ]


def test_hierarchy_surfaces_children_of_inactive_parents(chart):
    asset = AccountType.query.filter_by(name="Asset").one()
    parent = account_service.create_account("Investments", asset.id)
    child = account_service.create_account("Bonds", asset.id, parent_id=parent.id)
    parent.is_active = False
    db.session.commit()

    roots = {node["account_name"] for node in report_service.hierarchical_account_report()}
    assert child.name in roots
    assert parent.name not in roots


def test_general_ledger_lists_lines_chronologically(activity):
    lines = report_service.general_ledger(activity["Cash"].id)
    assert [line["entry_description"] for line in lines] == [
        "Cash sale",
        "Printer",
        "Owner contribution",
        "Stationery",
    ]
    assert lines[1]["credit_amount"] == 300.0


def test_dashboard_stats(activity):
    stats = report_service.dashboard_stats(today=date(2024, 2, 29))
    assert stats == {
        "totalAssets": 1050.0,
        "netIncome": 850.0,
        "journalEntriesCount": 4,
        "activeAccountsCount": 11,
    }
