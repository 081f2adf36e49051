from bookkeeper.domains.ledger.services.account_service import (
    can_delete_account,
    create_account,
    create_account_type,
    delete_account,
    delete_account_type,
    ensure_default_account_types,
    generate_account_code,
    get_chart_of_accounts,
    update_account,
    update_account_type,
)
from bookkeeper.domains.ledger.services.journal_service import (
    create_journal_entry,
    create_sample_journal_entries,
    generate_entry_number,
    list_journal_entries,
    reverse_journal_entry,
)
from bookkeeper.domains.ledger.services.report_service import (
    account_detail_report,
    account_summary_report,
    balance_sheet,
    cash_flow_statement,
    dashboard_stats,
    general_ledger,
    hierarchical_account_report,
    income_statement,
)
from bookkeeper.domains.ledger.services.trial_balance_service import (
    calculate_trial_balance,
    trial_balance_csv,
    trial_balance_view,
)

__all__ = [
    "create_account_type",
    "update_account_type",
    "delete_account_type",
    "ensure_default_account_types",
    "get_chart_of_accounts",
    "create_account",
    "update_account",
    "delete_account",
    "can_delete_account",
    "generate_account_code",
    "create_journal_entry",
    "create_sample_journal_entries",
    "generate_entry_number",
    "list_journal_entries",
    "reverse_journal_entry",
    "calculate_trial_balance",
    "trial_balance_view",
    "trial_balance_csv",
    "balance_sheet",
    "income_statement",
    "cash_flow_statement",
    "account_detail_report",
    "account_summary_report",
    "hierarchical_account_report",
    "general_ledger",
    "dashboard_stats",
]
