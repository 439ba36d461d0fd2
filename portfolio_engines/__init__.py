"""
Portfolio Engines - Pure calculation layer for the trial balance pipeline.

Every function here is pure: explicit inputs, frozen dataclass outputs, no
clock, no I/O.  Collaborator calls and concurrency live in
``portfolio_services``.

Engines:
- classifier: report row -> typed AccountRecord
- trial_balance: one entity's report trees -> EntityTrialBalance
- consolidation: entity trial balances -> PortfolioTrialBalance
- journal_screening: manual journals -> flagged, scored entries
- period_comparison: two trial balances -> classified account changes
- ratios: trial balance totals -> financial ratios
- expense_analysis: profit-and-loss tree -> categorized expense breakdown
- intercompany: balance-sheet tree -> intercompany accounts and totals
- account_flags: trial balance -> unusual-balance flags per account

Usage:
    from portfolio_engines import build_entity_trial_balance, render_to_dict

    tb = build_entity_trial_balance("t-1", "Acme", report_date, bs_tree, pl_tree)
    payload = render_to_dict(tb)
"""

from portfolio_engines.account_flags import (
    AccountFlagReport,
    AccountFlags,
    AccountFlagSummary,
    FlaggedAccount,
    flag_account,
    flag_accounts,
)
from portfolio_engines.classifier import (
    AccountRecord,
    Classification,
    SkipReason,
    classify_row,
    explain_row,
    match_account_type,
)
from portfolio_engines.consolidation import (
    AccountCounts,
    AccountSection,
    CompanySections,
    CompanyTrialBalance,
    ConsolidatedView,
    DataQuality,
    PortfolioSummary,
    PortfolioTrialBalance,
    UnavailableEntity,
    company_view,
    consolidate_trial_balances,
)
from portfolio_engines.expense_analysis import (
    CategoryTotal,
    ExpenseAnalysis,
    ExpenseItem,
    analyze_expenses,
    categorize_expense,
)
from portfolio_engines.intercompany import (
    IntercompanyAccount,
    IntercompanyAnalysis,
    analyze_intercompany,
    related_entity,
)
from portfolio_engines.journal_screening import (
    AccountHistory,
    AccountMovement,
    JournalFlags,
    ScreenedEntry,
    ScreeningOrder,
    ScreeningSummary,
    Severity,
    WatchlistMovements,
    account_history,
    find_unbalanced,
    screen_entries,
    screen_entry,
    summarize_screening,
    watchlist_movements,
)
from portfolio_engines.period_comparison import (
    ChangeType,
    PeriodChange,
    PeriodComparison,
    PeriodSnapshot,
    TotalsChange,
    compare_periods,
)
from portfolio_engines.ratios import FinancialRatios, calculate_ratios
from portfolio_engines.rendering import render_to_dict
from portfolio_engines.tracer import traced_engine
from portfolio_engines.trial_balance import (
    AccountingEquation,
    BalanceCheck,
    EntityTrialBalance,
    TrialBalanceTotals,
    build_entity_trial_balance,
    compute_balance_check,
)

__all__ = [
    # Classifier
    "AccountRecord",
    "Classification",
    "SkipReason",
    "classify_row",
    "explain_row",
    "match_account_type",
    # Trial balance
    "AccountingEquation",
    "BalanceCheck",
    "EntityTrialBalance",
    "TrialBalanceTotals",
    "build_entity_trial_balance",
    "compute_balance_check",
    # Consolidation
    "AccountCounts",
    "AccountSection",
    "CompanySections",
    "CompanyTrialBalance",
    "ConsolidatedView",
    "DataQuality",
    "PortfolioSummary",
    "PortfolioTrialBalance",
    "UnavailableEntity",
    "company_view",
    "consolidate_trial_balances",
    # Journal screening
    "AccountHistory",
    "AccountMovement",
    "JournalFlags",
    "ScreenedEntry",
    "ScreeningOrder",
    "ScreeningSummary",
    "Severity",
    "WatchlistMovements",
    "account_history",
    "find_unbalanced",
    "screen_entries",
    "screen_entry",
    "summarize_screening",
    "watchlist_movements",
    # Period comparison
    "ChangeType",
    "PeriodChange",
    "PeriodComparison",
    "PeriodSnapshot",
    "TotalsChange",
    "compare_periods",
    # Ratios / expenses
    "FinancialRatios",
    "calculate_ratios",
    "CategoryTotal",
    "ExpenseAnalysis",
    "ExpenseItem",
    "analyze_expenses",
    "categorize_expense",
    # Intercompany / account flags
    "IntercompanyAccount",
    "IntercompanyAnalysis",
    "analyze_intercompany",
    "related_entity",
    "AccountFlagReport",
    "AccountFlagSummary",
    "AccountFlags",
    "FlaggedAccount",
    "flag_account",
    "flag_accounts",
    # Support
    "render_to_dict",
    "traced_engine",
]
