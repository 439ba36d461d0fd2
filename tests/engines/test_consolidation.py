"""
Tests for the pure consolidation engine.

Covers:
- Field-wise summation of company totals
- Requested-order company listing
- Data-quality flags for missing and unbalanced entities
- Company drill-down sections and account counts
"""

from datetime import date
from decimal import Decimal

from portfolio_engines.consolidation import (
    NOT_FETCHED,
    UnavailableEntity,
    company_view,
    consolidate_trial_balances,
)
from portfolio_engines.trial_balance import build_entity_trial_balance
from portfolio_kernel.domain.entities import EntityDescriptor
from tests.conftest import section

REPORT_DATE = date(2024, 6, 30)

ALPHA = EntityDescriptor("alpha", "Alpha Ltd")
BETA = EntityDescriptor("beta", "Beta Ltd")
GAMMA = EntityDescriptor("gamma", "Gamma Ltd")


def _tb(entity: EntityDescriptor, assets, liabilities, equity, revenue=None, expenses=None):
    pnl = None
    if revenue is not None:
        pnl = (section("Income", ("Sales", revenue)), section("Expenses", ("Rent", expenses)))
    return build_entity_trial_balance(
        entity_id=entity.entity_id,
        entity_name=entity.entity_name,
        report_date=REPORT_DATE,
        balance_sheet=(
            section("Bank", ("Cheque", assets)),
            section("Liabilities", ("Loan", liabilities)),
            section("Equity", ("Capital", equity)),
        ),
        profit_and_loss=pnl,
    )


class TestConsolidatedTotals:

    def test_totals_are_field_wise_sums(self):
        alpha = _tb(ALPHA, 100, 40, 60, revenue=500, expenses=200)
        beta = _tb(BETA, 250, 100, 150)

        result = consolidate_trial_balances(
            REPORT_DATE, [ALPHA, BETA], {"alpha": alpha, "beta": beta},
        )

        assert result.totals.total_assets == Decimal("350")
        assert result.totals.total_liabilities == Decimal("140")
        assert result.totals.total_equity == Decimal("210")
        assert result.totals.total_revenue == Decimal("500")
        assert result.totals.total_expenses == Decimal("200")
        assert result.totals.total_debits == alpha.totals.total_debits + beta.totals.total_debits
        assert result.totals.total_credits == alpha.totals.total_credits + beta.totals.total_credits
        assert result.balance_check.accounting_equation.balanced is True

    def test_companies_follow_requested_order(self):
        trial_balances = {
            "gamma": _tb(GAMMA, 1, 0, 1),
            "alpha": _tb(ALPHA, 1, 0, 1),
            "beta": _tb(BETA, 1, 0, 1),
        }
        result = consolidate_trial_balances(REPORT_DATE, [BETA, GAMMA, ALPHA], trial_balances)
        assert [c.entity_id for c in result.companies] == ["beta", "gamma", "alpha"]

    def test_empty_portfolio(self):
        result = consolidate_trial_balances(REPORT_DATE, [], {})
        assert result.companies == ()
        assert result.summary.total_companies == 0
        assert result.summary.data_quality.all_connected is True
        assert result.balance_check.debits_equal_credits is True


class TestDataQuality:

    def test_missing_entity_listed_with_reason(self):
        result = consolidate_trial_balances(
            REPORT_DATE,
            [ALPHA, BETA, GAMMA],
            {"alpha": _tb(ALPHA, 100, 40, 60), "gamma": _tb(GAMMA, 10, 5, 5)},
            unavailable=[UnavailableEntity("beta", "Beta Ltd", "timeout")],
        )

        assert result.summary.total_companies == 2
        assert result.summary.data_quality.all_connected is False
        assert [(u.entity_id, u.reason) for u in result.unavailable_entities] == [("beta", "timeout")]

    def test_missing_entity_without_reason_is_not_fetched(self):
        result = consolidate_trial_balances(REPORT_DATE, [ALPHA, BETA], {"alpha": _tb(ALPHA, 1, 0, 1)})
        assert result.unavailable_entities == (UnavailableEntity("beta", "Beta Ltd", NOT_FETCHED),)

    def test_unbalanced_company_degrades_all_balanced(self):
        result = consolidate_trial_balances(
            REPORT_DATE,
            [ALPHA, BETA],
            {"alpha": _tb(ALPHA, 100, 40, 60), "beta": _tb(BETA, 100, 40, 50)},
        )
        summary = result.summary
        assert summary.balanced_companies == 1
        assert summary.data_quality.all_balanced is False
        assert summary.data_quality.consolidated_balanced is False
        assert result.balance_check.difference == Decimal("10")

    def test_total_accounts_counted(self):
        result = consolidate_trial_balances(
            REPORT_DATE,
            [ALPHA, BETA],
            {"alpha": _tb(ALPHA, 100, 40, 60, revenue=5, expenses=5), "beta": _tb(BETA, 1, 0, 1)},
        )
        # Beta's zero-balance loan is skipped
        assert result.summary.total_accounts == 5 + 2


class TestCompanyView:

    def test_sections_and_counts(self):
        view = company_view(_tb(ALPHA, 100, 40, 60, revenue=500, expenses=200))

        assert view.sections.assets.title == "Assets"
        assert view.sections.assets.total == Decimal("100")
        assert [a.name for a in view.sections.liabilities.accounts] == ["Loan"]
        assert view.sections.expenses.total == Decimal("200")
        assert view.account_counts.total_accounts == 5
        assert view.account_counts.revenue_accounts == 1
        assert view.profit_and_loss_included is True

    def test_balance_sheet_accounts_across_companies(self):
        result = consolidate_trial_balances(
            REPORT_DATE,
            [ALPHA, BETA],
            {"alpha": _tb(ALPHA, 100, 40, 60), "beta": _tb(BETA, 10, 5, 5)},
        )
        assert [a.name for a in result.balance_sheet_accounts] == [
            "Cheque", "Loan", "Capital", "Cheque", "Loan", "Capital",
        ]
