"""Tests for the expense breakdown of profit-and-loss reports."""

from decimal import Decimal

import pytest

from portfolio_config.schema import ExpenseCategoryRule
from portfolio_engines.expense_analysis import (
    TOP_EXPENSE_COUNT,
    analyze_expenses,
    categorize_expense,
)
from portfolio_kernel.domain.report_tree import ReportTree
from tests.conftest import section


def _pnl(*sections) -> ReportTree:
    return ReportTree(nodes=sections)


class TestCategorizeExpense:

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Wages and Salaries", "Personnel"),
            ("Office Rent", "Occupancy"),
            ("Google Advertising", "Marketing"),
            ("Legal expenses", "Professional Services"),
            ("Software Subscriptions", "Technology"),
            ("Bank Fees", "Finance Costs"),
            ("Entertainment", "Other"),
        ],
    )
    def test_default_categories(self, name, expected):
        assert categorize_expense(name) == expected

    def test_first_matching_category_wins(self):
        # 'payroll' (Personnel) is checked before 'software' (Technology)
        assert categorize_expense("Payroll Software") == "Personnel"

    def test_custom_categories(self):
        rules = (ExpenseCategoryRule("Fleet", ("vehicle",)),)
        assert categorize_expense("Motor Vehicle Expenses", rules) == "Fleet"
        assert categorize_expense("Rent", rules) == "Other"


class TestAnalyzeExpenses:

    def test_breakdown(self):
        analysis = analyze_expenses(_pnl(
            section("Income", ("Sales", 90_000)),
            section(
                "Operating Expenses",
                ("Wages", 6000),
                ("Rent", 3000),
                ("Salaries", 3000),
                ("Refund", -200),
                ("Total Operating Expenses", 12000),
            ),
            section("Cost of Sales", ("Purchases", 0)),
        ))

        assert analysis.period_months == 12
        assert analysis.total_expenses == Decimal("12000")
        assert analysis.monthly_average == Decimal("1000.00")
        assert [i.account_name for i in analysis.expense_items] == ["Wages", "Rent", "Salaries"]
        assert analysis.expense_items[1].monthly_average == Decimal("250.00")
        breakdown = {c.category: (c.total, c.percentage) for c in analysis.category_breakdown}
        assert breakdown == {
            "Personnel": (Decimal("9000"), Decimal("75.0")),
            "Occupancy": (Decimal("3000"), Decimal("25.0")),
        }
        assert analysis.category_breakdown[0].category == "Personnel"

    def test_top_expenses_capped(self):
        rows = tuple((f"Expense line {i:02d}", 100 + i) for i in range(15))
        analysis = analyze_expenses(_pnl(section("Expenses", *rows)))
        assert len(analysis.expense_items) == 15
        assert len(analysis.top_expenses) == TOP_EXPENSE_COUNT
        assert analysis.top_expenses[0].amount == Decimal("114")

    def test_custom_period(self):
        analysis = analyze_expenses(_pnl(section("Expenses", ("Rent", 1000))), period_months=3)
        assert analysis.monthly_average == Decimal("333.33")

    def test_no_expenses(self):
        analysis = analyze_expenses(_pnl(section("Income", ("Sales", 5))))
        assert analysis.total_expenses == Decimal("0")
        assert analysis.category_breakdown == ()

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            analyze_expenses(_pnl(), period_months=0)
