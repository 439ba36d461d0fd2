"""
portfolio_engines.expense_analysis -- Expense breakdown of a profit-and-loss report.

Responsibility:
    Extract the positive expense lines of a profit-and-loss tree, assign each
    to a spending category by account-name keywords, and summarise them:
    largest lines, monthly averages and a per-category breakdown.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only rows under sections typed EXPENSE by the classification rules
      are considered; totals and non-positive amounts are ignored.
    - Category rules are tried in order; unmatched lines are "Other".
    - Orderings are deterministic: amount descending, ties by name.

Failure modes:
    - ``ValueError`` if ``period_months`` is less than 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from portfolio_config.schema import (
    DEFAULT_CLASSIFICATION_RULES,
    DEFAULT_EXPENSE_CATEGORIES,
    OTHER_EXPENSE_CATEGORY,
    ClassificationRule,
    ExpenseCategoryRule,
)
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.domain.amounts import ZERO
from portfolio_kernel.domain.report_tree import ReportTree, iter_rows_with_section
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.expense_analysis")

TOP_EXPENSE_COUNT = 10
_CENTS = Decimal("0.01")
_ONE_PLACE = Decimal("0.1")


@dataclass(frozen=True)
class ExpenseItem:
    account_name: str
    amount: Decimal
    monthly_average: Decimal
    category: str


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class ExpenseAnalysis:
    period_months: int
    total_expenses: Decimal
    monthly_average: Decimal
    expense_items: tuple[ExpenseItem, ...]
    top_expenses: tuple[ExpenseItem, ...]
    category_breakdown: tuple[CategoryTotal, ...]


def categorize_expense(
    account_name: str,
    categories: tuple[ExpenseCategoryRule, ...] = DEFAULT_EXPENSE_CATEGORIES,
) -> str:
    for rule in categories:
        if rule.matches(account_name):
            return rule.category
    return OTHER_EXPENSE_CATEGORY


@traced_engine("expense_analysis", "1.0", fingerprint_fields=("profit_and_loss", "period_months"))
def analyze_expenses(
    profit_and_loss: ReportTree,
    period_months: int = 12,
    categories: tuple[ExpenseCategoryRule, ...] = DEFAULT_EXPENSE_CATEGORIES,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
) -> ExpenseAnalysis:
    """Break down the expenses of a profit-and-loss report covering ``period_months``."""
    if period_months < 1:
        raise ValueError(f"period_months must be at least 1, got {period_months}")

    expense_keywords = tuple(
        rule.keyword for rule in rules if rule.account_type == AccountType.EXPENSE
    )
    months = Decimal(period_months)

    items: list[ExpenseItem] = []
    for row, section_title in iter_rows_with_section(profit_and_loss.nodes):
        if section_title is None:
            continue
        title = section_title.lower()
        if not any(keyword in title for keyword in expense_keywords):
            continue
        if "total" in row.name.lower() or row.balance <= ZERO:
            continue
        items.append(
            ExpenseItem(
                account_name=row.name,
                amount=row.balance,
                monthly_average=(row.balance / months).quantize(_CENTS, rounding=ROUND_HALF_UP),
                category=categorize_expense(row.name, categories),
            )
        )

    by_name = sorted(items, key=lambda i: i.account_name)
    ordered = tuple(sorted(by_name, key=lambda i: i.amount, reverse=True))
    total = sum((i.amount for i in ordered), ZERO)

    category_totals: dict[str, Decimal] = {}
    for item in ordered:
        category_totals[item.category] = category_totals.get(item.category, ZERO) + item.amount

    breakdown = [
        CategoryTotal(
            category=category,
            total=category_total,
            percentage=(category_total / total * 100).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP),
        )
        for category, category_total in sorted(category_totals.items())
    ]

    logger.info(
        "expenses_analyzed",
        extra={
            "expense_lines": len(ordered),
            "categories": len(breakdown),
            "period_months": period_months,
        },
    )

    return ExpenseAnalysis(
        period_months=period_months,
        total_expenses=total,
        monthly_average=(total / months).quantize(_CENTS, rounding=ROUND_HALF_UP),
        expense_items=ordered,
        top_expenses=ordered[:TOP_EXPENSE_COUNT],
        category_breakdown=tuple(sorted(breakdown, key=lambda c: c.total, reverse=True)),
    )
