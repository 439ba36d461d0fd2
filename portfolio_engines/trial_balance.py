"""
portfolio_engines.trial_balance -- One entity's report trees to a trial balance.

Responsibility:
    Walk a balance-sheet tree and (optionally) a profit-and-loss tree for a
    single entity and date, classify every row, and produce an
    ``EntityTrialBalance`` with per-type buckets, totals and the two balance
    checks (debits == credits, assets == liabilities + equity).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``portfolio_kernel.domain.report_tree`` and
    ``portfolio_engines.classifier``; consumed by the consolidation engine,
    the period comparator and ``portfolio_services``.

Invariants enforced:
    - totalDebits == sum of account debits, totalCredits == sum of account
      credits, exactly (Decimal arithmetic).
    - Per-type totals are the sums of recorded balances of that type.
    - Buckets are sorted by account name, ties by code, so identical inputs
      render identically.
    - Purity: no clock access, no I/O.

Failure modes:
    - None.  An unbalanced result is a valid result reported through
      ``balance_check``; rows that cannot be classified are counted in
      ``dropped_rows``.

Usage:
    from portfolio_engines.trial_balance import build_entity_trial_balance

    tb = build_entity_trial_balance(
        entity_id="t-1",
        entity_name="Acme Pty Ltd",
        report_date=date(2024, 6, 30),
        balance_sheet=balance_sheet_tree,
        profit_and_loss=profit_and_loss_tree,
    )
    tb.balance_check.debits_equal_credits
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_config.schema import DEFAULT_CLASSIFICATION_RULES, ClassificationRule
from portfolio_engines.classifier import AccountRecord, SkipReason, explain_row
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.domain.amounts import BALANCE_TOLERANCE, ZERO, within_tolerance
from portfolio_kernel.domain.report_tree import (
    ReportNode,
    ReportTree,
    iter_rows_with_section,
)
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.trial_balance")


@dataclass(frozen=True)
class TrialBalanceTotals:
    """Debit/credit totals and per-type balance totals."""

    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_equity: Decimal = ZERO
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO

    def __add__(self, other: TrialBalanceTotals) -> TrialBalanceTotals:
        if not isinstance(other, TrialBalanceTotals):
            return NotImplemented
        return TrialBalanceTotals(
            total_debits=self.total_debits + other.total_debits,
            total_credits=self.total_credits + other.total_credits,
            total_assets=self.total_assets + other.total_assets,
            total_liabilities=self.total_liabilities + other.total_liabilities,
            total_equity=self.total_equity + other.total_equity,
            total_revenue=self.total_revenue + other.total_revenue,
            total_expenses=self.total_expenses + other.total_expenses,
        )

    def for_type(self, account_type: AccountType) -> Decimal:
        return {
            AccountType.ASSET: self.total_assets,
            AccountType.LIABILITY: self.total_liabilities,
            AccountType.EQUITY: self.total_equity,
            AccountType.REVENUE: self.total_revenue,
            AccountType.EXPENSE: self.total_expenses,
        }[account_type]


@dataclass(frozen=True)
class AccountingEquation:
    assets: Decimal
    liabilities_and_equity: Decimal
    balanced: bool


@dataclass(frozen=True)
class BalanceCheck:
    """Both balance invariants of a trial balance."""

    debits_equal_credits: bool
    difference: Decimal
    accounting_equation: AccountingEquation

    @property
    def fully_balanced(self) -> bool:
        return self.debits_equal_credits and self.accounting_equation.balanced


@dataclass(frozen=True)
class EntityTrialBalance:
    """
    Trial balance of one entity at one report date.

    Accounts are grouped by type; each bucket is sorted by name then code.
    """

    entity_id: str
    entity_name: str
    report_date: date
    assets: tuple[AccountRecord, ...]
    liabilities: tuple[AccountRecord, ...]
    equity: tuple[AccountRecord, ...]
    revenue: tuple[AccountRecord, ...]
    expenses: tuple[AccountRecord, ...]
    totals: TrialBalanceTotals
    balance_check: BalanceCheck
    processed_rows: int = 0
    dropped_rows: int = 0
    profit_and_loss_included: bool = True

    def accounts_of(self, account_type: AccountType) -> tuple[AccountRecord, ...]:
        return {
            AccountType.ASSET: self.assets,
            AccountType.LIABILITY: self.liabilities,
            AccountType.EQUITY: self.equity,
            AccountType.REVENUE: self.revenue,
            AccountType.EXPENSE: self.expenses,
        }[account_type]

    @property
    def accounts(self) -> tuple[AccountRecord, ...]:
        """All accounts in presentation order (assets first, expenses last)."""
        return self.assets + self.liabilities + self.equity + self.revenue + self.expenses

    @property
    def balance_sheet_accounts(self) -> tuple[AccountRecord, ...]:
        return self.assets + self.liabilities + self.equity

    @property
    def account_count(self) -> int:
        return len(self.accounts)


def compute_balance_check(
    totals: TrialBalanceTotals,
    tolerance: Decimal = BALANCE_TOLERANCE,
) -> BalanceCheck:
    """
    Evaluate both balance invariants for a set of totals.

    ``difference`` is signed: positive when debits exceed credits.
    """
    liabilities_and_equity = totals.total_liabilities + totals.total_equity
    return BalanceCheck(
        debits_equal_credits=within_tolerance(
            totals.total_debits, totals.total_credits, tolerance,
        ),
        difference=totals.total_debits - totals.total_credits,
        accounting_equation=AccountingEquation(
            assets=totals.total_assets,
            liabilities_and_equity=liabilities_and_equity,
            balanced=within_tolerance(
                totals.total_assets, liabilities_and_equity, tolerance,
            ),
        ),
    )


def _as_nodes(report: ReportTree | tuple[ReportNode, ...] | None) -> tuple[tuple[ReportNode, ...], int]:
    if report is None:
        return (), 0
    if isinstance(report, ReportTree):
        return report.nodes, report.malformed_rows
    return tuple(report), 0


def _sort_key(record: AccountRecord) -> tuple[str, str]:
    return record.name, record.code or ""


@traced_engine(
    "trial_balance", "1.0",
    fingerprint_fields=("entity_id", "report_date", "balance_sheet", "profit_and_loss"),
)
def build_entity_trial_balance(
    entity_id: str,
    entity_name: str,
    report_date: date,
    balance_sheet: ReportTree | tuple[ReportNode, ...],
    profit_and_loss: ReportTree | tuple[ReportNode, ...] | None,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
    tolerance: Decimal = BALANCE_TOLERANCE,
) -> EntityTrialBalance:
    """
    Build an entity trial balance from its report trees.

    ``profit_and_loss=None`` means the profit-and-loss report could not be
    fetched: the trial balance is built from the balance sheet alone and
    ``profit_and_loss_included`` is False.

    Rows at the top level of a tree (outside any section) cannot be typed
    and are dropped, as are rows whose section matches no rule.
    """
    buckets: dict[AccountType, list[AccountRecord]] = {t: [] for t in AccountType}
    processed = 0
    dropped = 0

    sources = (
        (_as_nodes(balance_sheet), False),
        (_as_nodes(profit_and_loss), True),
    )
    for (nodes, malformed), is_profit_and_loss in sources:
        dropped += malformed
        for row, section_title in iter_rows_with_section(nodes):
            if section_title is None:
                dropped += 1
                continue
            outcome = explain_row(
                row.name,
                row.balance,
                section_title,
                rules=rules,
                profit_and_loss=is_profit_and_loss,
                code=row.code,
            )
            if outcome.record is not None:
                buckets[outcome.record.type].append(outcome.record)
                processed += 1
            elif outcome.skip_reason == SkipReason.UNMATCHED_SECTION:
                dropped += 1

    sorted_buckets = {
        account_type: tuple(sorted(records, key=_sort_key))
        for account_type, records in buckets.items()
    }
    all_records = [r for records in sorted_buckets.values() for r in records]

    totals = TrialBalanceTotals(
        total_debits=sum((r.debit for r in all_records), ZERO),
        total_credits=sum((r.credit for r in all_records), ZERO),
        total_assets=sum((r.balance for r in sorted_buckets[AccountType.ASSET]), ZERO),
        total_liabilities=sum((r.balance for r in sorted_buckets[AccountType.LIABILITY]), ZERO),
        total_equity=sum((r.balance for r in sorted_buckets[AccountType.EQUITY]), ZERO),
        total_revenue=sum((r.balance for r in sorted_buckets[AccountType.REVENUE]), ZERO),
        total_expenses=sum((r.balance for r in sorted_buckets[AccountType.EXPENSE]), ZERO),
    )
    balance_check = compute_balance_check(totals, tolerance)

    logger.info(
        "entity_trial_balance_built",
        extra={
            "entity_id": entity_id,
            "report_date": report_date.isoformat(),
            "processed_rows": processed,
            "dropped_rows": dropped,
            "profit_and_loss_included": profit_and_loss is not None,
            "debits_equal_credits": balance_check.debits_equal_credits,
            "equation_balanced": balance_check.accounting_equation.balanced,
        },
    )

    return EntityTrialBalance(
        entity_id=entity_id,
        entity_name=entity_name,
        report_date=report_date,
        assets=sorted_buckets[AccountType.ASSET],
        liabilities=sorted_buckets[AccountType.LIABILITY],
        equity=sorted_buckets[AccountType.EQUITY],
        revenue=sorted_buckets[AccountType.REVENUE],
        expenses=sorted_buckets[AccountType.EXPENSE],
        totals=totals,
        balance_check=balance_check,
        processed_rows=processed,
        dropped_rows=dropped,
        profit_and_loss_included=profit_and_loss is not None,
    )
