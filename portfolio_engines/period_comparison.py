"""
portfolio_engines.period_comparison -- Account-level diff of two trial balances.

Responsibility:
    Compare two trial balances of the same scope (one entity, or the whole
    portfolio) taken at different dates.  Reports the movement of the
    headline totals and every balance-sheet account whose balance moved by
    more than the change floor, classified as INCREASE, DECREASE,
    NEW_ACCOUNT or REMOVED.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``EntityTrialBalance`` / ``PortfolioTrialBalance``; consumed by
    ``portfolio_services.comparison_service``.

Invariants enforced:
    - Only asset, liability and equity accounts are compared.
    - Accounts are matched by exact, case-sensitive name.  When a snapshot
      holds the same name twice, the first occurrence in presentation order
      is used.
    - Portfolio snapshots are compared company by company (matched by
      entity id), so same-named accounts of different companies never mask
      each other.  Each such change carries its company's name.
    - ``delta = to_balance - from_balance`` for every change type.
    - Changes are ordered by descending |delta|, ties by account name, then
      company name.

Failure modes:
    - ``InvalidComparisonError`` when one snapshot is an entity trial balance
      and the other a portfolio trial balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Union

from portfolio_config.schema import ComparisonThresholds
from portfolio_engines.classifier import AccountRecord
from portfolio_engines.consolidation import PortfolioTrialBalance
from portfolio_engines.tracer import traced_engine
from portfolio_engines.trial_balance import EntityTrialBalance
from portfolio_kernel.domain.amounts import ZERO
from portfolio_kernel.exceptions import InvalidComparisonError
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.period_comparison")

TrialBalanceSnapshot = Union[EntityTrialBalance, PortfolioTrialBalance]

_DEFAULT_THRESHOLDS = ComparisonThresholds()


class ChangeType(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    NEW_ACCOUNT = "NEW_ACCOUNT"
    REMOVED = "REMOVED"


@dataclass(frozen=True)
class PeriodChange:
    account_name: str
    from_balance: Decimal
    to_balance: Decimal
    delta: Decimal
    change_type: ChangeType
    entity_name: str | None = None


@dataclass(frozen=True)
class PeriodSnapshot:
    """Headline totals of one side of a comparison."""

    report_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_debits: Decimal
    total_credits: Decimal
    balanced: bool


@dataclass(frozen=True)
class TotalsChange:
    assets_change: Decimal
    liabilities_change: Decimal
    equity_change: Decimal
    balance_status_change: bool


@dataclass(frozen=True)
class PeriodComparison:
    from_date: date
    to_date: date
    from_period: PeriodSnapshot
    to_period: PeriodSnapshot
    totals_change: TotalsChange
    changes: tuple[PeriodChange, ...]
    significant: tuple[PeriodChange, ...]


def _snapshot(tb: TrialBalanceSnapshot) -> PeriodSnapshot:
    return PeriodSnapshot(
        report_date=tb.report_date,
        total_assets=tb.totals.total_assets,
        total_liabilities=tb.totals.total_liabilities,
        total_equity=tb.totals.total_equity,
        total_debits=tb.totals.total_debits,
        total_credits=tb.totals.total_credits,
        balanced=tb.balance_check.debits_equal_credits,
    )


def _first_by_name(accounts: tuple[AccountRecord, ...]) -> dict[str, Decimal]:
    balances: dict[str, Decimal] = {}
    for account in accounts:
        balances.setdefault(account.name, account.balance)
    return balances


def _ordered(changes: list[PeriodChange]) -> tuple[PeriodChange, ...]:
    by_name = sorted(changes, key=lambda c: (c.account_name, c.entity_name or ""))
    return tuple(sorted(by_name, key=lambda c: abs(c.delta), reverse=True))


def diff_balances(
    from_balances: dict[str, Decimal],
    to_balances: dict[str, Decimal],
    thresholds: ComparisonThresholds = _DEFAULT_THRESHOLDS,
    entity_name: str | None = None,
) -> tuple[PeriodChange, ...]:
    """
    Classify per-account movements between two name -> balance maps.

    ``entity_name`` labels every change; it is set for portfolio comparisons.
    """
    floor = thresholds.change_floor
    changes: list[PeriodChange] = []

    for name, from_balance in from_balances.items():
        if name in to_balances:
            to_balance = to_balances[name]
            delta = to_balance - from_balance
            if abs(delta) > floor:
                changes.append(
                    PeriodChange(
                        account_name=name,
                        from_balance=from_balance,
                        to_balance=to_balance,
                        delta=delta,
                        change_type=ChangeType.INCREASE if delta > ZERO else ChangeType.DECREASE,
                        entity_name=entity_name,
                    )
                )
        elif thresholds.report_removed_accounts and abs(from_balance) > floor:
            changes.append(
                PeriodChange(
                    account_name=name,
                    from_balance=from_balance,
                    to_balance=ZERO,
                    delta=-from_balance,
                    change_type=ChangeType.REMOVED,
                    entity_name=entity_name,
                )
            )

    for name, to_balance in to_balances.items():
        if name not in from_balances and abs(to_balance) > floor:
            changes.append(
                PeriodChange(
                    account_name=name,
                    from_balance=ZERO,
                    to_balance=to_balance,
                    delta=to_balance,
                    change_type=ChangeType.NEW_ACCOUNT,
                    entity_name=entity_name,
                )
            )

    return _ordered(changes)


def _diff_companies(
    from_tb: PortfolioTrialBalance,
    to_tb: PortfolioTrialBalance,
    thresholds: ComparisonThresholds,
) -> tuple[PeriodChange, ...]:
    from_companies = {c.entity_id: c for c in from_tb.companies}
    to_companies = {c.entity_id: c for c in to_tb.companies}

    changes: list[PeriodChange] = []
    for entity_id in dict.fromkeys([*from_companies, *to_companies]):
        before = from_companies.get(entity_id)
        after = to_companies.get(entity_id)
        changes.extend(
            diff_balances(
                _first_by_name(before.balance_sheet_accounts) if before else {},
                _first_by_name(after.balance_sheet_accounts) if after else {},
                thresholds,
                entity_name=(after or before).entity_name,
            )
        )
    return _ordered(changes)


@traced_engine("period_comparison", "1.0", fingerprint_fields=("from_tb", "to_tb"))
def compare_periods(
    from_tb: TrialBalanceSnapshot,
    to_tb: TrialBalanceSnapshot,
    thresholds: ComparisonThresholds = _DEFAULT_THRESHOLDS,
) -> PeriodComparison:
    """
    Compare two trial balances of the same kind.

    Raises:
        InvalidComparisonError: If one snapshot is entity-level and the other
            portfolio-level.
    """
    if type(from_tb) is not type(to_tb):
        raise InvalidComparisonError(
            f"cannot compare {type(from_tb).__name__} with {type(to_tb).__name__}"
        )

    if isinstance(from_tb, PortfolioTrialBalance):
        changes = _diff_companies(from_tb, to_tb, thresholds)
    else:
        changes = diff_balances(
            _first_by_name(from_tb.balance_sheet_accounts),
            _first_by_name(to_tb.balance_sheet_accounts),
            thresholds,
        )
    significant = tuple(
        c for c in changes if abs(c.delta) > thresholds.significant_change
    )

    from_period = _snapshot(from_tb)
    to_period = _snapshot(to_tb)

    logger.info(
        "periods_compared",
        extra={
            "from_date": from_tb.report_date.isoformat(),
            "to_date": to_tb.report_date.isoformat(),
            "changes": len(changes),
            "significant_changes": len(significant),
        },
    )

    return PeriodComparison(
        from_date=from_tb.report_date,
        to_date=to_tb.report_date,
        from_period=from_period,
        to_period=to_period,
        totals_change=TotalsChange(
            assets_change=to_period.total_assets - from_period.total_assets,
            liabilities_change=to_period.total_liabilities - from_period.total_liabilities,
            equity_change=to_period.total_equity - from_period.total_equity,
            balance_status_change=to_period.balanced != from_period.balanced,
        ),
        changes=changes,
        significant=significant,
    )
