"""
portfolio_engines.consolidation -- Entity trial balances to a portfolio view.

Responsibility:
    Aggregate the trial balances of the entities that reported into a single
    ``PortfolioTrialBalance``: a drill-down view per company, field-wise
    consolidated totals, the consolidated balance check and a data-quality
    summary that records which requested entities are missing.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The concurrent retrieval that produces the inputs lives in
    ``portfolio_services.consolidation_service``; this module only runs once
    every fetch has completed or been abandoned.

Invariants enforced:
    - Consolidated totals are the field-wise sum of company totals.  No
      intercompany elimination, no currency translation.
    - ``companies`` follows the requested entity order, never completion order.
    - A missing entity degrades ``data_quality.all_connected``; it never
      raises.

Failure modes:
    - None.  Requested entities with no trial balance and no recorded reason
      are listed as unavailable with reason ``"not fetched"``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_engines.classifier import AccountRecord
from portfolio_engines.tracer import traced_engine
from portfolio_engines.trial_balance import (
    BalanceCheck,
    EntityTrialBalance,
    TrialBalanceTotals,
    compute_balance_check,
)
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.domain.amounts import BALANCE_TOLERANCE
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.consolidation")

_SECTION_TITLES: dict[AccountType, str] = {
    AccountType.ASSET: "Assets",
    AccountType.LIABILITY: "Liabilities",
    AccountType.EQUITY: "Equity",
    AccountType.REVENUE: "Revenue",
    AccountType.EXPENSE: "Expenses",
}

NOT_FETCHED = "not fetched"


@dataclass(frozen=True)
class AccountSection:
    """One type bucket of a company, with its total."""

    title: str
    total: Decimal
    accounts: tuple[AccountRecord, ...]


@dataclass(frozen=True)
class CompanySections:
    assets: AccountSection
    liabilities: AccountSection
    equity: AccountSection
    revenue: AccountSection
    expenses: AccountSection


@dataclass(frozen=True)
class AccountCounts:
    total_accounts: int
    asset_accounts: int
    liability_accounts: int
    equity_accounts: int
    revenue_accounts: int
    expense_accounts: int


@dataclass(frozen=True)
class CompanyTrialBalance:
    """Drill-down view of one consolidated entity."""

    entity_id: str
    entity_name: str
    report_date: date
    totals: TrialBalanceTotals
    balance_check: BalanceCheck
    sections: CompanySections
    account_counts: AccountCounts
    profit_and_loss_included: bool = True

    @property
    def balance_sheet_accounts(self) -> tuple[AccountRecord, ...]:
        return (
            self.sections.assets.accounts
            + self.sections.liabilities.accounts
            + self.sections.equity.accounts
        )


@dataclass(frozen=True)
class ConsolidatedView:
    totals: TrialBalanceTotals
    balance_check: BalanceCheck


@dataclass(frozen=True)
class DataQuality:
    all_connected: bool
    all_balanced: bool
    consolidated_balanced: bool


@dataclass(frozen=True)
class PortfolioSummary:
    total_companies: int
    total_accounts: int
    balanced_companies: int
    data_quality: DataQuality


@dataclass(frozen=True)
class UnavailableEntity:
    """A requested entity that is absent from the consolidation, and why."""

    entity_id: str
    entity_name: str
    reason: str


@dataclass(frozen=True)
class PortfolioTrialBalance:
    """Consolidated trial balance across all reporting entities for one date."""

    report_date: date
    companies: tuple[CompanyTrialBalance, ...]
    consolidated: ConsolidatedView
    summary: PortfolioSummary
    unavailable_entities: tuple[UnavailableEntity, ...] = ()

    @property
    def totals(self) -> TrialBalanceTotals:
        return self.consolidated.totals

    @property
    def balance_check(self) -> BalanceCheck:
        return self.consolidated.balance_check

    @property
    def balance_sheet_accounts(self) -> tuple[AccountRecord, ...]:
        """Each company's asset, liability and equity accounts, in company order."""
        accounts: tuple[AccountRecord, ...] = ()
        for company in self.companies:
            accounts += company.balance_sheet_accounts
        return accounts


def company_view(trial_balance: EntityTrialBalance) -> CompanyTrialBalance:
    """Project an entity trial balance into its drill-down company view."""
    sections = {
        account_type: AccountSection(
            title=_SECTION_TITLES[account_type],
            total=trial_balance.totals.for_type(account_type),
            accounts=trial_balance.accounts_of(account_type),
        )
        for account_type in AccountType
    }
    return CompanyTrialBalance(
        entity_id=trial_balance.entity_id,
        entity_name=trial_balance.entity_name,
        report_date=trial_balance.report_date,
        totals=trial_balance.totals,
        balance_check=trial_balance.balance_check,
        sections=CompanySections(
            assets=sections[AccountType.ASSET],
            liabilities=sections[AccountType.LIABILITY],
            equity=sections[AccountType.EQUITY],
            revenue=sections[AccountType.REVENUE],
            expenses=sections[AccountType.EXPENSE],
        ),
        account_counts=AccountCounts(
            total_accounts=trial_balance.account_count,
            asset_accounts=len(trial_balance.assets),
            liability_accounts=len(trial_balance.liabilities),
            equity_accounts=len(trial_balance.equity),
            revenue_accounts=len(trial_balance.revenue),
            expense_accounts=len(trial_balance.expenses),
        ),
        profit_and_loss_included=trial_balance.profit_and_loss_included,
    )


@traced_engine("consolidation", "1.0", fingerprint_fields=("report_date", "requested"))
def consolidate_trial_balances(
    report_date: date,
    requested: Sequence[EntityDescriptor],
    trial_balances: Mapping[str, EntityTrialBalance],
    unavailable: Sequence[UnavailableEntity] = (),
    tolerance: Decimal = BALANCE_TOLERANCE,
) -> PortfolioTrialBalance:
    """
    Aggregate the trial balances of the requested entities.

    Args:
        report_date: Date all trial balances were requested for.
        requested: Entities asked for, in presentation order.
        trial_balances: Successfully built trial balances keyed by entity id.
        unavailable: Entities that failed, with reasons.
        tolerance: Balance check tolerance.
    """
    reasons = {u.entity_id: u for u in unavailable}
    companies: list[CompanyTrialBalance] = []
    missing: list[UnavailableEntity] = []

    for entity in requested:
        trial_balance = trial_balances.get(entity.entity_id)
        if trial_balance is not None:
            companies.append(company_view(trial_balance))
        else:
            missing.append(
                reasons.get(
                    entity.entity_id,
                    UnavailableEntity(entity.entity_id, entity.entity_name, NOT_FETCHED),
                )
            )

    totals = TrialBalanceTotals()
    for company in companies:
        totals = totals + company.totals
    balance_check = compute_balance_check(totals, tolerance)

    balanced_companies = sum(
        1 for c in companies if c.balance_check.debits_equal_credits
    )
    summary = PortfolioSummary(
        total_companies=len(companies),
        total_accounts=sum(c.account_counts.total_accounts for c in companies),
        balanced_companies=balanced_companies,
        data_quality=DataQuality(
            all_connected=len(companies) == len(requested),
            all_balanced=balanced_companies == len(companies),
            consolidated_balanced=balance_check.debits_equal_credits,
        ),
    )

    logger.info(
        "portfolio_consolidated",
        extra={
            "report_date": report_date.isoformat(),
            "requested_entities": len(requested),
            "companies": len(companies),
            "unavailable_entities": [m.entity_id for m in missing],
            "consolidated_balanced": balance_check.debits_equal_credits,
        },
    )

    return PortfolioTrialBalance(
        report_date=report_date,
        companies=tuple(companies),
        consolidated=ConsolidatedView(totals=totals, balance_check=balance_check),
        summary=summary,
        unavailable_entities=tuple(missing),
    )
