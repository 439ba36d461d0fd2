"""
Unusual-balance flags over one entity's trial balance.

Every admitted account is checked for a large balance, an unusual equity
account (named by a sensitive term, or simply very large), an asset carried
in credit and an expense carried in debit.  Pure functions, zero I/O.
Zero balances never reach a trial balance, so there is no zero-balance flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_config.schema import AccountFlagThresholds
from portfolio_engines.classifier import AccountRecord
from portfolio_engines.consolidation import AccountCounts
from portfolio_engines.tracer import traced_engine
from portfolio_engines.trial_balance import EntityTrialBalance
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.domain.amounts import ZERO
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.account_flags")

_DEFAULT_THRESHOLDS = AccountFlagThresholds()


@dataclass(frozen=True)
class AccountFlags:
    large_balance: bool
    unusual_equity: bool
    negative_asset: bool
    positive_expense: bool

    @property
    def fired(self) -> bool:
        return (
            self.large_balance
            or self.unusual_equity
            or self.negative_asset
            or self.positive_expense
        )


@dataclass(frozen=True)
class FlaggedAccount:
    name: str
    code: str | None
    type: AccountType
    section: str
    balance: Decimal
    flags: AccountFlags


@dataclass(frozen=True)
class AccountFlagSummary:
    large_balance_accounts: int
    unusual_equity_accounts: int
    flagged_accounts: int
    account_counts: AccountCounts


@dataclass(frozen=True)
class AccountFlagReport:
    entity_id: str
    entity_name: str
    report_date: date
    summary: AccountFlagSummary
    accounts: tuple[FlaggedAccount, ...]
    flagged: tuple[FlaggedAccount, ...]


def flag_account(
    account: AccountRecord,
    thresholds: AccountFlagThresholds = _DEFAULT_THRESHOLDS,
) -> AccountFlags:
    magnitude = abs(account.balance)
    name = account.name.lower()
    is_equity = account.type == AccountType.EQUITY
    return AccountFlags(
        large_balance=magnitude > thresholds.large_balance,
        unusual_equity=is_equity and (
            any(term in name for term in thresholds.unusual_equity_terms)
            or magnitude > thresholds.unusual_equity_balance
        ),
        negative_asset=account.type == AccountType.ASSET and account.balance < ZERO,
        positive_expense=account.type == AccountType.EXPENSE and account.balance > ZERO,
    )


@traced_engine("account_flags", "1.0", fingerprint_fields=("trial_balance",))
def flag_accounts(
    trial_balance: EntityTrialBalance,
    thresholds: AccountFlagThresholds = _DEFAULT_THRESHOLDS,
) -> AccountFlagReport:
    """Flag every account of a trial balance, in trial balance order."""
    accounts = tuple(
        FlaggedAccount(
            name=account.name,
            code=account.code,
            type=account.type,
            section=account.section,
            balance=account.balance,
            flags=flag_account(account, thresholds),
        )
        for account in trial_balance.accounts
    )
    flagged = tuple(a for a in accounts if a.flags.fired)

    summary = AccountFlagSummary(
        large_balance_accounts=sum(1 for a in accounts if a.flags.large_balance),
        unusual_equity_accounts=sum(1 for a in accounts if a.flags.unusual_equity),
        flagged_accounts=len(flagged),
        account_counts=AccountCounts(
            total_accounts=trial_balance.account_count,
            asset_accounts=len(trial_balance.assets),
            liability_accounts=len(trial_balance.liabilities),
            equity_accounts=len(trial_balance.equity),
            revenue_accounts=len(trial_balance.revenue),
            expense_accounts=len(trial_balance.expenses),
        ),
    )

    logger.info(
        "accounts_flagged",
        extra={
            "entity_id": trial_balance.entity_id,
            "accounts": len(accounts),
            "flagged_accounts": len(flagged),
        },
    )

    return AccountFlagReport(
        entity_id=trial_balance.entity_id,
        entity_name=trial_balance.entity_name,
        report_date=trial_balance.report_date,
        summary=summary,
        accounts=accounts,
        flagged=flagged,
    )
