"""
portfolio_engines.classifier -- Report row to typed trial balance account.

Responsibility:
    Turn one raw report row (account name, parsed balance, enclosing section
    title) into an ``AccountRecord`` with an account type and one-sided
    debit/credit magnitudes, or explain why the row is not an account.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only ``portfolio_kernel.domain`` and the rule table type from
    ``portfolio_config.schema``.  Consumed by ``portfolio_engines.trial_balance``.

Invariants enforced:
    - At most one of ``debit`` / ``credit`` is non-zero; both are >= 0.
    - Balance-sheet rows: ``balance = debit - credit`` for debit-normal
      types and ``credit - debit`` for credit-normal types.
    - Profit-and-loss rows use the magnitude convention: revenue is a credit
      of ``|amount|``, expense a debit of ``|amount|``, balance ``|amount|``.
    - Rule order is significant: the first matching keyword decides.

Failure modes:
    - None.  Unparseable amounts are zero by the time they get here and are
      skipped as ``ZERO_BALANCE``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from portfolio_config.schema import DEFAULT_CLASSIFICATION_RULES, ClassificationRule
from portfolio_kernel.domain.accounts import NORMAL_BALANCE, AccountType, NormalBalance
from portfolio_kernel.domain.amounts import ZERO, negative_part, positive_part


class SkipReason(str, Enum):
    """Why a report row was not admitted as an account."""

    TOTAL_ROW = "total_row"
    ZERO_BALANCE = "zero_balance"
    UNMATCHED_SECTION = "unmatched_section"


@dataclass(frozen=True)
class AccountRecord:
    """One admitted account line of a trial balance."""

    name: str
    type: AccountType
    section: str
    balance: Decimal
    debit: Decimal
    credit: Decimal
    code: str | None = None


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying a row: a record, or the reason there is none."""

    record: AccountRecord | None = None
    skip_reason: SkipReason | None = None

    @property
    def admitted(self) -> bool:
        return self.record is not None


def match_account_type(
    section_title: str,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
) -> AccountType | None:
    """First rule whose keyword occurs in the section title, or None."""
    for rule in rules:
        if rule.matches(section_title):
            return rule.account_type
    return None


def explain_row(
    row_name: str,
    row_balance: Decimal,
    section_title: str,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
    profit_and_loss: bool = False,
    code: str | None = None,
) -> Classification:
    """
    Classify a row and report the skip reason when it is not an account.

    Checks run in order: total rows, zero balances, then the rule table.
    """
    if "total" in row_name.lower():
        return Classification(skip_reason=SkipReason.TOTAL_ROW)
    if row_balance == ZERO:
        return Classification(skip_reason=SkipReason.ZERO_BALANCE)

    account_type = match_account_type(section_title, rules)
    if account_type is None:
        return Classification(skip_reason=SkipReason.UNMATCHED_SECTION)

    if profit_and_loss and account_type in (AccountType.REVENUE, AccountType.EXPENSE):
        magnitude = abs(row_balance)
        if account_type == AccountType.REVENUE:
            debit, credit = ZERO, magnitude
        else:
            debit, credit = magnitude, ZERO
        balance = magnitude
    elif NORMAL_BALANCE[account_type] == NormalBalance.DEBIT:
        debit, credit = positive_part(row_balance), negative_part(row_balance)
        balance = row_balance
    else:
        credit, debit = positive_part(row_balance), negative_part(row_balance)
        balance = row_balance

    return Classification(
        record=AccountRecord(
            name=row_name,
            type=account_type,
            section=section_title,
            balance=balance,
            debit=debit,
            credit=credit,
            code=code,
        )
    )


def classify_row(
    row_name: str,
    row_balance: Decimal,
    section_title: str,
    rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES,
    profit_and_loss: bool = False,
    code: str | None = None,
) -> AccountRecord | None:
    """Classify a row; None when it is a total, zero, or matches no rule."""
    return explain_row(
        row_name,
        row_balance,
        section_title,
        rules=rules,
        profit_and_loss=profit_and_loss,
        code=code,
    ).record
