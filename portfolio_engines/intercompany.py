"""
portfolio_engines.intercompany -- Intercompany balances on a balance sheet.

Responsibility:
    Find the balance-sheet rows that record a loan, amount due, receivable
    or payable with another entity of the group, and total the intercompany
    assets and liabilities they represent.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes a parsed ``ReportTree``; consumed by
    ``portfolio_services.trial_balance_service``.

Invariants enforced:
    - A row is intercompany when its name contains an entity keyword and a
      relationship keyword (case-insensitive).  Rows outside any section and
      zero balances are ignored.
    - ``related_entity`` is the first entity keyword, in table order, that
      the account name contains.
    - Only positive balances count towards the totals; a row counts as an
      asset when its section title contains "asset" and as a liability when
      it contains "liabilit".
    - Accounts are ordered by descending |balance|, ties by account name.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from portfolio_config.schema import IntercompanySettings
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.amounts import ZERO
from portfolio_kernel.domain.report_tree import ReportTree, iter_rows_with_section
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.intercompany")

_DEFAULT_RELATIONSHIPS = IntercompanySettings().relationship_keywords


@dataclass(frozen=True)
class IntercompanyAccount:
    account_name: str
    balance: Decimal
    section: str
    related_entity: str


@dataclass(frozen=True)
class IntercompanyAnalysis:
    total_intercompany_assets: Decimal
    total_intercompany_liabilities: Decimal
    account_count: int
    accounts: tuple[IntercompanyAccount, ...]


def related_entity(
    account_name: str,
    entity_keywords: Iterable[str],
    relationship_keywords: Iterable[str] = _DEFAULT_RELATIONSHIPS,
) -> str | None:
    """The entity keyword an intercompany account names, or None."""
    name = account_name.lower()
    if not any(keyword in name for keyword in relationship_keywords):
        return None
    for keyword in entity_keywords:
        if keyword and keyword.lower() in name:
            return keyword.lower()
    return None


@traced_engine(
    "intercompany", "1.0",
    fingerprint_fields=("balance_sheet", "entity_keywords", "relationship_keywords"),
)
def analyze_intercompany(
    balance_sheet: ReportTree,
    entity_keywords: tuple[str, ...],
    relationship_keywords: tuple[str, ...] = _DEFAULT_RELATIONSHIPS,
) -> IntercompanyAnalysis:
    """Intercompany accounts of one balance sheet and their totals."""
    accounts: list[IntercompanyAccount] = []
    for row, section_title in iter_rows_with_section(balance_sheet.nodes):
        if section_title is None or row.balance == ZERO:
            continue
        entity = related_entity(row.name, entity_keywords, relationship_keywords)
        if entity is None:
            continue
        accounts.append(
            IntercompanyAccount(
                account_name=row.name,
                balance=row.balance,
                section=section_title,
                related_entity=entity,
            )
        )

    by_name = sorted(accounts, key=lambda a: a.account_name)
    ordered = tuple(sorted(by_name, key=lambda a: abs(a.balance), reverse=True))

    total_assets = sum(
        (a.balance for a in ordered if a.balance > ZERO and "asset" in a.section.lower()),
        ZERO,
    )
    total_liabilities = sum(
        (a.balance for a in ordered if a.balance > ZERO and "liabilit" in a.section.lower()),
        ZERO,
    )

    logger.info(
        "intercompany_analyzed",
        extra={
            "intercompany_accounts": len(ordered),
            "entity_keywords": len(entity_keywords),
        },
    )

    return IntercompanyAnalysis(
        total_intercompany_assets=total_assets,
        total_intercompany_liabilities=total_liabilities,
        account_count=len(ordered),
        accounts=ordered,
    )
