"""
Pure domain layer.

This package contains immutable value types with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

The only sanctioned time boundary is ``SystemClock``.
"""

from portfolio_kernel.domain.accounts import (
    BALANCE_SHEET_TYPES,
    NORMAL_BALANCE,
    PROFIT_AND_LOSS_TYPES,
    AccountType,
    NormalBalance,
)
from portfolio_kernel.domain.amounts import (
    BALANCE_TOLERANCE,
    ZERO,
    negative_part,
    parse_amount,
    positive_part,
    within_tolerance,
)
from portfolio_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.domain.journal import JournalEntry, JournalLine
from portfolio_kernel.domain.report_tree import (
    ReportNode,
    ReportRow,
    ReportSection,
    ReportTree,
    iter_rows_with_section,
)

__all__ = [
    "AccountType",
    "NormalBalance",
    "NORMAL_BALANCE",
    "BALANCE_SHEET_TYPES",
    "PROFIT_AND_LOSS_TYPES",
    "ZERO",
    "BALANCE_TOLERANCE",
    "parse_amount",
    "within_tolerance",
    "positive_part",
    "negative_part",
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "EntityDescriptor",
    "JournalEntry",
    "JournalLine",
    "ReportNode",
    "ReportRow",
    "ReportSection",
    "ReportTree",
    "iter_rows_with_section",
]
