"""
Manual journal value objects.

Responsibility:
    Typed, immutable form of the manual journals returned by the journal
    source.  Line amounts are signed: positive lines are debits, negative
    lines are credits.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Built by
    ``portfolio_ingestion.journal_parser``, consumed by
    ``portfolio_engines.journal_screening``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class JournalLine:
    """One signed line of a manual journal."""

    account_code: str | None
    account_name: str | None
    description: str | None
    amount: Decimal


@dataclass(frozen=True)
class JournalEntry:
    """A manual journal entry as posted upstream."""

    id: str
    number: str | None
    reference: str | None
    date: date | None
    status: str | None
    lines: tuple[JournalLine, ...] = ()
    narration: str | None = None
