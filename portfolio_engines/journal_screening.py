"""
portfolio_engines.journal_screening -- Anomaly screening of manual journals.

Responsibility:
    Score manual journal entries for postings that warrant review: unbalanced
    entries, very large amounts, single-sided entries and lines touching
    watch-listed accounts.  Also provides the unbalanced-journal finder and
    per-account movement histories built on the same arithmetic.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``portfolio_kernel.domain.journal``; consumed by
    ``portfolio_services.journal_service``.

Invariants enforced:
    - totalDebits = sum of positive line amounts; totalCredits = sum of the
      magnitudes of negative line amounts; imbalance = debits - credits.
    - Severity is NONE exactly when no flag fired.
    - Output order is total and deterministic: ties on the primary key are
      broken by entry id ascending.
    - Account filters narrow which entries are returned, never how an entry
      is scored.

Failure modes:
    - ``ValueError`` from ``find_unbalanced`` for a negative minimum amount.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from portfolio_config.schema import ScreeningThresholds
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.amounts import ZERO, negative_part, positive_part
from portfolio_kernel.domain.journal import JournalEntry, JournalLine
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.journal_screening")

_DEFAULT_THRESHOLDS = ScreeningThresholds()


class Severity(str, Enum):
    NONE = "NONE"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ScreeningOrder(str, Enum):
    """Result orderings; both break ties by entry id ascending."""

    BY_DATE = "by_date"  # newest first
    BY_IMBALANCE = "by_imbalance"  # largest |imbalance| first


@dataclass(frozen=True)
class JournalFlags:
    large_amount: bool
    unbalanced: bool
    single_sided: bool
    matches_watchlist: bool

    @property
    def fired(self) -> bool:
        return (
            self.large_amount
            or self.unbalanced
            or self.single_sided
            or self.matches_watchlist
        )


@dataclass(frozen=True)
class ScreenedEntry:
    """A journal entry with its derived totals, flags and severity."""

    id: str
    number: str | None
    reference: str | None
    date: date | None
    status: str | None
    narration: str | None
    lines: tuple[JournalLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    imbalance: Decimal
    is_balanced: bool
    flags: JournalFlags
    severity: Severity
    is_suspicious: bool
    line_count: int


@dataclass(frozen=True)
class ScreeningSummary:
    total_journals: int
    suspicious_journals: int
    unbalanced_journals: int
    large_amount_found: int
    critical_issues: int
    watchlist_related: int


@dataclass(frozen=True)
class AccountMovement:
    """The lines of one journal that touch a given account."""

    journal_id: str
    journal_number: str | None
    date: date | None
    reference: str | None
    status: str | None
    description: str | None
    relevant_lines: tuple[JournalLine, ...]
    net_amount: Decimal


@dataclass(frozen=True)
class AccountHistory:
    account_name: str
    account_code: str | None
    transaction_count: int
    transactions: tuple[AccountMovement, ...]
    total_movement: Decimal


@dataclass(frozen=True)
class WatchlistMovements:
    term: str
    transaction_count: int
    transactions: tuple[AccountMovement, ...]
    total_movement: Decimal


# =========================================================================
# Helpers
# =========================================================================


def _name_contains(line: JournalLine, term: str) -> bool:
    return bool(line.account_name) and term.lower() in line.account_name.lower()


def _touches(entry: JournalEntry, term: str) -> bool:
    return any(_name_contains(line, term) for line in entry.lines)


def classify_severity(
    imbalance: Decimal,
    flagged: bool,
    thresholds: ScreeningThresholds = _DEFAULT_THRESHOLDS,
) -> Severity:
    """Severity by |imbalance|; NONE when no flag fired."""
    if not flagged:
        return Severity.NONE
    magnitude = abs(imbalance)
    if magnitude > thresholds.critical_imbalance:
        return Severity.CRITICAL
    if magnitude > thresholds.high_imbalance:
        return Severity.HIGH
    return Severity.MEDIUM


def screen_entry(
    entry: JournalEntry,
    watchlist: Sequence[str] = (),
    thresholds: ScreeningThresholds = _DEFAULT_THRESHOLDS,
) -> ScreenedEntry:
    """Compute totals, flags and severity for a single entry."""
    total_debits = sum((positive_part(line.amount) for line in entry.lines), ZERO)
    total_credits = sum((negative_part(line.amount) for line in entry.lines), ZERO)
    imbalance = total_debits - total_credits
    is_balanced = abs(imbalance) < thresholds.balance_tolerance

    flags = JournalFlags(
        large_amount=max(total_debits, total_credits) > thresholds.large_amount,
        unbalanced=not is_balanced,
        single_sided=len(entry.lines) == 1,
        matches_watchlist=any(
            _touches(entry, term) for term in watchlist if term
        ),
    )

    return ScreenedEntry(
        id=entry.id,
        number=entry.number,
        reference=entry.reference,
        date=entry.date,
        status=entry.status,
        narration=entry.narration,
        lines=entry.lines,
        total_debits=total_debits,
        total_credits=total_credits,
        imbalance=imbalance,
        is_balanced=is_balanced,
        flags=flags,
        severity=classify_severity(imbalance, flags.fired, thresholds),
        is_suspicious=flags.fired,
        line_count=len(entry.lines),
    )


def order_screened(
    results: Iterable[ScreenedEntry],
    order: ScreeningOrder = ScreeningOrder.BY_DATE,
) -> tuple[ScreenedEntry, ...]:
    """Sort results; entries without a date sort after dated ones."""
    by_id = sorted(results, key=lambda r: r.id)
    if order == ScreeningOrder.BY_IMBALANCE:
        return tuple(sorted(by_id, key=lambda r: abs(r.imbalance), reverse=True))
    return tuple(
        sorted(
            by_id,
            key=lambda r: (r.date is not None, r.date or date.min),
            reverse=True,
        )
    )


# =========================================================================
# Screening
# =========================================================================


@traced_engine("journal_screening", "1.0", fingerprint_fields=("entries", "watchlist", "filter_account_name"))
def screen_entries(
    entries: Sequence[JournalEntry],
    watchlist: Sequence[str] = (),
    filter_account_name: str | None = None,
    thresholds: ScreeningThresholds = _DEFAULT_THRESHOLDS,
    order: ScreeningOrder = ScreeningOrder.BY_DATE,
) -> tuple[ScreenedEntry, ...]:
    """
    Screen manual journal entries.

    Args:
        entries: Journals to screen.
        watchlist: Sensitive account-name terms (case-insensitive).
        filter_account_name: When given, keep only entries with a line whose
            account name contains it (case-insensitive).  Scoring always
            covers every line of a kept entry.
        thresholds: Amount thresholds.
        order: Result ordering.
    """
    kept = [
        entry for entry in entries
        if not filter_account_name or _touches(entry, filter_account_name)
    ]
    results = order_screened(
        (screen_entry(entry, watchlist, thresholds) for entry in kept),
        order,
    )

    logger.info(
        "journals_screened",
        extra={
            "journals_in": len(entries),
            "journals_kept": len(results),
            "suspicious": sum(1 for r in results if r.is_suspicious),
            "filter_account_name": filter_account_name,
        },
    )
    return results


def summarize_screening(results: Sequence[ScreenedEntry]) -> ScreeningSummary:
    """Counts over a screened result set."""
    return ScreeningSummary(
        total_journals=len(results),
        suspicious_journals=sum(1 for r in results if r.is_suspicious),
        unbalanced_journals=sum(1 for r in results if not r.is_balanced),
        large_amount_found=sum(1 for r in results if r.flags.large_amount),
        critical_issues=sum(1 for r in results if r.severity == Severity.CRITICAL),
        watchlist_related=sum(1 for r in results if r.flags.matches_watchlist),
    )


@traced_engine("journal_screening.unbalanced", "1.0", fingerprint_fields=("entries", "minimum_amount"))
def find_unbalanced(
    entries: Sequence[JournalEntry],
    minimum_amount: Decimal | None = None,
    watchlist: Sequence[str] = (),
    thresholds: ScreeningThresholds = _DEFAULT_THRESHOLDS,
) -> tuple[ScreenedEntry, ...]:
    """
    Entries whose imbalance, or larger side, reaches ``minimum_amount``.

    Defaults to ``thresholds.unbalanced_minimum``.  Ordered by descending
    |imbalance|.
    """
    minimum = thresholds.unbalanced_minimum if minimum_amount is None else minimum_amount
    if minimum < ZERO:
        raise ValueError(f"minimum_amount cannot be negative: {minimum}")

    screened = [screen_entry(entry, watchlist, thresholds) for entry in entries]
    kept = [
        r for r in screened
        if abs(r.imbalance) >= minimum or max(r.total_debits, r.total_credits) >= minimum
    ]

    logger.info(
        "unbalanced_journals_found",
        extra={
            "journals_in": len(entries),
            "minimum_amount": str(minimum),
            "found": len(kept),
        },
    )
    return order_screened(kept, ScreeningOrder.BY_IMBALANCE)


# =========================================================================
# Account movements
# =========================================================================


def _movements(
    entries: Sequence[JournalEntry],
    term: str,
    account_code: str | None = None,
) -> tuple[AccountMovement, ...]:
    movements: list[AccountMovement] = []
    for entry in entries:
        relevant = tuple(
            line for line in entry.lines
            if (account_code is not None and line.account_code == account_code)
            or _name_contains(line, term)
        )
        if not relevant:
            continue
        movements.append(
            AccountMovement(
                journal_id=entry.id,
                journal_number=entry.number,
                date=entry.date,
                reference=entry.reference,
                status=entry.status,
                description=entry.narration,
                relevant_lines=relevant,
                net_amount=sum((line.amount for line in relevant), ZERO),
            )
        )
    by_id = sorted(movements, key=lambda m: m.journal_id)
    return tuple(
        sorted(
            by_id,
            key=lambda m: (m.date is not None, m.date or date.min),
            reverse=True,
        )
    )


def account_history(
    entries: Sequence[JournalEntry],
    account_name: str,
    account_code: str | None = None,
) -> AccountHistory:
    """
    Journals touching one account, newest first.

    A line matches on exact account code, or when its account name contains
    ``account_name`` (case-insensitive).  ``total_movement`` is the sum of
    absolute net amounts.
    """
    movements = _movements(entries, account_name, account_code)
    return AccountHistory(
        account_name=account_name,
        account_code=account_code,
        transaction_count=len(movements),
        transactions=movements,
        total_movement=sum((abs(m.net_amount) for m in movements), ZERO),
    )


def watchlist_movements(
    entries: Sequence[JournalEntry],
    term: str,
) -> WatchlistMovements:
    """Journals touching a sensitive account term, with the signed total movement."""
    movements = _movements(entries, term)
    return WatchlistMovements(
        term=term,
        transaction_count=len(movements),
        transactions=movements,
        total_movement=sum((m.net_amount for m in movements), ZERO),
    )
