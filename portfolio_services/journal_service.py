"""
Manual Journal Service (``portfolio_services.journal_service``).

Responsibility
--------------
Fetches one entity's manual journals for a date window from the injected
``JournalSource``, parses them, and runs the screening engines over them:
the flagged listing, the unbalanced finder, account histories and
watch-list movement analysis.

Architecture position
---------------------
**Services layer**.  Constructor: ``journal_source`` + optional
``registry`` + ``config`` + ``clock``.

Failure modes
-------------
* ``SourceUnavailableError`` -- the journal fetch failed; carries the
  upstream message.
* ``EntityNotFoundError`` -- an entity reference did not resolve.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from portfolio_config.schema import PortfolioConfig
from portfolio_engines.journal_screening import (
    AccountHistory,
    ScreenedEntry,
    ScreeningSummary,
    WatchlistMovements,
    account_history,
    find_unbalanced,
    screen_entries,
    summarize_screening,
    watchlist_movements,
)
from portfolio_ingestion.journal_parser import parse_manual_journals
from portfolio_kernel.domain.clock import Clock, SystemClock
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.domain.journal import JournalEntry
from portfolio_kernel.exceptions import SourceUnavailableError
from portfolio_kernel.logging_config import LogContext, get_logger
from portfolio_services.ports import EntityRegistry, JournalSource
from portfolio_services.registry import resolve_entity
from portfolio_services.trial_balance_service import months_before

logger = get_logger("services.journals")

MANUAL_JOURNALS = "manual_journals"

# Default look-back window for journal listings
DEFAULT_WINDOW = timedelta(days=365)


@dataclass(frozen=True)
class JournalScreeningReport:
    entity_id: str
    entity_name: str
    date_from: date
    date_to: date
    summary: ScreeningSummary
    journals: tuple[ScreenedEntry, ...]


@dataclass(frozen=True)
class UnbalancedJournalReport:
    entity_id: str
    entity_name: str
    date_from: date
    minimum_amount: Decimal
    journals_analyzed: int
    summary: ScreeningSummary
    transactions: tuple[ScreenedEntry, ...]


class JournalService:
    """
    Manual journal screening for one entity at a time.

    Contract
    --------
    * Every method fetches afresh; nothing is cached between calls.
    * Scoring and ordering are delegated to
      ``portfolio_engines.journal_screening``.
    """

    def __init__(
        self,
        journal_source: JournalSource,
        registry: EntityRegistry | None = None,
        config: PortfolioConfig | None = None,
        clock: Clock | None = None,
    ):
        self._source = journal_source
        self._registry = registry
        self._config = config or PortfolioConfig.with_defaults()
        self._clock = clock or SystemClock()

    def _resolve(self, entity: EntityDescriptor | str) -> EntityDescriptor:
        if isinstance(entity, EntityDescriptor):
            return entity
        if self._registry is None:
            return EntityDescriptor(entity_id=entity, entity_name=entity)
        return resolve_entity(self._registry, entity)

    def _fetch(
        self,
        entity: EntityDescriptor,
        date_from: date | None,
        date_to: date | None,
    ) -> tuple[JournalEntry, ...]:
        try:
            raw = self._source.fetch_manual_journals(entity.entity_id, date_from, date_to)
        except Exception as exc:
            logger.warning(
                "manual_journals_fetch_failed",
                extra={"entity_id": entity.entity_id, "error": str(exc)},
            )
            raise SourceUnavailableError(entity.entity_id, MANUAL_JOURNALS, str(exc)) from exc
        entries = parse_manual_journals(list(raw))
        logger.info(
            "manual_journals_loaded",
            extra={"entity_id": entity.entity_id, "journal_count": len(entries)},
        )
        return entries

    def screen(
        self,
        entity: EntityDescriptor | str,
        date_from: date | None = None,
        date_to: date | None = None,
        filter_account_name: str | None = None,
    ) -> JournalScreeningReport:
        """
        Flagged listing of manual journals, newest first.

        The window defaults to the year ending today.
        """
        descriptor = self._resolve(entity)
        window_to = date_to or self._clock.today()
        window_from = date_from or (window_to - DEFAULT_WINDOW)
        screening = self._config.screening

        with LogContext.bind(entity_id=descriptor.entity_id):
            entries = self._fetch(descriptor, window_from, window_to)
            results = screen_entries(
                entries,
                watchlist=screening.watchlist,
                filter_account_name=filter_account_name,
                thresholds=screening,
            )
        return JournalScreeningReport(
            entity_id=descriptor.entity_id,
            entity_name=descriptor.entity_name,
            date_from=window_from,
            date_to=window_to,
            summary=summarize_screening(results),
            journals=results,
        )

    def find_unbalanced(
        self,
        entity: EntityDescriptor | str,
        minimum_amount: Decimal | None = None,
        date_from: date | None = None,
    ) -> UnbalancedJournalReport:
        """Journals whose imbalance or larger side reaches ``minimum_amount``."""
        descriptor = self._resolve(entity)
        screening = self._config.screening
        minimum = screening.unbalanced_minimum if minimum_amount is None else minimum_amount
        window_from = date_from or (self._clock.today() - DEFAULT_WINDOW)

        with LogContext.bind(entity_id=descriptor.entity_id):
            entries = self._fetch(descriptor, window_from, None)
            results = find_unbalanced(
                entries,
                minimum_amount=minimum,
                watchlist=screening.watchlist,
                thresholds=screening,
            )
        return UnbalancedJournalReport(
            entity_id=descriptor.entity_id,
            entity_name=descriptor.entity_name,
            date_from=window_from,
            minimum_amount=minimum,
            journals_analyzed=len(entries),
            summary=summarize_screening(results),
            transactions=results,
        )

    def account_history(
        self,
        entity: EntityDescriptor | str,
        account_name: str,
        account_code: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> AccountHistory:
        """Movements on one account; an open window means all time."""
        descriptor = self._resolve(entity)
        with LogContext.bind(entity_id=descriptor.entity_id):
            entries = self._fetch(descriptor, date_from, date_to)
            return account_history(entries, account_name, account_code)

    def watchlist_movements(
        self,
        entity: EntityDescriptor | str,
        term: str | None = None,
        months_back: int = 12,
    ) -> WatchlistMovements:
        """
        Movements on a sensitive account over the last ``months_back`` months.

        ``term`` defaults to the first configured watch-list term.
        """
        if months_back < 1:
            raise ValueError(f"months_back must be at least 1, got {months_back}")
        watchlist = self._config.screening.watchlist
        if term is None:
            if not watchlist:
                raise ValueError("No watch-list term given and none configured")
            term = watchlist[0]

        descriptor = self._resolve(entity)
        today = self._clock.today()
        with LogContext.bind(entity_id=descriptor.entity_id):
            entries = self._fetch(descriptor, months_before(today, months_back), today)
            return watchlist_movements(entries, term)
