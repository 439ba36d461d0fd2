"""
Entity Trial Balance Service (``portfolio_services.trial_balance_service``).

Responsibility
--------------
Builds the trial balance of one entity for one date by fetching its
balance-sheet and profit-and-loss reports from the injected
``ReportSource``, parsing them, and delegating to the pure builder in
``portfolio_engines.trial_balance``.  Also serves the analyses that derive
from the same reports: ratios, expenses, intercompany balances and
unusual-balance flags.

Architecture position
---------------------
**Services layer** -- the only place report sources are called.
Constructor: ``report_source`` + optional ``registry`` + ``config`` +
``clock``.

Invariants enforced
-------------------
* A profit-and-loss fetch failure is a partial success: the trial balance
  is built from the balance sheet alone with ``profit_and_loss_included``
  False.
* A balance-sheet fetch failure raises ``SourceUnavailableError`` carrying
  the upstream message.
* The report date defaults to the clock's current date; engines never read
  the clock.
* A ``timeout`` given to ``build`` is one budget shared by both fetches;
  the profit-and-loss fetch gets what the balance sheet left.

Failure modes
-------------
* ``SourceUnavailableError`` -- balance sheet (or, for expense analysis,
  profit and loss) could not be fetched.
* ``EntityNotFoundError`` -- an entity reference did not resolve.
* ``ReportDateUnresolvedError`` -- an unparseable report date string.
"""

from __future__ import annotations

import calendar
import time
from dataclasses import dataclass
from datetime import date

from portfolio_config.schema import PortfolioConfig
from portfolio_engines.account_flags import AccountFlagReport, flag_accounts
from portfolio_engines.expense_analysis import ExpenseAnalysis, analyze_expenses
from portfolio_engines.intercompany import IntercompanyAnalysis, analyze_intercompany
from portfolio_engines.ratios import FinancialRatios, calculate_ratios
from portfolio_engines.trial_balance import EntityTrialBalance, build_entity_trial_balance
from portfolio_ingestion.dates import parse_upstream_date
from portfolio_ingestion.report_parser import parse_report
from portfolio_kernel.domain.clock import Clock, SystemClock
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.domain.report_tree import ReportTree
from portfolio_kernel.exceptions import ReportDateUnresolvedError, SourceUnavailableError
from portfolio_kernel.logging_config import LogContext, get_logger
from portfolio_services.ports import EntityRegistry, ReportSource
from portfolio_services.registry import resolve_entity

logger = get_logger("services.trial_balance")

BALANCE_SHEET = "balance_sheet"
PROFIT_AND_LOSS = "profit_and_loss"


@dataclass(frozen=True)
class IntercompanyReport:
    entity_id: str
    entity_name: str
    report_date: date
    analysis: IntercompanyAnalysis


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def months_before(anchor: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of a shorter month."""
    month_index = anchor.year * 12 + (anchor.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class TrialBalanceService:
    """
    Single-entity trial balance generation.

    Contract
    --------
    * ``build`` returns an ``EntityTrialBalance`` or raises a typed
      ``PortfolioKernelError``.
    * Holds no per-request state; safe to call from several threads.
    """

    def __init__(
        self,
        report_source: ReportSource,
        registry: EntityRegistry | None = None,
        config: PortfolioConfig | None = None,
        clock: Clock | None = None,
    ):
        self._source = report_source
        self._registry = registry
        self._config = config or PortfolioConfig.with_defaults()
        self._clock = clock or SystemClock()

    @property
    def config(self) -> PortfolioConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    # =========================================================================
    # Resolution helpers
    # =========================================================================

    def resolve_report_date(self, value: date | str | None) -> date:
        """
        Normalize a requested report date; None means today.

        Raises:
            ReportDateUnresolvedError: if a string cannot be parsed.
        """
        if value is None:
            return self._clock.today()
        if isinstance(value, date):
            return value
        parsed = parse_upstream_date(value)
        if parsed is None:
            raise ReportDateUnresolvedError(value, "expected an ISO date (YYYY-MM-DD)")
        return parsed

    def resolve_entity(self, entity: EntityDescriptor | str) -> EntityDescriptor:
        """
        Turn an entity id or name into a descriptor.

        Without a registry the reference is taken as the entity id.
        """
        if isinstance(entity, EntityDescriptor):
            return entity
        if self._registry is None:
            return EntityDescriptor(entity_id=entity, entity_name=entity)
        return resolve_entity(self._registry, entity)

    # =========================================================================
    # Fetching
    # =========================================================================

    def _fetch_balance_sheet(
        self,
        entity: EntityDescriptor,
        report_date: date,
        timeout: float | None = None,
    ) -> ReportTree:
        try:
            raw = self._source.fetch_balance_sheet(
                entity.entity_id, report_date, timeout=timeout,
            )
        except Exception as exc:
            logger.warning(
                "balance_sheet_fetch_failed",
                extra={"entity_id": entity.entity_id, "error": str(exc)},
            )
            raise SourceUnavailableError(entity.entity_id, BALANCE_SHEET, str(exc)) from exc
        return parse_report(raw)

    def _fetch_profit_and_loss(
        self,
        entity: EntityDescriptor,
        date_from: date,
        date_to: date,
        timeout: float | None = None,
    ) -> ReportTree:
        try:
            raw = self._source.fetch_profit_and_loss(
                entity.entity_id, date_from, date_to, timeout=timeout,
            )
        except Exception as exc:
            logger.warning(
                "profit_and_loss_fetch_failed",
                extra={"entity_id": entity.entity_id, "error": str(exc)},
            )
            raise SourceUnavailableError(entity.entity_id, PROFIT_AND_LOSS, str(exc)) from exc
        return parse_report(raw)

    # =========================================================================
    # Public API
    # =========================================================================

    def build(
        self,
        entity: EntityDescriptor | str,
        report_date: date | str | None = None,
        timeout: float | None = None,
    ) -> EntityTrialBalance:
        """
        Build one entity's trial balance as at ``report_date``.

        ``timeout`` bounds the two report fetches together, in seconds.

        Raises:
            SourceUnavailableError: if the balance sheet cannot be fetched.
            EntityNotFoundError: if ``entity`` does not resolve.
            ReportDateUnresolvedError: if ``report_date`` cannot be parsed.
        """
        descriptor = self.resolve_entity(entity)
        resolved_date = self.resolve_report_date(report_date)

        with LogContext.bind(
            entity_id=descriptor.entity_id,
            report_date=resolved_date.isoformat(),
        ):
            logger.info("entity_trial_balance_requested")
            deadline = None if timeout is None else time.monotonic() + timeout
            balance_sheet = self._fetch_balance_sheet(descriptor, resolved_date, timeout)

            profit_and_loss: ReportTree | None
            try:
                profit_and_loss = self._fetch_profit_and_loss(
                    descriptor, resolved_date, resolved_date, _remaining(deadline),
                )
            except SourceUnavailableError:
                logger.warning("entity_trial_balance_partial")
                profit_and_loss = None

            return build_entity_trial_balance(
                entity_id=descriptor.entity_id,
                entity_name=descriptor.entity_name,
                report_date=resolved_date,
                balance_sheet=balance_sheet,
                profit_and_loss=profit_and_loss,
                rules=self._config.classification_rules,
                tolerance=self._config.balance_tolerance,
            )

    def financial_ratios(
        self,
        entity: EntityDescriptor | str,
        report_date: date | str | None = None,
    ) -> FinancialRatios:
        """Ratios over the entity's trial balance totals."""
        trial_balance = self.build(entity, report_date)
        return calculate_ratios(trial_balance.totals)

    def intercompany(
        self,
        entity: EntityDescriptor | str,
        report_date: date | str | None = None,
    ) -> IntercompanyReport:
        """
        Intercompany balances on the entity's balance sheet.

        The entity keywords are the configured ones plus the lower-cased names
        of every other entity in the registry.

        Raises:
            SourceUnavailableError: if the balance sheet cannot be fetched.
        """
        descriptor = self.resolve_entity(entity)
        resolved_date = self.resolve_report_date(report_date)
        settings = self._config.intercompany

        keywords = list(settings.entity_keywords)
        if self._registry is not None:
            keywords += [
                e.entity_name.lower()
                for e in self._registry.list_entities()
                if e.entity_id != descriptor.entity_id
            ]

        with LogContext.bind(
            entity_id=descriptor.entity_id,
            report_date=resolved_date.isoformat(),
        ):
            balance_sheet = self._fetch_balance_sheet(descriptor, resolved_date)
            analysis = analyze_intercompany(
                balance_sheet,
                tuple(dict.fromkeys(keywords)),
                settings.relationship_keywords,
            )
        return IntercompanyReport(
            entity_id=descriptor.entity_id,
            entity_name=descriptor.entity_name,
            report_date=resolved_date,
            analysis=analysis,
        )

    def account_flags(
        self,
        entity: EntityDescriptor | str,
        report_date: date | str | None = None,
    ) -> AccountFlagReport:
        """Unusual-balance flags over the entity's trial balance."""
        trial_balance = self.build(entity, report_date)
        return flag_accounts(trial_balance, self._config.account_flags)

    def expense_analysis(
        self,
        entity: EntityDescriptor | str,
        report_date: date | str | None = None,
        period_months: int = 12,
    ) -> ExpenseAnalysis:
        """
        Expense breakdown over the ``period_months`` ending at ``report_date``.

        Raises:
            SourceUnavailableError: if the profit-and-loss report cannot be fetched.
            ValueError: if ``period_months`` is less than 1.
        """
        if period_months < 1:
            raise ValueError(f"period_months must be at least 1, got {period_months}")
        descriptor = self.resolve_entity(entity)
        date_to = self.resolve_report_date(report_date)
        date_from = months_before(date_to, period_months)

        with LogContext.bind(entity_id=descriptor.entity_id, report_date=date_to.isoformat()):
            profit_and_loss = self._fetch_profit_and_loss(descriptor, date_from, date_to)
            return analyze_expenses(
                profit_and_loss,
                period_months=period_months,
                categories=self._config.expense_categories,
                rules=self._config.classification_rules,
            )
