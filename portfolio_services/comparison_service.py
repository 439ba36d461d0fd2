"""
Period Comparison Service (``portfolio_services.comparison_service``).

Responsibility
--------------
Builds the two snapshots of a period comparison concurrently (one entity,
or the whole portfolio) and delegates the diff to
``portfolio_engines.period_comparison``.

Failure modes
-------------
* ``InvalidComparisonError`` -- no from date was given.
* ``SourceUnavailableError`` -- an entity snapshot could not be built.
  Portfolio snapshots never raise it; missing entities degrade data quality.
* ``ReportDateUnresolvedError`` -- unparseable date string.
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import TypeVar

from portfolio_engines.period_comparison import PeriodComparison, compare_periods
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.exceptions import InvalidComparisonError
from portfolio_kernel.logging_config import LogContext, get_logger
from portfolio_services.consolidation_service import ConsolidationService
from portfolio_services.trial_balance_service import TrialBalanceService

logger = get_logger("services.comparison")

T = TypeVar("T")


class ComparisonService:
    """Period-over-period comparison of entity or portfolio trial balances."""

    def __init__(
        self,
        trial_balance_service: TrialBalanceService,
        consolidation_service: ConsolidationService | None = None,
    ):
        self._trial_balances = trial_balance_service
        self._consolidation = consolidation_service
        self._thresholds = trial_balance_service.config.comparison

    def _dates(self, from_date: date | str | None, to_date: date | str | None) -> tuple[date, date]:
        if from_date is None or from_date == "":
            raise InvalidComparisonError("fromDate parameter is required")
        resolved_from = self._trial_balances.resolve_report_date(from_date)
        resolved_to = self._trial_balances.resolve_report_date(to_date)
        return resolved_from, resolved_to

    @staticmethod
    def _both(build: Callable[[date], T], from_date: date, to_date: date) -> tuple[T, T]:
        """Run both snapshot builds concurrently; the first failure propagates."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="comparison") as executor:
            from_future = executor.submit(contextvars.copy_context().run, build, from_date)
            to_future = executor.submit(contextvars.copy_context().run, build, to_date)
            return from_future.result(), to_future.result()

    def compare_entity(
        self,
        entity: EntityDescriptor | str,
        from_date: date | str | None,
        to_date: date | str | None = None,
    ) -> PeriodComparison:
        """Compare one entity between two dates; ``to_date`` defaults to today."""
        descriptor = self._trial_balances.resolve_entity(entity)
        resolved_from, resolved_to = self._dates(from_date, to_date)

        with LogContext.bind(entity_id=descriptor.entity_id):
            logger.info(
                "entity_comparison_started",
                extra={"from_date": resolved_from.isoformat(), "to_date": resolved_to.isoformat()},
            )
            from_tb, to_tb = self._both(
                lambda d: self._trial_balances.build(descriptor, d),
                resolved_from,
                resolved_to,
            )
            return compare_periods(from_tb, to_tb, self._thresholds)

    def compare_portfolio(
        self,
        from_date: date | str | None,
        to_date: date | str | None = None,
        entities: Sequence[EntityDescriptor | str] | None = None,
    ) -> PeriodComparison:
        """Compare the consolidated portfolio between two dates."""
        if self._consolidation is None:
            raise ValueError("Portfolio comparison requires a consolidation service")
        resolved_from, resolved_to = self._dates(from_date, to_date)
        consolidation = self._consolidation
        requested = consolidation.requested_entities(entities)

        logger.info(
            "portfolio_comparison_started",
            extra={
                "from_date": resolved_from.isoformat(),
                "to_date": resolved_to.isoformat(),
                "entity_count": len(requested),
            },
        )
        from_tb, to_tb = self._both(
            lambda d: consolidation.consolidate(report_date=d, entities=requested),
            resolved_from,
            resolved_to,
        )
        return compare_periods(from_tb, to_tb, self._thresholds)
