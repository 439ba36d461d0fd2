"""
Portfolio Consolidation Service (``portfolio_services.consolidation_service``).

Responsibility
--------------
Fans out one trial balance build per requested entity on a bounded worker
pool, joins the results, and hands them to the pure aggregation in
``portfolio_engines.consolidation``.

Architecture position
---------------------
**Services layer**.  Constructor: ``trial_balance_service`` + optional
``registry`` + ``settings``.

Invariants enforced
-------------------
* At most ``settings.max_workers`` fetches run at once.
* A fetch that fails, overruns ``settings.entity_timeout``, or is still
  outstanding at the caller's deadline is recorded in
  ``unavailable_entities`` and never aborts the consolidation.
* Every fetch is handed the smaller of ``settings.entity_timeout`` and the
  time left before the caller's deadline, measured when its worker starts,
  so fetches still in flight at the deadline stop on their own.
* Fetches not yet started at the deadline are cancelled.
* Aggregation runs only after every fetch has been joined or abandoned;
  ``companies`` follows the requested order.
* Each worker runs in a copy of the caller's log context, so per-entity
  log lines carry the caller's correlation id.

Failure modes
-------------
* ``ValueError`` -- no entities were given and no registry was configured.
* ``ReportDateUnresolvedError`` -- unparseable report date string.
"""

from __future__ import annotations

import contextvars
import math
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import date

from portfolio_config.schema import ConsolidationSettings
from portfolio_engines.consolidation import (
    PortfolioTrialBalance,
    UnavailableEntity,
    consolidate_trial_balances,
)
from portfolio_engines.trial_balance import EntityTrialBalance
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.exceptions import SourceUnavailableError
from portfolio_kernel.logging_config import LogContext, get_logger
from portfolio_services.ports import EntityRegistry
from portfolio_services.trial_balance_service import TrialBalanceService

logger = get_logger("services.consolidation")

TIMEOUT_REASON = "timeout"


class _EntityTimedOut(Exception):
    """A fetch completed, but after its per-entity timeout."""


class ConsolidationService:
    """
    Concurrent multi-entity consolidation.

    Contract
    --------
    * ``consolidate`` always returns a ``PortfolioTrialBalance``; individual
      entity failures only show up in its data-quality fields.
    * The worker pool lives for one call; nothing is shared between calls.
    """

    def __init__(
        self,
        trial_balance_service: TrialBalanceService,
        registry: EntityRegistry | None = None,
        settings: ConsolidationSettings | None = None,
    ):
        self._trial_balances = trial_balance_service
        self._registry = registry
        self._settings = settings or trial_balance_service.config.consolidation

    def requested_entities(
        self,
        entities: Sequence[EntityDescriptor | str] | None = None,
    ) -> list[EntityDescriptor]:
        """
        The entities a consolidation covers, in presentation order.

        ``None`` means every connected entity in the registry.
        """
        if entities is not None:
            return [self._trial_balances.resolve_entity(e) for e in entities]
        if self._registry is None:
            raise ValueError("No entities given and no entity registry configured")
        return [e for e in self._registry.list_entities() if e.connected]

    def _build_one(
        self,
        entity: EntityDescriptor,
        report_date: date,
        join_deadline: float,
    ) -> EntityTrialBalance:
        started = time.monotonic()
        budget = min(self._settings.entity_timeout, join_deadline - started)
        if budget <= 0:
            raise _EntityTimedOut(f"{entity.entity_id} started after the deadline")
        trial_balance = self._trial_balances.build(entity, report_date, timeout=budget)
        elapsed = time.monotonic() - started
        if elapsed > self._settings.entity_timeout:
            raise _EntityTimedOut(f"{entity.entity_id} took {elapsed:.2f}s")
        return trial_balance

    def _join_timeout(self, entity_count: int, deadline: float | None) -> float:
        if deadline is not None:
            return deadline
        if self._settings.default_deadline is not None:
            return self._settings.default_deadline
        waves = math.ceil(entity_count / self._settings.max_workers)
        return self._settings.entity_timeout * waves

    def consolidate(
        self,
        report_date: date | str | None = None,
        entities: Sequence[EntityDescriptor | str] | None = None,
        deadline: float | None = None,
    ) -> PortfolioTrialBalance:
        """
        Consolidate the trial balances of ``entities`` as at ``report_date``.

        Args:
            report_date: Date for every entity; defaults to today.
            entities: Entities in presentation order; defaults to the
                registry's connected entities.
            deadline: Seconds the whole call may take.  Defaults to the
                configured deadline, else enough for every wave of workers
                to use its full per-entity timeout.
        """
        if deadline is not None and deadline <= 0:
            raise ValueError(f"deadline must be positive, got {deadline}")
        resolved_date = self._trial_balances.resolve_report_date(report_date)
        requested = self.requested_entities(entities)

        with LogContext.bind(report_date=resolved_date.isoformat()):
            logger.info(
                "consolidation_started",
                extra={
                    "entity_count": len(requested),
                    "max_workers": self._settings.max_workers,
                },
            )
            trial_balances, unavailable = self._fan_out(
                requested, resolved_date, self._join_timeout(len(requested), deadline),
            )
            return consolidate_trial_balances(
                report_date=resolved_date,
                requested=requested,
                trial_balances=trial_balances,
                unavailable=unavailable,
                tolerance=self._trial_balances.config.balance_tolerance,
            )

    def _fan_out(
        self,
        requested: list[EntityDescriptor],
        report_date: date,
        join_timeout: float,
    ) -> tuple[dict[str, EntityTrialBalance], list[UnavailableEntity]]:
        trial_balances: dict[str, EntityTrialBalance] = {}
        unavailable: list[UnavailableEntity] = []
        if not requested:
            return trial_balances, unavailable

        executor = ThreadPoolExecutor(
            max_workers=min(self._settings.max_workers, len(requested)),
            thread_name_prefix="consolidation",
        )
        futures: list[tuple[EntityDescriptor, Future[EntityTrialBalance]]] = []
        join_deadline = time.monotonic() + join_timeout
        try:
            for entity in requested:
                ctx = contextvars.copy_context()
                future = executor.submit(
                    ctx.run, self._build_one, entity, report_date, join_deadline,
                )
                futures.append((entity, future))

            for entity, future in futures:
                remaining = max(0.0, join_deadline - time.monotonic())
                try:
                    trial_balances[entity.entity_id] = future.result(timeout=remaining)
                except (FutureTimeoutError, _EntityTimedOut):
                    future.cancel()
                    logger.warning(
                        "entity_fetch_timed_out",
                        extra={"failed_entity_id": entity.entity_id},
                    )
                    unavailable.append(
                        UnavailableEntity(entity.entity_id, entity.entity_name, TIMEOUT_REASON)
                    )
                except SourceUnavailableError as exc:
                    timed_out = isinstance(exc.__cause__, TimeoutError)
                    logger.warning(
                        "entity_fetch_timed_out" if timed_out else "entity_fetch_failed",
                        extra={"failed_entity_id": entity.entity_id, "error": str(exc)},
                    )
                    unavailable.append(
                        UnavailableEntity(
                            entity.entity_id,
                            entity.entity_name,
                            TIMEOUT_REASON if timed_out else str(exc),
                        )
                    )
                except Exception as exc:
                    logger.error(
                        "entity_build_failed",
                        extra={"failed_entity_id": entity.entity_id},
                        exc_info=exc,
                    )
                    unavailable.append(
                        UnavailableEntity(
                            entity.entity_id,
                            entity.entity_name,
                            f"{type(exc).__name__}: {exc}",
                        )
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return trial_balances, unavailable
