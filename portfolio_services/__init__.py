"""
portfolio_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure engines
    (portfolio_engines/) with the injected collaborators: report source,
    journal source and entity registry.  This is the **only** layer that
    calls collaborators, runs worker pools, or reads the clock.

Architecture position:
    Services -- orchestration over engines + kernel + ingestion.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        portfolio_services/ -> portfolio_engines/  (allowed)
        portfolio_services/ -> portfolio_kernel/   (allowed)
        portfolio_engines/  -> portfolio_services/ (FORBIDDEN)
        portfolio_kernel/   -> portfolio_services/ (FORBIDDEN)

Failure modes:
    - Typed ``PortfolioKernelError`` subclasses; see ``portfolio_kernel.exceptions``.
"""

from portfolio_services.comparison_service import ComparisonService
from portfolio_services.consolidation_service import ConsolidationService
from portfolio_services.journal_service import (
    JournalScreeningReport,
    JournalService,
    UnbalancedJournalReport,
)
from portfolio_services.ports import EntityRegistry, JournalSource, ReportSource
from portfolio_services.registry import SqlEntityRegistry, register_entities, resolve_entity
from portfolio_services.trial_balance_service import IntercompanyReport, TrialBalanceService

__all__ = [
    "ComparisonService",
    "ConsolidationService",
    "EntityRegistry",
    "IntercompanyReport",
    "JournalScreeningReport",
    "JournalService",
    "JournalSource",
    "ReportSource",
    "SqlEntityRegistry",
    "TrialBalanceService",
    "UnbalancedJournalReport",
    "register_entities",
    "resolve_entity",
]
