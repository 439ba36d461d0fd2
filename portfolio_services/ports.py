"""
Collaborator ports.

The pipeline never talks to an upstream accounting system directly.  It is
handed objects satisfying these protocols: a report source, a journal source
and an entity registry.  Sources return raw payloads; parsing happens in
``portfolio_ingestion``.  Any exception raised by a source is treated as the
source being unavailable.

Report fetches take a ``timeout`` in seconds (None = no bound).  A source
that cannot answer in time raises ``TimeoutError``; the consolidation fan-out
relies on this to stop fetches still running at its deadline.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol, runtime_checkable

from portfolio_kernel.domain.entities import EntityDescriptor


@runtime_checkable
class ReportSource(Protocol):
    """Fetches balance-sheet and profit-and-loss row forests."""

    def fetch_balance_sheet(
        self,
        entity_id: str,
        report_date: date,
        timeout: float | None = None,
    ) -> Sequence[Any]:
        ...

    def fetch_profit_and_loss(
        self,
        entity_id: str,
        date_from: date,
        date_to: date,
        timeout: float | None = None,
    ) -> Sequence[Any]:
        ...


@runtime_checkable
class JournalSource(Protocol):
    """Fetches raw manual journals for a date window."""

    def fetch_manual_journals(
        self,
        entity_id: str,
        date_from: date | None,
        date_to: date | None,
    ) -> Sequence[Any]:
        ...


@runtime_checkable
class EntityRegistry(Protocol):
    """Lists the entities known to the portfolio."""

    def list_entities(self) -> Sequence[EntityDescriptor]:
        ...
