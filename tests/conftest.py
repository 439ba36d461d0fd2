"""
Pytest fixtures for the portfolio trial balance test suite.

Provides:
- Structured logging configuration and log capture
- Report and journal payload builders
- In-memory fake sources for the services layer
- SQLite in-memory entity registry sessions

No external services are needed: the entity registry runs on SQLite and
upstream accounting systems are replaced by fakes.
"""

import json
import logging
import threading
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Any

import pytest

from portfolio_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from portfolio_kernel.domain.clock import DeterministicClock
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.domain.journal import JournalEntry, JournalLine
from portfolio_kernel.domain.report_tree import ReportRow, ReportSection
from portfolio_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

REPORT_DATE = date(2024, 6, 30)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture portfolio_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            build_entity_trial_balance(...)
            logs = captured_logs()
            assert any(r["message"] == "entity_trial_balance_built" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("portfolio_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain builders
# =============================================================================


def section(title: str, *rows: tuple) -> ReportSection:
    """A report section from ``(name, balance)`` or ``(name, balance, code)`` tuples."""
    return ReportSection(
        title=title,
        children=tuple(ReportRow(r[0], Decimal(str(r[1])), *r[2:]) for r in rows),
    )


def journal(
    journal_id: str,
    *amounts,
    on: date | None = date(2024, 3, 1),
    accounts: tuple[str, ...] | None = None,
    number: str | None = None,
    narration: str | None = None,
) -> JournalEntry:
    """A manual journal with one line per signed amount."""
    names = accounts or tuple(f"Account {i}" for i in range(len(amounts)))
    return JournalEntry(
        id=journal_id,
        number=number or journal_id,
        reference=None,
        date=on,
        status="POSTED",
        lines=tuple(
            JournalLine(
                account_code=str(100 + i),
                account_name=names[i],
                description=None,
                amount=Decimal(str(amount)),
            )
            for i, amount in enumerate(amounts)
        ),
        narration=narration,
    )


# =============================================================================
# Raw payload builders (upstream report JSON)
# =============================================================================


def raw_row(name: str, amount: Any, code: str | None = None) -> dict:
    first: dict[str, Any] = {"value": name}
    if code is not None:
        first["attributes"] = [{"id": "code", "value": code}]
    return {"rowType": "Row", "cells": [first, {"value": str(amount)}]}


def raw_section(title: str | None, *rows: dict) -> dict:
    node: dict[str, Any] = {"rowType": "Section", "rows": list(rows)}
    if title is not None:
        node["title"] = title
    return node


def balance_sheet_payload(assets: Any, liabilities: Any, equity: Any) -> list[dict]:
    """A minimal balance sheet with one account per section."""
    return [
        {"rowType": "Header", "cells": [{"value": ""}, {"value": "30 Jun 2024"}]},
        raw_section("Bank", raw_row("Operating Account", assets, "090")),
        raw_section("Current Liabilities", raw_row("Accounts Payable", liabilities, "800")),
        raw_section("Equity", raw_row("Retained Earnings", equity, "960")),
        raw_section("", {"rowType": "SummaryRow", "cells": [{"value": "Net Assets"}, {"value": "0"}]}),
    ]


def profit_and_loss_payload(revenue: Any, expenses: Any) -> list[dict]:
    return [
        raw_section("Income", raw_row("Sales", revenue, "200")),
        raw_section("Operating Expenses", raw_row("Rent", expenses, "469")),
    ]


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeReportSource:
    """
    In-memory ReportSource.

    ``balance_sheets`` / ``profit_and_loss`` map entity id to a payload, or to
    a callable ``(report_date) -> payload``.  An Exception value is raised.
    ``delays`` holds per-entity sleep seconds applied to balance sheet fetches;
    a fetch whose timeout is shorter than its delay sleeps for the timeout and
    raises ``TimeoutError``.  ``timeouts`` records ``(report, entity_id,
    timeout)`` for every fetch.
    """

    def __init__(
        self,
        balance_sheets: dict[str, Any],
        profit_and_loss: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.balance_sheets = balance_sheets
        self.profit_and_loss = profit_and_loss or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, str, date]] = []
        self.timeouts: list[tuple[str, str, float | None]] = []
        self._lock = threading.Lock()

    @staticmethod
    def _resolve(value: Any, on: date) -> Any:
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(on)
        return value

    def fetch_balance_sheet(self, entity_id: str, report_date: date, timeout=None) -> list:
        with self._lock:
            self.calls.append(("balance_sheet", entity_id, report_date))
            self.timeouts.append(("balance_sheet", entity_id, timeout))
        delay = self.delays.get(entity_id)
        if delay:
            if timeout is not None and timeout < delay:
                time.sleep(timeout)
                raise TimeoutError(f"balance sheet for {entity_id} timed out")
            time.sleep(delay)
        if entity_id not in self.balance_sheets:
            raise KeyError(f"no balance sheet for {entity_id}")
        return self._resolve(self.balance_sheets[entity_id], report_date)

    def fetch_profit_and_loss(
        self, entity_id: str, date_from: date, date_to: date, timeout=None,
    ) -> list:
        with self._lock:
            self.calls.append(("profit_and_loss", entity_id, date_to))
            self.timeouts.append(("profit_and_loss", entity_id, timeout))
        if entity_id not in self.profit_and_loss:
            raise KeyError(f"no profit and loss for {entity_id}")
        return self._resolve(self.profit_and_loss[entity_id], date_to)


class FakeJournalSource:
    """In-memory JournalSource recording the requested windows."""

    def __init__(self, journals: dict[str, Any]):
        self.journals = journals
        self.windows: list[tuple[date | None, date | None]] = []

    def fetch_manual_journals(self, entity_id, date_from=None, date_to=None):
        self.windows.append((date_from, date_to))
        value = self.journals[entity_id]
        if isinstance(value, Exception):
            raise value
        return value


class FakeRegistry:
    """EntityRegistry over a fixed list, without a ``resolve`` of its own."""

    def __init__(self, entities: list[EntityDescriptor]):
        self.entities = entities

    def list_entities(self) -> list[EntityDescriptor]:
        return list(self.entities)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock pinned to the standard report date."""
    return DeterministicClock(datetime(2024, 6, 30, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh SQLite in-memory registry store per test."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
