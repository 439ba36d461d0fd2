"""
Report row tree -- tagged variant for hierarchical balance-sheet / P&L rows.

Responsibility:
    Typed replacement for the loosely-shaped report JSON of upstream
    accounting systems.  A report is a forest of ``ReportSection`` and
    ``ReportRow`` nodes; sections carry a title and nested nodes, rows carry
    an account name and a parsed balance.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Built by
    ``portfolio_ingestion.report_parser``, consumed by
    ``portfolio_engines.trial_balance``.

Invariants enforced:
    - Nodes are frozen; children are tuples.
    - ``ReportRow.balance`` is always a ``Decimal`` (unparseable cells are
      already zero by the time a row exists).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Union


@dataclass(frozen=True)
class ReportRow:
    """A single account line of a report."""

    name: str
    balance: Decimal
    code: str | None = None


@dataclass(frozen=True)
class ReportSection:
    """A titled group of rows (and possibly nested sections)."""

    title: str
    children: tuple[ReportNode, ...] = ()


ReportNode = Union[ReportSection, ReportRow]


@dataclass(frozen=True)
class ReportTree:
    """
    A parsed report forest plus the count of upstream nodes that could not
    be turned into rows or sections (missing cells, unknown row types).
    """

    nodes: tuple[ReportNode, ...] = ()
    malformed_rows: int = 0


def iter_rows_with_section(
    nodes: tuple[ReportNode, ...],
    section_title: str | None = None,
) -> Iterator[tuple[ReportRow, str | None]]:
    """
    Depth-first walk yielding each row with its nearest enclosing section title.

    Rows at the top of the forest yield ``None`` as their section title.
    """
    for node in nodes:
        if isinstance(node, ReportSection):
            yield from iter_rows_with_section(node.children, node.title)
        else:
            yield node, section_title
