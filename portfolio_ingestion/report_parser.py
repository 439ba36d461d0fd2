"""
Report payload parser.

Converts the raw row forest of a balance-sheet or profit-and-loss report
(``[{rowType, title?, rows?, cells?}]``) into a ``ReportTree``.

Node handling:
    - ``Section`` -> ``ReportSection`` (missing title becomes ``""``)
    - ``Row`` with at least two cells -> ``ReportRow`` (name from cell 0,
      balance parsed from cell 1)
    - ``Header`` / ``SummaryRow`` -> ignored (column captions and totals)
    - anything else, or a ``Row`` without two cells -> counted as malformed

Keys are accepted in camelCase (SDK form) or PascalCase (raw API form).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from portfolio_kernel.domain.amounts import parse_amount
from portfolio_kernel.domain.report_tree import ReportNode, ReportRow, ReportSection, ReportTree
from portfolio_kernel.logging_config import get_logger

logger = get_logger("ingestion.report_parser")

_IGNORED_ROW_TYPES = frozenset({"header", "summaryrow"})


def _get(node: dict[str, Any], key: str) -> Any:
    """Look up ``key`` in camelCase, then PascalCase."""
    if key in node:
        return node[key]
    return node.get(key[:1].upper() + key[1:])


def _cell_value(cell: Any) -> Any:
    if isinstance(cell, dict):
        return _get(cell, "value")
    return None


def _row_code(cells: Sequence[Any]) -> str | None:
    """Account code carried as a cell attribute, when the export includes one."""
    first = cells[0]
    if not isinstance(first, dict):
        return None
    for attribute in _get(first, "attributes") or ():
        if isinstance(attribute, dict) and _get(attribute, "id") == "code":
            value = _get(attribute, "value")
            return str(value) if value is not None else None
    return None


def unwrap_report_rows(payload: Any) -> list[Any]:
    """
    Return the top-level row list of a report payload.

    Accepts the bare list, or an API envelope ``{"reports": [{"rows": [...]}]}``
    (either key casing).  Anything else yields an empty list.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    reports = _get(payload, "reports")
    if isinstance(reports, list):
        if not reports or not isinstance(reports[0], dict):
            return []
        rows = _get(reports[0], "rows")
        return rows if isinstance(rows, list) else []
    rows = _get(payload, "rows")
    return rows if isinstance(rows, list) else []


def _parse_nodes(raw_nodes: Sequence[Any]) -> tuple[tuple[ReportNode, ...], int]:
    nodes: list[ReportNode] = []
    malformed = 0

    for raw in raw_nodes:
        if not isinstance(raw, dict):
            malformed += 1
            continue

        row_type = str(_get(raw, "rowType") or "").lower()

        if row_type == "section":
            children_raw = _get(raw, "rows") or []
            if not isinstance(children_raw, list):
                malformed += 1
                continue
            children, child_malformed = _parse_nodes(children_raw)
            malformed += child_malformed
            nodes.append(ReportSection(title=str(_get(raw, "title") or ""), children=children))
        elif row_type == "row":
            cells = _get(raw, "cells")
            if not isinstance(cells, list) or len(cells) < 2:
                malformed += 1
                continue
            name = _cell_value(cells[0])
            nodes.append(
                ReportRow(
                    name=str(name) if name is not None else "",
                    balance=parse_amount(_cell_value(cells[1])),
                    code=_row_code(cells),
                )
            )
        elif row_type in _IGNORED_ROW_TYPES:
            continue
        else:
            malformed += 1

    return tuple(nodes), malformed


def parse_report(payload: Any) -> ReportTree:
    """Parse a report payload (bare row list or API envelope) into a ReportTree."""
    nodes, malformed = _parse_nodes(unwrap_report_rows(payload))
    if malformed:
        logger.warning("report_rows_malformed", extra={"malformed_rows": malformed})
    return ReportTree(nodes=nodes, malformed_rows=malformed)
