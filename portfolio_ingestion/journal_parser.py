"""
Manual journal payload parser.

Converts raw manual journals (``manualJournalID, journalNumber, reference,
date, status, narration, journalLines: [{accountCode, accountName,
description, lineAmount}]``) into ``JournalEntry`` values.  Journals without
an id are skipped and logged; unparseable line amounts become zero.
"""

from __future__ import annotations

from typing import Any

from portfolio_ingestion.dates import parse_upstream_date
from portfolio_kernel.domain.amounts import parse_amount
from portfolio_kernel.domain.journal import JournalEntry, JournalLine
from portfolio_kernel.logging_config import get_logger

logger = get_logger("ingestion.journal_parser")


def _get(node: dict[str, Any], key: str) -> Any:
    if key in node:
        return node[key]
    return node.get(key[:1].upper() + key[1:])


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_line(raw: dict[str, Any]) -> JournalLine:
    return JournalLine(
        account_code=_optional_str(_get(raw, "accountCode")),
        account_name=_optional_str(_get(raw, "accountName")),
        description=_optional_str(_get(raw, "description")),
        amount=parse_amount(_get(raw, "lineAmount")),
    )


def parse_journal(raw: dict[str, Any]) -> JournalEntry | None:
    """Parse one manual journal; None when it has no id."""
    journal_id = _get(raw, "manualJournalID")
    if journal_id is None or str(journal_id).strip() == "":
        return None

    raw_lines = _get(raw, "journalLines") or []
    lines = tuple(
        _parse_line(line) for line in raw_lines if isinstance(line, dict)
    )

    return JournalEntry(
        id=str(journal_id),
        number=_optional_str(_get(raw, "journalNumber")),
        reference=_optional_str(_get(raw, "reference")),
        date=parse_upstream_date(_get(raw, "date")),
        status=_optional_str(_get(raw, "status")),
        lines=lines,
        narration=_optional_str(_get(raw, "narration")),
    )


def parse_manual_journals(payload: Any) -> tuple[JournalEntry, ...]:
    """
    Parse a list of manual journals, or an envelope ``{"manualJournals": [...]}``.
    """
    if isinstance(payload, dict):
        payload = _get(payload, "manualJournals") or []
    if not isinstance(payload, list):
        return ()

    entries: list[JournalEntry] = []
    skipped = 0
    for raw in payload:
        entry = parse_journal(raw) if isinstance(raw, dict) else None
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.warning("manual_journals_skipped", extra={"skipped": skipped})
    return tuple(entries)
