"""
JSON export sources.

Serve report and journal payloads previously exported from the upstream
accounting system, laid out as::

    <root>/entities.json                                   [{entityId, entityName, connected}]
    <root>/<entity_id>/balance_sheet/<YYYY-MM-DD>.json     report payload
    <root>/<entity_id>/profit_and_loss/<from>_<to>.json    report payload
    <root>/<entity_id>/profit_and_loss/<YYYY-MM-DD>.json   single-day report payload
    <root>/<entity_id>/manual_journals.json                manual journal list

Payload files hold either the bare row list or the API response envelope.
A missing file raises ``FileNotFoundError``; callers in
``portfolio_services`` turn that into ``SourceUnavailableError``.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

from portfolio_ingestion.dates import parse_upstream_date
from portfolio_ingestion.report_parser import unwrap_report_rows
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.logging_config import get_logger

logger = get_logger("ingestion.json_export")

ENTITIES_FILE = "entities.json"
BALANCE_SHEET_DIR = "balance_sheet"
PROFIT_AND_LOSS_DIR = "profit_and_loss"
MANUAL_JOURNALS_FILE = "manual_journals.json"


class _ExportDirectory:
    """Shared path handling for the export layout."""

    def __init__(self, root: Path | str, encoding: str = "utf-8"):
        self.root = Path(root)
        self.encoding = encoding

    def _entity_dir(self, entity_id: str) -> Path:
        if not entity_id or "/" in entity_id or "\\" in entity_id or entity_id in (".", ".."):
            raise ValueError(f"Invalid entity id for export lookup: {entity_id!r}")
        return self.root / entity_id

    def _load(self, path: Path) -> Any:
        with path.open("r", encoding=self.encoding) as f:
            data = json.load(f)
        logger.debug("export_file_loaded", extra={"path": str(path)})
        return data


class JsonExportReportSource(_ExportDirectory):
    """
    ReportSource backed by a directory of exported report payloads.

    Reads are local, so the ``timeout`` of the port is accepted and unused.
    """

    def fetch_balance_sheet(
        self,
        entity_id: str,
        report_date: date,
        timeout: float | None = None,
    ) -> list[Any]:
        path = self._entity_dir(entity_id) / BALANCE_SHEET_DIR / f"{report_date.isoformat()}.json"
        return unwrap_report_rows(self._load(path))

    def fetch_profit_and_loss(
        self,
        entity_id: str,
        date_from: date,
        date_to: date,
        timeout: float | None = None,
    ) -> list[Any]:
        directory = self._entity_dir(entity_id) / PROFIT_AND_LOSS_DIR
        candidates = [directory / f"{date_from.isoformat()}_{date_to.isoformat()}.json"]
        if date_from == date_to:
            candidates.append(directory / f"{date_to.isoformat()}.json")

        for path in candidates:
            if path.exists():
                return unwrap_report_rows(self._load(path))
        raise FileNotFoundError(
            f"No profit and loss export for {entity_id} "
            f"{date_from.isoformat()}..{date_to.isoformat()} under {directory}"
        )


class JsonExportJournalSource(_ExportDirectory):
    """JournalSource backed by one exported journal list per entity."""

    def fetch_manual_journals(
        self,
        entity_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[dict[str, Any]]:
        """Raw journals dated within ``[date_from, date_to]`` (open ends allowed)."""
        data = self._load(self._entity_dir(entity_id) / MANUAL_JOURNALS_FILE)
        if isinstance(data, dict):
            data = data.get("manualJournals") or data.get("ManualJournals") or []
        if not isinstance(data, list):
            return []

        if date_from is None and date_to is None:
            return [j for j in data if isinstance(j, dict)]

        selected: list[dict[str, Any]] = []
        for journal in data:
            if not isinstance(journal, dict):
                continue
            journal_date = parse_upstream_date(journal.get("date", journal.get("Date")))
            if journal_date is None:
                continue
            if date_from is not None and journal_date < date_from:
                continue
            if date_to is not None and journal_date > date_to:
                continue
            selected.append(journal)
        return selected


class JsonExportEntityRegistry(_ExportDirectory):
    """EntityRegistry reading ``entities.json`` at the export root."""

    def list_entities(self) -> list[EntityDescriptor]:
        data = self._load(self.root / ENTITIES_FILE)
        if not isinstance(data, list):
            return []
        return [
            EntityDescriptor(
                entity_id=str(item["entityId"]),
                entity_name=str(item.get("entityName") or item["entityId"]),
                connected=bool(item.get("connected", True)),
            )
            for item in data
            if isinstance(item, dict) and item.get("entityId")
        ]
