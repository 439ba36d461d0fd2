"""File-backed sources serving exported upstream payloads (file I/O only, no DB)."""

from portfolio_ingestion.adapters.json_export import (
    JsonExportEntityRegistry,
    JsonExportJournalSource,
    JsonExportReportSource,
)

__all__ = [
    "JsonExportEntityRegistry",
    "JsonExportJournalSource",
    "JsonExportReportSource",
]
