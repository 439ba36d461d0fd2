"""
portfolio_ingestion -- Upstream payload parsing and file-backed sources.

Turns the loosely-typed report and journal payloads of upstream accounting
systems into the immutable domain types of ``portfolio_kernel.domain``, and
ships a file adapter that serves exported payloads from a directory.

Architecture:
    portfolio_ingestion/ is a top-level package. Nothing in kernel/ or
    engines/ imports from ingestion.
"""

from portfolio_ingestion.dates import parse_upstream_date
from portfolio_ingestion.journal_parser import parse_manual_journals
from portfolio_ingestion.report_parser import parse_report, unwrap_report_rows

__all__ = [
    "parse_manual_journals",
    "parse_report",
    "parse_upstream_date",
    "unwrap_report_rows",
]
