"""
Upstream date parsing.

Accepts ISO dates (``2024-06-30``), ISO datetimes (``2024-06-30T00:00:00``)
and the .NET JSON form some accounting APIs still emit
(``/Date(1719705600000+0000)/``).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_DOTNET_DATE = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")


def parse_upstream_date(value: Any) -> date | None:
    """Parse a date-like upstream value; None when it is absent or unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _DOTNET_DATE.match(text)
    if match:
        millis = int(match.group(1))
        try:
            return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date()
        except (ValueError, OverflowError, OSError):
            return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
