"""
Amounts -- Decimal parsing and tolerance helpers for report balances.

Responsibility:
    Converts the loosely-typed numeric cells of upstream reports ("1,234.50",
    "", None, 12.5) into ``Decimal`` and centralises the balance tolerance
    used by every invariant check.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All monetary arithmetic uses ``Decimal``; floats are converted through
      ``str`` so no binary rounding leaks into totals.
    - Unparseable or absurdly large input maps to zero (a zero balance is
      skipped downstream).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

# Balance tolerance for debits == credits and A = L + E checks.
BALANCE_TOLERANCE = Decimal("0.01")

# Largest adjusted exponent accepted from an upstream cell (about 10**15)
MAX_AMOUNT_EXPONENT = 15


def parse_amount(value: Any) -> Decimal:
    """
    Parse an upstream numeric cell into a Decimal.

    Accepts Decimal, int, float and strings (thousands separators and
    surrounding whitespace are ignored; a parenthesised value is negative).
    Anything else, including NaN, infinities and magnitudes beyond
    ``10 ** MAX_AMOUNT_EXPONENT``, parses to zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return ZERO
        negative = text.startswith("(") and text.endswith(")")
        if negative:
            text = text[1:-1]
        try:
            result = Decimal(text)
        except InvalidOperation:
            return ZERO
        if negative:
            result = -result
    else:
        return ZERO

    if not result.is_finite():
        return ZERO
    if result and result.adjusted() > MAX_AMOUNT_EXPONENT:
        return ZERO
    return result


def within_tolerance(
    left: Decimal,
    right: Decimal,
    tolerance: Decimal = BALANCE_TOLERANCE,
) -> bool:
    """True when ``|left - right|`` is strictly below the tolerance."""
    return abs(left - right) < tolerance


def positive_part(value: Decimal) -> Decimal:
    """``max(value, 0)``."""
    return value if value > ZERO else ZERO


def negative_part(value: Decimal) -> Decimal:
    """``max(-value, 0)``."""
    return -value if value < ZERO else ZERO
