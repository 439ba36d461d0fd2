"""
Portfolio Invariants Contract.

These invariants are structural law for every trial balance the pipeline
produces.  Thresholds and rule tables are configurable; these are not.

This module exists solely to declare the invariants explicitly.  The
enforcement lives in ``portfolio_engines`` and is exercised by the property
tests under ``tests/fuzzing``.
"""

from enum import Enum, unique


@unique
class PortfolioInvariant(str, Enum):
    """Non-configurable invariants of the trial balance pipeline."""

    TOTALS_ARE_LINE_SUMS = "totals_are_line_sums"
    """totalDebits equals the sum of account debits and totalCredits the sum
    of account credits, exactly, in Decimal arithmetic."""

    ONE_SIDED_ACCOUNTS = "one_sided_accounts"
    """Every admitted account has at most one non-zero side."""

    CONSOLIDATION_IS_LINEAR = "consolidation_is_linear"
    """Every consolidated total is the field-wise sum of the company totals,
    independent of fetch completion order.  No elimination."""

    IMBALANCE_IS_A_RESULT = "imbalance_is_a_result"
    """An unbalanced trial balance is reported through its balance check,
    never raised as an exception."""

    DETERMINISTIC_OUTPUT = "deterministic_output"
    """Identical inputs render to identical output: buckets are sorted,
    results carry no hidden timestamps."""

    PARTIAL_SUCCESS = "partial_success"
    """A failing entity or profit-and-loss fetch degrades the result's data
    quality flags instead of failing the whole request."""


ALL_PORTFOLIO_INVARIANTS: frozenset[PortfolioInvariant] = frozenset(PortfolioInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_layer_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "portfolio_engines",
    "portfolio_services",
    "portfolio_config",
    "portfolio_ingestion",
)

# Pure engines may not depend on I/O layers.
FORBIDDEN_ENGINE_IMPORTS: tuple[str, ...] = (
    "portfolio_services",
    "portfolio_ingestion",
    "sqlalchemy",
)
