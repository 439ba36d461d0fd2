"""
Typed Exception Hierarchy for the Portfolio Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the trial balance pipeline (dashboards, chat tools, CLIs) must be
able to tell "this entity could not be fetched" apart from "you asked for an
entity that does not exist" without parsing message strings.  Every error
therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA, including the original upstream detail message

===============================================================================
WHAT IS NOT AN ERROR
===============================================================================

An unbalanced trial balance is a RESULT (``debitsEqualCredits=False``), not
an exception.  Likewise a malformed report row is skipped and counted, and a
consolidation with missing entities reports ``allConnected=False``.  Only
conditions that make the requested computation impossible in its entirety
are raised.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PortfolioKernelError (base)
    |
    +-- SourceError
    |   +-- SourceUnavailableError
    |
    +-- LookupFailure
    |   +-- EntityNotFoundError
    |   +-- ReportDateUnresolvedError
    |
    +-- InvalidComparisonError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                     | When Raised
-------------|--------------------------|--------------------------------------
Source       | SOURCE_UNAVAILABLE       | Report/journal fetch failed
Lookup       | ENTITY_NOT_FOUND         | Requested entity unknown to registry
             | REPORT_DATE_UNRESOLVED   | No usable report date
Comparison   | INVALID_COMPARISON       | Snapshots cannot be compared
Config       | INVALID_CONFIGURATION    | Thresholds / rule table invalid
"""


class PortfolioKernelError(Exception):
    """
    Base exception for all portfolio kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PORTFOLIO_KERNEL_ERROR"


# Source-related exceptions


class SourceError(PortfolioKernelError):
    """Base exception for upstream data source failures."""

    code: str = "SOURCE_ERROR"


class SourceUnavailableError(SourceError):
    """
    An upstream report or journal fetch failed for one entity.

    Consolidation recovers from this locally (the entity is omitted);
    single-entity requests propagate it.
    """

    code: str = "SOURCE_UNAVAILABLE"

    def __init__(self, entity_id: str, source: str, detail: str):
        self.entity_id = entity_id
        self.source = source
        self.detail = detail
        super().__init__(
            f"{source} unavailable for entity {entity_id}: {detail}"
        )


# Lookup-related exceptions


class LookupFailure(PortfolioKernelError):
    """Base exception for requests that name something that cannot be found."""

    code: str = "LOOKUP_FAILURE"


class EntityNotFoundError(LookupFailure):
    """Requested entity id or name is not known to the registry."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_ref: str, available: tuple[str, ...] = ()):
        self.entity_ref = entity_ref
        self.available = available
        super().__init__(f"Entity not found: {entity_ref}")


class ReportDateUnresolvedError(LookupFailure):
    """No report date was supplied and none could be derived."""

    code: str = "REPORT_DATE_UNRESOLVED"

    def __init__(self, raw_value: str | None, detail: str):
        self.raw_value = raw_value
        self.detail = detail
        super().__init__(f"Cannot resolve report date {raw_value!r}: {detail}")


# Comparison exceptions


class InvalidComparisonError(PortfolioKernelError):
    """Two snapshots cannot be compared (wrong kinds or missing dates)."""

    code: str = "INVALID_COMPARISON"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid period comparison: {reason}")


# Configuration exceptions


class ConfigurationError(PortfolioKernelError):
    """Configuration values are invalid or inconsistent."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"Invalid configuration for {field}: {detail}")
