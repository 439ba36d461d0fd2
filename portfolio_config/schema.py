"""
Portfolio Configuration Schema.

Defines the classification rule table, screening, comparison and account
flag thresholds, expense category and intercompany keywords, and the
consolidation fan-out settings.

Every value here has a default matching the behaviour of the upstream
dashboard; a YAML file (see ``portfolio_config.loader``) may override any of
them.  Monetary thresholds are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Self

from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.logging_config import get_logger

logger = get_logger("config.schema")


@dataclass(frozen=True)
class ClassificationRule:
    """
    One entry of the ordered section-title rule table.

    A row whose enclosing section title contains ``keyword``
    (case-insensitive) is classified as ``account_type``.  Rules are tried in
    table order; the first match wins.
    """

    keyword: str
    account_type: AccountType

    def __post_init__(self):
        if not self.keyword or not self.keyword.strip():
            raise ValueError("ClassificationRule keyword cannot be empty")
        if self.keyword != self.keyword.lower():
            raise ValueError(
                f"ClassificationRule keyword must be lower case: {self.keyword!r}"
            )

    def matches(self, section_title: str) -> bool:
        return self.keyword in section_title.lower()


DEFAULT_CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("bank", AccountType.ASSET),
    ClassificationRule("asset", AccountType.ASSET),
    ClassificationRule("liabilit", AccountType.LIABILITY),
    ClassificationRule("equity", AccountType.EQUITY),
    ClassificationRule("income", AccountType.REVENUE),
    ClassificationRule("revenue", AccountType.REVENUE),
    ClassificationRule("expense", AccountType.EXPENSE),
    ClassificationRule("cost", AccountType.EXPENSE),
)


@dataclass(frozen=True)
class ExpenseCategoryRule:
    """Account-name keywords that place an expense line in a category."""

    category: str
    keywords: tuple[str, ...]

    def __post_init__(self):
        if not self.keywords:
            raise ValueError(f"Expense category {self.category!r} has no keywords")

    def matches(self, account_name: str) -> bool:
        name = account_name.lower()
        return any(keyword in name for keyword in self.keywords)


DEFAULT_EXPENSE_CATEGORIES: tuple[ExpenseCategoryRule, ...] = (
    ExpenseCategoryRule("Personnel", ("salary", "wage", "payroll")),
    ExpenseCategoryRule("Occupancy", ("rent", "lease", "utilities")),
    ExpenseCategoryRule("Marketing", ("marketing", "advertising")),
    ExpenseCategoryRule("Travel", ("travel", "transport")),
    ExpenseCategoryRule("Insurance", ("insurance",)),
    ExpenseCategoryRule(
        "Professional Services", ("legal", "professional", "consulting"),
    ),
    ExpenseCategoryRule("Technology", ("equipment", "computer", "software")),
    ExpenseCategoryRule("Supplies", ("supplies", "materials")),
    ExpenseCategoryRule("Depreciation", ("depreciation",)),
    ExpenseCategoryRule("Finance Costs", ("interest", "bank")),
)

OTHER_EXPENSE_CATEGORY = "Other"


@dataclass(frozen=True)
class ScreeningThresholds:
    """Thresholds for manual journal anomaly screening."""

    # A side total above this flags largeAmount; an imbalance above it is CRITICAL
    large_amount: Decimal = Decimal("1000000")
    critical_imbalance: Decimal = Decimal("1000000")
    high_imbalance: Decimal = Decimal("100000")

    # |imbalance| below this counts as balanced
    balance_tolerance: Decimal = Decimal("0.01")

    # Default floor for the unbalanced-journal finder
    unbalanced_minimum: Decimal = Decimal("10000")

    # Sensitive account-name terms; matching lines flag matchesWatchlist
    watchlist: tuple[str, ...] = ("future fund",)

    def __post_init__(self):
        for name in (
            "large_amount",
            "critical_imbalance",
            "high_imbalance",
            "balance_tolerance",
            "unbalanced_minimum",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        if self.high_imbalance > self.critical_imbalance:
            raise ValueError("high_imbalance cannot exceed critical_imbalance")


@dataclass(frozen=True)
class ComparisonThresholds:
    """Thresholds for period-over-period comparison."""

    # |delta| must exceed this for a change to be listed
    change_floor: Decimal = Decimal("1000")

    # |delta| above this marks the change as significant
    significant_change: Decimal = Decimal("100000")

    # List accounts present only in the earlier snapshot as REMOVED
    report_removed_accounts: bool = True

    def __post_init__(self):
        if self.change_floor < 0:
            raise ValueError("change_floor cannot be negative")
        if self.significant_change < self.change_floor:
            raise ValueError("significant_change cannot be below change_floor")


@dataclass(frozen=True)
class ConsolidationSettings:
    """Fan-out limits for multi-entity retrieval."""

    max_workers: int = 4

    # Per-entity fetch timeout, in seconds
    entity_timeout: float = 30.0

    # Overall deadline for one consolidation, in seconds (None = no deadline)
    default_deadline: float | None = None

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.entity_timeout <= 0:
            raise ValueError("entity_timeout must be positive")
        if self.default_deadline is not None and self.default_deadline <= 0:
            raise ValueError("default_deadline must be positive")


@dataclass(frozen=True)
class IntercompanySettings:
    """
    Keyword tables for spotting intercompany balances on a balance sheet.

    An account is intercompany when its name contains one of the entity
    keywords and one of the relationship keywords (both lower case, matched
    case-insensitively).  Services add the names of the other registered
    entities to ``entity_keywords`` at run time.
    """

    entity_keywords: tuple[str, ...] = ()
    relationship_keywords: tuple[str, ...] = ("loan", "due", "receivable", "payable")

    def __post_init__(self):
        if not self.relationship_keywords:
            raise ValueError("relationship_keywords cannot be empty")
        for keyword in self.entity_keywords + self.relationship_keywords:
            if not keyword.strip() or keyword != keyword.lower():
                raise ValueError(f"Intercompany keyword must be non-empty lower case: {keyword!r}")


@dataclass(frozen=True)
class AccountFlagThresholds:
    """Thresholds for flagging unusual account balances."""

    # |balance| above this flags largeBalance
    large_balance: Decimal = Decimal("1000000")

    # An equity account above this, or named by one of the terms, is unusual
    unusual_equity_balance: Decimal = Decimal("10000000")
    unusual_equity_terms: tuple[str, ...] = ("future fund", "reserve")

    def __post_init__(self):
        if self.large_balance < 0:
            raise ValueError("large_balance cannot be negative")
        if self.unusual_equity_balance < 0:
            raise ValueError("unusual_equity_balance cannot be negative")


@dataclass(frozen=True)
class PortfolioConfig:
    """
    Top-level configuration for the portfolio pipeline.

    Groups the classification table, thresholds and fan-out settings.
    """

    classification_rules: tuple[ClassificationRule, ...] = DEFAULT_CLASSIFICATION_RULES
    expense_categories: tuple[ExpenseCategoryRule, ...] = DEFAULT_EXPENSE_CATEGORIES
    screening: ScreeningThresholds = field(default_factory=ScreeningThresholds)
    comparison: ComparisonThresholds = field(default_factory=ComparisonThresholds)
    consolidation: ConsolidationSettings = field(default_factory=ConsolidationSettings)
    intercompany: IntercompanySettings = field(default_factory=IntercompanySettings)
    account_flags: AccountFlagThresholds = field(default_factory=AccountFlagThresholds)

    # Balance tolerance for debits == credits and the accounting equation
    balance_tolerance: Decimal = Decimal("0.01")

    def __post_init__(self):
        if not self.classification_rules:
            raise ValueError("classification_rules cannot be empty")
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("portfolio_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Create config from a plain dictionary (as produced by ``yaml.safe_load``).

        Unknown top-level keys raise ``TypeError``; invalid values raise
        ``ValueError`` or ``KeyError``.
        """
        data = dict(data)
        logger.info(
            "portfolio_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        if "classification_rules" in data:
            data["classification_rules"] = tuple(
                ClassificationRule(
                    keyword=str(rule["keyword"]).lower(),
                    account_type=AccountType(str(rule["account_type"]).upper()),
                )
                for rule in data["classification_rules"]
            )
        if "expense_categories" in data:
            data["expense_categories"] = tuple(
                ExpenseCategoryRule(
                    category=str(rule["category"]),
                    keywords=tuple(str(k).lower() for k in rule["keywords"]),
                )
                for rule in data["expense_categories"]
            )
        if isinstance(data.get("screening"), dict):
            screening = dict(data["screening"])
            for key in (
                "large_amount",
                "critical_imbalance",
                "high_imbalance",
                "balance_tolerance",
                "unbalanced_minimum",
            ):
                if key in screening:
                    screening[key] = Decimal(str(screening[key]))
            if "watchlist" in screening:
                screening["watchlist"] = tuple(
                    str(term).lower() for term in screening["watchlist"]
                )
            data["screening"] = ScreeningThresholds(**screening)
        if isinstance(data.get("comparison"), dict):
            comparison = dict(data["comparison"])
            for key in ("change_floor", "significant_change"):
                if key in comparison:
                    comparison[key] = Decimal(str(comparison[key]))
            data["comparison"] = ComparisonThresholds(**comparison)
        if isinstance(data.get("consolidation"), dict):
            data["consolidation"] = ConsolidationSettings(**data["consolidation"])
        if isinstance(data.get("intercompany"), dict):
            intercompany = dict(data["intercompany"])
            for key in ("entity_keywords", "relationship_keywords"):
                if key in intercompany:
                    intercompany[key] = tuple(str(k).lower() for k in intercompany[key])
            data["intercompany"] = IntercompanySettings(**intercompany)
        if isinstance(data.get("account_flags"), dict):
            flags = dict(data["account_flags"])
            for key in ("large_balance", "unusual_equity_balance"):
                if key in flags:
                    flags[key] = Decimal(str(flags[key]))
            if "unusual_equity_terms" in flags:
                flags["unusual_equity_terms"] = tuple(
                    str(term).lower() for term in flags["unusual_equity_terms"]
                )
            data["account_flags"] = AccountFlagThresholds(**flags)
        if "balance_tolerance" in data:
            data["balance_tolerance"] = Decimal(str(data["balance_tolerance"]))
        return cls(**data)
