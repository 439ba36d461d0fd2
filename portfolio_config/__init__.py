"""
portfolio_config -- single public entrypoint for pipeline configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``PortfolioConfig`` by constructor injection; engines receive the
    relevant slices (rule table, thresholds) as arguments.

Architecture position:
    Configuration -- sits above ``portfolio_kernel`` and below
    ``portfolio_engines`` / ``portfolio_services``.  The kernel MUST NEVER
    import from ``portfolio_config``.

Failure modes:
    - ``FileNotFoundError`` -- an explicit config path does not exist.
    - ``ConfigurationError`` -- schema or value validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PORTFOLIO_CONFIG_TRACE`` log entry with the config source and checksum,
    tying each report back to the thresholds that produced it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from pathlib import Path

from portfolio_config.loader import compute_checksum, load_yaml_file, parse_config
from portfolio_config.schema import (
    AccountFlagThresholds,
    ClassificationRule,
    ComparisonThresholds,
    ConsolidationSettings,
    ExpenseCategoryRule,
    IntercompanySettings,
    PortfolioConfig,
    ScreeningThresholds,
)

_logger = logging.getLogger("portfolio_kernel.config")

# Environment variable naming a YAML file to load when no path is given
CONFIG_PATH_ENV = "PORTFOLIO_CONFIG"


def get_active_config(path: Path | str | None = None) -> PortfolioConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: the explicit ``path``; else the file named by the
    ``PORTFOLIO_CONFIG`` environment variable; else built-in defaults.

    Raises:
        FileNotFoundError: If an explicit or environment path does not exist.
        ConfigurationError: If the file fails validation.
    """
    source = path if path is not None else os.environ.get(CONFIG_PATH_ENV)

    if source:
        data = load_yaml_file(Path(source))
        config = parse_config(data)
        checksum = compute_checksum(data)
        source_name = str(source)
    else:
        config = PortfolioConfig.with_defaults()
        checksum = compute_checksum(asdict(config))
        source_name = "defaults"

    _logger.info(
        "PORTFOLIO_CONFIG_TRACE",
        extra={
            "trace_type": "PORTFOLIO_CONFIG_TRACE",
            "config_source": source_name,
            "checksum": checksum,
            "classification_rule_count": len(config.classification_rules),
            "watchlist_size": len(config.screening.watchlist),
            "max_workers": config.consolidation.max_workers,
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "AccountFlagThresholds",
    "ClassificationRule",
    "ComparisonThresholds",
    "ConsolidationSettings",
    "ExpenseCategoryRule",
    "IntercompanySettings",
    "PortfolioConfig",
    "ScreeningThresholds",
    "get_active_config",
]
