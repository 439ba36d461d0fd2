"""
Configuration Loader (``portfolio_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a typed
``portfolio_config.schema.PortfolioConfig``.  Runtime callers go through
``portfolio_config.get_active_config()``; this module is the tooling
underneath it.

Architecture position
---------------------
**Config layer**.  Depends on ``portfolio_kernel`` (exceptions, logging,
domain enums) only.

Invariants enforced
-------------------
* Every parse failure surfaces as ``ConfigurationError`` naming the field
  and the underlying detail.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Schema violations  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from portfolio_config.schema import PortfolioConfig
from portfolio_kernel.exceptions import ConfigurationError
from portfolio_kernel.logging_config import get_logger

logger = get_logger("config.loader")

# Top-level section the settings live under in a YAML file
_ROOT_KEY = "portfolio"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            str(path), f"expected a mapping, got {type(data).__name__}"
        )
    return data


def parse_config(data: dict[str, Any]) -> PortfolioConfig:
    """
    Parse a ``PortfolioConfig`` from a dict.

    Accepts either the bare settings mapping or one nested under a top-level
    ``portfolio`` key.  Missing sections take their defaults.

    Raises:
        ConfigurationError: if a section is malformed or a value is invalid.
    """
    if _ROOT_KEY in data:
        data = data[_ROOT_KEY] or {}
        if not isinstance(data, dict):
            raise ConfigurationError(_ROOT_KEY, "expected a mapping")

    try:
        return PortfolioConfig.from_dict(data)
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        field_name = _first_failing_section(data)
        logger.warning(
            "portfolio_config_rejected",
            extra={"field": field_name, "error": str(exc)},
        )
        raise ConfigurationError(field_name, str(exc)) from exc


def load_config(path: Path) -> PortfolioConfig:
    """Load and parse a YAML configuration file."""
    data = load_yaml_file(path)
    config = parse_config(data)
    logger.info(
        "portfolio_config_loaded",
        extra={"path": str(path), "checksum": compute_checksum(data)},
    )
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _first_failing_section(data: dict[str, Any]) -> str:
    """Best-effort name of the section a parse error came from."""
    for key in (
        "classification_rules",
        "expense_categories",
        "screening",
        "comparison",
        "consolidation",
        "intercompany",
        "account_flags",
        "balance_tolerance",
    ):
        if key in data:
            try:
                PortfolioConfig.from_dict({key: data[key]})
            except (KeyError, TypeError, ValueError, InvalidOperation):
                return key
    return _ROOT_KEY
