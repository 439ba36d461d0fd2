"""
portfolio_engines.tracer -- PORTFOLIO_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function.  Each call emits one
    ``PORTFOLIO_ENGINE_TRACE`` record naming the engine and version, a
    fingerprint of the selected inputs and the duration.  While the engine
    runs, the fingerprint is bound as the ``trace_id`` log context field, so
    the engine's own log lines can be joined to its trace record.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits log records only; never touches inputs or results.

Invariants enforced:
    - Fingerprints are deterministic: Decimals are normalized
      (``1.50`` == ``1.5``), mapping keys are sorted, dataclasses are
      expanded field by field.  SHA-256, first 16 hex chars.
    - A fingerprint field with no bound argument fingerprints as ``null``.

Usage:
    @traced_engine("trial_balance", "1.0", fingerprint_fields=("entity_id",))
    def build_entity_trial_balance(entity_id, ...):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from portfolio_kernel.logging_config import LogContext, get_logger

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    """Stable text form of a value for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return format(value.normalize(), "f")
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        entries = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in entries) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonicalize, value)) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}{{{body}}}"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 (16 hex chars) over ``field=value`` pairs of the named arguments."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable], Callable]:
    """
    Decorator emitting PORTFOLIO_ENGINE_TRACE for each call of a pure engine.

    Args:
        engine_name: Engine identifier, e.g. ``"trial_balance"``.
        engine_version: Bumped when the engine's output for a given input
            changes.
        fingerprint_fields: Parameter names hashed into the fingerprint.
            Positional and keyword arguments resolve alike.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = None
            if fingerprint_fields:
                try:
                    arguments = signature.bind_partial(*args, **kwargs).arguments
                except TypeError:
                    arguments = kwargs
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)

            started = time.monotonic()
            with LogContext.bind(trace_id=fingerprint):
                result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - started) * 1000, 2)

            _logger.info(
                "PORTFOLIO_ENGINE_TRACE",
                extra={
                    "trace_type": "PORTFOLIO_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint or "",
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
