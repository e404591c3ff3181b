"""
multisend_engines.tracer -- Engine invocation tracer emitting MULTISEND_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint (deterministic SHA-256
    hash of selected arguments), outcome and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.

Invariants enforced:
    - Replay safety: fingerprint computation is deterministic --
      _canonicalize produces stable string representations of coins,
      balances, transactions and rates; mapping keys are sorted; the hash
      is SHA-256 truncated to 16 hex chars.
    - Engine purity: the decorator only reads arguments and emits a log
      record; it does not mutate inputs or swallow exceptions.

Failure modes:
    - Fingerprint fields that name no parameter of the wrapped function
      are recorded as "null".
    - Exceptions raised by the engine are re-raised unchanged after a
      trace record with ``outcome="rejected"`` and the error code.

Usage:
    from multisend_engines.tracer import traced_engine

    @traced_engine("fees", "1.0", fingerprint_fields=("tx",))
    def compute_fees(self, tx, definitions):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("multisend.engines.tracer")

TRACE_MESSAGE = "MULTISEND_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting.

    Dataclass instances (Coin, Balance, MultiSendTx, DenomDefinition) are
    rendered field by field under their class name, so two equal values
    always produce the same string.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        # 0.1 and 0.10 are the same rate
        return format(value.normalize(), "f")
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return str(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        parts = (
            f"{f.name}={_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}(" + ",".join(parts) + ")"
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Deterministic 16-hex-char SHA-256 fingerprint of selected arguments."""
    parts = [
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    ]
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits MULTISEND_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "fees").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names (positional or keyword) to
            include in the input fingerprint hash.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            trace: dict[str, Any] = {
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fp,
                "function": func.__qualname__,
            }
            t0 = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                trace["outcome"] = "rejected"
                trace["error_code"] = getattr(exc, "code", type(exc).__name__)
                trace["duration_ms"] = round((time.monotonic() - t0) * 1000, 2)
                _logger.info(TRACE_MESSAGE, extra=trace)
                raise

            trace["outcome"] = "ok"
            trace["duration_ms"] = round((time.monotonic() - t0) * 1000, 2)
            _logger.info(TRACE_MESSAGE, extra=trace)
            return result

        return wrapper

    return decorator
