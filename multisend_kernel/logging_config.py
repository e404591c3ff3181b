"""
Module: multisend_kernel.logging_config
Responsibility:
    One JSON object per log line for everything under the ``multisend``
    logger namespace, enriched with the call-scoped fields held in
    ``LogContext`` (the transaction being evaluated, its caller).

Architecture position:
    Kernel -- imported by every layer; imports nothing from them.

Invariants enforced:
    - Exact numbers (Decimal rates, Fraction fee totals) are written as
      strings, never as floats.
    - A MultiSendError attached to a record contributes its ``code`` and its
      structured attributes (``exc_address``, ``exc_required``, ...).
    - ``configure_logging`` installs at most one handler until
      ``reset_logging`` is called.

Usage:
    from multisend_kernel.logging_config import LogContext, get_logger

    logger = get_logger("engines.fees")
    with LogContext.bind(tx_id="abc"):
        logger.info("fee_schedule_computed", extra={"denom_count": 2})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any

_NAMESPACE = "multisend"

_context: ContextVar[Mapping[str, str]] = ContextVar("multisend_log_context", default={})


class LogContext:
    """Call-scoped log fields, safe across threads and asyncio tasks."""

    FIELDS: tuple[str, ...] = ("correlation_id", "tx_id", "actor_id", "trace_id")

    @classmethod
    def _merged(cls, fields: dict[str, str | None]) -> Mapping[str, str]:
        unknown = sorted(set(fields) - set(cls.FIELDS))
        if unknown:
            raise ValueError(f"Unknown log context fields: {unknown}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        tx_id: str | None = None,
        actor_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Update the given fields; None leaves a field unchanged."""
        _context.set(cls._merged({
            "correlation_id": correlation_id,
            "tx_id": tx_id,
            "actor_id": actor_id,
            "trace_id": trace_id,
        }))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Context manager: set ``fields`` on entry, restore the previous values on exit."""
        return _BoundContext(cls._merged(fields))


class _BoundContext:

    def __init__(self, values: Mapping[str, str]):
        self._values = values
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(self._values)
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, Fraction)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, Mapping):
        return dict(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``multisend.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``multisend`` logger. Later calls are no-ops."""
    global _handler
    with _setup_lock:
        if _handler is not None:
            return
        _handler = handler or logging.StreamHandler(stream or sys.stderr)

    _handler.setFormatter(StructuredFormatter())
    namespace = logging.getLogger(_NAMESPACE)
    namespace.setLevel(level)
    namespace.propagate = False
    namespace.addHandler(_handler)


def reset_logging() -> None:
    """Undo configure_logging. FOR TESTING ONLY."""
    global _handler
    with _setup_lock:
        _handler = None
    namespace = logging.getLogger(_NAMESPACE)
    namespace.handlers.clear()
    namespace.setLevel(logging.WARNING)
    namespace.propagate = True
