"""
Structured JSON logging for the claims kernel.

Every record under the ``claims_kernel`` logger is written as one JSON
line.  Services bind the claim and actor they are working on with
``LogContext.bind`` so that everything logged while deciding a claim,
including the engine traces and ``workflow_event`` records, carries the
same ``claim_id`` / ``actor_id`` pair without each call site repeating it.

Usage:
    configure_logging(level=logging.INFO)
    with LogContext.bind(claim_id=claim_id, actor_id=actor_id):
        logger.info("claim_transition", extra={"to_step": 1})
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from claims_kernel.exceptions import ClaimsKernelError

# ---------------------------------------------------------------------------
# Claim context
# ---------------------------------------------------------------------------

CONTEXT_FIELDS = ("claim_id", "actor_id", "rule_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar(
    "claims_log_context", default=_EMPTY
)


class LogContext:
    """Claim-scoped fields stamped onto every record logged inside ``bind``."""

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[Mapping[str, str]]:
        """
        Add fields for the duration of the block; inner binds shadow outer ones.

        Values are stored as strings and ``None`` values are skipped, so a
        caller can pass an optional rule id straight through.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _context.set(MappingProxyType(merged))
        try:
            yield _context.get()
        finally:
            _context.reset(token)

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(str(item) for item in obj)
    return str(obj)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, ClaimsKernelError):
        error["code"] = exc.code
        error.update(
            (k, v) for k, v in vars(exc).items() if not k.startswith("_")
        )
    return error


class StructuredFormatter(logging.Formatter):
    """
    Formats each record as a single JSON line.

    Layout: the ``ts``/``level``/``logger``/``message`` envelope, then the
    bound claim context, then the record's ``extra`` fields.  An explicit
    extra wins over a bound field of the same name.  A logged exception
    lands under ``error``; kernel errors are expected refusals and carry
    their code and fields instead of a traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["error"] = _error_fields(exc)
            if not isinstance(exc, ClaimsKernelError):
                payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "claims_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the claims_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_installed: list[logging.Handler] = []


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install one JSON handler on the claims_kernel logger.

    Calling again only adjusts the level; the handler installed first stays
    in place.  Returns the active handler.
    """
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        root_logger.setLevel(level)
        if _installed:
            return _installed[0]
        active = handler or logging.StreamHandler(sys.stderr)
        active.setFormatter(StructuredFormatter())
        root_logger.addHandler(active)
        root_logger.propagate = False
        _installed.append(active)
        return active


def reset_logging() -> None:
    """Remove the handler configure_logging installed. FOR TESTING ONLY."""
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        while _installed:
            root_logger.removeHandler(_installed.pop())
        root_logger.setLevel(logging.WARNING)
