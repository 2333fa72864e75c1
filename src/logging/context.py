# src/logging/context.py — v2
"""Contextual logging support: attach request_id, operation, store_id to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per handled request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_store_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "store_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    operation: str | None = None
    store_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        operation=_operation.get(),
        store_id=_store_id.get(),
    )


def set_operation(operation: str) -> None:
    """Record the operation once the envelope has been parsed."""
    _operation.set(operation)


@contextmanager
def request_context(
    request_id: str, store_id: str | None = None,
) -> Iterator[None]:
    """Scope request context to a block, restoring the previous values on exit."""
    tokens = (
        _request_id.set(request_id),
        _operation.set(None),
        _store_id.set(store_id),
    )
    try:
        yield
    finally:
        _store_id.reset(tokens[2])
        _operation.reset(tokens[1])
        _request_id.reset(tokens[0])
