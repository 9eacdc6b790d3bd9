"""Context management for structured logging.

Injects per-task context (connection_id, user_id, ...) into log records
using contextvars. Each WebSocket connection runs in its own task, so
context set while serving one socket never leaks into another.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for current async task.

    Example:
        ```python
        set_log_context(connection_id="c0ffee")
        # after login
        set_log_context(user_id="0190...")
        logger.info("Chat created")  # includes connection_id and user_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for current async task."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the contextvar log context onto each record.

    Attach it to the handler that sees records in the emitting task (the
    QueueHandler), since the listener thread has no access to the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for key, value in context.items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
