"""Logging infrastructure.

Structured JSONL logging with automatic context injection and lazy debug
messages.

Basic usage:
    from chat_service.infra.logging import get_lazy_logger, set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(connection_id="c0ffee")
    logger.info("Client connected")  # includes connection_id

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Registry: {registry_dump()}")
"""

from chat_service.infra.logging.config import configure_logging, setup_logging, shutdown
from chat_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    remove_from_log_context,
    set_log_context,
)
from chat_service.infra.logging.formatters import JSONFormatter
from chat_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
