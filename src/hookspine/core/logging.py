"""
Structured logging for hookspine.

Manifesto:
    Hook evaluation runs inside Git lifecycle callbacks, often unattended.
    Structured logs are the only record of why a hook fired or a step failed:

    - **Structures:** JSON output for log aggregation
    - **Correlates:** hook, workflow and run_id propagation via contextvars
    - **Flexes:** Console output for development, JSON for CI

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="hookspine")
            ↓
        structlog processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars      (LogContext / bind_context)
          3. add_log_level, add_logger_name
          4. _add_service_metadata
          5. JSONRenderer (or ConsoleRenderer when attached to a tty)

        logger = get_logger(__name__)
        logger.info("workflow.start", workflow=..., step_count=3)

Examples:
    >>> from hookspine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="hookspine")
    >>> logger = get_logger(__name__)
    >>> with LogContext(hook="http://example.org/h1"):
    ...     logger.info("hook.triggered")

Tags:
    logging, structlog, observability, json-logging, hookspine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "hookspine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "hookspine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs

    Logs go to stderr so that command output on stdout stays machine-readable.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    # Auto-detect format if not specified
    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # Configure standard library logging too
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs of this thread/task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(workflow="http://example.org/p", run_id="abc123"):
            logger.info("step.start")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = {k: v for k, v in kwargs.items() if v is not None}

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
