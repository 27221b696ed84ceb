"""hookspine core -- structured errors, logging and settings.

Architecture::

    errors.py     HookSpineError hierarchy (category, retryable, context, cause)
    logging.py    structlog configuration, get_logger, LogContext
    settings.py   HookSpineSettings (pydantic-settings, HOOKSPINE_ env prefix)
"""

from hookspine.core.errors import (
    ErrorCategory,
    ErrorContext,
    GraphLoadError,
    HookSpineError,
    NetworkError,
    OrchestrationError,
    ParseError,
    QueryError,
    RenderError,
    SourceError,
    StorageError,
    TimeoutError,
    TransientError,
    categorize_error,
    error_to_dict,
    is_retryable,
)
from hookspine.core.logging import LogContext, configure_logging, get_logger
from hookspine.core.settings import HookSpineSettings

__all__ = [
    # errors
    "ErrorCategory",
    "ErrorContext",
    "HookSpineError",
    "TransientError",
    "NetworkError",
    "TimeoutError",
    "SourceError",
    "ParseError",
    "GraphLoadError",
    "StorageError",
    "QueryError",
    "RenderError",
    "OrchestrationError",
    "is_retryable",
    "categorize_error",
    "error_to_dict",
    # logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # settings
    "HookSpineSettings",
]
