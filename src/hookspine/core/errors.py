"""
Structured error types for hookspine.

Provides a hierarchy of typed errors with metadata for retry decisions,
error categorization, receipts, and root cause analysis through error
chaining.

Instead of generic exceptions that lose context, HookSpineError and its
subclasses carry:
- **Category:** What kind of error (network, query, render, config, etc.)
- **Retryable:** Whether the operation could succeed if attempted again
- **Retry-after:** How long to wait before retrying
- **Context:** Structured metadata (hook, workflow, step, run_id, url, path)
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different domains
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry metadata for logging and receipts
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      HookSpineError                              │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError    SourceError                                  │
        │  (retryable=True)  (SOURCE)                                     │
        │       │                │                                         │
        │  NetworkError      ParseError ── GraphLoadError                 │
        │  TimeoutError      (PARSE)                                      │
        │                                                                  │
        │  StorageError      QueryError        RenderError                │
        │  (STORAGE)         (QUERY)           (RENDER)                   │
        │                                                                  │
        │  OrchestrationError  (see hookspine.orchestration.exceptions)   │
        │  (ORCHESTRATION)                                                 │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    Creating a retryable network error:

    >>> error = NetworkError("Connection refused", retry_after=5)
    >>> error.retryable
    True

    Adding context to an error:

    >>> error = QueryError("Expected SELECT").with_context(step="count-files")
    >>> error.context.step
    'count-files'

Tags:
    errors, exception-hierarchy, retry-logic, error-context, hookspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories are grouped by their typical retry behavior:
    - **Infrastructure (usually transient):** NETWORK, STORAGE
    - **Definition errors:** SOURCE, PARSE, VALIDATION, CONFIG
    - **Step errors:** QUERY, RENDER, EXECUTION
    - **Engine errors:** ORCHESTRATION, CANCELLED
    - **Internal errors:** INTERNAL, UNKNOWN

    Examples:
        >>> ErrorCategory.NETWORK.value
        'NETWORK'
    """

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Connection, timeout, DNS
    STORAGE = "STORAGE"           # Disk, file system

    # Definition errors
    SOURCE = "SOURCE"             # Graph files, hook directories
    PARSE = "PARSE"               # Turtle parsing, JSON literals
    VALIDATION = "VALIDATION"     # Malformed steps, bad references
    CONFIG = "CONFIG"             # Missing config, invalid settings

    # Step errors
    QUERY = "QUERY"               # SPARQL syntax and evaluation
    RENDER = "RENDER"             # Template rendering
    EXECUTION = "EXECUTION"       # Shell commands, step failures

    # Engine errors
    ORCHESTRATION = "ORCHESTRATION"  # Workflow, planner, hook errors
    CANCELLED = "CANCELLED"          # Cooperative cancellation

    # Internal errors
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover the common metadata of an evaluation pass (hook,
    workflow, step, run id) plus request/file details. Anything else goes in
    ``metadata``. ``to_dict()`` serializes only the fields that are set.

    Examples:
        >>> ctx = ErrorContext(workflow="http://example.org/p", step="render")
        >>> ctx.to_dict()
        {'workflow': 'http://example.org/p', 'step': 'render'}

    Attributes:
        hook: Hook identifier (URI)
        workflow: Workflow (pipeline) identifier
        step: Step id within the workflow
        run_id: Execution identifier of the workflow run
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        path: File system path involved
        metadata: Additional key-value pairs
    """

    # Execution context
    hook: str | None = None
    workflow: str | None = None
    step: str | None = None
    run_id: str | None = None

    # Request / file context
    url: str | None = None
    http_status: int | None = None
    path: str | None = None

    # Additional metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["hook", "workflow", "step", "run_id", "url", "http_status", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class HookSpineError(Exception):
    """
    Base exception for all hookspine errors.

    All HookSpineError instances carry:
    - **category:** ErrorCategory enum for classification and routing
    - **retryable:** Boolean indicating if the operation can be retried
    - **retry_after:** Optional seconds to wait before retry
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` and ``default_retryable`` class
    attributes to provide sensible defaults for their domain.

    Architecture:
        ::

            ┌─────────────────────────────────────────────────────────────┐
            │                     HookSpineError                           │
            ├─────────────────────────────────────────────────────────────┤
            │  default_category: ErrorCategory = INTERNAL                  │
            │  default_retryable: bool = False                             │
            ├─────────────────────────────────────────────────────────────┤
            │  message, category, retryable, retry_after, context, cause   │
            ├─────────────────────────────────────────────────────────────┤
            │  with_context(**kwargs) -> HookSpineError                    │
            │  to_dict() -> dict                                           │
            └─────────────────────────────────────────────────────────────┘

    Examples:
        >>> error = HookSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        Chaining errors:

        >>> try:
        ...     raise OSError("disk full")
        ... except OSError as e:
        ...     error = StorageError("Write failed", cause=e)
        >>> error.cause
        OSError('disk full')

    Guardrails:
        ❌ DON'T: Use plain Exception for expected failure modes
        ✅ DO: Use the appropriate HookSpineError subclass

        ❌ DON'T: Forget to chain the original exception
        ✅ DO: Always pass cause= when wrapping exceptions
    """

    # Default category for this error type
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    # Default retryable setting
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> HookSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Bad query").with_context(
                workflow="http://example.org/pipeline",
                step="count",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(HookSpineError):
    """Temporary error that may succeed if the operation is attempted again."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Network connectivity or transport error (HTTP steps)."""

    default_category = ErrorCategory.NETWORK


class TimeoutError(TransientError):
    """An operation exceeded its time bound (step or whole run)."""

    default_category = ErrorCategory.NETWORK

    def __init__(self, message: str, *, timeout_seconds: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


# =============================================================================
# SOURCE / DEFINITION ERRORS
# =============================================================================


class SourceError(HookSpineError):
    """Error reading hook or graph sources."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class ParseError(SourceError):
    """Source data could not be parsed (Turtle, JSON literals)."""

    default_category = ErrorCategory.PARSE


class GraphLoadError(ParseError):
    """A Turtle file could not be loaded into the knowledge graph."""

    def __init__(self, path: str, cause: Exception | None = None):
        super().__init__(f"Failed to load graph file {path}: {cause}", cause=cause)
        self.context.path = path
        self.path = path


# =============================================================================
# STEP ERRORS
# =============================================================================


class StorageError(HookSpineError):
    """File system error."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class QueryError(HookSpineError):
    """SPARQL query is malformed or failed to evaluate."""

    default_category = ErrorCategory.QUERY
    default_retryable = False


class RenderError(HookSpineError):
    """Template could not be rendered (syntax error or unresolved variable)."""

    default_category = ErrorCategory.RENDER
    default_retryable = False


class OrchestrationError(HookSpineError):
    """Base error for the workflow and hook engine."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, HookSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, BrokenPipeError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, HookSpineError):
        return error.category
    # Map common exceptions to categories
    if isinstance(error, ConnectionError):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


def error_to_dict(error: Exception | None) -> dict[str, Any] | None:
    """Serialize any exception for receipts and JSON output."""
    if error is None:
        return None
    if isinstance(error, HookSpineError):
        return error.to_dict()
    return {
        "error_type": type(error).__name__,
        "message": str(error),
        "category": categorize_error(error).value,
        "retryable": is_retryable(error),
    }


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "HookSpineError",
    # Transient
    "TransientError",
    "NetworkError",
    "TimeoutError",
    # Source / definition
    "SourceError",
    "ParseError",
    "GraphLoadError",
    # Step
    "StorageError",
    "QueryError",
    "RenderError",
    "OrchestrationError",
    # Utilities
    "is_retryable",
    "categorize_error",
    "error_to_dict",
]
