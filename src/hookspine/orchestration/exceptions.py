"""Orchestration exceptions: structured error hierarchy.

Definition errors (raised while parsing or planning) abort a run before any
side effect happens. Step errors are wrapped in ``StepExecutionError`` and
end the run at the failing step. All of them inherit from
``hookspine.core.errors`` types so callers can catch whole families.

Hierarchy::

    OrchestrationError  (from hookspine.core.errors)
      ├── WorkflowDefinitionError         ── base for parse/plan-time errors
      │     ├── WorkflowNotFoundError       ── id resolves to no pipeline or hook
      │     ├── HookNotFoundError           ── id is not a gh:Hook
      │     ├── MalformedHookError          ── hook lacks a usable predicate
      │     ├── MalformedStepError          ── unknown type or bad step config
      │     ├── UnresolvedReferenceError    ── step/dependency id not found
      │     └── CycleDetectedError          ── dependency graph has a cycle
      ├── PredicateError                  ── predicate could not be evaluated
      ├── StepExecutionError              ── a step failed (wraps the cause)
      ├── CancelledError                  ── run cancelled between steps
      ├── ContextNotInitializedError      ── context used before initialize()
      └── HookDiscoveryError              ── hooks could not be discovered

    StorageError  → FileOperationError    ── file step read/write/copy failed
    NetworkError  → HttpStatusError       ── non-2xx response not tolerated
    HookSpineError → CommandError         ── cli step exited non-zero
"""

from hookspine.core.errors import (
    ErrorCategory,
    HookSpineError,
    NetworkError,
    OrchestrationError,
    StorageError,
)


class WorkflowDefinitionError(OrchestrationError):
    """Base exception for errors found while parsing or planning a workflow."""

    default_category = ErrorCategory.VALIDATION


class WorkflowNotFoundError(WorkflowDefinitionError):
    """Raised when a workflow id resolves to neither a pipeline nor a hook."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")
        self.context.workflow = workflow_id


class HookNotFoundError(WorkflowDefinitionError):
    """Raised when a requested hook is not declared in the graph."""

    def __init__(self, hook_id: str):
        self.hook_id = hook_id
        super().__init__(f"Hook not found: {hook_id}")
        self.context.hook = hook_id


class MalformedHookError(WorkflowDefinitionError):
    """Raised when a hook has no predicate or an unusable one."""

    def __init__(self, hook_id: str, reason: str):
        self.hook_id = hook_id
        self.reason = reason
        super().__init__(f"Hook '{hook_id}' is malformed: {reason}")
        self.context.hook = hook_id


class MalformedStepError(WorkflowDefinitionError):
    """Raised when a step's type is unrecognized or its config is invalid."""

    def __init__(self, step_id: str, reason: str):
        self.step_id = step_id
        self.reason = reason
        super().__init__(f"Step '{step_id}' is malformed: {reason}")
        self.context.step = step_id


class UnresolvedReferenceError(WorkflowDefinitionError):
    """Raised when a pipeline or dependency references an unknown step."""

    def __init__(self, reference: str, referrer: str, kind: str = "step"):
        self.reference = reference
        self.referrer = referrer
        self.kind = kind
        super().__init__(f"'{referrer}' references unknown {kind}: {reference}")


class CycleDetectedError(WorkflowDefinitionError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Cycle detected in dependency graph: {cycle_str}")


class PredicateError(OrchestrationError):
    """Raised when a hook predicate cannot be evaluated."""

    def __init__(self, message: str, *, hook_id: str | None = None, cause: Exception | None = None):
        self.hook_id = hook_id
        super().__init__(message, cause=cause)
        self.context.hook = hook_id


class StepExecutionError(OrchestrationError):
    """A step failed; ``cause`` holds the typed error (QueryError, RenderError, ...)."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, step_id: str, cause: Exception):
        self.step_id = step_id
        super().__init__(
            f"Step '{step_id}' failed: {cause}",
            cause=cause,
            retryable=getattr(cause, "retryable", False),
        )
        self.context.step = step_id


class CancelledError(OrchestrationError):
    """Raised when a run is cancelled; checked between steps."""

    default_category = ErrorCategory.CANCELLED

    def __init__(self, message: str = "Run cancelled", *, step_index: int | None = None):
        self.step_index = step_index
        super().__init__(message)


class ContextNotInitializedError(OrchestrationError):
    """Raised when the execution context is used before ``initialize()``."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Execution context not initialized (called {operation})")


class HookDiscoveryError(OrchestrationError):
    """Raised when hooks cannot be discovered from the configured sources."""

    default_category = ErrorCategory.SOURCE


class FileOperationError(StorageError):
    """A file step could not read, write or copy."""

    def __init__(self, operation: str, path: str, cause: Exception | None = None):
        self.operation = operation
        self.path = path
        super().__init__(f"File {operation} failed for {path}: {cause}", cause=cause)
        self.context.path = path


class HttpStatusError(NetworkError):
    """An HTTP step received a status outside 2xx and its tolerated set."""

    def __init__(self, url: str, status: int, method: str = "GET"):
        self.url = url
        self.status = status
        self.method = method
        super().__init__(
            f"{method} {url} returned HTTP {status}",
            retryable=status >= 500 or status == 429,
        )
        self.context.url = url
        self.context.http_status = status


class CommandError(HookSpineError):
    """A cli step exited with a non-zero status."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"Command exited with status {exit_code}{detail}")
        self.context.metadata["command"] = command
