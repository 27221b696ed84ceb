"""Step Result: envelope for one step's execution outcome.

Manifesto:
    Every step kind (sparql, template, file, http, cli) returns the same
    envelope so the WorkflowExecutor can decide success/failure, record the
    outputs into the execution context, and report a typed error when the
    run stops.

ARCHITECTURE
────────────
::

    StepResult
      ├── .ok(step_id, outputs, duration_ms)     → success
      └── .fail(step_id, error, duration_ms)     → failure (error populated)

Invariant: ``success=False`` implies ``error`` is set.

Tags:
    hookspine, orchestration, step-result, envelope
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hookspine.core.errors import HookSpineError, error_to_dict


@dataclass
class StepResult:
    """
    Result from executing one workflow step.

    Attributes:
        step_id: Id of the step that produced this result
        success: Whether the step completed successfully
        outputs: Data recorded under the step id in the execution context
        duration_ms: Wall-clock duration of the step
        error: Exception describing the failure (StepExecutionError) if success=False
        step_type: Kind of the step (sparql, template, ...)
    """

    step_id: str
    success: bool
    outputs: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0
    error: Exception | None = None
    step_type: str | None = None

    def __post_init__(self):
        # Ensure error on failure
        if not self.success and self.error is None:
            self.error = HookSpineError(f"Step '{self.step_id}' failed without error")

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def ok(
        cls,
        step_id: str,
        outputs: dict[str, Any] | None = None,
        duration_ms: float = 0.0,
        step_type: str | None = None,
    ) -> StepResult:
        """Create a successful result."""
        return cls(
            step_id=step_id,
            success=True,
            outputs=outputs or {},
            duration_ms=duration_ms,
            step_type=step_type,
        )

    @classmethod
    def fail(
        cls,
        step_id: str,
        error: Exception,
        duration_ms: float = 0.0,
        step_type: str | None = None,
    ) -> StepResult:
        """Create a failed result."""
        return cls(
            step_id=step_id,
            success=False,
            error=error,
            duration_ms=duration_ms,
            step_type=step_type,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "step_id": self.step_id,
            "step_type": self.step_type,
            "success": self.success,
            "duration_ms": round(self.duration_ms, 3),
            "outputs": self.outputs,
        }
        if self.error is not None:
            result["error"] = error_to_dict(self.error)
        return result

    def __repr__(self) -> str:
        if self.success:
            return f"StepResult.ok({self.step_id!r}, keys={list(self.outputs.keys())})"
        return f"StepResult.fail({self.step_id!r}, {self.error_message!r})"
