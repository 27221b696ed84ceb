"""Run states and the result objects returned to callers and receipt writers.

    RunState          ── Parsing → Planning → ContextInit → Executing → Finalizing → Succeeded | Failed
    ExecutionResult   ── one workflow run
    ValidationReport  ── validate-only path (no side effects)
    HookOutcome       ── one hook within an evaluation pass
    EvaluationResult  ── one evaluation pass over all discovered hooks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from hookspine.core.errors import error_to_dict
from hookspine.orchestration.step_result import StepResult


class RunState(str, Enum):
    """State of a single workflow run."""

    PENDING = "pending"
    PARSING = "parsing"
    PLANNING = "planning"
    CONTEXT_INIT = "context_init"
    EXECUTING = "executing"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.SUCCEEDED, RunState.FAILED)


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts else None


@dataclass
class ExecutionResult:
    """Outcome of one workflow run.

    ``steps`` holds results in execution order and ends at the first failed
    step; ``plan_length`` is the number of steps the plan contained.
    """

    workflow_id: str
    execution_id: str
    state: RunState
    started_at: datetime
    completed_at: datetime | None = None
    steps: list[StepResult] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    plan_length: int = 0
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.state == RunState.SUCCEEDED

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def duration_ms(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds() * 1000

    @property
    def completed_steps(self) -> list[str]:
        return [s.step_id for s in self.steps if s.success]

    @property
    def failed_step(self) -> str | None:
        for s in self.steps:
            if not s.success:
                return s.step_id
        return None

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "start_time": _iso(self.started_at),
            "end_time": _iso(self.completed_at),
            "steps": [
                {"id": s.step_id, "type": s.step_type, "success": s.success, "duration_ms": round(s.duration_ms, 3)}
                for s in self.steps
            ],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "state": self.state.value,
            "success": self.success,
            "duration_ms": round(self.duration_ms, 3),
            "step_count": self.step_count,
            "plan_length": self.plan_length,
            "steps": [s.to_dict() for s in self.steps],
            "outputs": self.outputs,
            "error": error_to_dict(self.error),
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return (
            f"ExecutionResult({self.workflow_id!r}, state={self.state.value}, "
            f"steps={self.step_count}/{self.plan_length})"
        )


@dataclass
class ValidationReport:
    """Outcome of the validate-only path: parse and plan, never execute."""

    workflow_id: str
    valid: bool
    step_count: int = 0
    order: list[str] = field(default_factory=list)
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    estimated_duration_ms: int = 0
    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.valid:
            return {
                "workflow_id": self.workflow_id,
                "valid": False,
                "error": error_to_dict(self.error),
            }
        return {
            "workflow_id": self.workflow_id,
            "valid": True,
            "step_count": self.step_count,
            "order": list(self.order),
            "dependencies": [
                {"id": step_id, "depends_on": deps} for step_id, deps in self.dependencies.items()
            ],
            "estimated_duration_ms": self.estimated_duration_ms,
        }


@dataclass
class HookOutcome:
    """What happened to one hook during an evaluation pass."""

    hook_id: str
    title: str | None = None
    evaluated: bool = False
    triggered: bool = False
    skipped: bool = False
    predicate_kind: str | None = None
    predicate_context: dict[str, Any] = field(default_factory=dict)
    executions: list[ExecutionResult] = field(default_factory=list)
    validations: list[ValidationReport] = field(default_factory=list)
    error: Exception | None = None
    duration_ms: float = 0.0

    @property
    def workflows_executed(self) -> int:
        return len(self.executions)

    @property
    def workflows_successful(self) -> int:
        return sum(1 for e in self.executions if e.success)

    @property
    def success(self) -> bool:
        return self.error is None and all(e.success for e in self.executions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hook_id": self.hook_id,
            "title": self.title,
            "evaluated": self.evaluated,
            "triggered": self.triggered,
            "skipped": self.skipped,
            "predicate_kind": self.predicate_kind,
            "predicate_context": self.predicate_context,
            "duration_ms": round(self.duration_ms, 3),
            "executions": [e.to_dict() for e in self.executions],
            "validations": [v.to_dict() for v in self.validations],
            "error": error_to_dict(self.error),
        }


@dataclass
class EvaluationResult:
    """Outcome of one evaluation pass.

    ``success`` reflects orchestration health only (discovery worked, the
    pass did not crash). Predicate errors and failed pipelines are recorded
    on the individual HookOutcome entries.
    """

    success: bool
    started_at: datetime
    completed_at: datetime | None = None
    hooks_discovered: int = 0
    outcomes: list[HookOutcome] = field(default_factory=list)
    event: str | None = None
    changed_paths: list[str] = field(default_factory=list)
    dry_run: bool = False
    error: Exception | None = None

    @property
    def evaluation_time_ms(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds() * 1000

    @property
    def hooks_evaluated(self) -> int:
        return sum(1 for o in self.outcomes if o.evaluated)

    @property
    def hooks_triggered(self) -> int:
        return sum(1 for o in self.outcomes if o.triggered)

    @property
    def workflows_executed(self) -> int:
        return sum(o.workflows_executed for o in self.outcomes)

    @property
    def workflows_successful(self) -> int:
        return sum(o.workflows_successful for o in self.outcomes)

    @property
    def triggered_hooks(self) -> list[str]:
        return [o.hook_id for o in self.outcomes if o.triggered]

    @property
    def errors(self) -> dict[str, str]:
        """Hook id -> message for every hook whose predicate or pipeline failed."""
        found: dict[str, str] = {}
        for o in self.outcomes:
            if o.error is not None:
                found[o.hook_id] = str(o.error)
            else:
                failed = [e for e in o.executions if not e.success]
                if failed:
                    found[o.hook_id] = str(failed[0].error)
        return found

    @property
    def executions(self) -> list[ExecutionResult]:
        return [e for o in self.outcomes for e in o.executions]

    def get_outcome(self, hook_id: str) -> HookOutcome | None:
        for o in self.outcomes:
            if o.hook_id == hook_id:
                return o
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "event": self.event,
            "changed_paths": list(self.changed_paths),
            "dry_run": self.dry_run,
            "start_time": _iso(self.started_at),
            "end_time": _iso(self.completed_at),
            "evaluation_time_ms": round(self.evaluation_time_ms, 3),
            "hooks_discovered": self.hooks_discovered,
            "hooks_evaluated": self.hooks_evaluated,
            "hooks_triggered": self.hooks_triggered,
            "workflows_executed": self.workflows_executed,
            "workflows_successful": self.workflows_successful,
            "triggered_hooks": self.triggered_hooks,
            "errors": self.errors,
            "error": error_to_dict(self.error),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
