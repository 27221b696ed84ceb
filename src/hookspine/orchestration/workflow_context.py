"""
Execution Context - per-run input/output state.

Every workflow run owns exactly one ExecutionContextManager. The manager
holds the run's inputs, each step's recorded outputs, and the values that
steps export through their ``outputMapping``. Later steps read earlier
outputs through the merged view returned by ``get_outputs()``.

Design Principles:
- Isolated: one manager per ``execute()`` call, never shared across runs
- Ordered: outputs are recorded before the next step runs
- Serializable: ``snapshot()`` / ``restore()`` round-trip through plain dicts

Merged view (``get_outputs()``), later layers win::

    inputs
      └── steps          {step_id: outputs} for every recorded step
      └── <step_id>      each step's outputs under its own id
      └── <export key>   values exported through outputMapping

Example:
    manager = ExecutionContextManager()
    manager.initialize("http://example.org/p", inputs={"name": "demo"})
    manager.record_output("read", {"content": "{}"}, {"raw": "content"})
    manager.get_outputs()["raw"]
    # '{}'

Tags:
    hookspine, orchestration, context, per-run-state, isolation
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Mapping

from hookspine.core.logging import get_logger
from hookspine.orchestration.exceptions import ContextNotInitializedError
from hookspine.orchestration.results import RunState
from hookspine.orchestration.step_result import StepResult

logger = get_logger(__name__)

STEPS_KEY = "steps"


def resolve_path(data: Any, path: str, default: Any = None) -> Any:
    """Resolve a dotted path (``results.0.count``) through dicts and lists."""
    if isinstance(data, Mapping) and path in data:
        return data[path]
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip("-").isdigit():
            index = int(part)
            if -len(current) <= index < len(current):
                current = current[index]
            else:
                return default
        else:
            return default
    return current


@dataclass
class ExecutionContext:
    """State of one run."""

    workflow_id: str
    execution_id: str
    inputs: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    exports: dict[str, Any] = field(default_factory=dict)
    history: list[StepResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: RunState = RunState.PENDING


class ExecutionContextManager:
    """Owns the ExecutionContext of a single run."""

    def __init__(self) -> None:
        self._context: ExecutionContext | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(
        self,
        workflow_id: str,
        inputs: Mapping[str, Any] | None = None,
        start_time: datetime | None = None,
        execution_id: str | None = None,
    ) -> ExecutionContext:
        """Reset state for a new run. Called once per run before any step."""
        self._context = ExecutionContext(
            workflow_id=workflow_id,
            execution_id=execution_id or uuid.uuid4().hex,
            inputs=copy.deepcopy(dict(inputs or {})),
            started_at=start_time or datetime.now(UTC),
            status=RunState.CONTEXT_INIT,
        )
        logger.debug(
            "context.initialized",
            workflow=workflow_id,
            run_id=self._context.execution_id,
            inputs=sorted(self._context.inputs),
        )
        return self._context

    @property
    def initialized(self) -> bool:
        return self._context is not None

    @property
    def context(self) -> ExecutionContext:
        return self._require("context")

    def _require(self, operation: str) -> ExecutionContext:
        if self._context is None:
            raise ContextNotInitializedError(operation)
        return self._context

    @property
    def status(self) -> RunState:
        return self._context.status if self._context else RunState.PENDING

    def set_status(self, status: RunState) -> None:
        self._require("set_status").status = status

    # =========================================================================
    # Recording
    # =========================================================================

    def record_output(
        self,
        step_id: str,
        outputs: Mapping[str, Any],
        output_mapping: Mapping[str, str] | None = None,
    ) -> None:
        """Store a step's outputs under its id and apply its output mapping."""
        ctx = self._require("record_output")
        stored = copy.deepcopy(dict(outputs))
        ctx.outputs[step_id] = stored
        for target, source in (output_mapping or {}).items():
            value = resolve_path(stored, source)
            if value is None:
                logger.warning("context.mapping_unresolved", step=step_id, target=target, source=source)
            ctx.exports[target] = value

    def record_result(self, result: StepResult, output_mapping: Mapping[str, str] | None = None) -> None:
        """Append to history; successful results are also recorded as outputs."""
        ctx = self._require("record_result")
        ctx.history.append(result)
        if result.success:
            self.record_output(result.step_id, result.outputs, output_mapping)

    # =========================================================================
    # Reading
    # =========================================================================

    def get_outputs(self) -> dict[str, Any]:
        """Merged view used for template rendering and config interpolation."""
        ctx = self._require("get_outputs")
        view: dict[str, Any] = copy.deepcopy(ctx.inputs)
        view[STEPS_KEY] = copy.deepcopy(ctx.outputs)
        for step_id, outputs in ctx.outputs.items():
            view[step_id] = copy.deepcopy(outputs)
        view.update(copy.deepcopy(ctx.exports))
        return view

    def get_output(self, step_id: str, key: str | None = None, default: Any = None) -> Any:
        ctx = self._require("get_output")
        if step_id not in ctx.outputs:
            return default
        if key is None:
            return copy.deepcopy(ctx.outputs[step_id])
        return copy.deepcopy(ctx.outputs[step_id].get(key, default))

    def has_output(self, step_id: str) -> bool:
        return self._context is not None and step_id in self._context.outputs

    def get_inputs(self) -> dict[str, Any]:
        return copy.deepcopy(self._require("get_inputs").inputs)

    @property
    def history(self) -> list[StepResult]:
        return list(self._require("history").history)

    def stats(self) -> dict[str, Any]:
        ctx = self._require("stats")
        durations = [r.duration_ms for r in ctx.history]
        return {
            "total_steps": len(ctx.history),
            "successful_steps": sum(1 for r in ctx.history if r.success),
            "failed_steps": sum(1 for r in ctx.history if not r.success),
            "total_duration_ms": round(sum(durations), 3),
            "average_duration_ms": round(sum(durations) / len(durations), 3) if durations else 0.0,
        }

    # =========================================================================
    # Serialization
    # =========================================================================

    def snapshot(self) -> dict[str, Any]:
        ctx = self._require("snapshot")
        return {
            "workflow_id": ctx.workflow_id,
            "execution_id": ctx.execution_id,
            "status": ctx.status.value,
            "started_at": ctx.started_at.isoformat(),
            "inputs": copy.deepcopy(ctx.inputs),
            "outputs": copy.deepcopy(ctx.outputs),
            "exports": copy.deepcopy(ctx.exports),
            "history": [r.step_id for r in ctx.history],
        }

    def restore(self, snapshot: Mapping[str, Any]) -> ExecutionContext:
        """Rebuild state from ``snapshot()`` output (history entries are not restored)."""
        self._context = ExecutionContext(
            workflow_id=snapshot["workflow_id"],
            execution_id=snapshot["execution_id"],
            inputs=copy.deepcopy(snapshot.get("inputs", {})),
            outputs=copy.deepcopy(snapshot.get("outputs", {})),
            exports=copy.deepcopy(snapshot.get("exports", {})),
            started_at=datetime.fromisoformat(snapshot["started_at"]),
            status=RunState(snapshot.get("status", RunState.PENDING.value)),
        )
        return self._context

    def __repr__(self) -> str:
        if self._context is None:
            return "ExecutionContextManager(uninitialized)"
        return (
            f"ExecutionContextManager(workflow={self._context.workflow_id!r}, "
            f"run_id={self._context.execution_id[:8]}..., steps={list(self._context.outputs)})"
        )
