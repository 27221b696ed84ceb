"""
Workflow Executor - runs one workflow end to end.

State machine for a single run::

    Parsing → Planning → ContextInit → Executing(stepIndex) → Finalizing → Succeeded | Failed

- Parse/plan errors (WorkflowNotFoundError, MalformedStepError,
  UnresolvedReferenceError, CycleDetectedError) are raised to the caller
  before any side effect happens.
- A failing step ends the run: the result carries the step results up to
  and including the failure plus a StepExecutionError. Earlier side
  effects are not rolled back and nothing is retried.
- Cancellation and the run deadline are checked between steps; they end
  the run with CancelledError / TimeoutError.

Every ``execute()`` call creates its own ExecutionContextManager, so
concurrent runs of the same workflow never see each other's outputs.

Example:
    executor = WorkflowExecutor(graph)
    result = executor.execute("http://example.org/pipelines/report", {"name": "demo"})
    if result.success:
        print(result.outputs["report"])
"""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from typing import Any, Mapping

from hookspine.core.errors import HookSpineError, TimeoutError
from hookspine.core.logging import LogContext, get_logger
from hookspine.core.settings import HookSpineSettings
from hookspine.graph.knowledge_graph import KnowledgeGraph
from hookspine.orchestration.exceptions import CancelledError, StepExecutionError
from hookspine.orchestration.handlers import StepHandlerRegistry, default_registry
from hookspine.orchestration.parser import WorkflowParser
from hookspine.orchestration.planner import DAGPlanner
from hookspine.orchestration.receipts import ReceiptWriter
from hookspine.orchestration.results import ExecutionResult, RunState, ValidationReport
from hookspine.orchestration.runner import StepRunner
from hookspine.orchestration.workflow_context import ExecutionContextManager

logger = get_logger(__name__)


class WorkflowExecutor:
    """
    Composes Parser → Planner → Context → StepRunner into one run.

    The executor itself is stateless between runs and may be shared by
    concurrent callers (the orchestrator runs hooks on a thread pool).
    """

    def __init__(
        self,
        graph: KnowledgeGraph,
        *,
        settings: HookSpineSettings | None = None,
        registry: StepHandlerRegistry | None = None,
        runner: StepRunner | None = None,
        planner: DAGPlanner | None = None,
        receipts: ReceiptWriter | None = None,
    ):
        self.settings = settings or HookSpineSettings()
        self.graph = graph
        self.registry = registry or (runner.registry if runner else default_registry())
        self.runner = runner or StepRunner(
            self.registry,
            base_dir=self.settings.cwd,
            default_timeout=self.settings.step_timeout_seconds,
        )
        self.parser = WorkflowParser(graph, self.registry)
        self.planner = planner or DAGPlanner()
        self.receipts = receipts

    # =========================================================================
    # Execute
    # =========================================================================

    def execute(
        self,
        workflow_id: str,
        inputs: Mapping[str, Any] | None = None,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """
        Run a workflow.

        Args:
            workflow_id: Pipeline (or hook) IRI
            inputs: Initial context values
            cancel_event: Set it to cancel the run before its next step
            timeout: Run deadline in seconds (default ``settings.run_timeout_seconds``)

        Raises:
            WorkflowDefinitionError: the workflow cannot be parsed or planned
        """
        run_timeout = timeout or self.settings.run_timeout_seconds
        started_at = datetime.now(UTC)
        deadline = time.monotonic() + run_timeout

        # Parsing / Planning: errors propagate before any side effect
        workflow = self.parser.parse_workflow(workflow_id)
        plan = self.planner.create_plan(workflow)

        # ContextInit
        context = ExecutionContextManager()
        ctx = context.initialize(workflow_id, inputs, start_time=started_at)

        with LogContext(workflow=workflow_id, run_id=ctx.execution_id):
            logger.info("workflow.start", step_count=len(plan), order=plan.step_ids)
            context.set_status(RunState.EXECUTING)

            error: Exception | None = None
            for index, step in enumerate(plan):
                if cancel_event is not None and cancel_event.is_set():
                    error = CancelledError(f"Run cancelled before step '{step.id}'", step_index=index)
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    error = self._run_timeout(run_timeout, step.id)
                    break

                result = self.runner.execute_step(step, context, self.graph, max_timeout=remaining)
                context.record_result(result, step.output_mapping)

                if not result.success:
                    error = result.error
                    if self._deadline_hit(result.error, deadline):
                        error = self._run_timeout(run_timeout, step.id, cause=result.error)
                    break

            # Finalizing
            context.set_status(RunState.FINALIZING)
            state = RunState.SUCCEEDED if error is None else RunState.FAILED
            context.set_status(state)

            execution = ExecutionResult(
                workflow_id=workflow_id,
                execution_id=ctx.execution_id,
                state=state,
                started_at=started_at,
                completed_at=datetime.now(UTC),
                steps=context.history,
                outputs=context.get_outputs(),
                plan_length=len(plan),
                error=error,
            )

            if execution.success:
                logger.info("workflow.complete", duration_ms=round(execution.duration_ms, 3))
            else:
                logger.warning(
                    "workflow.failed",
                    failed_step=execution.failed_step,
                    error_type=type(error).__name__,
                    error=str(error),
                    steps_run=execution.step_count,
                )

        if self.receipts is not None:
            self.receipts.write_execution(execution)
        return execution

    @staticmethod
    def _deadline_hit(error: Exception | None, deadline: float) -> bool:
        cause = error.cause if isinstance(error, StepExecutionError) else error
        return isinstance(cause, TimeoutError) and time.monotonic() >= deadline

    @staticmethod
    def _run_timeout(seconds: float, step_id: str, cause: Exception | None = None) -> TimeoutError:
        return TimeoutError(
            f"Run exceeded its {seconds}s timeout at step '{step_id}'",
            timeout_seconds=seconds,
            cause=cause,
        ).with_context(step=step_id)

    # =========================================================================
    # Validate / list
    # =========================================================================

    def validate_workflow(self, workflow_id: str) -> ValidationReport:
        """Parse and plan only: never executes a step, never has side effects."""
        try:
            workflow = self.parser.parse_workflow(workflow_id)
            plan = self.planner.create_plan(workflow)
        except HookSpineError as e:
            logger.info("workflow.invalid", workflow=workflow_id, error=str(e))
            return ValidationReport(workflow_id=workflow_id, valid=False, error=e)

        return ValidationReport(
            workflow_id=workflow_id,
            valid=True,
            step_count=len(plan),
            order=plan.step_ids,
            dependencies=self.planner.extract_dependencies(plan),
            estimated_duration_ms=self.planner.estimate_duration(plan),
        )

    def list_workflows(self) -> list[dict[str, Any]]:
        """Summaries of every pipeline in the graph (empty if none are loaded)."""
        return [
            {"id": p.id, "title": p.title, "step_count": len(p.step_refs)}
            for p in self.parser.list_pipelines()
        ]
