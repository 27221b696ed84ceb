"""
Step Runner - executes one step against the execution context and graph.

Dispatch goes through the StepHandlerRegistry keyed by ``step.type``; the
runner itself knows nothing about individual kinds. For every step it:

1. builds the variable view (merged context + the step's input mapping)
2. interpolates the handler's ``interpolated_keys`` with Jinja2
3. calls ``handler.execute`` under the step timeout
4. wraps any failure in ``StepExecutionError(step_id, cause)``

The runner never raises for a failing step; it returns ``StepResult.fail``.

Example:
    runner = StepRunner(base_dir=Path.cwd())
    result = runner.execute_step(step, context_manager, graph)
    if not result.success:
        print(result.error.cause)
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Mapping

from hookspine.core.logging import get_logger
from hookspine.graph.knowledge_graph import KnowledgeGraph
from hookspine.orchestration.exceptions import MalformedStepError, StepExecutionError
from hookspine.orchestration.handlers import StepContext, StepHandlerRegistry, default_registry
from hookspine.orchestration.rendering import TemplateRenderer
from hookspine.orchestration.step_result import StepResult
from hookspine.orchestration.step_types import Step
from hookspine.orchestration.workflow_context import ExecutionContextManager, resolve_path

logger = get_logger(__name__)

DEFAULT_STEP_TIMEOUT = 30.0


class StepRunner:
    """
    Executes individual steps.

    One runner may serve many concurrent runs: it holds only the registry,
    the renderer and static settings. Per-run state lives in the
    ExecutionContextManager passed to ``execute_step``.
    """

    def __init__(
        self,
        registry: StepHandlerRegistry | None = None,
        renderer: TemplateRenderer | None = None,
        *,
        base_dir: Path | str | None = None,
        default_timeout: float = DEFAULT_STEP_TIMEOUT,
    ):
        self.registry = registry or default_registry()
        self.renderer = renderer or TemplateRenderer()
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.default_timeout = default_timeout

    def execute_step(
        self,
        step: Step,
        context: ExecutionContextManager,
        graph: KnowledgeGraph,
        *,
        max_timeout: float | None = None,
    ) -> StepResult:
        """
        Execute one step.

        Args:
            step: Step to run
            context: The run's context manager (read for the variable view)
            graph: Knowledge graph (read-only)
            max_timeout: Remaining run budget in seconds; clips the step timeout

        Returns:
            StepResult.ok with the handler's outputs, or StepResult.fail with a
            StepExecutionError whose ``cause`` is the typed error.
        """
        started = time.perf_counter()
        timeout = step.timeout or self.default_timeout
        if max_timeout is not None:
            timeout = max(min(timeout, max_timeout), 0.001)

        logger.debug("step.start", step=step.id, type=step.type, timeout=timeout)

        try:
            if step.type not in self.registry:
                raise MalformedStepError(step.id, f"no handler registered for step type '{step.type}'")
            handler = self.registry.get(step.type)
            variables = self._variables(step, context.get_outputs())
            config = self._interpolate(step.config, handler.interpolated_keys, variables)
            step_ctx = StepContext(
                graph=graph,
                config=config,
                variables=variables,
                base_dir=self.base_dir,
                timeout=timeout,
                renderer=self.renderer,
            )
            outputs = handler.execute(step, step_ctx)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            error = StepExecutionError(step.id, e)
            logger.warning(
                "step.failed",
                step=step.id,
                type=step.type,
                error_type=type(e).__name__,
                error=str(e),
                duration_ms=round(duration_ms, 3),
            )
            return StepResult.fail(step.id, error, duration_ms=duration_ms, step_type=step.type)

        duration_ms = (time.perf_counter() - started) * 1000
        logger.debug("step.completed", step=step.id, type=step.type, duration_ms=round(duration_ms, 3))
        return StepResult.ok(step.id, outputs, duration_ms=duration_ms, step_type=step.type)

    @staticmethod
    def _variables(step: Step, view: dict[str, Any]) -> dict[str, Any]:
        for name, source in step.input_mapping.items():
            view[name] = resolve_path(view, source)
        return view

    def _interpolate(
        self,
        config: Mapping[str, Any],
        keys: tuple[str, ...],
        variables: Mapping[str, Any],
    ) -> dict[str, Any]:
        rendered = dict(config)
        for key in keys:
            if key in rendered:
                rendered[key] = self.renderer.interpolate(rendered[key], variables)
        return rendered
