"""
Hook Orchestrator - top-level entry point of an evaluation pass.

Flow of ``evaluate()``::

    discover hooks (load graph_dir + hooks_dir, list gh:Hook subjects)
        │   failure here is the only thing that makes EvaluationResult.success False
        ▼
    per hook (bounded thread pool, outcomes kept in discovery order)
        ├── parse hook            MalformedHookError  → recorded on the outcome
        ├── event filter          gh:onEvent mismatch → skipped
        ├── evaluate predicate    PredicateError      → recorded on the outcome
        └── if triggered: for each pipeline in declared order
                execute (or validate when dry_run)
                stop the hook's remaining pipelines after the first failure

Per-hook isolation: nothing raised while handling one hook reaches another
hook or the caller.

Example:
    orchestrator = HookOrchestrator(settings=HookSpineSettings(hooks_dir="hooks"))
    result = orchestrator.evaluate(EvaluationOptions(event="pre-commit"))
    for hook_id, message in result.errors.items():
        print(hook_id, message)
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from hookspine.core.errors import HookSpineError
from hookspine.core.logging import LogContext, get_logger
from hookspine.core.settings import HookSpineSettings
from hookspine.graph.knowledge_graph import KnowledgeGraph
from hookspine.orchestration.exceptions import (
    HookDiscoveryError,
    PredicateError,
    WorkflowDefinitionError,
)
from hookspine.orchestration.executor import WorkflowExecutor
from hookspine.orchestration.handlers import StepHandlerRegistry, default_registry
from hookspine.orchestration.parser import WorkflowParser
from hookspine.orchestration.predicates import PredicateEvaluator
from hookspine.orchestration.receipts import ReceiptWriter
from hookspine.orchestration.results import EvaluationResult, HookOutcome

logger = get_logger(__name__)


@dataclass
class EvaluationOptions:
    """Inputs of one evaluation pass."""

    event: str | None = None
    changed_paths: list[str] = field(default_factory=list)
    inputs: dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    hook_ids: list[str] | None = None
    cancel_event: threading.Event | None = None


class HookOrchestrator:
    """
    Discovers hooks, evaluates their predicates and runs triggered pipelines.

    The graph is loaded lazily from ``settings.graph_dir`` and
    ``settings.hooks_dir`` unless one is passed in. ``previous_graph`` is the
    baseline used by ``resultDelta`` predicates.
    """

    def __init__(
        self,
        graph: KnowledgeGraph | None = None,
        *,
        settings: HookSpineSettings | None = None,
        previous_graph: KnowledgeGraph | None = None,
        registry: StepHandlerRegistry | None = None,
        receipts: ReceiptWriter | None = None,
    ):
        self.settings = settings or HookSpineSettings()
        self.previous_graph = previous_graph
        self.registry = registry or default_registry()
        if receipts is None and self.settings.write_receipts:
            receipts = ReceiptWriter(self.settings.reports_dir)
        self.receipts = receipts
        self._graph = graph
        self._executor: WorkflowExecutor | None = None

    # =========================================================================
    # Lazy components
    # =========================================================================

    @property
    def graph(self) -> KnowledgeGraph:
        if self._graph is None:
            self._graph = KnowledgeGraph.from_directory(self.settings.graph_dir, self.settings.hooks_dir)
            logger.info("graph.loaded", triples=len(self._graph), sources=len(self._graph.sources))
        return self._graph

    @property
    def executor(self) -> WorkflowExecutor:
        if self._executor is None:
            self._executor = WorkflowExecutor(
                self.graph,
                settings=self.settings,
                registry=self.registry,
                receipts=self.receipts,
            )
        return self._executor

    @property
    def parser(self) -> WorkflowParser:
        return self.executor.parser

    # =========================================================================
    # Evaluate
    # =========================================================================

    def evaluate(self, options: EvaluationOptions | None = None, **kwargs: Any) -> EvaluationResult:
        """
        Run one evaluation pass.

        Accepts an EvaluationOptions or its fields as keyword arguments.
        Never raises for hook-level problems; see ``EvaluationResult.errors``.
        """
        options = options or EvaluationOptions(**kwargs)
        started_at = datetime.now(UTC)
        result = EvaluationResult(
            success=True,
            started_at=started_at,
            event=options.event,
            changed_paths=list(options.changed_paths),
            dry_run=options.dry_run,
        )

        try:
            hook_ids = self._discover(options)
        except (HookSpineError, OSError) as e:
            error = HookDiscoveryError(f"Hook discovery failed: {e}", cause=e)
            logger.error("evaluation.discovery_failed", error=str(e))
            result.success = False
            result.error = error
            result.completed_at = datetime.now(UTC)
            return result

        result.hooks_discovered = len(hook_ids)
        logger.info(
            "evaluation.start",
            hooks=len(hook_ids),
            event=options.event,
            dry_run=options.dry_run,
        )

        if hook_ids:
            evaluator = PredicateEvaluator(self.graph, self.previous_graph)
            workers = min(self.settings.max_concurrent_hooks, len(hook_ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hookspine-hook") as pool:
                futures = [
                    pool.submit(self._evaluate_hook, hook_id, evaluator, options) for hook_id in hook_ids
                ]
                for hook_id, future in zip(hook_ids, futures):
                    try:
                        outcome = future.result()
                    except Exception as e:
                        logger.error("hook.crashed", hook=hook_id, error_type=type(e).__name__, error=str(e))
                        outcome = HookOutcome(hook_id=hook_id, error=e)
                    result.outcomes.append(outcome)

        result.completed_at = datetime.now(UTC)
        logger.info(
            "evaluation.complete",
            hooks_evaluated=result.hooks_evaluated,
            hooks_triggered=result.hooks_triggered,
            workflows_executed=result.workflows_executed,
            workflows_successful=result.workflows_successful,
            errors=len(result.errors),
            duration_ms=round(result.evaluation_time_ms, 3),
        )

        if self.receipts is not None:
            self.receipts.write_evaluation(result)
        return result

    def _discover(self, options: EvaluationOptions) -> list[str]:
        available = self.parser.hook_ids()
        if options.hook_ids is None:
            return available
        # Requested ids keep their order; unknown ones surface as HookNotFoundError outcomes.
        return list(dict.fromkeys(options.hook_ids))

    def _evaluate_hook(
        self,
        hook_id: str,
        evaluator: PredicateEvaluator,
        options: EvaluationOptions,
    ) -> HookOutcome:
        started = time.perf_counter()
        outcome = HookOutcome(hook_id=hook_id)

        with LogContext(hook=hook_id):
            try:
                self._run_hook(outcome, evaluator, options)
            finally:
                outcome.duration_ms = (time.perf_counter() - started) * 1000
        return outcome

    def _run_hook(self, outcome: HookOutcome, evaluator: PredicateEvaluator, options: EvaluationOptions) -> None:
        try:
            hook = self.parser.parse_hook(outcome.hook_id)
        except WorkflowDefinitionError as e:
            logger.warning("hook.malformed", error=str(e))
            outcome.error = e
            return

        outcome.title = hook.title
        outcome.predicate_kind = hook.predicate.kind

        if not hook.listens_to(options.event):
            logger.debug("hook.skipped", event=options.event, listens_to=list(hook.events))
            outcome.skipped = True
            return

        outcome.evaluated = True
        try:
            predicate = evaluator.evaluate(hook.predicate, hook_id=hook.id)
        except PredicateError as e:
            logger.warning("hook.predicate_failed", kind=hook.predicate.kind, error=str(e))
            outcome.error = e
            return

        outcome.predicate_context = predicate.context
        outcome.triggered = predicate.triggered
        if not predicate.triggered:
            logger.debug("hook.not_triggered", kind=predicate.kind)
            return

        logger.info("hook.triggered", kind=predicate.kind, pipelines=len(hook.pipelines))
        inputs = {
            **options.inputs,
            "event": options.event,
            "changedPaths": list(options.changed_paths),
            "hookId": hook.id,
            "predicate": predicate.context,
        }

        for pipeline_id in hook.pipelines:
            if options.dry_run:
                report = self.executor.validate_workflow(pipeline_id)
                outcome.validations.append(report)
                if not report.valid:
                    outcome.error = report.error
                    break
                continue

            try:
                execution = self.executor.execute(pipeline_id, inputs, cancel_event=options.cancel_event)
            except WorkflowDefinitionError as e:
                logger.warning("hook.pipeline_invalid", pipeline=pipeline_id, error=str(e))
                outcome.error = e
                break

            outcome.executions.append(execution)
            if not execution.success:
                logger.warning("hook.pipeline_failed", pipeline=pipeline_id, failed_step=execution.failed_step)
                break

    # =========================================================================
    # Introspection
    # =========================================================================

    def list_hooks(self) -> list[dict[str, Any]]:
        """Summaries of every declared hook; malformed hooks carry an ``error``."""
        summaries = []
        for hook_id in self.parser.hook_ids():
            try:
                hook = self.parser.parse_hook(hook_id)
            except WorkflowDefinitionError as e:
                summaries.append({"id": hook_id, "title": None, "error": str(e)})
                continue
            summaries.append(
                {
                    "id": hook.id,
                    "title": hook.title,
                    "predicate_kind": hook.predicate.kind,
                    "events": list(hook.events),
                    "pipeline_count": len(hook.pipelines),
                }
            )
        return summaries

    def validate_hook(self, hook_id: str) -> dict[str, Any]:
        """Parse a hook and validate each of its pipelines without running anything."""
        try:
            hook = self.parser.parse_hook(hook_id)
        except WorkflowDefinitionError as e:
            return {"hook_id": hook_id, "valid": False, "error": str(e)}

        reports = [self.executor.validate_workflow(p) for p in hook.pipelines]
        invalid = [r for r in reports if not r.valid]
        summary: dict[str, Any] = {
            "hook_id": hook_id,
            "valid": not invalid,
            "predicate_kind": hook.predicate.kind,
            "pipelines": [r.to_dict() for r in reports],
            "step_count": sum(r.step_count for r in reports),
            "estimated_duration_ms": sum(r.estimated_duration_ms for r in reports),
        }
        if hook.predicate.kind not in PredicateEvaluator(self.graph).kinds:
            summary["valid"] = False
            summary["error"] = f"Unknown predicate kind '{hook.predicate.kind}'"
        elif invalid:
            summary["error"] = str(invalid[0].error)
        return summary

