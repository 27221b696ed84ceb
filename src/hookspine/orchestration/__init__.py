"""
hookspine orchestration - hook evaluation and workflow execution engine.

WHY
───
Repository automation is declared as data: a hook pairs a predicate over
the knowledge graph with ordered pipelines of steps. This package turns
those declarations into deterministic, isolated workflow runs.

ARCHITECTURE
────────────
::

    HookOrchestrator.evaluate()
      ├── PredicateEvaluator        ─ ask / selectThreshold / resultDelta
      └── WorkflowExecutor.execute(pipeline)
            ├── WorkflowParser      ─ graph triples → Workflow (immutable)
            ├── DAGPlanner          ─ stable topological order, cycle check
            ├── ExecutionContextManager ─ per-run inputs and outputs
            └── StepRunner          ─ dispatch through StepHandlerRegistry
                  sparql · template · file · http · cli

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. exceptions.py          ─ error hierarchy
2. step_result.py         ─ StepResult (ok / fail)
3. step_types.py          ─ Step dataclass, StepType
4. models.py              ─ Hook, Predicate, Pipeline, Workflow, ExecutionPlan
5. results.py             ─ RunState, ExecutionResult, EvaluationResult
6. workflow_context.py    ─ ExecutionContextManager
7. rendering.py           ─ Jinja2 interpolation
8. handlers/              ─ one handler per step kind + registry
9. parser.py              ─ WorkflowParser
10. planner.py            ─ DAGPlanner
11. runner.py             ─ StepRunner
12. executor.py           ─ WorkflowExecutor (run state machine)
13. predicates.py         ─ PredicateEvaluator
14. hook_orchestrator.py  ─ HookOrchestrator
15. receipts.py           ─ JSON receipts

Example:
    from hookspine.graph import KnowledgeGraph
    from hookspine.orchestration import WorkflowExecutor

    graph = KnowledgeGraph.from_directory("graph", "hooks")
    executor = WorkflowExecutor(graph)
    report = executor.validate_workflow("http://example.org/pipelines/release")
    print(report.order)
"""

from hookspine.orchestration.exceptions import (
    CancelledError,
    CommandError,
    ContextNotInitializedError,
    CycleDetectedError,
    FileOperationError,
    HookDiscoveryError,
    HookNotFoundError,
    HttpStatusError,
    MalformedHookError,
    MalformedStepError,
    PredicateError,
    StepExecutionError,
    UnresolvedReferenceError,
    WorkflowDefinitionError,
    WorkflowNotFoundError,
)
from hookspine.orchestration.step_result import StepResult
from hookspine.orchestration.step_types import FileOperation, Step, StepType
from hookspine.orchestration.models import (
    ExecutionPlan,
    GitEvent,
    Hook,
    Pipeline,
    Predicate,
    PredicateKind,
    Workflow,
)
from hookspine.orchestration.results import (
    EvaluationResult,
    ExecutionResult,
    HookOutcome,
    RunState,
    ValidationReport,
)
from hookspine.orchestration.workflow_context import ExecutionContextManager
from hookspine.orchestration.rendering import TemplateRenderer
from hookspine.orchestration.handlers import StepHandler, StepHandlerRegistry, default_registry
from hookspine.orchestration.parser import WorkflowParser
from hookspine.orchestration.planner import DAGPlanner
from hookspine.orchestration.runner import StepRunner
from hookspine.orchestration.receipts import ReceiptWriter
from hookspine.orchestration.executor import WorkflowExecutor
from hookspine.orchestration.predicates import PredicateEvaluator, PredicateOutcome
from hookspine.orchestration.hook_orchestrator import EvaluationOptions, HookOrchestrator

__all__ = [
    # Exceptions
    "WorkflowDefinitionError",
    "WorkflowNotFoundError",
    "HookNotFoundError",
    "MalformedHookError",
    "MalformedStepError",
    "UnresolvedReferenceError",
    "CycleDetectedError",
    "PredicateError",
    "StepExecutionError",
    "CancelledError",
    "ContextNotInitializedError",
    "HookDiscoveryError",
    "FileOperationError",
    "HttpStatusError",
    "CommandError",
    # Models
    "Step",
    "StepType",
    "FileOperation",
    "StepResult",
    "Hook",
    "Predicate",
    "PredicateKind",
    "GitEvent",
    "Pipeline",
    "Workflow",
    "ExecutionPlan",
    # Results
    "RunState",
    "ExecutionResult",
    "ValidationReport",
    "HookOutcome",
    "EvaluationResult",
    # Engine
    "ExecutionContextManager",
    "TemplateRenderer",
    "StepHandler",
    "StepHandlerRegistry",
    "default_registry",
    "WorkflowParser",
    "DAGPlanner",
    "StepRunner",
    "WorkflowExecutor",
    "PredicateEvaluator",
    "PredicateOutcome",
    "HookOrchestrator",
    "EvaluationOptions",
    "ReceiptWriter",
]
