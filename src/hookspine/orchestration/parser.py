"""
Workflow Parser: builds Hooks, Pipelines and Workflows from graph triples.

Manifesto:
    Hooks are data, not code. The parser is the only place that knows the
    RDF vocabulary; everything downstream works on immutable dataclasses.
    Problems are reported, never skipped: an unrecognized step type, a bad
    JSON literal or a dangling reference fails the parse before any step
    has a chance to run.

ARCHITECTURE
────────────
::

    gh:Hook ──gh:hasPredicate──► Predicate (ASK / SELECTThreshold / ResultDelta)
       │
       └──gh:orderedPipelines──► op:Pipeline ──op:steps──► gv:*Step
                                                              │
                                           type, literals, gv:dependsOn,
                                           gv:outputMapping (JSON)

    parse_workflow(id) ── pipeline id → its steps
                       └─ hook id     → union of its pipelines' steps, in order

Determinism:
    Identical graph + id always yields an identical Workflow. RDF
    collections keep their order; repeated plain objects are sorted.

Tags:
    hookspine, orchestration, parser, rdf, turtle
"""

from __future__ import annotations

import json
from typing import Any

from rdflib import Literal
from rdflib.term import Node

from hookspine.core.logging import get_logger
from hookspine.graph import vocabulary as V
from hookspine.graph.knowledge_graph import KnowledgeGraph, to_python
from hookspine.orchestration.exceptions import (
    HookNotFoundError,
    MalformedHookError,
    MalformedStepError,
    UnresolvedReferenceError,
    WorkflowNotFoundError,
)
from hookspine.orchestration.handlers.base import StepHandlerRegistry
from hookspine.orchestration.models import Hook, Pipeline, Predicate, PredicateKind, Workflow
from hookspine.orchestration.step_types import Step

logger = get_logger(__name__)

PREDICATE_KINDS = {
    V.ASK_PREDICATE: PredicateKind.ASK.value,
    V.SELECT_THRESHOLD: PredicateKind.SELECT_THRESHOLD.value,
    V.RESULT_DELTA: PredicateKind.RESULT_DELTA.value,
}


class WorkflowParser:
    """Turns graph triples into the in-memory workflow model.

    The registry decides which step kinds exist and validates each step's
    config, so the parser needs no change when a kind is added.
    """

    def __init__(self, graph: KnowledgeGraph, registry: StepHandlerRegistry):
        self.graph = graph
        self.registry = registry

    # =========================================================================
    # Workflows
    # =========================================================================

    def parse_workflow(self, workflow_id: str) -> Workflow:
        """Resolve ``workflow_id`` (a pipeline or a hook) into a Workflow.

        Raises:
            WorkflowNotFoundError: id is neither a pipeline nor a hook
            MalformedStepError: unrecognized step type or invalid config
            UnresolvedReferenceError: a step or dependency id does not resolve
        """
        node = self.graph.node(workflow_id)

        if self.graph.is_a(node, V.HOOK):
            pipelines = []
            for ref in self.graph.ordered_objects(node, V.ORDERED_PIPELINES):
                if not self._is_pipeline(ref):
                    raise UnresolvedReferenceError(str(ref), workflow_id, kind="pipeline")
                pipelines.append(self.parse_pipeline(str(ref)))
            title = self.graph.literal(node, *V.TITLE_PROPERTIES)
            source = "hook"
        elif self._is_pipeline(node):
            pipelines = [self.parse_pipeline(workflow_id)]
            title = pipelines[0].title
            source = "pipeline"
        else:
            raise WorkflowNotFoundError(workflow_id)

        refs: list[str] = []
        for pipeline in pipelines:
            for ref in pipeline.step_refs:
                if ref not in refs:
                    refs.append(ref)

        steps = self._parse_steps(workflow_id, refs)
        workflow = Workflow(id=workflow_id, steps=tuple(steps), title=title, source=source)
        logger.debug("parser.workflow_parsed", workflow=workflow_id, source=source, step_count=len(steps))
        return workflow

    def parse_pipeline(self, pipeline_id: str) -> Pipeline:
        node = self.graph.node(pipeline_id)
        if not self._is_pipeline(node):
            raise WorkflowNotFoundError(pipeline_id)
        refs = tuple(str(s) for s in self.graph.ordered_objects(node, V.STEPS))
        return Pipeline(
            id=pipeline_id,
            step_refs=refs,
            title=self.graph.literal(node, *V.TITLE_PROPERTIES),
        )

    def list_pipelines(self) -> list[Pipeline]:
        return [self.parse_pipeline(str(node)) for node in self.graph.pipelines()]

    def _is_pipeline(self, node: Node) -> bool:
        return self.graph.is_a(node, V.PIPELINE) or self.graph.value(node, V.STEPS) is not None

    # =========================================================================
    # Steps
    # =========================================================================

    def _parse_steps(self, workflow_id: str, refs: list[str]) -> list[Step]:
        steps: list[Step] = []
        seen: dict[str, str] = {}
        for index, ref in enumerate(refs):
            node = self.graph.node(ref)
            if not self.graph.has_subject(node):
                raise UnresolvedReferenceError(ref, workflow_id)
            step = self.parse_step(node, index)
            if step.id in seen:
                raise MalformedStepError(step.id, f"duplicate step id (also declared by {seen[step.id]})")
            seen[step.id] = ref
            steps.append(step)

        for step in steps:
            for dep in step.depends_on:
                if dep not in seen:
                    raise UnresolvedReferenceError(dep, step.id)
        return steps

    def parse_step(self, node: Node, index: int = 0) -> Step:
        step_id = V.local_name(node)
        step_type = self._step_type(step_id, node)

        config: dict[str, Any] = {}
        for prop, key in V.STEP_PROPERTIES:
            if key in config:
                continue
            value = self.graph.literal(node, prop)
            if value is not None:
                config[key] = value

        timeout = self._timeout(step_id, config.pop("timeout", None))
        depends_on = self._dependencies(step_id, node)
        output_mapping = self._mapping(step_id, node, V.OUTPUT_MAPPING, "outputMapping")
        input_mapping = self._mapping(step_id, node, V.INPUT_MAPPING, "inputMapping")

        config = self.registry.get(step_type).validate_config(step_id, config)

        return Step(
            id=step_id,
            type=step_type,
            config=config,
            depends_on=depends_on,
            output_mapping=output_mapping,
            input_mapping=input_mapping,
            uri=str(node),
            title=self.graph.literal(node, *V.TITLE_PROPERTIES),
            timeout=timeout,
            index=index,
        )

    def _step_type(self, step_id: str, node: Node) -> str:
        kinds = sorted({k for k in (V.step_kind(t) for t in self.graph.types(node)) if k})
        if not kinds:
            raise MalformedStepError(step_id, "no step type declared")
        known = [k for k in kinds if k in self.registry]
        if not known:
            raise MalformedStepError(step_id, f"unrecognized step type '{kinds[0]}'")
        if len(known) > 1:
            raise MalformedStepError(step_id, f"ambiguous step types: {', '.join(known)}")
        return known[0]

    def _dependencies(self, step_id: str, node: Node) -> tuple[str, ...]:
        deps: list[str] = []
        for obj in self.graph.ordered_objects(node, V.DEPENDS_ON):
            dep = str(obj) if isinstance(obj, Literal) else V.local_name(obj)
            if dep == step_id:
                raise MalformedStepError(step_id, "step depends on itself")
            if dep not in deps:
                deps.append(dep)
        return tuple(deps)

    def _mapping(self, step_id: str, node: Node, prop: Node, name: str) -> dict[str, str]:
        raw = self.graph.literal(node, prop)
        if raw is None or raw == "":
            return {}
        try:
            mapping = json.loads(raw) if isinstance(raw, str) else raw
        except ValueError as e:
            raise MalformedStepError(step_id, f"{name} is not valid JSON: {e}") from e
        if not isinstance(mapping, dict) or not all(isinstance(v, str) for v in mapping.values()):
            raise MalformedStepError(step_id, f"{name} must be a JSON object of string paths")
        return {str(k): v for k, v in mapping.items()}

    @staticmethod
    def _timeout(step_id: str, raw: Any) -> float | None:
        if raw is None:
            return None
        try:
            timeout = float(raw)
        except (TypeError, ValueError):
            raise MalformedStepError(step_id, f"timeout must be a number, got {raw!r}") from None
        if timeout <= 0:
            raise MalformedStepError(step_id, "timeout must be positive")
        return timeout

    # =========================================================================
    # Hooks
    # =========================================================================

    def hook_ids(self) -> list[str]:
        return [str(node) for node in self.graph.hooks()]

    def parse_hook(self, hook_id: str) -> Hook:
        """Build a Hook; pipelines are referenced by id and parsed on demand.

        Raises:
            HookNotFoundError: id is not a gh:Hook
            MalformedHookError: missing/duplicate predicate or query text
        """
        node = self.graph.node(hook_id)
        if not self.graph.is_a(node, V.HOOK):
            raise HookNotFoundError(hook_id)

        predicates = self.graph.ordered_objects(node, V.HAS_PREDICATE)
        if not predicates:
            raise MalformedHookError(hook_id, "no predicate")
        if len(predicates) > 1:
            raise MalformedHookError(hook_id, "more than one predicate")

        return Hook(
            id=hook_id,
            predicate=self.parse_predicate(hook_id, predicates[0]),
            pipelines=tuple(str(p) for p in self.graph.ordered_objects(node, V.ORDERED_PIPELINES)),
            title=self.graph.literal(node, *V.TITLE_PROPERTIES),
            events=tuple(sorted(str(to_python(e)) for e in self.graph.ordered_objects(node, V.ON_EVENT))),
        )

    def parse_predicate(self, hook_id: str, node: Node) -> Predicate:
        query = self.graph.literal(node, V.QUERY_TEXT)
        if not query:
            raise MalformedHookError(hook_id, "predicate has no gh:queryText")

        kind = PredicateKind.ASK.value
        for type_ in self.graph.types(node):
            if type_ in PREDICATE_KINDS:
                kind = PREDICATE_KINDS[type_]
                break
            if str(type_).startswith(str(V.GH)):
                # Unknown kinds stay tagged; the evaluator reports them.
                kind = V.local_name(type_)

        threshold = self.graph.literal(node, V.THRESHOLD)
        operator = self.graph.literal(node, V.OPERATOR)
        try:
            threshold_value = float(threshold) if threshold is not None else 0.0
        except (TypeError, ValueError):
            raise MalformedHookError(hook_id, f"threshold must be numeric, got {threshold!r}") from None

        return Predicate(
            kind=kind,
            query=str(query),
            uri=str(node),
            threshold=threshold_value,
            operator=str(operator) if operator else ">",
        )
