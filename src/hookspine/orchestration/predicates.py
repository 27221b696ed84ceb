"""
Predicate Evaluator - decides whether a hook fires.

Predicates are kind-tagged; evaluation dispatches through a registry of
evaluator callables, so adding a kind means registering one function:

    evaluator = PredicateEvaluator(graph)
    evaluator.register("alwaysTrue", lambda ev, p: (True, {}))

Built-in kinds:

    ask              SPARQL ASK; the answer is the result
    selectThreshold  first numeric value of the first SELECT row, compared
                     with ``threshold`` using ``operator``
    resultDelta      sha256 of the canonical JSON result, compared against the
                     same query on ``previous_graph`` (no previous graph means
                     changed)

Evaluation never mutates the graph. Every failure is raised as
PredicateError so the orchestrator can record it against the hook.
"""

from __future__ import annotations

import hashlib
import json
import operator as op
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from hookspine.core.logging import get_logger
from hookspine.graph.knowledge_graph import KnowledgeGraph, QueryResult
from hookspine.orchestration.exceptions import PredicateError
from hookspine.orchestration.models import Predicate, PredicateKind

logger = get_logger(__name__)

COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ">": op.gt,
    ">=": op.ge,
    "<": op.lt,
    "<=": op.le,
    "==": op.eq,
    "!=": op.ne,
}

# (triggered, context)
Evaluation = tuple[bool, dict[str, Any]]
EvaluatorFn = Callable[["PredicateEvaluator", Predicate], Evaluation]


@dataclass
class PredicateOutcome:
    """Result of evaluating one predicate."""

    triggered: bool
    kind: str
    context: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggered": self.triggered,
            "kind": self.kind,
            "context": self.context,
            "duration_ms": round(self.duration_ms, 3),
        }


def result_hash(result: QueryResult) -> str:
    """sha256 of the canonical JSON form of a query result."""
    canonical = json.dumps(result.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PredicateEvaluator:
    """Evaluates predicates against the current (and optionally previous) graph."""

    def __init__(self, graph: KnowledgeGraph, previous_graph: KnowledgeGraph | None = None):
        self.graph = graph
        self.previous_graph = previous_graph
        self._evaluators: dict[str, EvaluatorFn] = {
            PredicateKind.ASK.value: _evaluate_ask,
            PredicateKind.SELECT_THRESHOLD.value: _evaluate_select_threshold,
            PredicateKind.RESULT_DELTA.value: _evaluate_result_delta,
        }

    def register(self, kind: str, evaluator: EvaluatorFn, *, replace: bool = False) -> None:
        if kind in self._evaluators and not replace:
            raise ValueError(f"Predicate kind '{kind}' already registered")
        self._evaluators[kind] = evaluator

    @property
    def kinds(self) -> list[str]:
        return sorted(self._evaluators)

    def evaluate(self, predicate: Predicate, *, hook_id: str | None = None) -> PredicateOutcome:
        """
        Evaluate one predicate.

        Raises:
            PredicateError: unknown kind, malformed query or a result the kind
                cannot reduce to a boolean
        """
        kind = str(predicate.kind.value if isinstance(predicate.kind, PredicateKind) else predicate.kind)
        evaluator = self._evaluators.get(kind)
        if evaluator is None:
            raise PredicateError(
                f"Unknown predicate kind '{kind}' (registered: {', '.join(self.kinds)})",
                hook_id=hook_id,
            )

        started = time.perf_counter()
        try:
            triggered, context = evaluator(self, predicate)
        except PredicateError as e:
            if e.hook_id is None:
                e.hook_id = hook_id
                e.context.hook = hook_id
            raise
        except Exception as e:
            raise PredicateError(
                f"Predicate '{kind}' failed: {e}", hook_id=hook_id, cause=e
            ) from e

        duration_ms = (time.perf_counter() - started) * 1000
        logger.debug("predicate.evaluated", hook=hook_id, kind=kind, triggered=triggered)
        return PredicateOutcome(
            triggered=bool(triggered), kind=kind, context=context, duration_ms=duration_ms
        )


# =============================================================================
# Built-in evaluators
# =============================================================================


def _evaluate_ask(evaluator: PredicateEvaluator, predicate: Predicate) -> Evaluation:
    result = evaluator.graph.query(predicate.query)
    if result.kind != "ask":
        raise PredicateError(f"ASK predicate expected an ASK query, got {result.kind.upper()}")
    return bool(result.boolean), {"kind": "ask", "boolean": bool(result.boolean)}


def _evaluate_select_threshold(evaluator: PredicateEvaluator, predicate: Predicate) -> Evaluation:
    compare = COMPARATORS.get(predicate.operator)
    if compare is None:
        raise PredicateError(
            f"Unsupported operator '{predicate.operator}' (expected one of {' '.join(COMPARATORS)})"
        )

    result = evaluator.graph.query(predicate.query)
    if result.kind != "select":
        raise PredicateError(f"selectThreshold predicate expected a SELECT query, got {result.kind.upper()}")

    # No rows, unbound or non-numeric values count as 0.
    raw = result.first_value()
    try:
        value = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        logger.debug("predicate.non_numeric_value", value=repr(raw))
        value = 0.0

    triggered = compare(value, predicate.threshold)
    return triggered, {
        "kind": "selectThreshold",
        "value": value,
        "threshold": predicate.threshold,
        "operator": predicate.operator,
        "count": result.count,
    }


def _evaluate_result_delta(evaluator: PredicateEvaluator, predicate: Predicate) -> Evaluation:
    current = result_hash(evaluator.graph.query(predicate.query))
    previous = None
    if evaluator.previous_graph is not None:
        previous = result_hash(evaluator.previous_graph.query(predicate.query))

    changed = previous is None or previous != current
    return changed, {
        "kind": "resultDelta",
        "current_hash": current,
        "previous_hash": previous,
        "changed": changed,
    }
