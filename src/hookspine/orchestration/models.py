"""Hook, Predicate, Pipeline, Workflow and ExecutionPlan models.

All models are immutable: they are built from the graph at the start of an
evaluation pass (or ``execute()`` call) and discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from hookspine.orchestration.step_types import Step


class PredicateKind(str, Enum):
    """Kind tag of a hook predicate."""

    ASK = "ask"
    SELECT_THRESHOLD = "selectThreshold"
    RESULT_DELTA = "resultDelta"


class GitEvent(str, Enum):
    """Git lifecycle points at which an evaluation pass can be triggered."""

    PRE_COMMIT = "pre-commit"
    POST_COMMIT = "post-commit"
    PRE_PUSH = "pre-push"
    POST_MERGE = "post-merge"
    POST_CHECKOUT = "post-checkout"
    PRE_RECEIVE = "pre-receive"
    POST_RECEIVE = "post-receive"
    PRE_REBASE = "pre-rebase"
    POST_REWRITE = "post-rewrite"


@dataclass(frozen=True)
class Predicate:
    """A boolean (or boolean-reducible) test over the knowledge graph."""

    kind: str
    query: str
    uri: str | None = None
    threshold: float = 0.0
    operator: str = ">"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind, "uri": self.uri, "query": self.query}
        if self.kind == PredicateKind.SELECT_THRESHOLD:
            result["threshold"] = self.threshold
            result["operator"] = self.operator
        return result


@dataclass(frozen=True)
class Hook:
    """A named trigger pairing one predicate with ordered pipelines."""

    id: str
    predicate: Predicate
    pipelines: tuple[str, ...] = ()
    title: str | None = None
    events: tuple[str, ...] = ()

    def listens_to(self, event: str | None) -> bool:
        """Hooks without declared events listen to every event."""
        if event is None or not self.events:
            return True
        return event in self.events

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "predicate": self.predicate.to_dict(),
            "pipelines": list(self.pipelines),
            "events": list(self.events),
        }


@dataclass(frozen=True)
class Pipeline:
    """An ordered group of step references as declared in the graph."""

    id: str
    step_refs: tuple[str, ...]
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "steps": list(self.step_refs)}


@dataclass(frozen=True)
class Workflow:
    """A parsed pipeline (or hook) ready to plan and run."""

    id: str
    steps: tuple[Step, ...]
    title: str | None = None
    source: str = "pipeline"  # "pipeline" | "hook"

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def get_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"Workflow({self.id!r}, steps={self.step_ids})"


@dataclass(frozen=True)
class ExecutionPlan:
    """Dependency-resolved step order for one run."""

    workflow_id: str
    steps: tuple[Step, ...]
    dependencies: dict[str, list[str]] = field(default_factory=dict)

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"ExecutionPlan({self.workflow_id!r}, order={self.step_ids})"
