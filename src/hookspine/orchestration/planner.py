"""
DAG Planner - Orders a workflow's steps by their dependencies.

1. Validate every ``depends_on`` id exists in the step set
2. Stable topological sort (Kahn's algorithm): among the steps whose
   dependencies are all placed, always take the one declared first
3. If the sort stalls, locate the cycle and fail with CycleDetectedError

Design Principles:
- Pure: no graph access, no execution, no mutable state between calls
- Deterministic: the same step list always yields the same order,
  independent of dict/set iteration order
- Advisory estimates only: ``estimate_duration`` never drives scheduling
"""

from __future__ import annotations

import heapq
from collections import defaultdict
from typing import Sequence

from hookspine.core.logging import get_logger
from hookspine.orchestration.exceptions import (
    CycleDetectedError,
    MalformedStepError,
    UnresolvedReferenceError,
)
from hookspine.orchestration.models import ExecutionPlan, Workflow
from hookspine.orchestration.step_types import Step

logger = get_logger(__name__)

# Per-step constant used for advisory duration estimates.
DEFAULT_STEP_ESTIMATE_MS = 1000


class DAGPlanner:
    """
    Converts a step set into an ExecutionPlan.

    Thread-safe: No mutable state, each create_plan() call is independent.

    Example:
        planner = DAGPlanner()
        plan = planner.create_plan(workflow)
        plan.step_ids          # dependencies first, declaration order otherwise
    """

    def __init__(self, step_estimate_ms: int = DEFAULT_STEP_ESTIMATE_MS):
        self.step_estimate_ms = step_estimate_ms

    def create_plan(self, steps: Workflow | Sequence[Step], workflow_id: str | None = None) -> ExecutionPlan:
        """
        Build a dependency-resolved plan.

        Args:
            steps: A Workflow, or steps in declaration order
            workflow_id: Id recorded on the plan (defaults to the workflow's id)

        Raises:
            UnresolvedReferenceError: a step depends on an id outside the set
            CycleDetectedError: the dependencies contain a cycle
        """
        if isinstance(steps, Workflow):
            workflow_id = workflow_id or steps.id
            steps = steps.steps
        steps = list(steps)

        self._validate_dependencies(steps)
        ordered = self._topological_sort(steps)

        plan = ExecutionPlan(
            workflow_id=workflow_id or "",
            steps=tuple(ordered),
            dependencies={s.id: list(s.depends_on) for s in ordered},
        )
        logger.debug("planner.plan_created", workflow=plan.workflow_id, order=plan.step_ids)
        return plan

    def _validate_dependencies(self, steps: list[Step]) -> None:
        """Validate step ids are unique and all dependencies reference steps in the set."""
        ids: set[str] = set()
        for step in steps:
            if step.id in ids:
                raise MalformedStepError(step.id, "duplicate step id")
            ids.add(step.id)
        for step in steps:
            for dep in step.depends_on:
                if dep not in ids:
                    raise UnresolvedReferenceError(dep, step.id)

    def _topological_sort(self, steps: list[Step]) -> list[Step]:
        """
        Kahn's algorithm with a min-heap keyed by declaration position.

        Picking the lowest declaration position among ready steps keeps
        independent steps in the order they were declared.
        """
        position = {s.id: i for i, s in enumerate(steps)}
        dependents: dict[str, list[str]] = defaultdict(list)
        in_degree: dict[str, int] = {s.id: 0 for s in steps}

        for step in steps:
            for dep in step.depends_on:
                dependents[dep].append(step.id)
                in_degree[step.id] += 1

        ready = [position[s.id] for s in steps if in_degree[s.id] == 0]
        heapq.heapify(ready)
        result: list[Step] = []

        while ready:
            step = steps[heapq.heappop(ready)]
            result.append(step)
            for dependent in dependents[step.id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(result) != len(steps):
            placed = {s.id for s in result}
            remaining = [s for s in steps if s.id not in placed]
            raise CycleDetectedError(self._find_cycle(remaining))

        return result

    @staticmethod
    def _find_cycle(steps: list[Step]) -> list[str]:
        """
        Locate one cycle among steps left over by the sort.

        Uses an iterative depth-first search with three-color marking:
        - WHITE (0): Unvisited
        - GRAY (1): On the current path
        - BLACK (2): Finished

        Reaching a GRAY node closes a cycle.
        """
        WHITE, GRAY, BLACK = 0, 1, 2

        graph = {s.id: list(s.depends_on) for s in steps}
        color = {s.id: WHITE for s in steps}

        for step in steps:
            if color[step.id] != WHITE:
                continue
            color[step.id] = GRAY
            path = [step.id]
            stack = [(step.id, iter(graph[step.id]))]
            while stack:
                node, neighbors = stack[-1]
                for neighbor in neighbors:
                    if neighbor not in color:
                        continue
                    if color[neighbor] == GRAY:
                        return path[path.index(neighbor):] + [neighbor]
                    if color[neighbor] == WHITE:
                        color[neighbor] = GRAY
                        path.append(neighbor)
                        stack.append((neighbor, iter(graph[neighbor])))
                        break
                else:
                    color[node] = BLACK
                    path.pop()
                    stack.pop()
        # Kahn stalled, so a cycle exists; fall back to naming every leftover step.
        return [s.id for s in steps]

    # =========================================================================
    # Validate-path helpers
    # =========================================================================

    @staticmethod
    def extract_dependencies(plan: ExecutionPlan) -> dict[str, list[str]]:
        """Step id -> depends_on, in plan order."""
        return {s.id: list(s.depends_on) for s in plan.steps}

    def estimate_duration(self, plan: ExecutionPlan) -> int:
        """Advisory duration in milliseconds (per-step constant x plan length)."""
        return self.step_estimate_ms * len(plan)
