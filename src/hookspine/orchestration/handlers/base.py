"""Step handler protocol and the per-process handler registry.

Each step kind has exactly one handler. The parser asks the registry
whether a kind exists and lets the handler validate and decode its config;
the StepRunner asks the registry for the handler to execute. Adding a kind
means registering a handler, nothing else.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from hookspine.core.logging import get_logger
from hookspine.orchestration.exceptions import MalformedStepError

if TYPE_CHECKING:
    from hookspine.graph.knowledge_graph import KnowledgeGraph
    from hookspine.orchestration.rendering import TemplateRenderer
    from hookspine.orchestration.step_types import Step

logger = get_logger(__name__)


@dataclass
class StepContext:
    """Everything a handler may use while executing one step.

    Attributes:
        graph: Knowledge graph (read-only)
        config: Step config with interpolated string values
        variables: Merged context view plus this step's input mapping
        base_dir: Directory relative paths resolve against
        timeout: Seconds this step may block (already clipped to the run deadline)
        renderer: Shared Jinja2 renderer
    """

    graph: KnowledgeGraph
    config: dict[str, Any]
    variables: dict[str, Any]
    base_dir: Path
    timeout: float
    renderer: TemplateRenderer

    def resolve_path(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.base_dir / candidate


class StepHandler(ABC):
    """Executes one step kind.

    Class attributes:
        type: Kind name the handler is registered under
        interpolated_keys: Config keys rendered against the context before execute()
    """

    type: str = ""
    interpolated_keys: tuple[str, ...] = ()

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        """Check and decode raw config at parse time.

        Returns the config to store on the Step. Raises MalformedStepError.
        """
        return config

    @abstractmethod
    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        """Run the step and return its outputs; raise a typed error on failure."""

    # ── helpers for subclasses ───────────────────────────────────

    @staticmethod
    def require(step_id: str, config: Mapping[str, Any], *keys: str) -> None:
        """Require at least one of ``keys`` to be present and non-empty."""
        if not any(config.get(k) not in (None, "") for k in keys):
            names = " or ".join(keys)
            raise MalformedStepError(step_id, f"missing required config: {names}")

    @staticmethod
    def decode_json(
        step_id: str,
        config: dict[str, Any],
        key: str,
        expected: type | tuple[type, ...],
    ) -> None:
        """Decode a JSON-encoded literal in place, checking its shape."""
        raw = config.get(key)
        if raw is None or isinstance(raw, expected):
            return
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedStepError(step_id, f"{key} is not valid JSON: {e}") from e
        if not isinstance(value, expected):
            raise MalformedStepError(step_id, f"{key} must decode to {_shape(expected)}")
        config[key] = value


def _shape(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


class StepHandlerRegistry:
    """Handlers keyed by step kind. One instance per runner, no global state."""

    def __init__(self, handlers: list[StepHandler] | None = None):
        self._handlers: dict[str, StepHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: StepHandler, *, replace: bool = False) -> StepHandler:
        if not handler.type:
            raise ValueError(f"{type(handler).__name__} has no step type")
        if handler.type in self._handlers and not replace:
            raise ValueError(f"Step type '{handler.type}' is already registered")
        self._handlers[handler.type] = handler
        logger.debug("step_handler.registered", type=handler.type, cls=type(handler).__name__)
        return handler

    def get(self, step_type: str) -> StepHandler:
        if step_type not in self._handlers:
            available = ", ".join(sorted(self._handlers))
            raise KeyError(f"Step type '{step_type}' not registered. Available: {available}")
        return self._handlers[step_type]

    def has(self, step_type: str) -> bool:
        return step_type in self._handlers

    def types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._handlers

