"""Step Types: the parsed, immutable description of one unit of work.

Manifesto:
    A Pipeline is a list of Steps, and steps come in different kinds:
    ``sparql`` (query the graph), ``template`` (render text), ``file``
    (read/write/copy), ``http`` (issue a request) and ``cli`` (run a shell
    command). The kind is a plain string so new kinds can be registered
    with the StepRunner without touching the parser or the dispatcher.

    JSON-encoded literals (``outputMapping``, ``inputMapping``, ``headers``,
    ``bindings``) are decoded once at parse time; a Step never re-parses
    its own configuration.

ARCHITECTURE
────────────
::

    Step
      ├── id              ── last IRI segment, unique within a workflow
      ├── type            ── "sparql" | "template" | "file" | "http" | "cli" | ...
      ├── config          ── decoded type-specific literals
      ├── depends_on      ── step ids that must run first
      ├── output_mapping  ── {target: "dotted.source.path"} exported to the context
      └── input_mapping   ── {name: "dotted.context.path"} extra names for this step

    StepType       ── built-in kinds
    FileOperation  ── read | write | copy

Tags:
    hookspine, orchestration, step-types
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepType(str, Enum):
    """Built-in step kinds (the registry accepts others)."""

    SPARQL = "sparql"
    TEMPLATE = "template"
    FILE = "file"
    HTTP = "http"
    CLI = "cli"


class FileOperation(str, Enum):
    """Operations supported by ``file`` steps."""

    READ = "read"
    WRITE = "write"
    COPY = "copy"


@dataclass(frozen=True)
class Step:
    """
    One step of a workflow, created at parse time and executed at most once per run.

    Attributes:
        id: Step identifier (unique within its workflow)
        type: Step kind, used to look up the handler
        config: Decoded type-specific configuration
        depends_on: Ids of steps that must complete before this one
        output_mapping: Target key -> dotted path into this step's outputs
        input_mapping: Local name -> dotted path into the merged context
        uri: IRI of the step resource in the graph
        title: Optional human title
        timeout: Per-step timeout in seconds (None = settings default)
        index: Declaration order within the workflow
    """

    id: str
    type: str
    config: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    output_mapping: dict[str, str] = field(default_factory=dict)
    input_mapping: dict[str, str] = field(default_factory=dict)
    uri: str | None = None
    title: str | None = None
    timeout: float | None = None
    index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "uri": self.uri,
            "title": self.title,
            "depends_on": list(self.depends_on),
            "output_mapping": dict(self.output_mapping),
            "input_mapping": dict(self.input_mapping),
            "timeout": self.timeout,
            "config": dict(self.config),
        }

    def __repr__(self) -> str:
        deps = f", depends_on={list(self.depends_on)}" if self.depends_on else ""
        return f"Step({self.id!r}, type={self.type!r}{deps})"
