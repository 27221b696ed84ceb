"""``sparql`` steps: run ASK/SELECT/CONSTRUCT against the knowledge graph.

Config:
    query | text   inline query text
    path           file holding the query (relative to the base directory)
    bindings       JSON object ``{"variable": "dotted.context.path"}``; values
                   are bound through the SPARQL engine, never spliced into text

Outputs mirror ``QueryResult.to_dict()``::

    {"type": "ask", "boolean": true}
    {"type": "select", "variables": [...], "results": [...], "count": 2}
    {"type": "construct", "count": 12}
"""

from __future__ import annotations

from typing import Any

from hookspine.core.errors import QueryError
from hookspine.orchestration.handlers.base import StepContext, StepHandler
from hookspine.orchestration.step_types import Step, StepType
from hookspine.orchestration.workflow_context import resolve_path


class SparqlStepHandler(StepHandler):
    type = StepType.SPARQL.value
    interpolated_keys = ("path",)

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        self.require(step_id, config, "query", "text", "path")
        self.decode_json(step_id, config, "bindings", dict)
        return config

    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        query = ctx.config.get("query") or ctx.config.get("text")
        if not query:
            path = ctx.resolve_path(ctx.config["path"])
            try:
                query = path.read_text(encoding="utf-8")
            except OSError as e:
                raise QueryError(f"Cannot read query file {path}: {e}", cause=e) from e

        bindings = {}
        for variable, source in (ctx.config.get("bindings") or {}).items():
            value = resolve_path(ctx.variables, source)
            if value is None:
                raise QueryError(f"Binding ?{variable} refers to missing context value '{source}'")
            bindings[variable] = value

        return ctx.graph.query(query, bindings).to_dict()
