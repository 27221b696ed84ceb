"""Step handlers, one per step kind, and the registry that dispatches to them."""

from __future__ import annotations

import httpx

from hookspine.orchestration.handlers.base import StepContext, StepHandler, StepHandlerRegistry
from hookspine.orchestration.handlers.cli import CliStepHandler
from hookspine.orchestration.handlers.file import FileStepHandler
from hookspine.orchestration.handlers.http import HttpStepHandler
from hookspine.orchestration.handlers.sparql import SparqlStepHandler
from hookspine.orchestration.handlers.template import TemplateStepHandler


def default_registry(http_transport: httpx.BaseTransport | None = None) -> StepHandlerRegistry:
    """A fresh registry with the built-in kinds: sparql, template, file, http, cli."""
    return StepHandlerRegistry(
        [
            SparqlStepHandler(),
            TemplateStepHandler(),
            FileStepHandler(),
            HttpStepHandler(transport=http_transport),
            CliStepHandler(),
        ]
    )


__all__ = [
    "StepContext",
    "StepHandler",
    "StepHandlerRegistry",
    "default_registry",
    "SparqlStepHandler",
    "TemplateStepHandler",
    "FileStepHandler",
    "HttpStepHandler",
    "CliStepHandler",
]
