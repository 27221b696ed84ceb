"""Jinja2 rendering for template steps and step-config interpolation.

Templates see the merged execution-context view as their variables. The
environment uses ``StrictUndefined`` so a reference to a missing variable
fails the step with ``RenderError`` instead of silently rendering an empty
string.

Example::

    renderer = TemplateRenderer()
    renderer.render("Hello {{ user.name }}", {"user": {"name": "ada"}})
    # 'Hello ada'
"""

from __future__ import annotations

from typing import Any, Mapping

from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError

from hookspine.core.errors import RenderError


class TemplateRenderer:
    """Owns one Jinja2 environment; safe to share across concurrent runs."""

    def __init__(self, extra_filters: Mapping[str, Any] | None = None):
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(extra_filters or {})

    def render(self, source: str, variables: Mapping[str, Any]) -> str:
        """Render ``source`` with ``variables``.

        Raises:
            RenderError: On a syntax error or an unresolved variable.
        """
        try:
            return self.env.from_string(source).render(dict(variables))
        except UndefinedError as e:
            raise RenderError(f"Unresolved template variable: {e.message}", cause=e) from e
        except TemplateError as e:
            raise RenderError(f"Template error: {e}", cause=e) from e

    def interpolate(self, value: Any, variables: Mapping[str, Any]) -> Any:
        """Render string values (recursing into dicts and lists); other values pass through."""
        if isinstance(value, str):
            if "{{" not in value and "{%" not in value:
                return value
            return self.render(value, variables)
        if isinstance(value, dict):
            return {k: self.interpolate(v, variables) for k, v in value.items()}
        if isinstance(value, list):
            return [self.interpolate(v, variables) for v in value]
        return value
