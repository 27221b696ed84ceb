"""``template`` steps: render Jinja2 text and optionally write it to a file.

Config:
    template | text   inline template, or ``file://relative/path`` to load one
    path              template file (alternative to ``template``)
    filePath          where to write the rendered text (parents are created)

Outputs: ``{"content", "length"}`` plus ``{"path", "bytes"}`` when written.
"""

from __future__ import annotations

from typing import Any

from hookspine.core.errors import RenderError
from hookspine.orchestration.exceptions import FileOperationError
from hookspine.orchestration.handlers.base import StepContext, StepHandler
from hookspine.orchestration.step_types import Step, StepType

FILE_SCHEME = "file://"


class TemplateStepHandler(StepHandler):
    type = StepType.TEMPLATE.value
    interpolated_keys = ("filePath", "path")

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        self.require(step_id, config, "template", "text", "path")
        return config

    def _source(self, ctx: StepContext) -> str:
        template = ctx.config.get("template") or ctx.config.get("text")
        location = None
        if template is None:
            location = ctx.config["path"]
        elif template.startswith(FILE_SCHEME):
            location = template[len(FILE_SCHEME):]
        if location is None:
            return template
        path = ctx.resolve_path(location)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise RenderError(f"Cannot read template {path}: {e}", cause=e) from e

    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        content = ctx.renderer.render(self._source(ctx), ctx.variables)
        outputs: dict[str, Any] = {"content": content, "length": len(content)}

        file_path = ctx.config.get("filePath")
        if file_path:
            target = ctx.resolve_path(file_path)
            data = content.encode("utf-8")
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
            except OSError as e:
                raise FileOperationError("write", str(target), cause=e) from e
            outputs["path"] = str(target)
            outputs["bytes"] = len(data)
        return outputs
