"""``file`` steps: read, write or copy a file.

Config:
    filePath     target path (read source for ``read``)
    operation    read | write | copy (default read)
    content      text to write (``write``)
    sourcePath   file to copy from (``copy``)

Writes and copies create missing parent directories first.
"""

from __future__ import annotations

import shutil
from typing import Any

from hookspine.orchestration.exceptions import FileOperationError, MalformedStepError
from hookspine.orchestration.handlers.base import StepContext, StepHandler
from hookspine.orchestration.step_types import FileOperation, Step, StepType


class FileStepHandler(StepHandler):
    type = StepType.FILE.value
    interpolated_keys = ("filePath", "sourcePath", "content")

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        self.require(step_id, config, "filePath")
        operation = str(config.get("operation") or FileOperation.READ.value).lower()
        try:
            FileOperation(operation)
        except ValueError:
            allowed = ", ".join(op.value for op in FileOperation)
            raise MalformedStepError(step_id, f"unknown file operation '{operation}' (expected {allowed})") from None
        if operation == FileOperation.WRITE and "content" not in config:
            raise MalformedStepError(step_id, "write operation requires content")
        if operation == FileOperation.COPY:
            self.require(step_id, config, "sourcePath")
        config["operation"] = operation
        return config

    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        operation = FileOperation(ctx.config["operation"])
        path = ctx.resolve_path(ctx.config["filePath"])

        try:
            if operation == FileOperation.READ:
                content = path.read_text(encoding="utf-8")
                return {
                    "operation": operation.value,
                    "path": str(path),
                    "content": content,
                    "bytes": len(content.encode("utf-8")),
                }

            path.parent.mkdir(parents=True, exist_ok=True)
            if operation == FileOperation.WRITE:
                data = str(ctx.config.get("content", "")).encode("utf-8")
                path.write_bytes(data)
                return {"operation": operation.value, "path": str(path), "bytes": len(data)}

            source = ctx.resolve_path(ctx.config["sourcePath"])
            shutil.copyfile(source, path)
            return {
                "operation": operation.value,
                "path": str(path),
                "sourcePath": str(source),
                "bytes": path.stat().st_size,
            }
        except OSError as e:
            raise FileOperationError(operation.value, str(path), cause=e) from e
