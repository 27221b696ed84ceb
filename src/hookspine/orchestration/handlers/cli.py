"""``cli`` steps: run one shell command and capture its output.

Config:
    command      shell command line
    workingDir   directory to run in (default: the base directory)

A non-zero exit status fails the step with ``CommandError``. The command is
bounded by the step timeout.
"""

from __future__ import annotations

import subprocess
from typing import Any

from hookspine.core.errors import TimeoutError
from hookspine.orchestration.exceptions import CommandError, FileOperationError
from hookspine.orchestration.handlers.base import StepContext, StepHandler
from hookspine.orchestration.step_types import Step, StepType


class CliStepHandler(StepHandler):
    type = StepType.CLI.value
    interpolated_keys = ("command", "workingDir")

    def validate_config(self, step_id: str, config: dict[str, Any]) -> dict[str, Any]:
        self.require(step_id, config, "command")
        return config

    def execute(self, step: Step, ctx: StepContext) -> dict[str, Any]:
        command = ctx.config["command"]
        cwd = ctx.resolve_path(ctx.config["workingDir"]) if ctx.config.get("workingDir") else ctx.base_dir

        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=ctx.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(
                f"Command timed out after {ctx.timeout}s: {command}", timeout_seconds=ctx.timeout, cause=e
            ) from e
        except OSError as e:
            raise FileOperationError("exec", str(cwd), cause=e) from e

        if completed.returncode != 0:
            raise CommandError(command, completed.returncode, completed.stderr)

        return {
            "command": command,
            "stdout": completed.stdout,
            "stderr": completed.stderr,
            "exitCode": completed.returncode,
        }
