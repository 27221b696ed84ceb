"""Runtime settings for hookspine.

Configuration is explicit, validated, and environment-driven: every field can
be set through a ``HOOKSPINE_``-prefixed environment variable or a ``.env``
file. Invalid values fail at construction with a pydantic ``ValidationError``
rather than surfacing mid-evaluation.

Examples:
    >>> from hookspine.core.settings import HookSpineSettings
    >>> settings = HookSpineSettings(run_timeout_seconds=60)
    >>> settings.step_timeout_seconds
    30.0

Tags:
    settings, configuration, pydantic, environment, hookspine
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HookSpineSettings(BaseSettings):
    """Settings shared by the CLI, the orchestrator and the executor.

    Fields
    ──────
    graph_dir            : Directory of Turtle files describing repository facts
    hooks_dir            : Directory of Turtle files declaring hooks/pipelines/steps
    reports_dir          : Where receipts are written
    cwd                  : Base directory for relative step paths and commands
    run_timeout_seconds  : Upper bound for one workflow run
    step_timeout_seconds : Default bound for one http/cli step
    max_concurrent_hooks : Hooks evaluated in parallel within one pass
    write_receipts       : Persist ExecutionResult/EvaluationResult as JSON
    log_level            : Structlog log level
    log_json             : Force JSON (True) / console (False) logs, None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="HOOKSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Sources ──────────────────────────────────────────────────
    graph_dir: Path = Path("graph")
    hooks_dir: Path = Path("hooks")
    reports_dir: Path = Path("reports")
    cwd: Path = Field(default_factory=Path.cwd)

    # ── Execution ────────────────────────────────────────────────
    run_timeout_seconds: float = Field(default=300.0, gt=0)
    step_timeout_seconds: float = Field(default=30.0, gt=0)
    max_concurrent_hooks: int = Field(default=4, ge=1)

    # ── Receipts ─────────────────────────────────────────────────
    write_receipts: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
