"""
Root Typer application for the hookspine CLI.

Global options build the HookSpineSettings shared by every sub-command and
configure logging (stderr, so ``--json`` output on stdout stays parseable).
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from typer import Typer

from hookspine.cli.utils import console, err_console, fail, make_orchestrator, output_json, output_table
from hookspine.core.logging import configure_logging
from hookspine.core.settings import HookSpineSettings
from hookspine.orchestration.hook_orchestrator import EvaluationOptions
from hookspine.orchestration.models import GitEvent

app = Typer(
    name="hookspine",
    help="hookspine: knowledge hooks and workflows for Git repositories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from hookspine import __version__

        typer.echo(f"hookspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    graph_dir: Path | None = typer.Option(None, "--graph-dir", help="Directory of repository fact Turtle files."),
    hooks_dir: Path | None = typer.Option(None, "--hooks-dir", help="Directory of hook/pipeline Turtle files."),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """hookspine CLI: evaluate hooks, inspect and run workflows."""
    overrides = {
        key: value
        for key, value in {"graph_dir": graph_dir, "hooks_dir": hooks_dir, "log_level": log_level}.items()
        if value is not None
    }
    try:
        settings = HookSpineSettings(**overrides)
    except ValidationError as e:
        err_console.print(f"[bold red]Invalid configuration[/bold red]\n{e}")
        raise typer.Exit(code=2) from e

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    ctx.obj = settings


# ── evaluate ─────────────────────────────────────────────────────────────


@app.command("evaluate")
def evaluate(
    ctx: typer.Context,
    event: GitEvent | None = typer.Option(None, "--event", "-e", help="Git lifecycle event of this pass."),
    changed: list[str] = typer.Option(None, "--changed", "-c", help="Changed path (repeatable)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Evaluate predicates, validate instead of run."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Evaluate every hook and run the pipelines of those that fire."""
    options = EvaluationOptions(
        event=event.value if event else None,
        changed_paths=list(changed or []),
        dry_run=dry_run,
    )
    result = make_orchestrator(ctx).evaluate(options)

    if json_out:
        output_json(result.to_dict())
    else:
        rows = [
            {
                "hook": o.hook_id,
                "triggered": "skipped" if o.skipped else ("yes" if o.triggered else "no"),
                "workflows": f"{o.workflows_successful}/{o.workflows_executed}",
                "error": result.errors.get(o.hook_id),
            }
            for o in result.outcomes
        ]
        output_table(rows, title="Hook evaluation")
        console.print(
            f"{result.hooks_triggered}/{result.hooks_evaluated} hooks triggered, "
            f"{result.workflows_successful}/{result.workflows_executed} workflows succeeded "
            f"in {result.evaluation_time_ms:.0f} ms"
        )

    if not result.success:
        fail(str(result.error), code="DISCOVERY")
    if result.errors:
        raise typer.Exit(code=1)


# ── Sub-command registration ─────────────────────────────────────────────

from hookspine.cli.hooks import app as hooks_app  # noqa: E402
from hookspine.cli.workflow import app as wf_app  # noqa: E402

app.add_typer(hooks_app, name="hooks", help="Hook inspection.")
app.add_typer(wf_app, name="workflow", help="Workflow management.")
