"""
CLI: ``hookspine hooks`` - inspect declared hooks.
"""

from __future__ import annotations

import typer

from hookspine.cli.utils import console, fail, make_orchestrator, output_dict, output_json, output_table
from hookspine.core.errors import HookSpineError

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_hooks(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List every gh:Hook in the graph."""
    try:
        hooks = make_orchestrator(ctx).list_hooks()
    except HookSpineError as e:
        fail(str(e))
    if json_out:
        output_json(hooks)
        return
    output_table(hooks, title="Hooks")


@app.command("validate")
def validate_hook(
    ctx: typer.Context,
    hook_id: str = typer.Argument(..., help="Hook IRI"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Parse a hook and validate its pipelines without running them."""
    try:
        report = make_orchestrator(ctx).validate_hook(hook_id)
    except HookSpineError as e:
        fail(str(e))

    if json_out:
        output_json(report)
    elif report["valid"]:
        console.print(f"[green]✓[/green] {hook_id} is valid")
        output_dict(
            {
                "predicate": report["predicate_kind"],
                "pipelines": len(report["pipelines"]),
                "steps": report["step_count"],
                "estimated_duration_ms": report["estimated_duration_ms"],
            }
        )
    if not report["valid"]:
        fail(report.get("error", "invalid hook"), code="INVALID")
