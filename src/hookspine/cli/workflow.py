"""
CLI: ``hookspine workflow`` - list, validate and run pipelines.
"""

from __future__ import annotations

import typer

from hookspine.cli.utils import (
    console,
    fail,
    make_executor,
    output_dict,
    output_json,
    output_table,
    parse_inputs,
)
from hookspine.orchestration.exceptions import WorkflowDefinitionError

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_workflows(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List all pipelines declared in the graph."""
    workflows = make_executor(ctx).list_workflows()
    if json_out:
        output_json(workflows)
        return
    output_table(workflows, title="Workflows")


@app.command("validate")
def validate_workflow(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Pipeline or hook IRI"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Parse and plan a workflow without running any step."""
    report = make_executor(ctx).validate_workflow(workflow_id)
    if json_out:
        output_json(report.to_dict())
    elif report.valid:
        console.print(f"[green]✓[/green] {workflow_id} is valid")
        output_dict(
            {
                "order": " → ".join(report.order),
                "steps": report.step_count,
                "estimated_duration_ms": report.estimated_duration_ms,
            }
        )
    if not report.valid:
        fail(str(report.error), code="INVALID")


@app.command("run")
def run_workflow(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Pipeline or hook IRI"),
    inputs: list[str] = typer.Option(None, "--input", "-i", help="Run input as key=value"),
    timeout: float | None = typer.Option(None, "--timeout", help="Run timeout in seconds"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Execute a workflow now."""
    executor = make_executor(ctx)
    try:
        result = executor.execute(workflow_id, parse_inputs(inputs), timeout=timeout)
    except WorkflowDefinitionError as e:
        fail(str(e), code="INVALID")

    if json_out:
        output_json(result.to_dict())
    else:
        rows = [
            {
                "step": s.step_id,
                "type": s.step_type,
                "status": "ok" if s.success else "failed",
                "duration_ms": round(s.duration_ms, 1),
                "error": s.error_message,
            }
            for s in result.steps
        ]
        output_table(rows, title=f"Run {result.execution_id[:8]}")
        console.print(
            f"{result.state.value}: {result.step_count}/{result.plan_length} steps "
            f"in {result.duration_ms:.0f} ms"
        )

    if not result.success:
        fail(str(result.error), code=type(result.error).__name__)
