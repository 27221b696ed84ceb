"""
CLI utility helpers: settings, engine construction and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hookspine.core.errors import HookSpineError
from hookspine.core.settings import HookSpineSettings
from hookspine.orchestration.executor import WorkflowExecutor
from hookspine.orchestration.hook_orchestrator import HookOrchestrator

console = Console()
err_console = Console(stderr=True)


# ── Engine helpers ───────────────────────────────────────────────────────


def get_settings(ctx: typer.Context) -> HookSpineSettings:
    """Settings built by the root callback (or defaults when a sub-app runs alone)."""
    root = ctx.find_root()
    if isinstance(root.obj, HookSpineSettings):
        return root.obj
    return HookSpineSettings()


def make_orchestrator(ctx: typer.Context) -> HookOrchestrator:
    return HookOrchestrator(settings=get_settings(ctx))


def make_executor(ctx: typer.Context) -> WorkflowExecutor:
    """Executor over the loaded graph; a graph that fails to load exits with code 1."""
    orchestrator = make_orchestrator(ctx)
    try:
        return orchestrator.executor
    except HookSpineError as e:
        fail(str(e))


def parse_inputs(pairs: list[str] | None) -> dict[str, Any]:
    """``key=value`` pairs; values that parse as JSON are decoded."""
    inputs: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--input")
        try:
            inputs[key] = json.loads(raw)
        except ValueError:
            inputs[key] = raw
    return inputs


def fail(message: str, code: str = "ERROR") -> None:
    err_console.print(f"[bold red]Error[/bold red] ({code}): {escape(message)}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def output_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def output_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    columns: list[str] = []
    for item in items:
        for key in item:
            if key not in columns:
                columns.append(key)
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*("" if item.get(c) is None else escape(str(item.get(c))) for c in columns))
    console.print(table)


def output_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}")
