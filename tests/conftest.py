"""
Shared pytest fixtures and configuration for hookspine tests.

This module provides:
- Turtle prefixes and a graph builder for inline hook/pipeline definitions
- Settings pointing at per-test temporary directories
- Executor/orchestrator factories wired to those settings
- Logging reset between tests (the CLI reconfigures structlog)

Usage:
    def test_something(make_graph, make_executor):
        graph = make_graph('ex:p a op:Pipeline ; op:steps ( ex:a ) .')
        executor = make_executor(graph)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import structlog

from hookspine.core.settings import HookSpineSettings
from hookspine.graph.knowledge_graph import KnowledgeGraph
from hookspine.orchestration.executor import WorkflowExecutor
from hookspine.orchestration.handlers import default_registry
from hookspine.orchestration.hook_orchestrator import HookOrchestrator

PREFIXES = """\
@prefix gh: <https://gitvan.dev/graph-hook#> .
@prefix gv: <https://gitvan.dev/ontology#> .
@prefix op: <https://gitvan.dev/op#> .
@prefix dct: <http://purl.org/dc/terms/> .
@prefix ex: <http://example.org/> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
"""

EX = "http://example.org/"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo any structlog configuration a test (or CLI invocation) applied."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Graph / engine fixtures
# =============================================================================


@pytest.fixture
def make_graph() -> Callable[[str], KnowledgeGraph]:
    """Build a KnowledgeGraph from Turtle statements (prefixes are prepended)."""

    def _make(body: str) -> KnowledgeGraph:
        graph = KnowledgeGraph()
        graph.load_turtle(PREFIXES + body, source="<test>")
        return graph

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> HookSpineSettings:
    return HookSpineSettings(
        graph_dir=tmp_path / "graph",
        hooks_dir=tmp_path / "hooks",
        reports_dir=tmp_path / "reports",
        cwd=tmp_path,
        run_timeout_seconds=30,
        step_timeout_seconds=10,
        max_concurrent_hooks=4,
    )


@pytest.fixture
def make_executor(settings: HookSpineSettings) -> Callable[..., WorkflowExecutor]:
    def _make(graph: KnowledgeGraph, **kwargs: Any) -> WorkflowExecutor:
        transport = kwargs.pop("http_transport", None)
        registry = kwargs.pop("registry", None) or default_registry(http_transport=transport)
        return WorkflowExecutor(graph, settings=kwargs.pop("settings", settings), registry=registry, **kwargs)

    return _make


@pytest.fixture
def make_orchestrator(settings: HookSpineSettings) -> Callable[..., HookOrchestrator]:
    def _make(graph: KnowledgeGraph | None = None, **kwargs: Any) -> HookOrchestrator:
        return HookOrchestrator(graph, settings=kwargs.pop("settings", settings), **kwargs)

    return _make


@pytest.fixture
def write_turtle(settings: HookSpineSettings) -> Callable[[str, str, str], Path]:
    """Write a Turtle file (prefixes prepended) into graph_dir or hooks_dir."""

    def _write(name: str, body: str, where: str = "hooks") -> Path:
        directory = settings.hooks_dir if where == "hooks" else settings.graph_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(PREFIXES + body, encoding="utf-8")
        return path

    return _write
