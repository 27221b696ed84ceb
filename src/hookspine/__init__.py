"""
hookspine - knowledge-hook evaluation and workflow execution engine.

Hooks, pipelines and steps are declared as RDF (Turtle). At a Git lifecycle
event, hookspine evaluates each hook's predicate against a knowledge graph
and runs the pipelines of every hook that fires.

- hookspine.core:          errors, logging, settings
- hookspine.graph:         rdflib-backed knowledge graph and vocabulary
- hookspine.orchestration: parser, planner, context, step runner, executor, orchestrator
- hookspine.cli:           typer command line
"""

__version__ = "0.4.0"
