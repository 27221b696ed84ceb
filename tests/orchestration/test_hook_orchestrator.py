"""Tests for HookOrchestrator: discovery, per-hook isolation, event filter and dry runs."""

from __future__ import annotations

import json
import threading

import pytest

from hookspine.core.errors import GraphLoadError
from hookspine.orchestration.exceptions import (
    CancelledError,
    HookDiscoveryError,
    HookNotFoundError,
    MalformedHookError,
    PredicateError,
)
from hookspine.orchestration.hook_orchestrator import EvaluationOptions

from conftest import EX

PIPELINES = """
ex:greet a op:Pipeline ; op:steps ( ex:hello ) .
ex:hello a gv:TemplateStep ;
    gv:text "{{ hookId }}|{{ event }}|{{ predicate.kind }}|{{ changedPaths | join(',') }}" ;
    gv:filePath "out/{{ hookId | replace('http://example.org/', '') }}.txt" .

ex:broken a op:Pipeline ; op:steps ( ex:boom ) .
ex:boom a gv:CliStep ; gv:command "exit 2" .
"""

HOOKS = """
ex:h1 a gh:Hook ; dct:title "ask true" ;
    gh:hasPredicate [ a gh:ASKPredicate ; gh:queryText "ASK { ?x a ex:TestData }" ] ;
    gh:orderedPipelines ( ex:greet ) .

ex:h2 a gh:Hook ; dct:title "ask false" ;
    gh:hasPredicate [ a gh:ASKPredicate ; gh:queryText "ASK { ?x a ex:Missing }" ] ;
    gh:orderedPipelines ( ex:greet ) .

ex:h3 a gh:Hook ; dct:title "threshold" ;
    gh:hasPredicate [ a gh:SELECTThreshold ;
        gh:queryText "SELECT (COUNT(?x) AS ?n) WHERE { ?x a ex:TestData }" ;
        gh:threshold 1 ; gh:operator ">=" ] ;
    gh:orderedPipelines ( ex:greet ) .

ex:h4 a gh:Hook ; dct:title "malformed predicate" ;
    gh:hasPredicate [ a gh:ASKPredicate ; gh:queryText "ASK { this is not sparql" ] ;
    gh:orderedPipelines ( ex:greet ) .

ex:h5 a gh:Hook ; dct:title "delta" ;
    gh:hasPredicate [ a gh:ResultDelta ; gh:queryText "SELECT ?x WHERE { ?x a ex:TestData }" ] ;
    gh:orderedPipelines ( ex:broken ex:greet ) .
"""

FACTS = """
ex:data1 a ex:TestData .
"""


@pytest.fixture
def graph(make_graph):
    return make_graph(PIPELINES + HOOKS + FACTS)


# ---------------------------------------------------------------------------
# Evaluation pass
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_five_hooks_one_bad_predicate(self, graph, make_orchestrator, tmp_path):
        result = make_orchestrator(graph).evaluate(EvaluationOptions(event="pre-commit"))

        assert result.success
        assert result.hooks_discovered == 5
        assert result.hooks_evaluated == 5
        assert [o.hook_id for o in result.outcomes] == [EX + f"h{i}" for i in range(1, 6)]
        assert result.triggered_hooks == [EX + "h1", EX + "h3", EX + "h5"]
        assert set(result.errors) == {EX + "h4", EX + "h5"}
        assert isinstance(result.get_outcome(EX + "h4").error, PredicateError)
        assert result.workflows_executed == 3
        assert result.workflows_successful == 2
        assert (tmp_path / "out" / "h1.txt").read_text() == f"{EX}h1|pre-commit|ask|"

    def test_failed_pipeline_stops_remaining(self, graph, make_orchestrator, tmp_path):
        outcome = make_orchestrator(graph).evaluate().get_outcome(EX + "h5")
        assert outcome.triggered
        assert outcome.workflows_executed == 1
        assert not outcome.executions[0].success
        assert not (tmp_path / "out" / "h5.txt").exists()

    def test_predicate_context_recorded(self, graph, make_orchestrator):
        outcome = make_orchestrator(graph).evaluate().get_outcome(EX + "h3")
        assert outcome.predicate_kind == "selectThreshold"
        assert outcome.predicate_context["value"] == 1.0
        assert outcome.title == "threshold"

    def test_inputs_reach_pipelines(self, graph, make_orchestrator, tmp_path):
        make_orchestrator(graph).evaluate(event="post-merge", changed_paths=["a.py", "b.py"], hook_ids=[EX + "h3"])
        assert (tmp_path / "out" / "h3.txt").read_text() == f"{EX}h3|post-merge|selectThreshold|a.py,b.py"

    def test_sequential_pool_matches(self, graph, make_orchestrator, settings):
        single = settings.model_copy(update={"max_concurrent_hooks": 1})
        result = make_orchestrator(graph, settings=single).evaluate()
        assert result.triggered_hooks == [EX + "h1", EX + "h3", EX + "h5"]

    def test_no_hooks(self, make_graph, make_orchestrator):
        result = make_orchestrator(make_graph(FACTS)).evaluate()
        assert result.success
        assert result.outcomes == []

    def test_to_dict_is_json(self, graph, make_orchestrator):
        data = make_orchestrator(graph).evaluate(event="pre-commit").to_dict()
        assert data["hooks_triggered"] == 3
        assert data["event"] == "pre-commit"
        json.dumps(data, default=str)


class TestIsolation:
    def test_malformed_hook_does_not_stop_others(self, make_graph, make_orchestrator):
        graph = make_graph(PIPELINES + HOOKS + FACTS + 'ex:h0 a gh:Hook ; dct:title "no predicate" .')
        result = make_orchestrator(graph).evaluate()

        first = result.outcomes[0]
        assert first.hook_id == EX + "h0"
        assert isinstance(first.error, MalformedHookError)
        assert not first.evaluated
        assert result.hooks_triggered == 3

    def test_unknown_predicate_kind(self, make_graph, make_orchestrator):
        graph = make_graph(
            PIPELINES
            + 'ex:shacl a gh:Hook ; gh:hasPredicate [ a gh:SHACLAllConform ; gh:queryText "x" ] ; '
            + "gh:orderedPipelines ( ex:greet ) ."
        )
        outcome = make_orchestrator(graph).evaluate().outcomes[0]
        assert isinstance(outcome.error, PredicateError)
        assert not outcome.triggered

    def test_requested_hooks_keep_order(self, graph, make_orchestrator):
        result = make_orchestrator(graph).evaluate(hook_ids=[EX + "h3", EX + "h1", EX + "ghost"])
        assert [o.hook_id for o in result.outcomes] == [EX + "h3", EX + "h1", EX + "ghost"]
        assert isinstance(result.get_outcome(EX + "ghost").error, HookNotFoundError)


class TestEventsAndDryRun:
    def test_event_filter(self, make_graph, make_orchestrator):
        graph = make_graph(
            PIPELINES
            + FACTS
            + """
            ex:pushonly a gh:Hook ; gh:onEvent "pre-push" ;
                gh:hasPredicate [ a gh:ASKPredicate ; gh:queryText "ASK { ?x a ex:TestData }" ] ;
                gh:orderedPipelines ( ex:greet ) .
            """
        )
        orchestrator = make_orchestrator(graph)

        skipped = orchestrator.evaluate(event="pre-commit").outcomes[0]
        assert skipped.skipped
        assert not skipped.evaluated
        assert not skipped.triggered

        fired = orchestrator.evaluate(event="pre-push").outcomes[0]
        assert fired.triggered
        assert fired.workflows_successful == 1

    def test_dry_run_validates_only(self, graph, make_orchestrator, tmp_path):
        result = make_orchestrator(graph).evaluate(dry_run=True)

        assert result.dry_run
        assert result.workflows_executed == 0
        h1 = result.get_outcome(EX + "h1")
        assert h1.triggered
        assert [v.order for v in h1.validations] == [["hello"]]
        assert len(result.get_outcome(EX + "h5").validations) == 2
        assert not (tmp_path / "out").exists()

    def test_cancel_event(self, graph, make_orchestrator):
        event = threading.Event()
        event.set()
        result = make_orchestrator(graph).evaluate(cancel_event=event, hook_ids=[EX + "h1"])
        execution = result.get_outcome(EX + "h1").executions[0]
        assert isinstance(execution.error, CancelledError)


# ---------------------------------------------------------------------------
# Discovery from directories
# ---------------------------------------------------------------------------


class TestDiscovery:
    def test_loads_hooks_and_graph_dirs(self, make_orchestrator, write_turtle):
        write_turtle("pipelines.ttl", PIPELINES)
        write_turtle("hooks.ttl", HOOKS)
        write_turtle("facts.ttl", FACTS, where="graph")

        result = make_orchestrator().evaluate()
        assert result.hooks_discovered == 5
        assert result.hooks_triggered == 3

    def test_unparsable_file(self, make_orchestrator, write_turtle):
        write_turtle("hooks.ttl", HOOKS)
        write_turtle("zz-broken.ttl", "ex:oops ex:missing-dot")

        result = make_orchestrator().evaluate()
        assert not result.success
        assert isinstance(result.error, HookDiscoveryError)
        assert isinstance(result.error.cause, GraphLoadError)
        assert result.outcomes == []

    def test_missing_directories_mean_no_hooks(self, make_orchestrator):
        result = make_orchestrator().evaluate()
        assert result.success
        assert result.hooks_discovered == 0

    def test_writes_evaluation_receipt(self, graph, make_orchestrator, settings):
        with_receipts = settings.model_copy(update={"write_receipts": True})
        make_orchestrator(graph, settings=with_receipts).evaluate()

        files = list((settings.reports_dir / "evaluations").glob("*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text())["hooks_discovered"] == 5
        assert len(list((settings.reports_dir / "receipts").glob("*.json"))) == 3


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


class TestIntrospection:
    def test_list_hooks(self, graph, make_orchestrator):
        hooks = make_orchestrator(graph).list_hooks()
        assert [h["id"] for h in hooks] == [EX + f"h{i}" for i in range(1, 6)]
        assert hooks[2] == {
            "id": EX + "h3",
            "title": "threshold",
            "predicate_kind": "selectThreshold",
            "events": [],
            "pipeline_count": 1,
        }

    def test_list_hooks_reports_malformed(self, make_graph, make_orchestrator):
        hooks = make_orchestrator(make_graph("ex:bad a gh:Hook .")).list_hooks()
        assert hooks[0]["id"] == EX + "bad"
        assert "no predicate" in hooks[0]["error"]

    def test_validate_hook(self, graph, make_orchestrator):
        report = make_orchestrator(graph).validate_hook(EX + "h5")
        assert report["valid"]
        assert report["step_count"] == 2
        assert report["estimated_duration_ms"] == 2000
        assert [p["workflow_id"] for p in report["pipelines"]] == [EX + "broken", EX + "greet"]

    def test_validate_hook_with_missing_pipeline(self, make_graph, make_orchestrator):
        graph = make_graph(
            'ex:h a gh:Hook ; gh:hasPredicate [ gh:queryText "ASK {}" ] ; gh:orderedPipelines ( ex:ghost ) .'
        )
        report = make_orchestrator(graph).validate_hook(EX + "h")
        assert not report["valid"]
        assert "ghost" in report["error"]

    def test_validate_hook_unknown_kind(self, make_graph, make_orchestrator):
        graph = make_graph('ex:h a gh:Hook ; gh:hasPredicate [ a gh:SHACLAllConform ; gh:queryText "x" ] .')
        report = make_orchestrator(graph).validate_hook(EX + "h")
        assert not report["valid"]
        assert "SHACLAllConform" in report["error"]

    def test_validate_unknown_hook(self, graph, make_orchestrator):
        report = make_orchestrator(graph).validate_hook(EX + "nope")
        assert report == {"hook_id": EX + "nope", "valid": False, "error": f"Hook not found: {EX}nope"}
