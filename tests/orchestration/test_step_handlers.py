"""Tests for the built-in step handlers: sparql, template, file, http, cli.

Handlers are exercised directly with a StepContext; the HTTP handler runs
against ``httpx.MockTransport`` so no network is touched.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from hookspine.core.errors import NetworkError, QueryError, RenderError, TimeoutError
from hookspine.graph.knowledge_graph import KnowledgeGraph
from hookspine.orchestration.exceptions import (
    CommandError,
    FileOperationError,
    HttpStatusError,
    MalformedStepError,
)
from hookspine.orchestration.handlers import (
    CliStepHandler,
    FileStepHandler,
    HttpStepHandler,
    SparqlStepHandler,
    StepContext,
    StepHandler,
    StepHandlerRegistry,
    TemplateStepHandler,
    default_registry,
)
from hookspine.orchestration.rendering import TemplateRenderer
from hookspine.orchestration.step_types import Step


@pytest.fixture
def run_handler(tmp_path):
    """Validate ``config`` with the handler, then execute it in ``tmp_path``."""

    def _run(handler, config, *, graph=None, variables=None, timeout=5.0):
        validated = handler.validate_config("s", dict(config))
        step = Step(id="s", type=handler.type, config=validated)
        ctx = StepContext(
            graph=graph or KnowledgeGraph(),
            config=dict(validated),
            variables=variables or {},
            base_dir=tmp_path,
            timeout=timeout,
            renderer=TemplateRenderer(),
        )
        return handler.execute(step, ctx)

    return _run


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class _EchoHandler(StepHandler):
    type = "echo"

    def execute(self, step, ctx):
        return {"config": ctx.config}


class TestRegistry:
    def test_default_kinds(self):
        assert default_registry().types() == ["cli", "file", "http", "sparql", "template"]

    def test_registries_are_independent(self):
        first, second = default_registry(), default_registry()
        first.register(_EchoHandler())
        assert "echo" in first
        assert "echo" not in second

    def test_duplicate_rejected(self):
        registry = StepHandlerRegistry([_EchoHandler()])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(_EchoHandler())
        registry.register(_EchoHandler(), replace=True)
        assert registry.has("echo")

    def test_unknown_type(self):
        with pytest.raises(KeyError, match="Available: cli, file"):
            default_registry().get("ftp")


# ---------------------------------------------------------------------------
# sparql
# ---------------------------------------------------------------------------


class TestSparqlStep:
    @pytest.fixture
    def graph(self, make_graph):
        return make_graph(
            """
            ex:alice ex:name "alice" ; ex:age 30 .
            ex:bob ex:name "bob" ; ex:age 25 .
            """
        )

    def test_select(self, run_handler, graph):
        outputs = run_handler(
            SparqlStepHandler(),
            {"query": "SELECT ?n WHERE { ?s <http://example.org/name> ?n } ORDER BY ?n"},
            graph=graph,
        )
        assert outputs == {
            "type": "select",
            "variables": ["n"],
            "results": [{"n": "alice"}, {"n": "bob"}],
            "count": 2,
        }

    def test_ask(self, run_handler, graph):
        outputs = run_handler(SparqlStepHandler(), {"text": "ASK { ?s <http://example.org/age> 30 }"}, graph=graph)
        assert outputs == {"type": "ask", "boolean": True}

    def test_query_from_file(self, run_handler, graph, tmp_path):
        (tmp_path / "q.rq").write_text("ASK { ?s <http://example.org/age> 99 }")
        assert run_handler(SparqlStepHandler(), {"path": "q.rq"}, graph=graph)["boolean"] is False

    def test_bindings_from_context(self, run_handler, graph):
        outputs = run_handler(
            SparqlStepHandler(),
            {
                "query": "SELECT ?age WHERE { ?s <http://example.org/name> ?who ; <http://example.org/age> ?age }",
                "bindings": '{"who": "person.name"}',
            },
            graph=graph,
            variables={"person": {"name": "bob"}},
        )
        assert outputs["results"] == [{"age": 25}]

    def test_missing_binding_value(self, run_handler, graph):
        with pytest.raises(QueryError, match="missing context value"):
            run_handler(
                SparqlStepHandler(),
                {"query": "SELECT * WHERE { ?s ?p ?who }", "bindings": {"who": "nope"}},
                graph=graph,
            )

    def test_malformed_query(self, run_handler, graph):
        with pytest.raises(QueryError):
            run_handler(SparqlStepHandler(), {"query": "SELEKT nothing"}, graph=graph)

    def test_bindings_must_be_object(self):
        with pytest.raises(MalformedStepError, match="bindings must decode to dict"):
            SparqlStepHandler().validate_config("s", {"query": "ASK {}", "bindings": "[1]"})


# ---------------------------------------------------------------------------
# template
# ---------------------------------------------------------------------------


class TestTemplateStep:
    def test_inline(self, run_handler):
        outputs = run_handler(TemplateStepHandler(), {"text": "v={{ v }}"}, variables={"v": 1})
        assert outputs == {"content": "v=1", "length": 3}

    def test_writes_file(self, run_handler, tmp_path):
        outputs = run_handler(
            TemplateStepHandler(),
            {"template": "# {{ title }}\n", "filePath": "out/report.md"},
            variables={"title": "Report"},
        )
        target = tmp_path / "out" / "report.md"
        assert target.read_text() == "# Report\n"
        assert outputs["path"] == str(target)
        assert outputs["bytes"] == len("# Report\n")

    def test_file_scheme(self, run_handler, tmp_path):
        (tmp_path / "t.j2").write_text("{{ a }}-{{ b }}")
        outputs = run_handler(TemplateStepHandler(), {"template": "file://t.j2"}, variables={"a": 1, "b": 2})
        assert outputs["content"] == "1-2"

    def test_path_config(self, run_handler, tmp_path):
        (tmp_path / "t.j2").write_text("ok")
        assert run_handler(TemplateStepHandler(), {"path": "t.j2"})["content"] == "ok"

    def test_missing_template_file(self, run_handler):
        with pytest.raises(RenderError, match="Cannot read template"):
            run_handler(TemplateStepHandler(), {"template": "file://nope.j2"})

    def test_unresolved_variable(self, run_handler):
        with pytest.raises(RenderError):
            run_handler(TemplateStepHandler(), {"text": "{{ ghost }}"})

    def test_requires_source(self):
        with pytest.raises(MalformedStepError):
            TemplateStepHandler().validate_config("s", {"filePath": "x"})


# ---------------------------------------------------------------------------
# file
# ---------------------------------------------------------------------------


class TestFileStep:
    def test_read(self, run_handler, tmp_path):
        (tmp_path / "in.txt").write_text("héllo", encoding="utf-8")
        outputs = run_handler(FileStepHandler(), {"filePath": "in.txt"})
        assert outputs["operation"] == "read"
        assert outputs["content"] == "héllo"
        assert outputs["bytes"] == len("héllo".encode())

    def test_write_creates_parents(self, run_handler, tmp_path):
        outputs = run_handler(FileStepHandler(), {"filePath": "a/b/c.txt", "operation": "write", "content": "x"})
        assert (tmp_path / "a" / "b" / "c.txt").read_text() == "x"
        assert outputs["bytes"] == 1

    def test_copy(self, run_handler, tmp_path):
        (tmp_path / "src.txt").write_text("data")
        outputs = run_handler(
            FileStepHandler(), {"filePath": "dst/copy.txt", "operation": "COPY", "sourcePath": "src.txt"}
        )
        assert (tmp_path / "dst" / "copy.txt").read_text() == "data"
        assert outputs["sourcePath"] == str(tmp_path / "src.txt")

    def test_absolute_path(self, run_handler, tmp_path):
        target = tmp_path / "abs.txt"
        target.write_text("abs")
        assert run_handler(FileStepHandler(), {"filePath": str(target)})["content"] == "abs"

    def test_read_missing(self, run_handler, tmp_path):
        with pytest.raises(FileOperationError) as exc_info:
            run_handler(FileStepHandler(), {"filePath": "missing.txt"})
        assert exc_info.value.operation == "read"
        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_unknown_operation(self):
        with pytest.raises(MalformedStepError, match="unknown file operation 'delete'"):
            FileStepHandler().validate_config("s", {"filePath": "x", "operation": "delete"})

    def test_write_requires_content(self):
        with pytest.raises(MalformedStepError, match="requires content"):
            FileStepHandler().validate_config("s", {"filePath": "x", "operation": "write"})


# ---------------------------------------------------------------------------
# http
# ---------------------------------------------------------------------------


class TestHttpStep:
    def test_get_json(self, run_handler):
        seen = {}

        def respond(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["accept"] = request.headers.get("accept")
            return httpx.Response(200, json={"ok": True})

        handler = HttpStepHandler(transport=httpx.MockTransport(respond))
        outputs = run_handler(
            handler, {"url": "https://api.example.org/status", "headers": '{"Accept": "application/json"}'}
        )
        assert seen == {"method": "GET", "accept": "application/json"}
        assert outputs["status"] == 200
        assert outputs["json"] == {"ok": True}
        assert outputs["url"] == "https://api.example.org/status"

    def test_post_body(self, run_handler):
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, text=request.content.decode())

        handler = HttpStepHandler(transport=httpx.MockTransport(respond))
        outputs = run_handler(handler, {"url": "https://x.test/", "method": "post", "body": '{"n": 1}'})
        assert outputs["method"] == "POST"
        assert outputs["status"] == 201
        assert json.loads(outputs["body"]) == {"n": 1}
        assert "json" not in outputs

    def test_error_status(self, run_handler):
        handler = HttpStepHandler(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        with pytest.raises(HttpStatusError) as exc_info:
            run_handler(handler, {"url": "https://x.test/"})
        assert exc_info.value.status == 503
        assert exc_info.value.retryable

    def test_tolerated_status(self, run_handler):
        handler = HttpStepHandler(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        outputs = run_handler(handler, {"url": "https://x.test/", "tolerateStatus": "[404]"})
        assert outputs["status"] == 404

    def test_timeout(self, run_handler):
        def respond(request):
            raise httpx.ReadTimeout("slow", request=request)

        handler = HttpStepHandler(transport=httpx.MockTransport(respond))
        with pytest.raises(TimeoutError) as exc_info:
            run_handler(handler, {"url": "https://x.test/"}, timeout=0.5)
        assert exc_info.value.timeout_seconds == 0.5

    def test_connection_error(self, run_handler):
        def respond(request):
            raise httpx.ConnectError("refused", request=request)

        handler = HttpStepHandler(transport=httpx.MockTransport(respond))
        with pytest.raises(NetworkError, match="refused"):
            run_handler(handler, {"url": "https://x.test/"})

    def test_tolerate_status_must_be_ints(self):
        with pytest.raises(MalformedStepError, match="integer"):
            HttpStepHandler().validate_config("s", {"url": "https://x", "tolerateStatus": '["404"]'})


# ---------------------------------------------------------------------------
# cli
# ---------------------------------------------------------------------------


class TestCliStep:
    def test_stdout(self, run_handler):
        outputs = run_handler(CliStepHandler(), {"command": "echo hello"})
        assert outputs["stdout"] == "hello\n"
        assert outputs["exitCode"] == 0

    def test_nonzero_exit(self, run_handler):
        with pytest.raises(CommandError) as exc_info:
            run_handler(CliStepHandler(), {"command": "echo broken >&2; exit 3"})
        assert exc_info.value.exit_code == 3
        assert "broken" in str(exc_info.value)

    def test_working_dir(self, run_handler, tmp_path):
        (tmp_path / "sub").mkdir()
        outputs = run_handler(CliStepHandler(), {"command": "pwd", "workingDir": "sub"})
        assert Path(outputs["stdout"].strip()).resolve() == (tmp_path / "sub").resolve()

    def test_runs_in_base_dir(self, run_handler, tmp_path):
        run_handler(CliStepHandler(), {"command": "echo x > marker.txt"})
        assert (tmp_path / "marker.txt").exists()

    @pytest.mark.slow
    def test_timeout(self, run_handler):
        with pytest.raises(TimeoutError, match="timed out"):
            run_handler(CliStepHandler(), {"command": "sleep 5"}, timeout=0.2)

    def test_requires_command(self):
        with pytest.raises(MalformedStepError, match="command"):
            CliStepHandler().validate_config("s", {})
