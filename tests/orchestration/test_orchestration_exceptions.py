"""Tests for the orchestration error hierarchy and result serialization."""

from datetime import UTC, datetime, timedelta

import pytest

from hookspine.core.errors import (
    ErrorCategory,
    HookSpineError,
    NetworkError,
    OrchestrationError,
    QueryError,
    StorageError,
)
from hookspine.orchestration.exceptions import (
    CancelledError,
    CommandError,
    CycleDetectedError,
    FileOperationError,
    HookNotFoundError,
    HttpStatusError,
    MalformedHookError,
    MalformedStepError,
    StepExecutionError,
    UnresolvedReferenceError,
    WorkflowDefinitionError,
    WorkflowNotFoundError,
)
from hookspine.orchestration.results import (
    EvaluationResult,
    ExecutionResult,
    HookOutcome,
    RunState,
    ValidationReport,
)
from hookspine.orchestration.step_result import StepResult


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            WorkflowNotFoundError("wf"),
            HookNotFoundError("h"),
            MalformedHookError("h", "no predicate"),
            MalformedStepError("s", "bad"),
            UnresolvedReferenceError("x", "s"),
            CycleDetectedError(["a", "b", "a"]),
        ],
    )
    def test_definition_errors(self, error):
        assert isinstance(error, WorkflowDefinitionError)
        assert isinstance(error, OrchestrationError)
        assert error.category == ErrorCategory.VALIDATION

    def test_context_fields(self):
        assert MalformedStepError("render", "x").context.step == "render"
        assert WorkflowNotFoundError("wf").context.workflow == "wf"
        assert HookNotFoundError("h").to_dict()["context"] == {"hook": "h"}

    def test_step_execution_error_keeps_cause(self):
        cause = QueryError("bad query")
        error = StepExecutionError("q", cause)
        assert error.cause is cause
        assert error.__cause__ is cause
        assert error.category == ErrorCategory.EXECUTION
        assert str(error) == "Step 'q' failed: bad query"

    def test_step_execution_error_inherits_retryable(self):
        assert StepExecutionError("h", HttpStatusError("https://x", 503)).retryable
        assert not StepExecutionError("h", HttpStatusError("https://x", 404)).retryable

    def test_step_errors_families(self):
        assert isinstance(FileOperationError("read", "/x"), StorageError)
        assert isinstance(HttpStatusError("https://x", 500), NetworkError)
        assert isinstance(CommandError("false", 1), HookSpineError)

    def test_command_error_message(self):
        assert str(CommandError("make", 2, "  boom\n")) == "Command exited with status 2: boom"
        assert str(CommandError("make", 2)) == "Command exited with status 2"

    def test_cancelled(self):
        error = CancelledError(step_index=3)
        assert error.category == ErrorCategory.CANCELLED
        assert error.step_index == 3


class TestResults:
    def test_step_result_fail_requires_error(self):
        result = StepResult(step_id="x", success=False)
        assert isinstance(result.error, HookSpineError)

    def test_execution_result_properties(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        result = ExecutionResult(
            workflow_id="wf",
            execution_id="e1",
            state=RunState.FAILED,
            started_at=start,
            completed_at=start + timedelta(milliseconds=250),
            steps=[StepResult.ok("a"), StepResult.fail("b", RuntimeError("x"))],
            plan_length=3,
            error=RuntimeError("x"),
        )
        assert not result.success
        assert result.duration_ms == 250
        assert result.failed_step == "b"
        assert result.completed_steps == ["a"]
        assert result.to_dict()["error"] == {
            "error_type": "RuntimeError",
            "message": "x",
            "category": "UNKNOWN",
            "retryable": False,
        }

    def test_terminal_states(self):
        assert RunState.SUCCEEDED.is_terminal
        assert RunState.FAILED.is_terminal
        assert not RunState.EXECUTING.is_terminal

    def test_invalid_report_dict(self):
        report = ValidationReport(workflow_id="wf", valid=False, error=WorkflowNotFoundError("wf"))
        assert report.to_dict() == {
            "workflow_id": "wf",
            "valid": False,
            "error": WorkflowNotFoundError("wf").to_dict(),
        }

    def test_evaluation_errors_prefer_hook_error(self):
        outcome = HookOutcome(hook_id="h", error=MalformedHookError("h", "no predicate"))
        result = EvaluationResult(success=True, started_at=datetime.now(UTC), outcomes=[outcome])
        assert result.errors == {"h": "Hook 'h' is malformed: no predicate"}
        assert result.evaluation_time_ms == 0.0

    def test_step_result_foreign_error_is_categorized(self):
        data = StepResult.fail("read", FileNotFoundError("input.json")).to_dict()
        assert data["error"]["category"] == "STORAGE"
        assert data["error"]["retryable"] is False
