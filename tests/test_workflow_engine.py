"""Tests for workflow registration and execution."""

import pytest

from core import CapabilityFailure, RequiredStepFailed, UnknownAction, WorkflowNotFound
from core.step_interpreter import StepInterpreter
from core.workflow_engine import WorkflowEngine


@pytest.fixture
def workflows(engine, analyzer):
    return WorkflowEngine(StepInterpreter(engine, analyzer))


class TestRegistry:

    def test_register_and_get(self, workflows):
        workflows.register("snapshot", [{"action": "navigate"}, {"action": "extract"}])
        assert [step.action for step in workflows.get("snapshot")] == ["navigate", "extract"]
        assert workflows.names() == ["snapshot"]

    def test_last_registration_wins(self, workflows):
        workflows.register("flow", [{"action": "extract"}])
        workflows.register("flow", [{"action": "analyze"}, {"action": "extract"}])
        assert [step.action for step in workflows.get("flow")] == ["analyze", "extract"]

    def test_bad_registration_keeps_previous(self, workflows):
        workflows.register("flow", [{"action": "extract"}])
        with pytest.raises(UnknownAction):
            workflows.register("flow", [{"action": "extract"}, {"action": "dance"}])
        assert [step.action for step in workflows.get("flow")] == ["extract"]

    def test_unknown_name(self, workflows):
        with pytest.raises(WorkflowNotFound):
            workflows.get("missing")


class TestExecution:

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, workflows, engine):
        result = await workflows.execute([
            {"action": "navigate", "url": "https://example.com"},
            {"action": "type", "selector": "#q", "text": "hello"},
            {"action": "click", "selector": "#go"},
            {"action": "extract"},
        ])
        assert engine.call_names() == ["navigate", "type", "click", "extract"]
        assert [outcome.index for outcome in result.outcomes] == [0, 1, 2, 3]
        assert all(outcome.success for outcome in result.outcomes)
        assert result.success is True
        assert result.outcomes[3].result["title"] == "Example Domain"

    @pytest.mark.asyncio
    async def test_named_workflow_with_params(self, workflows, engine):
        workflows.register("snapshot", [{"action": "navigate"}, {"action": "extract"}])
        result = await workflows.execute("snapshot", {"url": "https://example.com"})
        assert result.workflow == "snapshot"
        assert engine.calls[0] == ("navigate", "https://example.com", "networkidle")

    @pytest.mark.asyncio
    async def test_unregistered_name(self, workflows, engine):
        with pytest.raises(WorkflowNotFound):
            await workflows.execute("missing")
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_unknown_inline_action_runs_nothing(self, workflows, engine):
        with pytest.raises(UnknownAction):
            await workflows.execute([{"action": "extract"}, {"action": "fly"}])
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_optional_failure_continues(self, workflows, engine):
        engine.failures["click"] = CapabilityFailure("Element not found: #missing")
        result = await workflows.execute([
            {"action": "click", "selector": "#missing", "required": False},
            {"action": "extract"},
        ])
        assert engine.call_names() == ["click", "extract"]
        assert result.outcomes[0].success is False
        assert result.outcomes[0].error == "Element not found: #missing"
        assert result.outcomes[1].success is True
        assert result.completed is True

    @pytest.mark.asyncio
    async def test_required_failure_stops_with_partial_trace(self, workflows, engine):
        engine.fail_urls.add("https://down.example")
        with pytest.raises(RequiredStepFailed) as exc_info:
            await workflows.execute([
                {"action": "extract"},
                {"action": "navigate", "url": "https://down.example"},
                {"action": "extract"},
            ])

        error = exc_info.value
        assert error.step == "navigate"
        assert "ERR_NAME_NOT_RESOLVED" in error.cause
        assert engine.call_names() == ["extract", "navigate"]

        trace = error.result
        assert trace.completed is False
        assert trace.success is False
        assert [outcome.success for outcome in trace.outcomes] == [True, False]
        assert trace.outcomes[1].error == error.cause

    @pytest.mark.asyncio
    async def test_missing_parameter_fails_like_a_step(self, workflows, engine):
        result = await workflows.execute([
            {"action": "navigate", "required": False},
            {"action": "extract"},
        ])
        assert result.outcomes[0].success is False
        assert "requires 'url'" in result.outcomes[0].error
        assert engine.call_names() == ["extract"]
