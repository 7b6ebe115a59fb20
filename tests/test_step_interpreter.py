"""Tests for step parsing and the step interpreter."""

import base64

import pytest

from core import InvalidStep, UnknownAction, parse_step, parse_steps
from core.models import NavigateStep, RunScriptStep, ScreenshotStep, TypeStep
from core.step_interpreter import StepInterpreter
from conftest import PNG_BYTES


class TestParseStep:

    def test_parses_tagged_mapping(self):
        step = parse_step({"action": "navigate", "url": "https://example.com", "waitUntil": "load"})
        assert isinstance(step, NavigateStep)
        assert step.url == "https://example.com"
        assert step.wait_until == "load"
        assert step.required is True

    def test_optional_flag(self):
        step = parse_step({"action": "click", "selector": "#go", "required": False})
        assert step.required is False

    def test_unknown_action(self):
        with pytest.raises(UnknownAction) as exc_info:
            parse_step({"action": "teleport", "url": "https://example.com"})
        assert exc_info.value.reason == "Unknown action: teleport"

    def test_missing_action(self):
        with pytest.raises(UnknownAction):
            parse_step({"url": "https://example.com"})

    def test_script_aliases(self):
        for action in ("executeScript", "run_script", "runScript"):
            assert isinstance(parse_step({"action": action, "script": "1 + 1"}), RunScriptStep)

    def test_wrong_parameter_type(self):
        with pytest.raises(InvalidStep):
            parse_step({"action": "wait", "selector": "#x", "timeout": "later"})

    def test_non_mapping(self):
        with pytest.raises(InvalidStep):
            parse_step("navigate")

    def test_parse_steps_is_all_or_nothing(self):
        with pytest.raises(UnknownAction):
            parse_steps([{"action": "navigate"}, {"action": "fly"}])


class TestResolve:

    def test_override_fills_missing_parameter(self):
        step = parse_step({"action": "navigate"})
        resolved = StepInterpreter.resolve(step, {"url": "https://example.com"})
        assert resolved.url == "https://example.com"

    def test_step_value_wins_over_override(self):
        step = parse_step({"action": "navigate", "url": "https://a.example"})
        resolved = StepInterpreter.resolve(step, {"url": "https://b.example"})
        assert resolved.url == "https://a.example"

    def test_overrides_ignore_unrelated_keys(self):
        step = parse_step({"action": "click", "selector": "#go"})
        assert StepInterpreter.resolve(step, {"url": "https://example.com"}) is step

    def test_bad_override_type(self):
        step = parse_step({"action": "wait", "selector": "#x"})
        with pytest.raises(InvalidStep):
            StepInterpreter.resolve(step, {"timeout": "later"})


@pytest.fixture
def interpreter(engine, analyzer):
    return StepInterpreter(engine, analyzer)


class TestExecute:

    @pytest.mark.asyncio
    async def test_navigate_defaults_to_network_idle(self, interpreter, engine):
        await interpreter.execute(parse_step({"action": "navigate", "url": "https://example.com"}))
        assert engine.calls == [("navigate", "https://example.com", "networkidle")]

    @pytest.mark.asyncio
    async def test_navigate_uses_params(self, interpreter, engine):
        await interpreter.execute(parse_step({"action": "navigate"}), {"url": "https://example.com"})
        assert engine.current_url == "https://example.com"

    @pytest.mark.asyncio
    async def test_navigate_without_url(self, interpreter, engine):
        with pytest.raises(InvalidStep):
            await interpreter.execute(parse_step({"action": "navigate"}))
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_type_calls_driver_once(self, interpreter, engine):
        step = TypeStep(selector="#q", text="playwright")
        assert await interpreter.execute(step) is True
        assert engine.calls == [("type", "#q", "playwright")]

    @pytest.mark.asyncio
    async def test_type_requires_text(self, interpreter):
        with pytest.raises(InvalidStep):
            await interpreter.execute(TypeStep(selector="#q"))

    @pytest.mark.asyncio
    async def test_wait_passes_timeout(self, interpreter, engine):
        await interpreter.execute(parse_step({"action": "wait", "selector": "body", "timeout": 5000}))
        assert engine.calls == [("wait", "body", 5000)]

    @pytest.mark.asyncio
    async def test_screenshot_returns_base64(self, interpreter, engine):
        result = await interpreter.execute(ScreenshotStep(full_page=True))
        assert base64.b64decode(result) == PNG_BYTES
        assert engine.calls == [("screenshot", None, True, "png")]

    @pytest.mark.asyncio
    async def test_extract_and_analyze(self, interpreter, engine):
        data = await interpreter.execute(parse_step({"action": "extract"}))
        analysis = await interpreter.execute(parse_step({"action": "analyze"}))
        assert data["title"] == "Example Domain"
        assert analysis["headings"][0]["level"] == "h1"
        assert engine.call_names() == ["extract", "analyze_structure"]

    @pytest.mark.asyncio
    async def test_run_script(self, interpreter, engine):
        result = await interpreter.execute(parse_step({"action": "executeScript", "script": "6 * 7"}))
        assert result == 42
        assert engine.calls == [("run_script", "6 * 7")]

    @pytest.mark.asyncio
    async def test_driver_failure_propagates(self, interpreter, engine):
        engine.fail_urls.add("https://down.example")
        with pytest.raises(Exception, match="ERR_NAME_NOT_RESOLVED"):
            await interpreter.execute(NavigateStep(url="https://down.example"))
