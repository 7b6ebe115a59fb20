"""Tests for the automation orchestrator."""

import asyncio

import pytest
import pytest_asyncio

from core import AutomationOrchestrator, NotInitialized
from conftest import FakeAnalyzer, FakeEngine, PNG_BYTES


def build(engine: FakeEngine, workflows=None) -> AutomationOrchestrator:
    return AutomationOrchestrator(
        engine=engine,
        analyzer=FakeAnalyzer(engine),
        workflows=workflows if workflows is not None else {},
    )


@pytest_asyncio.fixture
async def orchestrator(engine):
    orchestrator = build(engine)
    await orchestrator.start()
    yield orchestrator
    await orchestrator.stop()


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_requires_start(self, engine):
        orchestrator = build(engine)
        with pytest.raises(NotInitialized):
            await orchestrator.navigate("https://example.com")
        with pytest.raises(NotInitialized):
            orchestrator.register_workflow("x", [{"action": "extract"}])
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_start_registers_declared_workflows(self, engine):
        orchestrator = build(engine, workflows={
            "good": [{"action": "navigate"}, {"action": "extract"}],
            "bad": [{"action": "levitate"}],
        })
        await orchestrator.start()
        try:
            assert engine.started
            assert orchestrator.workflows.names() == ["good"]
        finally:
            await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_stop_tears_everything_down(self, engine):
        orchestrator = build(engine)
        await orchestrator.start()
        orchestrator.register_workflow("flow", [{"action": "extract"}])
        await orchestrator.start_monitor("home", "https://example.com", 60)

        await orchestrator.stop()
        assert engine.closed
        assert orchestrator.monitors.ids() == []
        assert orchestrator.workflows.names() == []
        with pytest.raises(NotInitialized):
            await orchestrator.extract()

    @pytest.mark.asyncio
    async def test_context_manager(self, engine):
        async with build(engine) as orchestrator:
            assert orchestrator.initialized
        assert engine.closed

    @pytest.mark.asyncio
    async def test_status(self, orchestrator):
        orchestrator.register_workflow("flow", [{"action": "extract"}])
        status = orchestrator.get_status()
        assert status["engine"]["isLaunched"] is True
        assert status["workflows"] == ["flow"]
        assert status["monitors"] == []


class TestOperations:

    @pytest.mark.asyncio
    async def test_primitives(self, orchestrator, engine):
        assert await orchestrator.navigate("https://example.com") is True
        assert (await orchestrator.extract())["url"] == "https://example.com"
        assert "headings" in await orchestrator.analyze()
        assert await orchestrator.click("#go") is True
        assert await orchestrator.type_text("#q", "hi") is True
        assert await orchestrator.screenshot(full_page=True) == PNG_BYTES
        assert engine.call_names() == ["navigate", "extract", "analyze_structure", "click", "type", "screenshot"]

    @pytest.mark.asyncio
    async def test_analyze_includes_sections(self, orchestrator, engine):
        analysis = await orchestrator.analyze(["forms", "content"])
        assert analysis["forms"][0]["fields"] == []
        assert "Example Domain" in analysis["mainContent"]["text"]
        assert engine.call_names() == ["analyze_structure", "extract_main_content", "extract_forms"]

        with pytest.raises(ValueError, match="images"):
            await orchestrator.analyze(["images"])

    @pytest.mark.asyncio
    async def test_register_returns_actions(self, orchestrator):
        actions = orchestrator.register_workflow("flow", [{"action": "navigate"}, {"action": "runScript", "script": "1"}])
        assert actions == ["navigate", "run_script"]

    @pytest.mark.asyncio
    async def test_facade_delegates(self, orchestrator):
        result = await orchestrator.execute_workflow([{"action": "navigate", "url": "https://example.com"}])
        assert result.success

        records = await orchestrator.competitor_research([{"name": "Alpha", "url": "https://alpha.example"}])
        assert records[0].success

        suite = await orchestrator.qa_test({"name": "s", "tests": [{"name": "t", "url": "https://example.com"}]})
        assert suite.passed

        handle = await orchestrator.start_monitor("home", "https://example.com", 60)
        assert handle.checks == 1
        await orchestrator.stop_monitor("home")


class TestSessionLock:

    @pytest.mark.asyncio
    async def test_components_never_overlap_on_the_session(self):
        engine = FakeEngine(delay=0.01)
        orchestrator = build(engine)
        await orchestrator.start()
        try:
            await asyncio.gather(
                orchestrator.execute_workflow([
                    {"action": "navigate", "url": "https://workflow.example"},
                    {"action": "click", "selector": "#go"},
                    {"action": "extract"},
                ]),
                orchestrator.qa_test({"name": "s", "tests": [{"name": "t", "url": "https://qa.example"}]}),
                orchestrator.navigate("https://direct.example"),
            )
        finally:
            await orchestrator.stop()

        names = engine.call_names()
        start = engine.calls.index(("navigate", "https://workflow.example", "networkidle"))
        # The workflow's steps are contiguous in the call log
        assert names[start:start + 3] == ["navigate", "click", "extract"]
        assert engine.max_active == 1

    @pytest.mark.asyncio
    async def test_monitor_checks_wait_for_workflows(self):
        engine = FakeEngine(delay=0.01)
        orchestrator = build(engine)
        await orchestrator.start()
        try:
            handle = await orchestrator.start_monitor("m", "https://monitor.example", 0.005)
            await orchestrator.execute_workflow([
                {"action": "navigate", "url": "https://workflow.example"},
                {"action": "extract"},
                {"action": "extract"},
            ])
            await handle.next_event(timeout=1)
        finally:
            await orchestrator.stop()

        start = engine.calls.index(("navigate", "https://workflow.example", "networkidle"))
        assert engine.call_names()[start:start + 3] == ["navigate", "extract", "extract"]
        assert engine.max_active == 1
