"""Automation orchestrator that coordinates all components."""

import asyncio
from typing import Optional, Dict, Any, List, Union

from core.browser_engine import BrowserEngine
from core.errors import NotInitialized, describe_error
from core.models import WorkflowResult
from core.monitor import MonitorHandle, MonitorSupervisor
from core.page_analyzer import PageAnalyzer
from core.qa import QAEvaluator, QASuite, QASuiteResult
from core.research import CompetitorRecord, ResearchAggregator
from core.step_interpreter import StepInterpreter
from core.workflow_engine import StepList, WorkflowEngine
from utils import log, config, BrowserOptions

ANALYSIS_SECTIONS = ("content", "forms")


class AutomationOrchestrator:
    """Owns one browser session and the engines that drive it."""

    def __init__(
        self,
        options: Optional[BrowserOptions] = None,
        engine: Optional[BrowserEngine] = None,
        analyzer: Optional[PageAnalyzer] = None,
        workflows: Optional[Dict[str, StepList]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            options: Browser launch options (defaults from configuration)
            engine: Browser engine to drive (a new one is built from options if omitted)
            analyzer: Page analyzer bound to the engine
            workflows: Workflows to register on start (defaults to config/workflows.yaml)
        """
        self.options = options or config.browser_options()
        self.engine = engine or BrowserEngine(self.options)
        self.analyzer = analyzer or PageAnalyzer(self.engine)
        self.declared_workflows = config.workflows if workflows is None else workflows

        # One browser session, so every browser user takes this lock
        self.session_lock = asyncio.Lock()
        self.interpreter = StepInterpreter(self.engine, self.analyzer)
        self.workflows = WorkflowEngine(self.interpreter, lock=self.session_lock)
        self.monitors = MonitorSupervisor(self.engine, self.analyzer, lock=self.session_lock)
        self.research = ResearchAggregator(self.engine, self.analyzer, lock=self.session_lock)
        self.qa = QAEvaluator(self.engine, self.analyzer, lock=self.session_lock)

        self.initialized = False

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()

    async def start(self):
        """Start the browser and register declared workflows."""
        log.info("Starting automation orchestrator")
        await self.engine.start()
        for name, steps in self.declared_workflows.items():
            try:
                self.workflows.register(name, steps)
            except Exception as e:
                log.error(f"Skipping declared workflow {name}: {describe_error(e)}")
        self.initialized = True
        log.info("Automation orchestrator initialized")

    async def stop(self):
        """Stop every monitor, clear registries and close the browser."""
        log.info("Stopping automation orchestrator")
        await self.monitors.shutdown()
        self.workflows.clear()
        await self.engine.close()
        self.initialized = False
        log.info("Automation orchestrator closed")

    def _ensure_initialized(self):
        if not self.initialized:
            raise NotInitialized()

    # Workflows

    def register_workflow(self, name: str, steps: StepList) -> List[str]:
        """Register (or replace) a named workflow; returns the step actions."""
        self._ensure_initialized()
        return [step.action for step in self.workflows.register(name, steps)]

    async def execute_workflow(
        self,
        workflow: Union[str, StepList],
        params: Optional[Dict[str, Any]] = None
    ) -> WorkflowResult:
        """Run a registered workflow by name or an inline list of steps."""
        self._ensure_initialized()
        return await self.workflows.execute(workflow, params)

    # Monitors

    async def start_monitor(self, monitor_id: str, url: str, interval: Optional[float] = None) -> MonitorHandle:
        """Start a recurring check of ``url`` every ``interval`` seconds."""
        self._ensure_initialized()
        return await self.monitors.start(monitor_id, url, interval)

    async def stop_monitor(self, monitor_id: str):
        self._ensure_initialized()
        await self.monitors.stop(monitor_id)

    # Research and QA

    async def competitor_research(self, competitors: List[Dict[str, Any]]) -> List[CompetitorRecord]:
        self._ensure_initialized()
        return await self.research.research(competitors)

    async def qa_test(self, suite: Union[QASuite, Dict[str, Any]]) -> QASuiteResult:
        self._ensure_initialized()
        return await self.qa.run(suite)

    # Single primitives for the API

    async def navigate(self, url: str) -> bool:
        self._ensure_initialized()
        async with self.session_lock:
            return await self.engine.navigate(url)

    async def extract(self) -> Dict[str, Any]:
        self._ensure_initialized()
        async with self.session_lock:
            return await self.engine.extract_page_data()

    async def analyze(self, include: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Structure analysis of the current page.

        Args:
            include: Extra sections to attach, any of ``content`` and ``forms``

        Returns:
            Structure and metadata, plus ``mainContent``/``forms`` when requested
        """
        self._ensure_initialized()
        include = include or []
        unknown = sorted(set(include) - set(ANALYSIS_SECTIONS))
        if unknown:
            raise ValueError(f"Unknown analysis section: {', '.join(unknown)}")

        async with self.session_lock:
            analysis = await self.analyzer.analyze_structure()
            if "content" in include:
                analysis["mainContent"] = await self.analyzer.extract_main_content()
            if "forms" in include:
                analysis["forms"] = await self.analyzer.extract_forms()
        return analysis

    async def click(self, selector: str) -> bool:
        self._ensure_initialized()
        async with self.session_lock:
            return await self.engine.click(selector)

    async def type_text(self, selector: str, text: str) -> bool:
        self._ensure_initialized()
        async with self.session_lock:
            return await self.engine.type_text(selector, text)

    async def screenshot(self, full_page: bool = False) -> bytes:
        self._ensure_initialized()
        async with self.session_lock:
            return await self.engine.screenshot(full_page=full_page)

    def get_status(self) -> Dict[str, Any]:
        """Get engine state plus registered workflows and active monitors."""
        return {
            "engine": self.engine.get_status(),
            "workflows": self.workflows.names(),
            "monitors": self.monitors.ids()
        }
