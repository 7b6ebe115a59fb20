"""Declarative QA suites: element, text and performance checks per page."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from core.capabilities import AutomationDriver, PageAnalysis
from core.errors import describe_error
from utils import log


class QATest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    url: str
    check_elements: Optional[List[str]] = Field(default=None, alias="checkElements")
    check_text: Optional[List[str]] = Field(default=None, alias="checkText")
    check_performance: bool = Field(default=False, alias="checkPerformance")


class QASuite(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    tests: List[QATest] = Field(default_factory=list)
    # Tests share one browser session unless this is set
    isolate_tests: bool = Field(default=False, alias="isolateTests")


class QACheckResult(BaseModel):
    """One check inside a test, tagged by kind."""
    type: Literal["elements", "text", "performance"]
    results: Optional[Dict[str, bool]] = None
    text: Optional[str] = None
    found: Optional[bool] = None
    metrics: Optional[Dict[str, Any]] = None

    @computed_field
    @property
    def passed(self) -> bool:
        if self.type == "elements":
            return all((self.results or {}).values())
        if self.type == "text":
            return self.found is not False
        return True


class QATestResult(BaseModel):
    name: str
    url: str
    checks: List[QACheckResult] = Field(default_factory=list)
    error: Optional[str] = None

    @computed_field
    @property
    def passed(self) -> bool:
        return self.error is None and all(check.passed for check in self.checks)


class QASuiteResult(BaseModel):
    name: str
    timestamp: str
    tests: List[QATestResult] = Field(default_factory=list)

    @computed_field
    @property
    def passed(self) -> bool:
        return all(test.passed for test in self.tests)


class QAEvaluator:
    """Runs QA suites test by test and reduces checks to pass/fail."""

    def __init__(self, driver: AutomationDriver, analyzer: PageAnalysis, lock: Optional[asyncio.Lock] = None):
        self.driver = driver
        self.analyzer = analyzer
        self.lock = lock or asyncio.Lock()

    async def run(self, suite: Union[QASuite, Dict[str, Any]]) -> QASuiteResult:
        """
        Run every test in a suite.

        Args:
            suite: Suite model or mapping (camelCase keys accepted)

        Returns:
            Suite result; failures are recorded per test, never raised
        """
        suite = QASuite.model_validate(suite)
        log.info(f"Running QA test suite: {suite.name} ({len(suite.tests)} tests)")

        result = QASuiteResult(name=suite.name, timestamp=datetime.now().isoformat())
        async with self.lock:
            for test in suite.tests:
                test_result = await self._run_test(test, isolate=suite.isolate_tests)
                result.tests.append(test_result)
                log.info(f"  {'PASS' if test_result.passed else 'FAIL'}: {test.name}")

        log.info(f"Suite {suite.name}: {'passed' if result.passed else 'failed'}")
        return result

    async def _run_test(self, test: QATest, isolate: bool = False) -> QATestResult:
        try:
            if isolate:
                await self.driver.reset_session()
            await self.driver.navigate(test.url)
        except Exception as e:
            reason = describe_error(e)
            log.error(f"  Test failed: {test.name} - {reason}")
            return QATestResult(name=test.name, url=test.url, error=reason)

        checks: List[QACheckResult] = []
        try:
            if test.check_elements is not None:
                checks.append(await self._check_elements(test.check_elements))

            if test.check_text is not None:
                page_data = await self.driver.extract_page_data()
                # Extracted text is already truncated by the driver
                text = page_data.get("text") or ""
                for literal in test.check_text:
                    checks.append(QACheckResult(type="text", text=literal, found=literal in text))

            if test.check_performance:
                metrics = await self.analyzer.get_performance_metrics()
                checks.append(QACheckResult(type="performance", metrics=metrics))
        except Exception as e:
            reason = describe_error(e)
            log.error(f"  Check failed in {test.name}: {reason}")
            return QATestResult(name=test.name, url=test.url, checks=checks, error=reason)

        return QATestResult(name=test.name, url=test.url, checks=checks)

    async def _check_elements(self, selectors: List[str]) -> QACheckResult:
        try:
            found = await self.analyzer.check_elements(selectors)
        except Exception as e:
            log.warning(f"  Element probe failed, treating selectors as absent: {describe_error(e)}")
            found = {}
        return QACheckResult(
            type="elements",
            results={selector: bool(found.get(selector, False)) for selector in selectors}
        )
