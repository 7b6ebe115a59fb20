"""Maps declarative steps onto single capability calls."""

import base64
from typing import Any, Dict, Optional

from pydantic import ValidationError

from core.capabilities import AutomationDriver, PageAnalysis
from core.errors import InvalidStep, UnknownAction
from core.models import (
    AnalyzeStep,
    BaseStep,
    ClickStep,
    ExtractStep,
    NavigateStep,
    RunScriptStep,
    ScreenshotStep,
    TypeStep,
    WaitStep,
)


class StepInterpreter:
    """Stateless dispatcher from a step to exactly one driver or analyzer call."""

    def __init__(self, driver: AutomationDriver, analyzer: PageAnalysis):
        self.driver = driver
        self.analyzer = analyzer

    @staticmethod
    def resolve(step: BaseStep, params: Optional[Dict[str, Any]] = None) -> BaseStep:
        """
        Fill parameters the step omits from the caller's overrides.

        A value set on the step always wins; an override is only used where
        the step leaves the parameter unset.

        Args:
            step: Step as submitted
            params: Caller-supplied overrides (e.g. a batch-level ``url``)

        Returns:
            Step with omitted parameters filled in
        """
        if not params:
            return step
        missing = {
            name: params[name]
            for name, value in step.parameters().items()
            if value is None and params.get(name) is not None
        }
        if not missing:
            return step
        try:
            return type(step).model_validate({**step.model_dump(), **missing})
        except ValidationError as e:
            raise InvalidStep(f"Invalid override for {step.action} step: {e.errors()[0]['msg']}") from e

    @staticmethod
    def _require(step: BaseStep, *names: str):
        for name in names:
            if getattr(step, name) is None:
                raise InvalidStep(f"{step.action} step requires '{name}'")

    async def execute(self, step: BaseStep, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run one step against the driver or analyzer.

        Args:
            step: Step to run
            params: Overrides for parameters the step omits

        Returns:
            The capability's result value
        """
        step = self.resolve(step, params)

        if isinstance(step, NavigateStep):
            self._require(step, "url")
            return await self.driver.navigate(step.url, wait_until=step.wait_until or "networkidle")

        elif isinstance(step, ClickStep):
            self._require(step, "selector")
            return await self.driver.click(step.selector)

        elif isinstance(step, TypeStep):
            self._require(step, "selector", "text")
            return await self.driver.type_text(step.selector, step.text)

        elif isinstance(step, WaitStep):
            self._require(step, "selector")
            return await self.driver.wait_for(step.selector, timeout=step.timeout)

        elif isinstance(step, ScreenshotStep):
            image = await self.driver.screenshot(
                path=step.path,
                full_page=bool(step.full_page),
                type=step.type or "png"
            )
            # Traces are JSON documents, so the image travels as base64
            return base64.b64encode(image).decode("utf-8")

        elif isinstance(step, ExtractStep):
            return await self.driver.extract_page_data()

        elif isinstance(step, AnalyzeStep):
            return await self.analyzer.analyze_structure()

        elif isinstance(step, RunScriptStep):
            self._require(step, "script")
            return await self.driver.run_script(step.script)

        raise UnknownAction(getattr(step, "action", None))
