"""Sequential workflow execution with required/optional step semantics."""

import asyncio
from typing import Any, Dict, List, Optional, Union

from core.errors import RequiredStepFailed, WorkflowNotFound, describe_error
from core.models import BaseStep, StepOutcome, WorkflowResult, parse_steps
from core.step_interpreter import StepInterpreter
from utils import log

StepList = List[Union[BaseStep, Dict[str, Any]]]


class WorkflowEngine:
    """Runs step sequences in submission order and keeps the named workflow registry."""

    def __init__(self, interpreter: StepInterpreter, lock: Optional[asyncio.Lock] = None):
        """
        Initialize the workflow engine.

        Args:
            interpreter: Dispatcher for individual steps
            lock: Session lock shared with every other user of the browser
        """
        self.interpreter = interpreter
        self.lock = lock or asyncio.Lock()
        self.workflows: Dict[str, List[BaseStep]] = {}

    def register(self, name: str, steps: StepList) -> List[BaseStep]:
        """
        Register a named workflow, replacing any previous one with that name.

        Every step is parsed before the registry is touched, so a bad step
        leaves the previous definition in place.

        Args:
            name: Workflow name
            steps: Step models or raw step mappings

        Returns:
            The parsed steps
        """
        parsed = parse_steps(steps)
        if name in self.workflows:
            log.info(f"Replacing workflow: {name}")
        self.workflows[name] = parsed
        log.info(f"Workflow registered: {name} ({len(parsed)} steps)")
        return parsed

    def get(self, name: str) -> List[BaseStep]:
        if name not in self.workflows:
            raise WorkflowNotFound(name)
        return self.workflows[name]

    def names(self) -> List[str]:
        return list(self.workflows.keys())

    def clear(self):
        self.workflows.clear()

    async def execute(
        self,
        workflow: Union[str, StepList],
        params: Optional[Dict[str, Any]] = None
    ) -> WorkflowResult:
        """
        Execute a registered workflow by name, or an inline step list.

        Args:
            workflow: Registered name or sequence of steps
            params: Overrides for parameters the steps omit

        Returns:
            WorkflowResult with one outcome per step

        Raises:
            WorkflowNotFound: no workflow is registered under the name
            RequiredStepFailed: a required step failed; carries the partial trace
        """
        if isinstance(workflow, str):
            name: Optional[str] = workflow
            steps = self.get(workflow)
        else:
            name = None
            steps = parse_steps(workflow)

        async with self.lock:
            return await self._run(name, steps, params or {})

    async def _run(self, name: Optional[str], steps: List[BaseStep], params: Dict[str, Any]) -> WorkflowResult:
        label = name or "inline"
        log.info(f"Executing workflow: {label} ({len(steps)} steps)")
        result = WorkflowResult(workflow=name)

        for index, step in enumerate(steps):
            log.info(f"  Step {index + 1}/{len(steps)}: {step.action}")
            try:
                value = await self.interpreter.execute(step, params)
            except Exception as e:
                reason = describe_error(e)
                log.error(f"  Step failed: {step.action} - {reason}")
                result.outcomes.append(
                    StepOutcome(index=index, step=step.action, success=False, error=reason)
                )
                if step.required:
                    result.completed = False
                    result.error = f"Required step failed: {step.action}"
                    raise RequiredStepFailed(step.action, reason, result) from e
                continue

            result.outcomes.append(
                StepOutcome(index=index, step=step.action, success=True, result=value)
            )

        log.info(f"Workflow completed: {label}")
        return result
