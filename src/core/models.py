"""Declarative step vocabulary and workflow result models."""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from .errors import InvalidStep, UnknownAction


class BaseStep(BaseModel):
    """Fields shared by every step kind."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    required: bool = True

    def parameters(self) -> Dict[str, Any]:
        """Action-specific parameters (everything except the tag and flags)."""
        return self.model_dump(exclude={"action", "required"})


class NavigateStep(BaseStep):
    action: Literal["navigate"] = "navigate"
    url: Optional[str] = None
    wait_until: Optional[str] = Field(default=None, alias="waitUntil")


class ClickStep(BaseStep):
    action: Literal["click"] = "click"
    selector: Optional[str] = None


class TypeStep(BaseStep):
    action: Literal["type"] = "type"
    selector: Optional[str] = None
    text: Optional[str] = None


class WaitStep(BaseStep):
    action: Literal["wait"] = "wait"
    selector: Optional[str] = None
    timeout: Optional[int] = None


class ScreenshotStep(BaseStep):
    action: Literal["screenshot"] = "screenshot"
    path: Optional[str] = None
    full_page: Optional[bool] = Field(default=None, alias="fullPage")
    type: Optional[Literal["png", "jpeg"]] = None


class ExtractStep(BaseStep):
    action: Literal["extract"] = "extract"


class AnalyzeStep(BaseStep):
    action: Literal["analyze"] = "analyze"


class RunScriptStep(BaseStep):
    action: Literal["run_script"] = "run_script"
    script: Optional[str] = None


Step = Annotated[
    Union[
        NavigateStep,
        ClickStep,
        TypeStep,
        WaitStep,
        ScreenshotStep,
        ExtractStep,
        AnalyzeStep,
        RunScriptStep,
    ],
    Field(discriminator="action"),
]

STEP_TYPES = {
    "navigate": NavigateStep,
    "click": ClickStep,
    "type": TypeStep,
    "wait": WaitStep,
    "screenshot": ScreenshotStep,
    "extract": ExtractStep,
    "analyze": AnalyzeStep,
    "run_script": RunScriptStep,
}

ACTION_ALIASES = {
    "executeScript": "run_script",
    "execute_script": "run_script",
    "run-script": "run_script",
    "runScript": "run_script",
}


def parse_step(data: Union[BaseStep, Dict[str, Any]]) -> BaseStep:
    """
    Turn an externally supplied step description into a typed step.

    Args:
        data: A step model or a mapping with an ``action`` tag

    Returns:
        The matching step model

    Raises:
        UnknownAction: the tag is not part of the step vocabulary
        InvalidStep: the payload does not fit the tagged step's shape
    """
    if isinstance(data, BaseStep):
        return data
    if not isinstance(data, dict):
        raise InvalidStep(f"Step must be a mapping, got {type(data).__name__}")

    action = data.get("action")
    if not isinstance(action, str):
        raise UnknownAction(action)
    action = ACTION_ALIASES.get(action, action)
    step_type = STEP_TYPES.get(action)
    if step_type is None:
        raise UnknownAction(data.get("action"))

    try:
        return step_type.model_validate({**data, "action": action})
    except ValidationError as e:
        raise InvalidStep(f"Invalid {action} step: {e.errors()[0]['msg']}") from e


def parse_steps(steps: List[Union[BaseStep, Dict[str, Any]]]) -> List[BaseStep]:
    """Parse a whole sequence; nothing is returned unless every step parses."""
    return [parse_step(step) for step in steps]


class StepOutcome(BaseModel):
    """Result of one attempted workflow step."""
    model_config = ConfigDict(frozen=True)

    index: int
    step: str
    success: bool
    result: Any = None
    error: Optional[str] = None


class WorkflowResult(BaseModel):
    """Ordered trace of an executed workflow."""
    workflow: Optional[str] = None
    outcomes: List[StepOutcome] = Field(default_factory=list)
    completed: bool = True
    error: Optional[str] = None

    @computed_field
    @property
    def success(self) -> bool:
        return self.completed and self.error is None
