"""Error taxonomy surfaced by the automation engine."""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import WorkflowResult


class RindBrowserError(Exception):
    """Base class for every error the engine surfaces to callers."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CapabilityFailure(RindBrowserError):
    """A browser primitive or page analysis call failed."""

    def __init__(self, reason: str, timeout: bool = False):
        super().__init__(reason)
        self.timeout = timeout


class UnknownAction(RindBrowserError):
    """A step carried an action tag outside the recognized vocabulary."""

    def __init__(self, action: Optional[str]):
        super().__init__(f"Unknown action: {action}")
        self.action = action


class InvalidStep(RindBrowserError):
    """A step is malformed or is missing a parameter it needs."""


class RequiredStepFailed(RindBrowserError):
    """A required workflow step failed; carries the partial trace."""

    def __init__(self, step: str, cause: str, result: "WorkflowResult"):
        super().__init__(f"Required step failed: {step} ({cause})")
        self.step = step
        self.cause = cause
        self.result = result


class WorkflowNotFound(RindBrowserError):

    def __init__(self, name: str):
        super().__init__(f"Workflow not found: {name}")
        self.name = name


class MonitorAlreadyExists(RindBrowserError):

    def __init__(self, monitor_id: str):
        super().__init__(f"Monitor already exists: {monitor_id}")
        self.monitor_id = monitor_id


class MonitorNotFound(RindBrowserError):

    def __init__(self, monitor_id: str):
        super().__init__(f"Monitor not found: {monitor_id}")
        self.monitor_id = monitor_id


class NotInitialized(RindBrowserError):

    def __init__(self, reason: str = "Orchestrator not initialized. Call /initialize first."):
        super().__init__(reason)


def describe_error(error: BaseException) -> str:
    """Human-readable reason for any exception raised under the engine."""
    if isinstance(error, RindBrowserError):
        return error.reason
    return str(error) or error.__class__.__name__
