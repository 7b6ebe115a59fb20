"""Core components of the RindBrowser system."""

from .errors import (
    RindBrowserError,
    CapabilityFailure,
    UnknownAction,
    InvalidStep,
    RequiredStepFailed,
    WorkflowNotFound,
    MonitorAlreadyExists,
    MonitorNotFound,
    NotInitialized,
    describe_error,
)
from .models import parse_step, parse_steps, StepOutcome, WorkflowResult
from .browser_engine import BrowserEngine
from .page_analyzer import PageAnalyzer
from .step_interpreter import StepInterpreter
from .workflow_engine import WorkflowEngine
from .monitor import MonitorSupervisor, MonitorHandle, MonitorEvent
from .research import ResearchAggregator, CompetitorTarget, CompetitorRecord
from .qa import QAEvaluator, QASuite, QATest, QASuiteResult, QATestResult, QACheckResult
from .orchestrator import AutomationOrchestrator

__all__ = [
    'RindBrowserError',
    'CapabilityFailure',
    'UnknownAction',
    'InvalidStep',
    'RequiredStepFailed',
    'WorkflowNotFound',
    'MonitorAlreadyExists',
    'MonitorNotFound',
    'NotInitialized',
    'describe_error',
    'parse_step',
    'parse_steps',
    'StepOutcome',
    'WorkflowResult',
    'BrowserEngine',
    'PageAnalyzer',
    'StepInterpreter',
    'WorkflowEngine',
    'MonitorSupervisor',
    'MonitorHandle',
    'MonitorEvent',
    'ResearchAggregator',
    'CompetitorTarget',
    'CompetitorRecord',
    'QAEvaluator',
    'QASuite',
    'QATest',
    'QASuiteResult',
    'QATestResult',
    'QACheckResult',
    'AutomationOrchestrator'
]
